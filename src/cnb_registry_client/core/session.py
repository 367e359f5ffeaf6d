"""aiohttp session helpers."""

import json
from typing import Any, Optional

import aiohttp

from .types import RegistryConfig


async def create_session(config: Optional[RegistryConfig] = None) -> aiohttp.ClientSession:
    """Create a client session honouring the config timeout."""
    config = config or RegistryConfig()
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=config.timeout))


def parse_json_response(body: bytes) -> Any:
    """Decode a JSON response body.

    Raises:
        ValueError: If the body is not valid JSON
    """
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid JSON response: {e}") from e
