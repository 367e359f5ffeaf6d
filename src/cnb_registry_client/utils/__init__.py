"""Utility functions for the CNB registry client."""

from .digest import calculate_digest, validate_digest
from .timestamps import format_timestamp, parse_timestamp

__all__ = ["calculate_digest", "validate_digest", "format_timestamp", "parse_timestamp"]
