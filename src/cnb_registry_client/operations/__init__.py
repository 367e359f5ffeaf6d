"""Registry operations built on the low-level client."""
