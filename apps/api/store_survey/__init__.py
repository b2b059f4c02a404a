"""Store survey intake service."""
