"""Agent backend adapters."""
