"""Core version-control engine."""
