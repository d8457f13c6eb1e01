"""Local host adapters."""
