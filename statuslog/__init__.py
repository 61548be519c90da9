"""statuslog - status-change audit log for markdown vaults."""

__version__ = "0.1.0"
