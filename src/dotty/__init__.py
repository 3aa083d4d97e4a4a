"""Profile-aware dotfile synchronization."""

__version__ = "0.1.0"
