"""In-memory task list HTTP service."""

__version__ = "0.1.0"
