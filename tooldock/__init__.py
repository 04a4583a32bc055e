"""tooldock - a lightweight plugin-based CLI toolkit."""

__version__ = "1.0.0"
