"""Video/GIF to React animation component, driven over MCP."""

__version__ = "0.1.0"
