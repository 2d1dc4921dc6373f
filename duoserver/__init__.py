"""DuoServer - a small static file HTTP server with an operator console."""

__version__ = "1.0.0"
