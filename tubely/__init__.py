"""A small video-hosting backend: SQLite storage, media helpers and an HTTP server."""

__version__ = "0.1.0"

__all__ = ["__version__"]