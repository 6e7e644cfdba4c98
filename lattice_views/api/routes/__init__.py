"""HTTP API route handlers."""

from . import index, views

__all__ = ["index", "views"]
