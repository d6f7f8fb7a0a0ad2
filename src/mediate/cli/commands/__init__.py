"""CLI command modules."""

from . import config, request

__all__ = [
    "config",
    "request",
]
