"""Shared utilities for the backend."""
from utils.log import configure_logging

__all__ = [
    "configure_logging",
]
