"""
Contextspec Naming.

Natural language descriptions and categories derived from fixture chains.
"""

from contextspec.naming.context import ContextNamingService, humanize

__all__ = [
    "ContextNamingService",
    "humanize",
]
