"""
HTTP probing of inventory endpoints.
"""

from .prober import Prober, parse_inventory, tags_url, default_sleeper

__all__ = [
    'Prober',
    'parse_inventory',
    'tags_url',
    'default_sleeper'
]
