"""
Data parsers package initialization.
"""

from .order_detail_parser import (
    parse_order_items,
    parse_grand_totals,
    parse_order_detail,
    parse_quantity,
)
from .catalog_parser import parse_order_catalog

__all__ = [
    'parse_order_items',
    'parse_grand_totals',
    'parse_order_detail',
    'parse_quantity',
    'parse_order_catalog',
]
