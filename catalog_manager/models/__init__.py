"""
Data models for the catalog manager.

This module contains pure data classes with no network logic.
"""

from .batch import BatchSubRequest, BatchSubResponse, ErrorDescriptor
from .product import ModerationStatus, NewProduct, Product, ReviewStatus, StatusSnapshot
from .product_set import ProductSet

__all__ = [
    'BatchSubRequest',
    'BatchSubResponse',
    'ErrorDescriptor',
    'ModerationStatus',
    'NewProduct',
    'Product',
    'ProductSet',
    'ReviewStatus',
    'StatusSnapshot',
]
