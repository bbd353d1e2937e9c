"""
Facebook commerce catalog manager.

Lists, creates, updates and deletes catalog products and product sets
through the Graph API batch and pagination endpoints.
"""

from .common import ActivityLog, setup_logging
from .facebook import (
    AuthenticationError,
    BatchError,
    CatalogClient,
    CatalogError,
    ClientConfig,
    Credentials,
    GraphAPIError,
    load_client_config,
)
from .models import ModerationStatus, NewProduct, Product, ProductSet, ReviewStatus

__version__ = "0.1.0"

__all__ = [
    'ActivityLog',
    'AuthenticationError',
    'BatchError',
    'CatalogClient',
    'CatalogError',
    'ClientConfig',
    'Credentials',
    'GraphAPIError',
    'ModerationStatus',
    'NewProduct',
    'Product',
    'ProductSet',
    'ReviewStatus',
    'load_client_config',
    'setup_logging',
]
