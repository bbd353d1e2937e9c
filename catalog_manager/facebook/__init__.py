"""
Facebook catalog integration modules.

Modules:
    api_client - Graph API transport (auth, JSON/form bodies, errors)
    batch - Batch envelope builder (splits and aligns batch calls)
    pagination - Cursor-following page merger
    reconciler - Maps batch sub-responses back to inputs, aggregates failures
    set_diff - Set membership diff and the declarative/imperative writers
    mapping - Product field/unit mapping and SKU generation
    catalog_client - Public client composing all of the above
"""

from .api_client import GraphAPIClient
from .batch import BatchExecutor
from .catalog_client import CatalogClient
from .config import (
    AuthPlacement,
    ClientConfig,
    Credentials,
    ProviderModes,
    SetListingMode,
    SetMembershipMode,
    StatusRefreshMode,
    load_client_config,
)
from .errors import (
    AuthenticationError,
    BatchError,
    BatchFailure,
    CatalogError,
    GraphAPIError,
)
from .pagination import Paginator
from .set_diff import MembershipDiff, compute_membership_diff

__all__ = [
    # Client
    'CatalogClient',
    'GraphAPIClient',
    'BatchExecutor',
    'Paginator',
    # Config
    'AuthPlacement',
    'ClientConfig',
    'Credentials',
    'ProviderModes',
    'SetListingMode',
    'SetMembershipMode',
    'StatusRefreshMode',
    'load_client_config',
    # Errors
    'AuthenticationError',
    'BatchError',
    'BatchFailure',
    'CatalogError',
    'GraphAPIError',
    # Set diff
    'MembershipDiff',
    'compute_membership_diff',
]
