"""
Shared constants for the project.

Provider limits and defaults that need a single source of truth.
The values in config/catalog.yaml override the client-side defaults.
"""

# Graph API
GRAPH_BASE_URL = "https://graph.facebook.com"
GRAPH_API_VERSION = "v19.0"

# Maximum sub-requests the Graph batch endpoint accepts in one call
MAX_BATCH_SIZE = 50

# Page size hints
DEFAULT_PAGE_SIZE = 100
SET_MEMBER_PAGE_SIZE = 5000

# Error codes that mean the token is invalid/expired (102, 190)
# or lacks a permission (200-299)
AUTH_ERROR_CODES = frozenset({102, 190})
PERMISSION_ERROR_CODE_RANGE = range(200, 300)

# Retailer IDs (SKUs) generated for new products: six decimal digits
RETAILER_ID_MIN = 100000
RETAILER_ID_MAX = 999999
