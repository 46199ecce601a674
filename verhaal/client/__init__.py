"""HTTP client utilities for talking to the site's admin API.

Security notes:
- Treat server responses as untrusted input.
- Avoid printing or logging raw file bytes.
"""

from .http import AdminApiClient, HttpCategoryDirectory, HttpRecordStore, HttpResponse, TransportError

__all__ = [
    "AdminApiClient",
    "HttpCategoryDirectory",
    "HttpRecordStore",
    "HttpResponse",
    "TransportError",
]
