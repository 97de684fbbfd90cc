"""API client wrappers for the remote ingest backend.

Each client handles:
- Authentication
- Timeouts
- Retries with exponential backoff
"""

from .base import APIError, BaseAPIClient
from .ingest_api import IngestApiClient, fetch_master_csv

__all__ = ["APIError", "BaseAPIClient", "IngestApiClient", "fetch_master_csv"]
