"""Client for the remote ML ingest backend."""

import logging
import os
from typing import Optional, Union

from trainset_ingest.clients.base import APIError, BaseAPIClient
from trainset_ingest.store import FeatureStore
from trainset_ingest.transform import DatasetKind, resolve_dataset

logger = logging.getLogger(__name__)


class IngestApiClient(BaseAPIClient):
    """Client for the backend that aggregates feature rows into a master CSV.

    Endpoints (relative to the base URL):
    - POST ml/feature     save one dataset's rows
    - POST ml/ingest      submit one dataset's rows for scoring
    - GET  ml/master.csv  server-side master table
    - POST ml/load-local  make the server load its local CSV folder
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: int = 2,
    ):
        """Initialize ingest API client.

        Args:
            base_url: API base URL (or from env: INGEST_API_URL)
            token: Optional bearer token (or from env: INGEST_API_TOKEN)
            timeout: Request timeout in seconds (or from env: INGEST_API_TIMEOUT)
            max_retries: Maximum retry attempts for failed requests
        """
        base_url = base_url or os.getenv("INGEST_API_URL")
        if not base_url:
            raise ValueError("INGEST_API_URL is required")

        if timeout is None:
            timeout = float(os.getenv("INGEST_API_TIMEOUT", "10"))

        super().__init__(base_url=base_url, timeout=timeout, max_retries=max_retries)
        self.token = token or os.getenv("INGEST_API_TOKEN")

    def get_auth_headers(self) -> dict:
        """Bearer header when a token is configured."""
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _payload(self, dataset: Union[DatasetKind, str], rows: list[dict]) -> dict:
        if not isinstance(rows, list):
            raise TypeError(f"rows must be a list, got {type(rows).__name__}")
        return {"dataset": resolve_dataset(dataset).value, "rows": rows}

    def save_feature(self, dataset: Union[DatasetKind, str], rows: list[dict]) -> dict:
        """Store a dataset's rows server-side for master aggregation.

        Returns:
            Server response, e.g. ``{"status": "ok", "saved": 12}``
        """
        return self.post("ml/feature", json_data=self._payload(dataset, rows))

    def ingest(self, dataset: Union[DatasetKind, str], rows: list[dict]) -> dict:
        """Submit a dataset's rows to the ingest endpoint.

        Returns:
            Server response, e.g. ``{"status": "ok", "ingested": 12}``
        """
        return self.post("ml/ingest", json_data=self._payload(dataset, rows))

    def get_master_csv(self) -> str:
        """Fetch the server-built master CSV."""
        return self.get_text("ml/master.csv", headers={"Accept": "text/csv"})

    def load_local(self) -> dict:
        """Ask the server to load its local feature CSV folder.

        Returns:
            Server response with per-dataset ``loaded`` counts
        """
        return self.post("ml/load-local")


def _has_data_rows(csv_text: str) -> bool:
    lines = [line for line in csv_text.splitlines() if line.strip()]
    return len(lines) > 1


def fetch_master_csv(client: Optional[IngestApiClient], store: FeatureStore) -> str:
    """Get the master CSV, preferring the remote backend.

    Falls back to the locally merged master table when no client is
    configured, the request fails, or the remote table has no data rows.
    """
    if client is None:
        return store.master_csv()

    try:
        remote = client.get_master_csv()
    except APIError as e:
        logger.warning(
            f"Remote master CSV unavailable, building locally: {e}",
            extra={"status_code": e.status_code}
        )
        return store.master_csv()

    if not _has_data_rows(remote):
        logger.warning("Remote master CSV has no data rows, building locally")
        return store.master_csv()

    return remote
