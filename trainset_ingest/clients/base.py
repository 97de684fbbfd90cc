"""Base API client with common functionality."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Raised for non-2xx responses and transport failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass
class RequestMetrics:
    """Metrics for API requests."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_duration_ms: float = 0
    request_durations: list[float] = field(default_factory=list)

    def record_request(self, duration_ms: float, success: bool) -> None:
        """Record a request."""
        self.total_requests += 1
        self.total_duration_ms += duration_ms
        self.request_durations.append(duration_ms)
        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

    @property
    def avg_duration_ms(self) -> float:
        """Average request duration."""
        if not self.request_durations:
            return 0
        return sum(self.request_durations) / len(self.request_durations)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "total_duration_ms": round(self.total_duration_ms, 2),
            "avg_duration_ms": round(self.avg_duration_ms, 2),
        }


class BaseAPIClient(ABC):
    """Base class for API clients with retry and timeout support."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ):
        """Initialize base API client.

        Args:
            base_url: Base URL for the API
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for failed requests
            backoff_factor: Exponential backoff factor
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries

        # Metrics tracking
        self.metrics = RequestMetrics()

        # Setup session with retry strategy
        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @abstractmethod
    def get_auth_headers(self) -> dict:
        """Get authentication headers for requests."""
        pass

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Prefer the server's JSON ``message`` over the status line."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {response.status_code}: {response.reason}"

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[Any] = None,
        headers: Optional[dict] = None,
    ) -> requests.Response:
        """Make HTTP request with timing and logging.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (will be joined with base_url)
            params: Query parameters
            json_data: JSON body data
            headers: Additional headers

        Returns:
            Response object

        Raises:
            APIError: On non-2xx responses after retries, or transport errors
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        request_headers = self.get_auth_headers()
        if headers:
            request_headers.update(headers)

        # Start timing
        start_time = time.time()

        logger.debug(
            f"Making {method} request",
            extra={"url": url, "params": params}
        )

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                headers=request_headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            self.metrics.record_request(duration_ms, success=False)

            logger.error(
                f"API request failed",
                extra={
                    "method": method,
                    "endpoint": endpoint,
                    "error": str(e),
                    "duration_ms": round(duration_ms, 2),
                }
            )
            raise APIError(f"{method} {url} failed: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        self.metrics.record_request(duration_ms, success=response.ok)

        logger.info(
            f"API request completed",
            extra={
                "method": method,
                "endpoint": endpoint,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "response_size_bytes": len(response.content),
            }
        )

        if not response.ok:
            raise APIError(self._error_message(response), status_code=response.status_code)
        return response

    def get(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        """Make GET request and return JSON response."""
        response = self._make_request("GET", endpoint, params=params, headers=headers)
        return response.json()

    def get_text(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> str:
        """Make GET request and return the body as text."""
        response = self._make_request("GET", endpoint, params=params, headers=headers)
        return response.text

    def post(
        self,
        endpoint: str,
        json_data: Optional[Any] = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        """Make POST request and return JSON response."""
        response = self._make_request(
            "POST", endpoint, params=params, json_data=json_data, headers=headers
        )
        return response.json()
