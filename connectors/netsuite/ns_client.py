"""NetSuite HTTP Client.

Low-level HTTP client for NetSuite REST record calls and SuiteQL queries.
Handles request signing, pagination and error mapping. Retries are not done
here; they belong to the RetryCoordinator.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from connectors.erp_base import ERPResponse, ERPTransport, register_transport
from connectors.netsuite.ns_auth import NSAuthConfig, RequestSigner, SignatureContext
from connectors.netsuite.ns_models import NSErrorResponse, SuiteQLPage
from core.errors import (
    AuthenticationError,
    NotFoundError,
    OrderSyncError,
    RateLimitError,
    TransportError,
    ValidationError,
)
from core.observability.metrics import record_api_call

logger = logging.getLogger(__name__)


SUITEQL_PATH = "/query/v1/suiteql"


@dataclass
class NSApiConfig:
    """Configuration for the NetSuite API client."""
    base_url: str
    rest_api_version: str = "v1"
    connect_timeout: float = 10.0       # seconds
    read_timeout: float = 60.0          # seconds
    page_size: int = 1000               # SuiteQL maximum

    @classmethod
    def from_settings(cls, settings) -> "NSApiConfig":
        """Build from a core.config.NetSuiteSettings."""
        return cls(
            base_url=settings.base_url,
            rest_api_version=settings.rest_api_version,
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
        )

    @property
    def rest_root(self) -> str:
        return f"{self.base_url.rstrip('/')}/services/rest"

    @property
    def record_root(self) -> str:
        return f"{self.rest_root}/record/{self.rest_api_version}"

    @property
    def suiteql_url(self) -> str:
        return f"{self.rest_root}{SUITEQL_PATH}"

    def record_url(self, path: str) -> str:
        return f"{self.record_root}/{path.lstrip('/')}"


def parse_error_response(response_text: str) -> NSErrorResponse:
    """Parse a NetSuite error body, tolerating non-JSON bodies."""
    try:
        data = json.loads(response_text) if response_text else {}
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    return NSErrorResponse.model_validate(data)


@register_transport("netsuite")
class NSClient(ERPTransport):
    """HTTP client for the NetSuite REST API.

    Provides:
    - OAuth 1.0a signed calls (fresh nonce/timestamp per request)
    - SuiteQL with transparent offset pagination
    - Error mapping onto the core error taxonomy

    Usage:
        client = NSClient(auth_config, api_config)
        rows = client.run_query("SELECT id FROM item WHERE itemid = 'SKU-1'")
        order_id = client.create_record("salesOrder", payload)
    """

    def __init__(
        self,
        auth_config: NSAuthConfig,
        api_config: NSApiConfig,
        signer: Optional[RequestSigner] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize API client.

        Args:
            auth_config: Token-based auth credentials
            api_config: Base URL, API version and timeouts
            signer: RequestSigner (a default one is created if omitted)
            session: requests.Session to reuse connections
        """
        self.auth_config = auth_config
        self.api_config = api_config
        self.signer = signer or RequestSigner()
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "NSClient":
        """Build a client from core.config.NetSuiteSettings."""
        return cls(
            NSAuthConfig.from_settings(settings),
            NSApiConfig.from_settings(settings),
            session=session,
        )

    def close(self) -> None:
        """Close HTTP session."""
        self._session.close()

    def _get_headers(self, method: str, url: str, params: Optional[Dict[str, Any]]) -> Dict[str, str]:
        """Get signed headers for one request."""
        context = SignatureContext.fresh(self.auth_config)
        return {
            "Authorization": self.signer.sign(method, url, params, context),
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> ERPResponse:
        """Make one signed request.

        Args:
            method: HTTP method
            url: Absolute URL
            params: Query parameters
            body: JSON body
            extra_headers: Additional headers (e.g. Prefer: transient)

        Returns:
            ERPResponse

        Raises:
            AuthenticationError: 401/403
            ValidationError: 400 (with parsed error details)
            NotFoundError: 404
            RateLimitError: 429
            TransportError: Network failures, timeouts, 5xx
        """
        method = method.upper()
        params = {k: str(v) for k, v in (params or {}).items()}
        headers = self._get_headers(method, url, params)
        if extra_headers:
            headers.update(extra_headers)

        start = time.monotonic()
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                params=params or None,
                json=body,
                timeout=(self.api_config.connect_timeout, self.api_config.read_timeout),
            )
        except requests.Timeout as e:
            record_api_call(method, 0, (time.monotonic() - start) * 1000)
            raise TransportError(f"Timeout calling NetSuite {method} {url}: {e}") from e
        except requests.RequestException as e:
            record_api_call(method, 0, (time.monotonic() - start) * 1000)
            raise TransportError(f"Request to NetSuite failed {method} {url}: {e}") from e

        duration_ms = (time.monotonic() - start) * 1000
        record_api_call(method, response.status_code, duration_ms)
        logger.info(f"NetSuite {method} {url} -> {response.status_code} ({duration_ms:.0f}ms)")

        response_text = response.text or ""

        if response.status_code < 400:
            body_data: Any = None
            if response_text and response.status_code != 204:
                try:
                    body_data = json.loads(response_text)
                except ValueError:
                    body_data = response_text
            return ERPResponse(
                status_code=response.status_code,
                body=body_data,
                headers=dict(response.headers),
            )

        raise self._error_for(response.status_code, response_text, response.headers, method, url)

    def _error_for(
        self,
        status_code: int,
        response_text: str,
        headers,
        method: str,
        url: str,
    ) -> OrderSyncError:
        """Map an HTTP error status onto the error taxonomy."""
        error = parse_error_response(response_text)

        if status_code in (401, 403):
            return AuthenticationError(
                f"NetSuite authentication failed ({status_code}): {error.summary}",
                status_code,
                response_text,
            )

        if status_code == 400:
            logger.error(f"NetSuite rejected {method} {url}: {error.summary}")
            return ValidationError(
                f"NetSuite validation error: {error.summary}",
                status_code,
                response_text,
                details=[d.to_dict() for d in error.error_details],
            )

        if status_code == 404:
            return NotFoundError(f"Resource not found: {url}", status_code, response_text)

        if status_code == 429:
            try:
                retry_after = int(headers.get("Retry-After", 60))
            except (TypeError, ValueError):
                retry_after = 60
            logger.warning(f"Rate limited by NetSuite, retry after {retry_after}s")
            return RateLimitError("NetSuite rate limit exceeded", retry_after, response_text)

        if status_code >= 500:
            return TransportError(
                f"NetSuite server error {status_code}: {error.summary}",
                status_code,
                response_text,
            )

        return OrderSyncError(
            f"NetSuite API error {status_code}: {error.summary}",
            status_code,
            response_text,
        )

    # =========================================================================
    # ERPTransport
    # =========================================================================

    def execute(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> ERPResponse:
        """Execute a REST record call relative to /services/rest/record/v1."""
        return self._request(method, self.api_config.record_url(path), params=params, body=body)

    def query_page(self, query: str, offset: int = 0, limit: Optional[int] = None) -> SuiteQLPage:
        """Fetch one page of SuiteQL results."""
        params = {"limit": limit or self.api_config.page_size, "offset": offset}
        response = self._request(
            "POST",
            self.api_config.suiteql_url,
            params=params,
            body={"q": query},
            extra_headers={"Prefer": "transient"},
        )
        data = response.body if isinstance(response.body, dict) else {}
        page = SuiteQLPage.model_validate(data)
        logger.debug(
            f"SuiteQL page offset={offset} rows={len(page.items)} has_more={page.has_more}"
        )
        return page

    def run_query(self, query: str) -> List[Dict[str, Any]]:
        """Run a SuiteQL query, following ``hasMore`` until exhausted.

        Args:
            query: SuiteQL text (callers must escape user-controlled literals)

        Returns:
            All rows, in server order
        """
        rows: List[Dict[str, Any]] = []
        offset = 0

        while True:
            page = self.query_page(query, offset=offset)
            rows.extend(page.items)

            if not page.has_more or not page.items:
                break

            offset += len(page.items)

        logger.info(f"SuiteQL query returned {len(rows)} row(s)")
        return rows
