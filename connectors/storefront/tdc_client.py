"""3DCart REST API client.

Only the order status write-back is implemented; orders are read elsewhere
and handed to the sync service as raw payloads.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from core.config import StorefrontSettings
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


class ThreeDCartClient:
    """HTTP client for the 3DCart REST API.

    Usage:
        client = ThreeDCartClient(config.storefront)
        client.update_order_status("1057113", 2, "Order synchronized to NetSuite")
    """

    def __init__(self, settings: StorefrontSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def _get_headers(self) -> Dict[str, str]:
        return {
            "SecureURL": self.settings.secure_url,
            "PrivateKey": self.settings.private_key,
            "Token": self.settings.token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.settings.base_url.rstrip('/')}/{path.lstrip('/')}"
        start = time.monotonic()
        try:
            response = self._session.request(
                method,
                url,
                headers=self._get_headers(),
                json=body,
                timeout=self.settings.timeout,
            )
        except requests.RequestException as e:
            record_api_call(method, 0, (time.monotonic() - start) * 1000)
            raise TransportError(f"Request to 3DCart failed {method} {url}: {e}") from e

        record_api_call(method, response.status_code, (time.monotonic() - start) * 1000)
        logger.info(f"3DCart {method} {url} -> {response.status_code}")

        status = response.status_code
        if status < 400:
            return response

        text = response.text or ""
        if status in (401, 403):
            raise AuthenticationError(f"3DCart authentication failed ({status})", status, text)
        if status == 404:
            raise NotFoundError(f"3DCart resource not found: {url}", status, text)
        if status == 429:
            raise RateLimitError("3DCart rate limit exceeded", response_body=text)
        if status >= 500:
            raise TransportError(f"3DCart server error {status}", status, text)
        if status == 400:
            raise ValidationError(f"3DCart rejected {method} {url}: {text[:200]}", status, text)
        raise OrderSyncError(f"3DCart API error {status}", status, text)

    def update_order_status(self, order_id: str, status_id: int, comments: str = "") -> None:
        """Set an order's status and internal comment.

        Args:
            order_id: Storefront order id
            status_id: Storefront OrderStatusID (e.g. 2 = Processing)
            comments: Text stored in InternalComments

        Raises:
            OrderSyncError: On any non-2xx response or network failure
        """
        self._request(
            "PUT",
            f"/Orders/{order_id}",
            body={"OrderStatusID": status_id, "InternalComments": comments},
        )
        logger.info(f"Updated 3DCart order {order_id} to status {status_id}")
