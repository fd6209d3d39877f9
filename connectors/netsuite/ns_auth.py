"""NetSuite Token-Based Authentication (OAuth 1.0a request signing).

Every NetSuite REST/SuiteQL request carries an ``Authorization: OAuth ...``
header whose signature is an HMAC over a canonical description of the
request. Both HMAC-SHA256 (default) and HMAC-SHA1 (legacy accounts) are
supported.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, quote, urlsplit, urlunsplit

logger = logging.getLogger(__name__)


OAUTH_VERSION = "1.0"


class SignatureMethod(str, Enum):
    """Supported keyed-hash algorithms."""
    HMAC_SHA256 = "HMAC-SHA256"
    HMAC_SHA1 = "HMAC-SHA1"

    @property
    def digestmod(self):
        return hashlib.sha256 if self is SignatureMethod.HMAC_SHA256 else hashlib.sha1

    @classmethod
    def resolve(cls, value: Optional[str]) -> "SignatureMethod":
        """Parse a configured method name, falling back to HMAC-SHA256."""
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Invalid signature method {value!r} in config, defaulting to HMAC-SHA256")
            return cls.HMAC_SHA256


def percent_encode(value: Any) -> str:
    """RFC 3986 percent-encoding (only unreserved characters left as-is)."""
    return quote(str(value), safe="-._~")


def new_nonce() -> str:
    """Unpredictable per-request nonce: 16 random bytes, hex-encoded."""
    return secrets.token_hex(16)


@dataclass(frozen=True)
class NSAuthConfig:
    """Credentials for NetSuite token-based authentication.

    Attributes:
        account_id: NetSuite account id, sent as the OAuth realm
        consumer_key: Integration record consumer key
        consumer_secret: Integration record consumer secret
        token_id: Access token id
        token_secret: Access token secret
        signature_method: "HMAC-SHA256" or "HMAC-SHA1"
    """
    account_id: str
    consumer_key: str
    consumer_secret: str
    token_id: str
    token_secret: str
    signature_method: str = SignatureMethod.HMAC_SHA256.value

    @classmethod
    def from_settings(cls, settings) -> "NSAuthConfig":
        """Build from a core.config.NetSuiteSettings."""
        return cls(
            account_id=settings.account_id,
            consumer_key=settings.consumer_key,
            consumer_secret=settings.consumer_secret,
            token_id=settings.token_id,
            token_secret=settings.token_secret,
            signature_method=settings.signature_method,
        )

    @property
    def method(self) -> SignatureMethod:
        return SignatureMethod.resolve(self.signature_method)


@dataclass(frozen=True)
class SignatureContext:
    """Everything needed to sign one request.

    Built fresh per request so that nonce and timestamp never repeat.
    """
    account_id: str
    consumer_key: str
    consumer_secret: str
    token_id: str
    token_secret: str
    signature_method: SignatureMethod
    nonce: str
    timestamp: int

    @classmethod
    def fresh(
        cls,
        auth_config: NSAuthConfig,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = new_nonce,
    ) -> "SignatureContext":
        return cls(
            account_id=auth_config.account_id,
            consumer_key=auth_config.consumer_key,
            consumer_secret=auth_config.consumer_secret,
            token_id=auth_config.token_id,
            token_secret=auth_config.token_secret,
            signature_method=auth_config.method,
            nonce=nonce_factory(),
            timestamp=int(clock()),
        )

    def oauth_params(self) -> Dict[str, str]:
        """OAuth protocol parameters, in header order."""
        return {
            "oauth_consumer_key": self.consumer_key,
            "oauth_token": self.token_id,
            "oauth_signature_method": self.signature_method.value,
            "oauth_timestamp": str(self.timestamp),
            "oauth_nonce": self.nonce,
            "oauth_version": OAUTH_VERSION,
        }


class RequestSigner:
    """Produces OAuth 1.0a ``Authorization`` header values.

    Usage:
        signer = RequestSigner()
        ctx = SignatureContext.fresh(auth_config)
        header = signer.sign("POST", url, {"limit": 1000}, ctx)
    """

    @staticmethod
    def split_url(url: str, query_params: Optional[Mapping[str, Any]] = None) -> Tuple[str, Dict[str, str]]:
        """Separate any query string from the URL and merge it into the params."""
        parts = urlsplit(url)
        params = dict(parse_qsl(parts.query, keep_blank_values=True))
        for key, value in (query_params or {}).items():
            params[str(key)] = str(value)
        base_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
        return base_url, params

    def parameter_string(self, query_params: Mapping[str, Any], context: SignatureContext) -> str:
        """Sorted, percent-encoded ``key=value`` pairs joined by ``&``."""
        all_params = dict(context.oauth_params())
        for key, value in query_params.items():
            all_params[str(key)] = str(value)
        return "&".join(
            f"{percent_encode(key)}={percent_encode(all_params[key])}"
            for key in sorted(all_params)
        )

    def base_string(
        self,
        method: str,
        url: str,
        query_params: Optional[Mapping[str, Any]],
        context: SignatureContext,
    ) -> str:
        """``METHOD&enc(url)&enc(paramString)``."""
        base_url, params = self.split_url(url, query_params)
        param_string = self.parameter_string(params, context)
        return "&".join([
            method.upper(),
            percent_encode(base_url),
            percent_encode(param_string),
        ])

    @staticmethod
    def signing_key(context: SignatureContext) -> str:
        return f"{percent_encode(context.consumer_secret)}&{percent_encode(context.token_secret)}"

    def signature(
        self,
        method: str,
        url: str,
        query_params: Optional[Mapping[str, Any]],
        context: SignatureContext,
    ) -> str:
        """Base64 HMAC of the base string."""
        digest = hmac.new(
            self.signing_key(context).encode("utf-8"),
            self.base_string(method, url, query_params, context).encode("utf-8"),
            context.signature_method.digestmod,
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def sign(
        self,
        method: str,
        url: str,
        query_params: Optional[Mapping[str, Any]],
        context: SignatureContext,
    ) -> str:
        """Build the full ``Authorization`` header value.

        Args:
            method: HTTP method
            url: Request URL (a query string on it is folded into the params)
            query_params: Query parameters sent with the request
            context: Credentials plus this request's nonce and timestamp

        Returns:
            ``OAuth realm="<account>", oauth_consumer_key="...", ..., oauth_signature="..."``
        """
        oauth_params = context.oauth_params()
        oauth_params["oauth_signature"] = self.signature(method, url, query_params, context)

        header = f'OAuth realm="{context.account_id}"'
        for key, value in oauth_params.items():
            header += f', {key}="{percent_encode(value)}"'
        return header
