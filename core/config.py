"""Configuration for the order sync pipeline.

Settings are read once at startup into frozen dataclasses and passed to each
component. Values come from the process environment, optionally seeded from a
``.env`` file at the repository root.

Usage:
    from core.config import load_config

    config = load_config()
    issues = config.netsuite.validate()
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_ENV_PATH = REPO_ROOT / ".env"

SIGNATURE_METHODS = ("HMAC-SHA256", "HMAC-SHA1")


# =============================================================================
# Settings
# =============================================================================

@dataclass(frozen=True)
class NetSuiteSettings:
    """NetSuite account, token-based auth credentials and HTTP limits."""
    account_id: str = ""
    consumer_key: str = ""
    consumer_secret: str = ""
    token_id: str = ""
    token_secret: str = ""
    base_url: str = ""
    environment: str = "sandbox"            # "sandbox" or "production"
    signature_method: str = "HMAC-SHA256"
    rest_api_version: str = "v1"
    connect_timeout: float = 10.0           # seconds
    read_timeout: float = 60.0              # seconds

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        issues = []
        for name in ("account_id", "consumer_key", "consumer_secret", "token_id", "token_secret", "base_url"):
            if not getattr(self, name):
                issues.append(f"Missing NetSuite setting: {name}")

        if self.signature_method not in SIGNATURE_METHODS:
            issues.append(
                f"Unsupported signature method {self.signature_method!r}; "
                f"expected one of {', '.join(SIGNATURE_METHODS)}"
            )

        # Sandbox accounts carry an "-sb" suffix in their host name
        if self.base_url:
            is_sandbox_url = "-sb" in self.base_url.lower()
            if self.environment == "production" and is_sandbox_url:
                issues.append("Production environment configured with a sandbox base_url")
            if self.environment == "sandbox" and not is_sandbox_url:
                issues.append("Sandbox environment configured with a production base_url")

        return issues


@dataclass(frozen=True)
class OrderMappingSettings:
    """How storefront orders map onto NetSuite sales orders."""
    source_prefix: str = "3DCART"
    subsidiary_id: int = 1
    department_id: int = 3
    default_item_id: int = 14238
    tax_item_id: int = 2
    shipping_item_id: int = 3
    discount_item_id: int = 4
    include_tax_as_line_item: bool = False
    include_shipping_as_line_item: bool = False
    include_discount_as_line_item: bool = False
    sales_order_taxable: bool = False
    total_tolerance: Decimal = Decimal("0.01")
    dropship_payment_method: str = "Dropship to Customer"

    def external_id(self, order_id: str) -> str:
        """Correlation key stored on the ERP order."""
        return f"{self.source_prefix}_{order_id}"


@dataclass(frozen=True)
class ProcessingSettings:
    """Retry and post-sync behaviour."""
    retry_attempts: int = 3
    retry_delay: float = 5.0                # seconds, fixed between attempts
    batch_delay: float = 0.5                # seconds between orders in a batch
    update_source_status: bool = True
    success_status_id: int = 2              # "Processing" in the storefront
    success_comment: str = "Order synchronized to NetSuite"


@dataclass(frozen=True)
class StorefrontSettings:
    """3DCart REST API credentials."""
    base_url: str = "https://apirest.3dcart.com/3dCartWebAPI/v1"
    secure_url: str = ""
    private_key: str = ""
    token: str = ""
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.secure_url and self.private_key and self.token)


@dataclass(frozen=True)
class SyncConfig:
    """Top-level configuration handed to every component."""
    netsuite: NetSuiteSettings = field(default_factory=NetSuiteSettings)
    mapping: OrderMappingSettings = field(default_factory=OrderMappingSettings)
    processing: ProcessingSettings = field(default_factory=ProcessingSettings)
    storefront: StorefrontSettings = field(default_factory=StorefrontSettings)
    log_level: str = "INFO"
    log_json: bool = False


# =============================================================================
# Environment Loading
# =============================================================================

def _env_str(name: str, default: str = "") -> str:
    value = os.getenv(name)
    return value.strip() if value is not None else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(env_file: Optional[Path] = None) -> SyncConfig:
    """Build a SyncConfig from environment variables.

    Args:
        env_file: Optional .env file to load first (defaults to REPO_ROOT/.env
            when it exists). Variables already set in the process win.

    Returns:
        Immutable SyncConfig
    """
    env_path = env_file or DEFAULT_ENV_PATH
    if env_path.exists():
        load_dotenv(env_path)

    netsuite = NetSuiteSettings(
        account_id=_env_str("NETSUITE_ACCOUNT_ID"),
        consumer_key=_env_str("NETSUITE_CONSUMER_KEY"),
        consumer_secret=_env_str("NETSUITE_CONSUMER_SECRET"),
        token_id=_env_str("NETSUITE_TOKEN_ID"),
        token_secret=_env_str("NETSUITE_TOKEN_SECRET"),
        base_url=_env_str("NETSUITE_BASE_URL"),
        environment=_env_str("NETSUITE_ENVIRONMENT", "sandbox"),
        signature_method=_env_str("NETSUITE_SIGNATURE_METHOD", "HMAC-SHA256"),
        rest_api_version=_env_str("NETSUITE_REST_API_VERSION", "v1"),
        connect_timeout=_env_float("NETSUITE_CONNECT_TIMEOUT", 10.0),
        read_timeout=_env_float("NETSUITE_READ_TIMEOUT", 60.0),
    )

    mapping = OrderMappingSettings(
        subsidiary_id=_env_int("NETSUITE_SUBSIDIARY_ID", 1),
        department_id=_env_int("NETSUITE_DEPARTMENT_ID", 3),
        default_item_id=_env_int("NETSUITE_DEFAULT_ITEM_ID", 14238),
        tax_item_id=_env_int("NETSUITE_TAX_ITEM_ID", 2),
        shipping_item_id=_env_int("NETSUITE_SHIPPING_ITEM_ID", 3),
        discount_item_id=_env_int("NETSUITE_DISCOUNT_ITEM_ID", 4),
        include_tax_as_line_item=_env_bool("NETSUITE_INCLUDE_TAX_LINE", False),
        include_shipping_as_line_item=_env_bool("NETSUITE_INCLUDE_SHIPPING_LINE", False),
        include_discount_as_line_item=_env_bool("NETSUITE_INCLUDE_DISCOUNT_LINE", False),
        sales_order_taxable=_env_bool("NETSUITE_SALES_ORDER_TAXABLE", False),
        total_tolerance=Decimal(_env_str("ORDER_TOTAL_TOLERANCE", "0.01")),
    )

    processing = ProcessingSettings(
        retry_attempts=_env_int("ORDER_RETRY_ATTEMPTS", 3),
        retry_delay=_env_float("ORDER_RETRY_DELAY", 5.0),
        batch_delay=_env_float("ORDER_BATCH_DELAY", 0.5),
        update_source_status=_env_bool("UPDATE_3DCART_STATUS", True),
        success_status_id=_env_int("THREEDCART_SUCCESS_STATUS_ID", 2),
    )

    storefront = StorefrontSettings(
        base_url=_env_str("THREEDCART_BASE_URL", StorefrontSettings.base_url),
        secure_url=_env_str("THREEDCART_SECURE_URL"),
        private_key=_env_str("THREEDCART_PRIVATE_KEY"),
        token=_env_str("THREEDCART_TOKEN"),
    )

    return SyncConfig(
        netsuite=netsuite,
        mapping=mapping,
        processing=processing,
        storefront=storefront,
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        log_json=_env_bool("LOG_JSON", False),
    )
