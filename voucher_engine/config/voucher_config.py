"""Voucher engine configuration.

Secrets and policy switches consumed by the core. The core never generates
or rotates secrets; they are supplied by the environment.

Environment Variables (Secrets):
- VOUCHER_HMAC_SECRET: Shared secret for redemption payload HMACs (required)
- PII_ENCRYPTION_SECRET: Secret hashed into the PII encryption key (required)

Environment Variables (Policy):
- VOUCHER_TIMEZONE: IANA zone used for "today" and YYYYMMDD dates
  (default: server local zone)
- VOUCHER_SAME_DAY_GRACE: Tolerate issue-date mismatches involving today
  (default: true)
- VOUCHER_ALLOW_BARE_SERIAL: Accept unsigned bare-serial payloads
  (default: true)
- PII_STRICT_DECRYPTION: Raise instead of passing through unrecognized
  encrypted tokens (default: false)
- VOUCHER_SERIAL_RETRIES: Serial allocation retries on conflict (default: 3)
- VOUCHER_MAX_BATCH_SIZE: Largest batch accepted by bulk operations
  (default: 1000)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})

MAX_BATCH_SIZE_LIMIT = 1000


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or unrecognized.

    Returns:
        Parsed boolean value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def resolve_timezone(timezone_name: str | None) -> tzinfo:
    """Resolve a configured zone name to a tzinfo.

    Args:
        timezone_name: IANA zone name, "UTC", or None for the server zone.

    Returns:
        The matching tzinfo.
    """
    if timezone_name is None:
        local = datetime.now().astimezone().tzinfo
        return local if local is not None else timezone.utc
    if timezone_name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(timezone_name)


@dataclass(frozen=True)
class VoucherEngineConfig:
    """Configuration for the voucher engine core.

    Attributes:
        hmac_secret: Shared secret for payload signatures.
        pii_secret: Secret hashed (SHA-256) into the AES-256 key for PII.
        timezone_name: Zone for YYYYMMDD dates and "today". None means the
            server's local zone.
        same_day_grace: When True, an issue-date mismatch is tolerated (and
            flagged) if either date is today.
        allow_bare_serial: When True, payloads holding only a serial are
            accepted without any signature check.
        strict_decryption: When True, unrecognized encrypted tokens raise
            DecryptionError instead of being returned unchanged.
        serial_allocation_retries: How many times minting re-reserves a
            serial block after a unique-serial conflict.
        max_batch_size: Largest batch accepted by bulk operations.
    """

    hmac_secret: str = field(repr=False)
    pii_secret: str = field(repr=False)
    timezone_name: str | None = None
    same_day_grace: bool = True
    allow_bare_serial: bool = True
    strict_decryption: bool = False
    serial_allocation_retries: int = 3
    max_batch_size: int = MAX_BATCH_SIZE_LIMIT

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.hmac_secret:
            raise ValueError("hmac_secret must be provided (VOUCHER_HMAC_SECRET)")
        if not self.pii_secret:
            raise ValueError("pii_secret must be provided (PII_ENCRYPTION_SECRET)")
        if self.serial_allocation_retries < 0:
            raise ValueError(
                "serial_allocation_retries must be non-negative, "
                f"got {self.serial_allocation_retries}"
            )
        if not 1 <= self.max_batch_size <= MAX_BATCH_SIZE_LIMIT:
            raise ValueError(
                f"max_batch_size must be between 1 and {MAX_BATCH_SIZE_LIMIT}, "
                f"got {self.max_batch_size}"
            )
        # Fail fast on unknown zone names
        resolve_timezone(self.timezone_name)

    @property
    def tzinfo(self) -> tzinfo:
        """Return the resolved timezone for date rendering."""
        return resolve_timezone(self.timezone_name)

    @classmethod
    def from_environment(cls) -> VoucherEngineConfig:
        """Create config from environment variables with defaults.

        Returns:
            VoucherEngineConfig with values from environment or defaults.

        Raises:
            ValueError: If a required secret is missing or a value is invalid.
        """
        return cls(
            hmac_secret=os.environ.get("VOUCHER_HMAC_SECRET", ""),
            pii_secret=os.environ.get("PII_ENCRYPTION_SECRET", ""),
            timezone_name=os.environ.get("VOUCHER_TIMEZONE") or None,
            same_day_grace=_get_bool_env("VOUCHER_SAME_DAY_GRACE", True),
            allow_bare_serial=_get_bool_env("VOUCHER_ALLOW_BARE_SERIAL", True),
            strict_decryption=_get_bool_env("PII_STRICT_DECRYPTION", False),
            serial_allocation_retries=_get_int_env("VOUCHER_SERIAL_RETRIES", 3),
            max_batch_size=_get_int_env(
                "VOUCHER_MAX_BATCH_SIZE", MAX_BATCH_SIZE_LIMIT
            ),
        )


# Test configuration with fixed secrets and UTC dates
TEST_VOUCHER_ENGINE_CONFIG = VoucherEngineConfig(
    hmac_secret="test-hmac-secret",
    pii_secret="test-pii-secret",
    timezone_name="UTC",
)
