"""Redemption payload value objects.

Wire formats scanned at redemption time:
    CURRENT: VCH:<serial>|ISSUED:<YYYYMMDD>|TS:<YYYYMMDDHHMM>|SIG:<64 hex>
    LEGACY:  VCH:<serial>|TS:<YYYYMMDDHHMM>|SIG:<64 hex>
    BARE:    <serial> (no signature, accepted for backward compatibility)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PayloadFormat(Enum):
    """Which wire format a scanned payload used."""

    CURRENT = "current"
    LEGACY = "legacy"
    BARE = "bare"


@dataclass(frozen=True)
class RedemptionPayload:
    """A decoded (and, where signed, verified) redemption payload.

    Attributes:
        serial: Voucher serial carried by the payload.
        payload_format: Wire format detected.
        issued_date: YYYYMMDD issue date (CURRENT format only).
        timestamp: YYYYMMDDHHMM signing time (CURRENT and LEGACY).
        signature: Hex HMAC (CURRENT and LEGACY).
    """

    serial: str
    payload_format: PayloadFormat
    issued_date: str | None = None
    timestamp: str | None = None
    signature: str | None = None

    @property
    def is_signed(self) -> bool:
        """Return True if the payload carried a signature that was verified."""
        return self.payload_format != PayloadFormat.BARE


@dataclass(frozen=True)
class DateDiscrepancy:
    """A tolerated mismatch between payload and stored issue dates.

    Produced when the dates differ but one of them is today, which is
    treated as same-day skew between signing and storage rather than a
    stale code. Callers should surface it, not drop it.

    Attributes:
        payload_issued_date: YYYYMMDD from the payload.
        stored_issued_date: YYYYMMDD derived from the stored issued_at.
        today: YYYYMMDD server-local date at verification time.
    """

    payload_issued_date: str
    stored_issued_date: str
    today: str
