"""Redemption payload signing and verification.

The QR/barcode on a voucher carries a signed payload:

    VCH:<serial>|ISSUED:<YYYYMMDD>|TS:<YYYYMMDDHHMM>|SIG:<64 hex>

SIG is HMAC-SHA256 over ``serial|issued_date|timestamp`` with the shared
secret. Binding the issue date into the signature lets the verifier reject
codes printed for an earlier issuance of the same serial. Two older formats
are still accepted during migration:

    VCH:<serial>|TS:<YYYYMMDDHHMM>|SIG:<64 hex>   (HMAC over serial|timestamp)
    <serial>                                      (no signature at all)

All dates are rendered in the configured zone (server local by default).
"""

from __future__ import annotations

import hashlib
import hmac
import re
from datetime import date, datetime
from typing import Final

from voucher_engine.application.ports.time_authority import TimeAuthorityProtocol
from voucher_engine.application.services.base import LoggingMixin
from voucher_engine.application.services.serial_number_service import (
    SerialNumberGenerator,
)
from voucher_engine.config.voucher_config import VoucherEngineConfig
from voucher_engine.domain.errors.signature import (
    InvalidSignatureError,
    StalePayloadError,
)
from voucher_engine.domain.errors.validation import (
    InvalidSerialError,
    MalformedPayloadError,
)
from voucher_engine.domain.models.redemption_payload import (
    DateDiscrepancy,
    PayloadFormat,
    RedemptionPayload,
)

PAYLOAD_PREFIX: Final[str] = "VCH:"
SEGMENT_SEPARATOR: Final[str] = "|"
KEY_SEPARATOR: Final[str] = ":"

# Accepted segment layouts, in wire order
CURRENT_LAYOUT: Final[tuple[str, ...]] = ("VCH", "ISSUED", "TS", "SIG")
LEGACY_LAYOUT: Final[tuple[str, ...]] = ("VCH", "TS", "SIG")

_ISSUED_PATTERN = re.compile(r"[0-9]{8}")
_TIMESTAMP_PATTERN = re.compile(r"[0-9]{12}")
_SIGNATURE_PATTERN = re.compile(r"[0-9a-fA-F]{64}")

DATE_FORMAT: Final[str] = "%Y%m%d"
TIMESTAMP_FORMAT: Final[str] = "%Y%m%d%H%M"


class PayloadSigner(LoggingMixin):
    """Signs and verifies redemption payloads.

    Signing and verification are pure and synchronous; the only external
    input is the injected time authority used for timestamps and "today".

    Attributes:
        _config: Engine configuration (secret, zone, bare/grace policies).
        _time: Time authority.
        _serials: Serial validator applied to every decoded payload.
    """

    def __init__(
        self,
        config: VoucherEngineConfig,
        time_authority: TimeAuthorityProtocol,
        serial_generator: SerialNumberGenerator | None = None,
    ) -> None:
        self._config = config
        self._key = config.hmac_secret.encode("utf-8")
        self._tz = config.tzinfo
        self._time = time_authority
        self._serials = serial_generator or SerialNumberGenerator()
        self._init_logger()

    # Signing

    def _digest(self, message: str) -> str:
        return hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def sign(self, serial: str, issued_date: str, timestamp: str) -> str:
        """Sign the current payload format.

        Args:
            serial: Voucher serial.
            issued_date: YYYYMMDD issue date.
            timestamp: YYYYMMDDHHMM signing time.

        Returns:
            Lowercase hex HMAC-SHA256 (64 chars).
        """
        return self._digest(f"{serial}|{issued_date}|{timestamp}")

    def sign_legacy(self, serial: str, timestamp: str) -> str:
        """Sign the legacy payload format (no issue date)."""
        return self._digest(f"{serial}|{timestamp}")

    def verify(
        self, serial: str, issued_date: str, timestamp: str, signature: str
    ) -> bool:
        """Verify a current-format signature in constant time."""
        expected = self.sign(serial, issued_date, timestamp)
        return hmac.compare_digest(
            expected.encode("ascii"), signature.lower().encode("utf-8")
        )

    def verify_legacy(self, serial: str, timestamp: str, signature: str) -> bool:
        """Verify a legacy-format signature in constant time."""
        expected = self.sign_legacy(serial, timestamp)
        return hmac.compare_digest(
            expected.encode("ascii"), signature.lower().encode("utf-8")
        )

    def issued_date_of(self, value: datetime | date | str | None) -> str:
        """Render an issue time as YYYYMMDD in the configured zone.

        Args:
            value: Aware or naive datetime (naive is taken as already in the
                configured zone), a date, an ISO-8601 string, or None for
                today.

        Returns:
            The YYYYMMDD date string.
        """
        if value is None:
            return self._time.now().astimezone(self._tz).strftime(DATE_FORMAT)
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(self._tz)
            return value.strftime(DATE_FORMAT)
        return value.strftime(DATE_FORMAT)

    def make_payload(
        self, serial: str, issued_at: datetime | date | str | None = None
    ) -> str:
        """Build the signed payload printed on a voucher.

        Args:
            serial: Voucher serial.
            issued_at: Issue time of the voucher; None means today.

        Returns:
            ``VCH:<serial>|ISSUED:<date>|TS:<timestamp>|SIG:<hex>``.
        """
        issued_date = self.issued_date_of(issued_at)
        timestamp = self._time.now().astimezone(self._tz).strftime(TIMESTAMP_FORMAT)
        signature = self.sign(serial, issued_date, timestamp)
        return (
            f"VCH:{serial}|ISSUED:{issued_date}|TS:{timestamp}|SIG:{signature}"
        )

    # Decoding

    def parse_payload(self, payload: str) -> RedemptionPayload:
        """Decode a scanned payload and verify its signature.

        A payload with an ISSUED segment goes to the current verifier, one
        without to the legacy verifier. A payload without the ``VCH:``
        prefix is treated as a bare serial and, when allowed by
        configuration, accepted without any signature check.

        Args:
            payload: Raw scanned string.

        Returns:
            The decoded RedemptionPayload.

        Raises:
            MalformedPayloadError: Payload matches no accepted layout.
            InvalidSerialError: Serial fails its checksum.
            InvalidSignatureError: Signature does not verify.
        """
        text = (payload or "").strip()
        if not text:
            raise MalformedPayloadError("empty payload")

        if not text.startswith(PAYLOAD_PREFIX):
            return self._parse_bare(text)

        segments = self._split_segments(text)
        layout = tuple(key for key, _ in segments)
        values = dict(segments)

        if layout == CURRENT_LAYOUT:
            payload_format = PayloadFormat.CURRENT
        elif layout == LEGACY_LAYOUT:
            payload_format = PayloadFormat.LEGACY
        else:
            raise MalformedPayloadError(
                f"unexpected segment layout {'|'.join(layout)}"
            )

        serial = values["VCH"]
        timestamp = values["TS"]
        signature = values["SIG"]
        issued_date = values.get("ISSUED")

        if not self._serials.validate(serial):
            raise InvalidSerialError(serial)
        if not _TIMESTAMP_PATTERN.fullmatch(timestamp):
            raise MalformedPayloadError("TS must be 12 digits")
        if issued_date is not None and not _ISSUED_PATTERN.fullmatch(issued_date):
            raise MalformedPayloadError("ISSUED must be 8 digits")
        if not _SIGNATURE_PATTERN.fullmatch(signature):
            raise MalformedPayloadError("SIG must be 64 hex characters")
        signature = signature.lower()

        log = self._log_operation(
            "parse_payload", serial=serial, payload_format=payload_format.value
        )
        if issued_date is not None:
            valid = self.verify(serial, issued_date, timestamp, signature)
        else:
            valid = self.verify_legacy(serial, timestamp, signature)
            log.warning("legacy_payload_format")

        if not valid:
            log.warning("payload_signature_invalid")
            raise InvalidSignatureError(serial, payload_format.value)

        return RedemptionPayload(
            serial=serial,
            payload_format=payload_format,
            issued_date=issued_date,
            timestamp=timestamp,
            signature=signature,
        )

    def _parse_bare(self, text: str) -> RedemptionPayload:
        log = self._log_operation("parse_payload", payload_format="bare")
        if not self._config.allow_bare_serial:
            log.warning("bare_serial_rejected")
            raise MalformedPayloadError("unsigned payloads are not accepted")
        if not self._serials.validate(text):
            raise InvalidSerialError(text)
        log.warning("bare_serial_accepted", serial=text)
        return RedemptionPayload(serial=text, payload_format=PayloadFormat.BARE)

    @staticmethod
    def _split_segments(text: str) -> list[tuple[str, str]]:
        segments: list[tuple[str, str]] = []
        for raw in text.split(SEGMENT_SEPARATOR):
            key, sep, value = raw.partition(KEY_SEPARATOR)
            if not sep or not value:
                raise MalformedPayloadError(f"segment {key or '?'} has no value")
            segments.append((key, value))
        return segments

    # Freshness

    def check_freshness(
        self,
        serial: str,
        payload_issued_date: str,
        stored_issued_at: datetime | None,
        today: str | None = None,
    ) -> DateDiscrepancy | None:
        """Compare the payload's issue date with the stored one.

        Args:
            serial: Voucher serial (for error reporting).
            payload_issued_date: YYYYMMDD from the ISSUED segment.
            stored_issued_at: The voucher's current issued_at, if any.
            today: YYYYMMDD override for "today"; defaults to the time
                authority's date in the configured zone.

        Returns:
            None when the dates match. A DateDiscrepancy when they differ
            but either equals today and same-day grace is enabled.

        Raises:
            StalePayloadError: The dates differ outside the grace window,
                or the voucher has no stored issue time.
        """
        if stored_issued_at is None:
            raise StalePayloadError(serial, payload_issued_date, None)

        stored_date = self.issued_date_of(stored_issued_at)
        if payload_issued_date == stored_date:
            return None

        today = today or self.issued_date_of(None)
        log = self._log_operation(
            "check_freshness",
            serial=serial,
            payload_issued_date=payload_issued_date,
            stored_issued_date=stored_date,
            today=today,
        )
        if self._config.same_day_grace and today in (payload_issued_date, stored_date):
            log.warning("issued_date_mismatch_tolerated")
            return DateDiscrepancy(
                payload_issued_date=payload_issued_date,
                stored_issued_date=stored_date,
                today=today,
            )

        log.warning("issued_date_mismatch")
        raise StalePayloadError(serial, payload_issued_date, stored_date)
