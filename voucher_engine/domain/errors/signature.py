"""Payload authenticity errors (signature and freshness).

Signature failures indicate a forged or altered payload. Freshness failures
indicate a genuine but outdated payload, typically a QR code printed before
the voucher was re-issued.
"""

from __future__ import annotations

from voucher_engine.domain.errors.rule_violation import VoucherRuleViolationError


class InvalidSignatureError(VoucherRuleViolationError):
    """Raised when the HMAC on a redemption payload does not verify.

    Attributes:
        serial: Serial the payload claims to carry.
        payload_format: Which verifier rejected it ("current" or "legacy").
    """

    code = "INVALID_SIGNATURE"

    def __init__(self, serial: str, payload_format: str) -> None:
        """Initialize invalid signature error.

        Args:
            serial: Serial named in the rejected payload.
            payload_format: Wire format used to verify the payload.
        """
        self.serial = serial
        self.payload_format = payload_format
        super().__init__(
            f"Signature verification failed for serial {serial} "
            f"({payload_format} payload format)"
        )


class StalePayloadError(VoucherRuleViolationError):
    """Raised when the payload's issue date does not match the stored one.

    A mismatch outside the same-day grace window means the scanned code was
    produced for an earlier issuance of the voucher.

    Attributes:
        serial: Serial of the voucher.
        payload_issued_date: YYYYMMDD date carried by the payload.
        stored_issued_date: YYYYMMDD date derived from storage, or None when
            the voucher has never been issued.
    """

    code = "STALE_PAYLOAD"

    def __init__(
        self,
        serial: str,
        payload_issued_date: str,
        stored_issued_date: str | None,
    ) -> None:
        """Initialize stale payload error.

        Args:
            serial: Serial of the voucher.
            payload_issued_date: Date from the ISSUED segment.
            stored_issued_date: Date derived from the stored issued_at.
        """
        self.serial = serial
        self.payload_issued_date = payload_issued_date
        self.stored_issued_date = stored_issued_date
        super().__init__(
            f"Payload for serial {serial} was issued on {payload_issued_date} "
            f"but the voucher's current issue date is {stored_issued_date}. "
            "A newer voucher has been issued."
        )
