"""Validation errors for serial numbers and redemption payloads.

These cover malformed input: a serial that fails its checksum, a payload
that does not match any accepted wire format, or an oversized batch.
"""

from __future__ import annotations

from voucher_engine.domain.errors.rule_violation import VoucherRuleViolationError


class VoucherValidationError(VoucherRuleViolationError):
    """Raised when input to the core is structurally invalid."""

    code = "VALIDATION_ERROR"


class InvalidSerialError(VoucherValidationError):
    """Raised when a serial number is malformed or fails its checksum.

    Attributes:
        serial: The offending serial as received.
        reason: Short description of the failed check.
    """

    code = "INVALID_SERIAL"

    def __init__(self, serial: str, reason: str = "checksum or format invalid") -> None:
        """Initialize invalid serial error.

        Args:
            serial: The serial that failed validation.
            reason: Which check failed.
        """
        self.serial = serial
        self.reason = reason
        super().__init__(f"Invalid serial number {serial!r}: {reason}")


class MalformedPayloadError(VoucherValidationError):
    """Raised when a scanned redemption payload cannot be decoded.

    The payload itself is not echoed back in the message since it may carry
    a valid signature for another voucher.

    Attributes:
        reason: Which part of the payload was rejected.
    """

    code = "INVALID_PAYLOAD"

    def __init__(self, reason: str) -> None:
        """Initialize malformed payload error.

        Args:
            reason: Which part of the payload was rejected.
        """
        self.reason = reason
        super().__init__(f"Malformed redemption payload: {reason}")


class BatchSizeError(VoucherValidationError):
    """Raised when a batch request exceeds the configured maximum size.

    Attributes:
        size: Number of items requested.
        limit: Configured maximum.
    """

    code = "BATCH_TOO_LARGE"

    def __init__(self, size: int, limit: int) -> None:
        """Initialize batch size error.

        Args:
            size: Number of items requested.
            limit: Configured maximum per batch.
        """
        self.size = size
        self.limit = limit
        super().__init__(f"Batch of {size} items exceeds the limit of {limit}")
