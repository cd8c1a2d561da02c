"""Concurrent modification errors for atomic conditional updates.

Raised when a compare-and-swap on a voucher's status fails because another
writer changed the status first, and the operation would still be permitted
from the new status. The caller should re-read and decide whether to retry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from voucher_engine.domain.exceptions import VoucherEngineError

if TYPE_CHECKING:
    from voucher_engine.domain.models.voucher import LifecycleOperation, VoucherStatus


class ConcurrentModificationError(VoucherEngineError):
    """Raised when a conditional status update loses a race.

    This is a recoverable error, distinct from rule violations: the same
    request may succeed on retry.

    Attributes:
        voucher_id: UUID of the voucher being modified.
        expected_status: The status the update was conditioned on.
        operation: The operation that lost the race.
    """

    code = "CONCURRENCY_CONFLICT"
    retryable = True

    def __init__(
        self,
        voucher_id: UUID,
        expected_status: VoucherStatus,
        operation: LifecycleOperation,
    ) -> None:
        """Initialize concurrent modification error.

        Args:
            voucher_id: UUID of the voucher being modified.
            expected_status: The status the update was conditioned on.
            operation: The operation that lost the race.
        """
        self.voucher_id = voucher_id
        self.expected_status = expected_status
        self.operation = operation
        super().__init__(
            f"Concurrent modification detected for voucher {voucher_id} "
            f"during {operation.value}. Expected status: {expected_status.value}. "
            "Another process has modified this voucher."
        )


class DuplicateSerialError(VoucherEngineError):
    """Raised by storage when a serial number already exists.

    Serial allocation retries on this error with a freshly reserved block.

    Attributes:
        serial_no: The conflicting serial.
    """

    code = "DUPLICATE_SERIAL"
    retryable = True

    def __init__(self, serial_no: str) -> None:
        self.serial_no = serial_no
        super().__init__(f"Serial number already exists: {serial_no}")
