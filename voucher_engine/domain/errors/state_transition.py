"""State transition errors for the voucher lifecycle.

Every operation outside the transition table is rejected with one of these
errors. The specific Already* errors let callers show a precise message
("this voucher was already used") instead of a generic state error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from voucher_engine.domain.errors.rule_violation import VoucherRuleViolationError

if TYPE_CHECKING:
    from voucher_engine.domain.models.voucher import LifecycleOperation, VoucherStatus


class VoucherStateError(VoucherRuleViolationError):
    """Base for errors caused by the voucher's current lifecycle status.

    Attributes:
        voucher_id: UUID of the voucher.
        current_status: Status the voucher was found in.
        operation: Operation that was attempted.
    """

    code = "INVALID_STATE"

    def __init__(
        self,
        voucher_id: UUID,
        current_status: VoucherStatus,
        operation: LifecycleOperation,
        message: str | None = None,
    ) -> None:
        """Initialize voucher state error.

        Args:
            voucher_id: UUID of the voucher.
            current_status: Status the voucher was found in.
            operation: Operation that was attempted.
            message: Optional override for the error message.
        """
        self.voucher_id = voucher_id
        self.current_status = current_status
        self.operation = operation
        super().__init__(
            message
            or (
                f"Cannot {operation.value} voucher {voucher_id} "
                f"in status {current_status.value}"
            )
        )


class InvalidStateTransitionError(VoucherStateError):
    """Raised when an operation is not permitted from the current status.

    Used for cases not covered by the Already* errors, for example using a
    voucher that is still registered (never issued).

    Attributes:
        allowed_from: Statuses from which the operation would be permitted.
    """

    code = "INVALID_STATE"

    def __init__(
        self,
        voucher_id: UUID,
        current_status: VoucherStatus,
        operation: LifecycleOperation,
        allowed_from: list[VoucherStatus] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            voucher_id: UUID of the voucher.
            current_status: Status the voucher was found in.
            operation: Operation that was attempted.
            allowed_from: Statuses that would have permitted the operation.
        """
        self.allowed_from = allowed_from or []
        allowed_str = (
            f" Allowed from: {sorted(s.value for s in self.allowed_from)}"
            if self.allowed_from
            else ""
        )
        super().__init__(
            voucher_id,
            current_status,
            operation,
            f"Invalid transition: cannot {operation.value} voucher {voucher_id} "
            f"in status {current_status.value}.{allowed_str}",
        )


class VoucherAlreadyUsedError(VoucherStateError):
    """Raised when the voucher has already been redeemed."""

    code = "ALREADY_USED"

    def __init__(
        self,
        voucher_id: UUID,
        current_status: VoucherStatus,
        operation: LifecycleOperation,
    ) -> None:
        super().__init__(
            voucher_id,
            current_status,
            operation,
            f"Voucher {voucher_id} has already been used",
        )


class VoucherAlreadyRecalledError(VoucherStateError):
    """Raised when the voucher has been recalled by an administrator."""

    code = "ALREADY_RECALLED"

    def __init__(
        self,
        voucher_id: UUID,
        current_status: VoucherStatus,
        operation: LifecycleOperation,
    ) -> None:
        super().__init__(
            voucher_id,
            current_status,
            operation,
            f"Voucher {voucher_id} has been recalled",
        )


class VoucherAlreadyDisposedError(VoucherStateError):
    """Raised when the voucher has been written off."""

    code = "ALREADY_DISPOSED"

    def __init__(
        self,
        voucher_id: UUID,
        current_status: VoucherStatus,
        operation: LifecycleOperation,
    ) -> None:
        super().__init__(
            voucher_id,
            current_status,
            operation,
            f"Voucher {voucher_id} has been disposed",
        )
