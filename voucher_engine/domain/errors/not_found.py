"""Lookup and consumption errors for vouchers and recipients."""

from __future__ import annotations

from uuid import UUID

from voucher_engine.domain.errors.rule_violation import VoucherRuleViolationError


class VoucherNotFoundError(VoucherRuleViolationError):
    """Raised when no voucher matches the given id or serial.

    Attributes:
        reference: The id or serial that was looked up.
    """

    code = "NOT_FOUND"

    def __init__(self, reference: UUID | str) -> None:
        self.reference = reference
        super().__init__(f"Voucher not found: {reference}")


class RecipientNotFoundError(VoucherRuleViolationError):
    """Raised when a pre-issuance recipient record does not exist.

    Attributes:
        recipient_id: The recipient that was looked up.
    """

    code = "RECIPIENT_NOT_FOUND"

    def __init__(self, recipient_id: UUID) -> None:
        self.recipient_id = recipient_id
        super().__init__(f"Voucher recipient not found: {recipient_id}")


class RecipientAlreadyConsumedError(VoucherRuleViolationError):
    """Raised when a voucher has already been minted from a recipient.

    Attributes:
        recipient_id: The consumed recipient.
        voucher_id: Voucher minted from it, when known.
    """

    code = "RECIPIENT_CONSUMED"

    def __init__(self, recipient_id: UUID, voucher_id: UUID | None = None) -> None:
        self.recipient_id = recipient_id
        self.voucher_id = voucher_id
        super().__init__(
            f"Voucher recipient {recipient_id} was already consumed"
            + (f" by voucher {voucher_id}" if voucher_id else "")
        )
