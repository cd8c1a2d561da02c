"""Voucher recipient domain model (pre-issuance record).

A recipient row is created by bulk import before any voucher exists. It is
consumed exactly once when a voucher is minted from it: the REGISTERED ->
ISSUED transition is a conditional write, so two concurrent minting runs
cannot both consume the same recipient.

Lifecycle:
    REGISTERED -> ISSUED (voucher minted)
    ISSUED -> PRINTED (paper voucher printed)
    ISSUED | PRINTED -> DELIVERED (handed to the recipient)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID


class RecipientStatus(Enum):
    """Status of a pre-issuance recipient record."""

    REGISTERED = "registered"
    ISSUED = "issued"
    PRINTED = "printed"
    DELIVERED = "delivered"

    def valid_transitions(self) -> frozenset[RecipientStatus]:
        """Get valid target statuses from this status."""
        return RECIPIENT_TRANSITIONS.get(self, frozenset())


RECIPIENT_TRANSITIONS: dict[RecipientStatus, frozenset[RecipientStatus]] = {
    RecipientStatus.REGISTERED: frozenset({RecipientStatus.ISSUED}),
    RecipientStatus.ISSUED: frozenset(
        {RecipientStatus.PRINTED, RecipientStatus.DELIVERED}
    ),
    RecipientStatus.PRINTED: frozenset({RecipientStatus.DELIVERED}),
    RecipientStatus.DELIVERED: frozenset(),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, eq=True)
class VoucherRecipient:
    """A recipient awaiting (or holding) a voucher.

    Attributes:
        id: Unique identifier.
        member_id: External member identifier.
        association: Association the member belongs to.
        amount: Amount of the voucher to mint for this recipient.
        encrypted_name: Encrypted name token.
        encrypted_dob: Encrypted date of birth token.
        encrypted_phone: Encrypted phone token.
        status: Current recipient status.
        template_id: Voucher template the recipient was imported for.
        voucher_id: Voucher minted from this record, once consumed.
        created_at: Import time (UTC).
    """

    id: UUID
    member_id: str
    association: str
    amount: int
    encrypted_name: str | None = field(default=None)
    encrypted_dob: str | None = field(default=None)
    encrypted_phone: str | None = field(default=None)
    status: RecipientStatus = field(default=RecipientStatus.REGISTERED)
    template_id: UUID | None = field(default=None)
    voucher_id: UUID | None = field(default=None)
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        """Validate recipient fields."""
        if self.amount < 0:
            raise ValueError(
                f"Recipient amount must be non-negative, got {self.amount}"
            )
        if self.status != RecipientStatus.REGISTERED and self.voucher_id is None:
            raise ValueError(
                f"Recipient in status {self.status.value} must reference a voucher"
            )

    def is_consumed(self) -> bool:
        """Return True once a voucher has been minted from this record."""
        return self.status != RecipientStatus.REGISTERED

    def with_status(
        self,
        new_status: RecipientStatus,
        voucher_id: UUID | None = None,
    ) -> VoucherRecipient:
        """Create a new recipient with an updated status.

        Args:
            new_status: Target status.
            voucher_id: Voucher to link (required when leaving REGISTERED).

        Returns:
            New VoucherRecipient with the status applied.

        Raises:
            ValueError: If the transition is not permitted.
        """
        if new_status not in self.status.valid_transitions():
            raise ValueError(
                "Invalid recipient transition: "
                f"{self.status.value} -> {new_status.value}"
            )
        return replace(
            self,
            status=new_status,
            voucher_id=voucher_id if voucher_id is not None else self.voucher_id,
        )
