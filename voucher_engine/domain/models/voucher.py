"""Voucher domain model and lifecycle transition table.

This module defines the voucher record and the single table that decides
which lifecycle operation is permitted from which status. No other code
decides status changes: services consult ``TRANSITION_TABLE`` through
``Voucher.check_operation()`` and storage performs the conditional write.

Lifecycle:
    REGISTERED -> ISSUED (issue)
    ISSUED -> ISSUED (re-issue, refreshes issued_at)
    ISSUED -> USED (use, at most once)
    ISSUED -> RECALLED (recall)
    ISSUED | RECALLED -> DISPOSED (dispose)
    REGISTERED | ISSUED | RECALLED -> removed (delete)

Terminal States:
    USED and DISPOSED. Records in a terminal state are immutable except for
    non-semantic metadata (notes, updated_at).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from voucher_engine.domain.errors.state_transition import (
    InvalidStateTransitionError,
    VoucherAlreadyDisposedError,
    VoucherAlreadyRecalledError,
    VoucherAlreadyUsedError,
)


class VoucherStatus(Enum):
    """Status in the voucher lifecycle.

    States:
        REGISTERED: Created (usually by bulk import), not yet handed out
        ISSUED: Handed out to the recipient, redeemable
        USED: Redeemed at a site (terminal)
        RECALLED: Withdrawn by an administrator before use
        DISPOSED: Written off (terminal)
    """

    REGISTERED = "registered"
    ISSUED = "issued"
    USED = "used"
    RECALLED = "recalled"
    DISPOSED = "disposed"

    def is_terminal(self) -> bool:
        """Check if no further lifecycle operation is permitted.

        Returns:
            True for USED and DISPOSED.
        """
        return self in TERMINAL_STATUSES

    def valid_transitions(self) -> frozenset[VoucherStatus]:
        """Get the statuses reachable from this status in one operation.

        Returns:
            Frozenset of target statuses. Empty for terminal statuses.
        """
        return STATUS_TRANSITIONS.get(self, frozenset())


class LifecycleOperation(Enum):
    """Operations the lifecycle service can perform on a voucher."""

    ISSUE = "issue"
    USE = "use"
    RECALL = "recall"
    DISPOSE = "dispose"
    DELETE = "delete"


@dataclass(frozen=True)
class TransitionRule:
    """Where an operation may start and where it leads.

    Attributes:
        allowed_from: Statuses the voucher must be in.
        target: Resulting status, or None when the record is removed.
    """

    allowed_from: frozenset[VoucherStatus]
    target: VoucherStatus | None


TERMINAL_STATUSES: frozenset[VoucherStatus] = frozenset(
    {VoucherStatus.USED, VoucherStatus.DISPOSED}
)

# Statuses from which a voucher can no longer be removed
UNDELETABLE_STATUSES: frozenset[VoucherStatus] = TERMINAL_STATUSES

TRANSITION_TABLE: dict[LifecycleOperation, TransitionRule] = {
    LifecycleOperation.ISSUE: TransitionRule(
        allowed_from=frozenset({VoucherStatus.REGISTERED, VoucherStatus.ISSUED}),
        target=VoucherStatus.ISSUED,
    ),
    LifecycleOperation.USE: TransitionRule(
        allowed_from=frozenset({VoucherStatus.ISSUED}),
        target=VoucherStatus.USED,
    ),
    LifecycleOperation.RECALL: TransitionRule(
        allowed_from=frozenset({VoucherStatus.ISSUED}),
        target=VoucherStatus.RECALLED,
    ),
    LifecycleOperation.DISPOSE: TransitionRule(
        allowed_from=frozenset({VoucherStatus.ISSUED, VoucherStatus.RECALLED}),
        target=VoucherStatus.DISPOSED,
    ),
    LifecycleOperation.DELETE: TransitionRule(
        allowed_from=frozenset(
            {VoucherStatus.REGISTERED, VoucherStatus.ISSUED, VoucherStatus.RECALLED}
        ),
        target=None,
    ),
}


def _derive_status_transitions() -> dict[VoucherStatus, frozenset[VoucherStatus]]:
    transitions: dict[VoucherStatus, set[VoucherStatus]] = {
        status: set() for status in VoucherStatus
    }
    for rule in TRANSITION_TABLE.values():
        if rule.target is None:
            continue
        for status in rule.allowed_from:
            transitions[status].add(rule.target)
    return {status: frozenset(targets) for status, targets in transitions.items()}


# State machine view of the table: status -> reachable statuses
STATUS_TRANSITIONS: dict[VoucherStatus, frozenset[VoucherStatus]] = (
    _derive_status_transitions()
)


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True, eq=True)
class Voucher:
    """A voucher record as seen by the core.

    Personal data is held only in encrypted form (see PiiCipher). The
    lifecycle service is the sole writer of ``status`` and the timestamps
    that go with it.

    Attributes:
        id: Unique identifier (UUIDv7).
        serial_no: 14-digit checksummed serial, unique.
        amount: Face value in the smallest currency unit.
        status: Current lifecycle status.
        encrypted_name: Encrypted recipient name token.
        encrypted_dob: Encrypted recipient date of birth token.
        encrypted_phone: Encrypted recipient phone token.
        member_id: External member identifier of the recipient.
        association: Association the recipient belongs to.
        template_id: Voucher template this voucher was minted from.
        recipient_id: Pre-issuance recipient record consumed to mint it.
        issued_at: Last (re-)issue time.
        used_at: Redemption time; set iff status is USED.
        used_at_site_id: Site where the voucher was redeemed.
        recalled_at: Recall time.
        recall_reason: Free-form recall reason.
        recalled_by: Actor who recalled the voucher.
        disposed_at: Disposal time.
        disposal_reason: Free-form disposal reason.
        disposed_by: Actor who disposed of the voucher.
        notes: Non-semantic metadata, editable in any status.
        created_at: Creation time (UTC).
        updated_at: Last modification time (UTC).
    """

    id: UUID
    serial_no: str
    amount: int
    status: VoucherStatus = field(default=VoucherStatus.REGISTERED)
    encrypted_name: str | None = field(default=None)
    encrypted_dob: str | None = field(default=None)
    encrypted_phone: str | None = field(default=None)
    member_id: str | None = field(default=None)
    association: str | None = field(default=None)
    template_id: UUID | None = field(default=None)
    recipient_id: UUID | None = field(default=None)
    issued_at: datetime | None = field(default=None)
    used_at: datetime | None = field(default=None)
    used_at_site_id: UUID | None = field(default=None)
    recalled_at: datetime | None = field(default=None)
    recall_reason: str | None = field(default=None)
    recalled_by: str | None = field(default=None)
    disposed_at: datetime | None = field(default=None)
    disposal_reason: str | None = field(default=None)
    disposed_by: str | None = field(default=None)
    notes: str | None = field(default=None)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        """Validate voucher invariants."""
        if self.amount < 0:
            raise ValueError(f"Voucher amount must be non-negative, got {self.amount}")
        is_used = self.status == VoucherStatus.USED
        if is_used != (self.used_at is not None):
            raise ValueError(
                "used_at must be set if and only if status is used "
                f"(status={self.status.value}, used_at={self.used_at})"
            )

    def check_operation(self, operation: LifecycleOperation) -> TransitionRule:
        """Check an operation against the transition table.

        Args:
            operation: The lifecycle operation to perform.

        Returns:
            The matching TransitionRule when the operation is permitted.

        Raises:
            VoucherAlreadyUsedError: Voucher is USED.
            VoucherAlreadyDisposedError: Voucher is DISPOSED.
            VoucherAlreadyRecalledError: Voucher is RECALLED and the operation
                is not permitted from RECALLED.
            InvalidStateTransitionError: Any other status outside the rule.
        """
        rule = TRANSITION_TABLE[operation]
        if self.status in rule.allowed_from:
            return rule

        if self.status == VoucherStatus.USED:
            raise VoucherAlreadyUsedError(self.id, self.status, operation)
        if self.status == VoucherStatus.DISPOSED:
            raise VoucherAlreadyDisposedError(self.id, self.status, operation)
        if self.status == VoucherStatus.RECALLED:
            raise VoucherAlreadyRecalledError(self.id, self.status, operation)
        raise InvalidStateTransitionError(
            voucher_id=self.id,
            current_status=self.status,
            operation=operation,
            allowed_from=list(rule.allowed_from),
        )

    def is_redeemable(self) -> bool:
        """Return True if the voucher can be used right now."""
        return self.status in TRANSITION_TABLE[LifecycleOperation.USE].allowed_from
