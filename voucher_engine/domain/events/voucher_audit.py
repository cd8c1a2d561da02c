"""Voucher lifecycle audit events.

One AuditEvent is produced for every lifecycle attempt, successful or not.
Events are handed to the external audit recorder, which owns storage and
keeps them append-only.

Failed attempts use the action name with a ``.rejected`` suffix so that
fraud detection can query repeated rejected redemptions of one serial.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final
from uuid import UUID

from uuid6 import uuid7

from voucher_engine.domain.models.voucher import VoucherStatus

# Action names
VOUCHER_REGISTERED_ACTION: Final[str] = "voucher.registered"
VOUCHER_ISSUED_ACTION: Final[str] = "voucher.issued"
VOUCHER_REISSUED_ACTION: Final[str] = "voucher.reissued"
VOUCHER_USED_ACTION: Final[str] = "voucher.used"
VOUCHER_RECALLED_ACTION: Final[str] = "voucher.recalled"
VOUCHER_DISPOSED_ACTION: Final[str] = "voucher.disposed"
VOUCHER_DELETED_ACTION: Final[str] = "voucher.deleted"
VOUCHER_REDEMPTION_ACTION: Final[str] = "voucher.redemption"

REJECTED_SUFFIX: Final[str] = ".rejected"

# Actor recorded when the caller does not identify itself
SYSTEM_ACTOR_ID: Final[str] = "system:voucher_engine"


def rejected_action(action: str) -> str:
    """Return the action name used for a rejected attempt."""
    return f"{action}{REJECTED_SUFFIX}"


@dataclass(frozen=True, eq=True)
class AuditEvent:
    """A single lifecycle audit record.

    Attributes:
        action: Action name (see module constants).
        actor_id: Who performed or attempted the action.
        target_id: Voucher id, or the serial when no voucher was found.
        before_status: Status before the attempt (None if unknown).
        after_status: Status after the attempt (None if removed or unknown).
        timestamp: When the attempt happened.
        details: Free-form context (serial, outcome, error code, ...).
        event_id: Unique, time-ordered identifier.
    """

    action: str
    actor_id: str
    target_id: str
    before_status: VoucherStatus | None
    after_status: VoucherStatus | None
    timestamp: datetime
    details: dict[str, Any] = field(default_factory=dict)
    event_id: UUID = field(default_factory=uuid7)

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.action:
            raise ValueError("Audit event action is required")
        if not self.target_id:
            raise ValueError("Audit event target_id is required")

    @property
    def succeeded(self) -> bool:
        """Return True if the event records a successful transition."""
        return not self.action.endswith(REJECTED_SUFFIX)

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary suitable for JSON serialization and audit storage.
        """
        return {
            "event_id": str(self.event_id),
            "action": self.action,
            "actor_id": self.actor_id,
            "target_id": self.target_id,
            "before_status": self.before_status.value if self.before_status else None,
            "after_status": self.after_status.value if self.after_status else None,
            "timestamp": self.timestamp.isoformat(),
            "details": dict(self.details),
        }
