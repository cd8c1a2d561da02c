"""Domain events emitted by the voucher lifecycle."""

from voucher_engine.domain.events.voucher_audit import (
    SYSTEM_ACTOR_ID,
    VOUCHER_DELETED_ACTION,
    VOUCHER_DISPOSED_ACTION,
    VOUCHER_ISSUED_ACTION,
    VOUCHER_RECALLED_ACTION,
    VOUCHER_REDEMPTION_ACTION,
    VOUCHER_REGISTERED_ACTION,
    VOUCHER_REISSUED_ACTION,
    VOUCHER_USED_ACTION,
    AuditEvent,
    rejected_action,
)

__all__: list[str] = [
    "SYSTEM_ACTOR_ID",
    "VOUCHER_DELETED_ACTION",
    "VOUCHER_DISPOSED_ACTION",
    "VOUCHER_ISSUED_ACTION",
    "VOUCHER_RECALLED_ACTION",
    "VOUCHER_REDEMPTION_ACTION",
    "VOUCHER_REGISTERED_ACTION",
    "VOUCHER_REISSUED_ACTION",
    "VOUCHER_USED_ACTION",
    "AuditEvent",
    "rejected_action",
]
