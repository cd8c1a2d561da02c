"""Domain models for the voucher engine."""

from voucher_engine.domain.models.redemption_payload import (
    DateDiscrepancy,
    PayloadFormat,
    RedemptionPayload,
)
from voucher_engine.domain.models.serial_number import SerialNumberParts
from voucher_engine.domain.models.voucher import (
    STATUS_TRANSITIONS,
    TERMINAL_STATUSES,
    TRANSITION_TABLE,
    LifecycleOperation,
    TransitionRule,
    Voucher,
    VoucherStatus,
)
from voucher_engine.domain.models.voucher_pii import EncryptedVoucherPii, VoucherPii
from voucher_engine.domain.models.voucher_recipient import (
    RecipientStatus,
    VoucherRecipient,
)

__all__: list[str] = [
    "STATUS_TRANSITIONS",
    "TERMINAL_STATUSES",
    "TRANSITION_TABLE",
    "DateDiscrepancy",
    "EncryptedVoucherPii",
    "LifecycleOperation",
    "PayloadFormat",
    "RecipientStatus",
    "RedemptionPayload",
    "SerialNumberParts",
    "TransitionRule",
    "Voucher",
    "VoucherPii",
    "VoucherRecipient",
    "VoucherStatus",
]
