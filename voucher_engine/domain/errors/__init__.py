"""Domain errors for the voucher engine.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from VoucherEngineError and carry a stable ``code``.

Two families matter to callers:
- VoucherRuleViolationError: permanent, reject the request.
- ConcurrentModificationError / DuplicateSerialError: ``retryable`` is True.
"""

from voucher_engine.domain.errors.concurrent_modification import (
    ConcurrentModificationError,
    DuplicateSerialError,
)
from voucher_engine.domain.errors.decryption import DecryptionError
from voucher_engine.domain.errors.not_found import (
    RecipientAlreadyConsumedError,
    RecipientNotFoundError,
    VoucherNotFoundError,
)
from voucher_engine.domain.errors.rule_violation import VoucherRuleViolationError
from voucher_engine.domain.errors.signature import (
    InvalidSignatureError,
    StalePayloadError,
)
from voucher_engine.domain.errors.state_transition import (
    InvalidStateTransitionError,
    VoucherAlreadyDisposedError,
    VoucherAlreadyRecalledError,
    VoucherAlreadyUsedError,
    VoucherStateError,
)
from voucher_engine.domain.errors.validation import (
    BatchSizeError,
    InvalidSerialError,
    MalformedPayloadError,
    VoucherValidationError,
)

__all__: list[str] = [
    "BatchSizeError",
    "ConcurrentModificationError",
    "DecryptionError",
    "DuplicateSerialError",
    "InvalidSerialError",
    "InvalidSignatureError",
    "InvalidStateTransitionError",
    "MalformedPayloadError",
    "RecipientAlreadyConsumedError",
    "RecipientNotFoundError",
    "StalePayloadError",
    "VoucherAlreadyDisposedError",
    "VoucherAlreadyRecalledError",
    "VoucherAlreadyUsedError",
    "VoucherNotFoundError",
    "VoucherRuleViolationError",
    "VoucherStateError",
    "VoucherValidationError",
]
