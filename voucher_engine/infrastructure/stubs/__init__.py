"""In-memory stub adapters for development and testing.

These stubs are NOT suitable for production use.
"""

from voucher_engine.infrastructure.stubs.audit_recorder_stub import AuditRecorderStub
from voucher_engine.infrastructure.stubs.voucher_recipient_repository_stub import (
    VoucherRecipientRepositoryStub,
)
from voucher_engine.infrastructure.stubs.voucher_repository_stub import (
    VoucherRepositoryStub,
)

__all__: list[str] = [
    "AuditRecorderStub",
    "VoucherRecipientRepositoryStub",
    "VoucherRepositoryStub",
]
