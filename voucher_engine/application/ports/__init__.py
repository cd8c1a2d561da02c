"""Ports (interfaces) consumed by the voucher engine's services."""

from voucher_engine.application.ports.audit_recorder import AuditRecorderProtocol
from voucher_engine.application.ports.time_authority import TimeAuthorityProtocol
from voucher_engine.application.ports.voucher_recipient_repository import (
    VoucherRecipientRepositoryProtocol,
)
from voucher_engine.application.ports.voucher_repository import (
    VoucherRepositoryProtocol,
)

__all__: list[str] = [
    "AuditRecorderProtocol",
    "TimeAuthorityProtocol",
    "VoucherRecipientRepositoryProtocol",
    "VoucherRepositoryProtocol",
]
