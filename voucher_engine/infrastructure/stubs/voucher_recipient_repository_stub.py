"""Voucher recipient repository stub implementation.

In-memory implementation of VoucherRecipientRepositoryProtocol for
development and testing. ``mark_issued`` simulates the conditional
``UPDATE ... WHERE status = 'registered'`` with an asyncio.Lock.
"""

from __future__ import annotations

import asyncio
from uuid import UUID

from voucher_engine.application.ports.voucher_recipient_repository import (
    VoucherRecipientRepositoryProtocol,
)
from voucher_engine.domain.models.voucher_recipient import (
    RecipientStatus,
    VoucherRecipient,
)


class VoucherRecipientRepositoryStub(VoucherRecipientRepositoryProtocol):
    """In-memory stub implementation of VoucherRecipientRepositoryProtocol.

    Attributes:
        _recipients: Dictionary mapping recipient.id to VoucherRecipient.
    """

    def __init__(self) -> None:
        """Initialize the stub with empty storage."""
        self._recipients: dict[UUID, VoucherRecipient] = {}
        self._cas_lock = asyncio.Lock()

    async def save(self, recipient: VoucherRecipient) -> None:
        """Store a new recipient.

        Raises:
            ValueError: If recipient.id already exists.
        """
        if recipient.id in self._recipients:
            raise ValueError(f"Recipient already exists: {recipient.id}")
        self._recipients[recipient.id] = recipient

    async def get(self, recipient_id: UUID) -> VoucherRecipient | None:
        return self._recipients.get(recipient_id)

    async def mark_issued(self, recipient_id: UUID, voucher_id: UUID) -> bool:
        async with self._cas_lock:
            recipient = self._recipients.get(recipient_id)
            if recipient is None or recipient.status != RecipientStatus.REGISTERED:
                return False
            self._recipients[recipient_id] = recipient.with_status(
                RecipientStatus.ISSUED, voucher_id=voucher_id
            )
            return True

    def clear(self) -> None:
        """Clear all stored recipients (for testing)."""
        self._recipients.clear()
