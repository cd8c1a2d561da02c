"""Voucher recipient repository port.

Recipients are created by bulk import outside the core. The core only reads
them and consumes each one exactly once via ``mark_issued``.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from voucher_engine.domain.models.voucher_recipient import VoucherRecipient


class VoucherRecipientRepositoryProtocol(Protocol):
    """Protocol for recipient storage operations."""

    async def save(self, recipient: VoucherRecipient) -> None:
        """Store a new recipient.

        Raises:
            ValueError: If recipient.id already exists.
        """
        ...

    async def get(self, recipient_id: UUID) -> VoucherRecipient | None:
        """Retrieve a recipient by id."""
        ...

    async def mark_issued(self, recipient_id: UUID, voucher_id: UUID) -> bool:
        """Consume a REGISTERED recipient by linking the minted voucher.

        Conditional write: succeeds only while the recipient is REGISTERED.

        Args:
            recipient_id: The recipient to consume.
            voucher_id: The voucher minted from it.

        Returns:
            True if consumed by this call, False if missing or already consumed.
        """
        ...
