"""Voucher repository port.

The core issues no queries of its own; every read and write goes through
this contract. The most important method is ``atomic_transition``: it must
be a single conditional write (``UPDATE ... WHERE id = :id AND status =
:expected``), never a read followed by a write, so that exactly one of any
number of racing callers wins.

Developer Golden Rules:
1. CAS FOR STATUS - Status changes only through atomic_transition()
2. FAIL LOUD - Repository raises on storage errors
3. UNIQUE SERIALS - insert() raises DuplicateSerialError on conflict
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from voucher_engine.domain.models.voucher import Voucher, VoucherStatus


class VoucherRepositoryProtocol(Protocol):
    """Protocol for voucher storage operations.

    Implementations may use PostgreSQL, in-memory storage, or other backends.
    """

    async def get_by_id(self, voucher_id: UUID) -> Voucher | None:
        """Retrieve a voucher by id.

        Args:
            voucher_id: The voucher identifier.

        Returns:
            The voucher if found, None otherwise.
        """
        ...

    async def find_by_serial(self, serial_no: str) -> Voucher | None:
        """Retrieve a voucher by serial number.

        Args:
            serial_no: The 14-digit serial.

        Returns:
            The voucher if found, None otherwise.
        """
        ...

    async def insert(self, voucher: Voucher) -> None:
        """Store a new voucher.

        Args:
            voucher: The voucher to store.

        Raises:
            DuplicateSerialError: If voucher.serial_no already exists.
            ValueError: If voucher.id already exists.
        """
        ...

    async def atomic_transition(
        self,
        voucher_id: UUID,
        expected_status: VoucherStatus,
        changes: Mapping[str, Any],
        *,
        expected_issued_at: datetime | None = None,
    ) -> bool:
        """Apply changes only if the voucher is still in expected_status.

        Implementation Notes:
        - PostgreSQL: UPDATE vouchers SET ... WHERE id = $1 AND status = $2
          [AND issued_at = $3]
        - Success means exactly one row was updated

        Args:
            voucher_id: The voucher to update.
            expected_status: The status the update is conditioned on.
            changes: Field name to new value, including "status".
            expected_issued_at: When given, the update is also conditioned
                on issued_at, so a re-issue since the read loses the race.

        Returns:
            True if the update was applied, False if the voucher was missing
            or its status or issued_at no longer matched (a lost race).
        """
        ...

    async def atomic_delete(
        self,
        voucher_id: UUID,
        expected_status: VoucherStatus,
    ) -> bool:
        """Delete the voucher only if it is still in expected_status.

        Args:
            voucher_id: The voucher to delete.
            expected_status: The status the delete is conditioned on.

        Returns:
            True if a row was deleted, False otherwise.
        """
        ...

    async def list_serials_for_month(self, year: int, month: int) -> list[str]:
        """List serial numbers whose YYYYMM prefix matches.

        Args:
            year: Issuance year.
            month: Issuance month.

        Returns:
            Serial numbers with that prefix (unordered).
        """
        ...

    async def reserve_sequence_block(self, year: int, month: int, count: int) -> int:
        """Reserve a contiguous block of serial sequences for a month.

        Concurrent callers must receive disjoint blocks. Production backends
        typically implement this with a per-month counter row updated by
        ``UPDATE ... SET next = next + :count RETURNING next - :count``.

        Args:
            year: Issuance year.
            month: Issuance month.
            count: Number of sequences to reserve (at least 1).

        Returns:
            The first sequence number of the reserved block.
        """
        ...
