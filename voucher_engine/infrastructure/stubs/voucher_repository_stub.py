"""Voucher repository stub implementation.

This module provides an in-memory implementation of VoucherRepositoryProtocol
for development and testing purposes. It is NOT suitable for production use.

The conditional writes are simulated with a single asyncio.Lock, the
in-memory equivalent of PostgreSQL's ``UPDATE ... WHERE status = :expected``
row-level atomicity. Used and disposed records refuse every change except
to notes and updated_at.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import fields, replace
from datetime import date, datetime
from typing import Any
from uuid import UUID

from voucher_engine.application.ports.voucher_repository import (
    VoucherRepositoryProtocol,
)
from voucher_engine.application.services.serial_number_service import (
    SerialNumberGenerator,
)
from voucher_engine.domain.errors.concurrent_modification import DuplicateSerialError
from voucher_engine.domain.models.voucher import (
    TERMINAL_STATUSES,
    UNDELETABLE_STATUSES,
    Voucher,
    VoucherStatus,
)

# Fields that may change on a record in a terminal status
METADATA_FIELDS: frozenset[str] = frozenset({"notes", "updated_at"})

_VOUCHER_FIELDS: frozenset[str] = frozenset(f.name for f in fields(Voucher))
_IMMUTABLE_FIELDS: frozenset[str] = frozenset({"id", "serial_no", "created_at"})


class VoucherRepositoryStub(VoucherRepositoryProtocol):
    """In-memory stub implementation of VoucherRepositoryProtocol.

    Attributes:
        _vouchers: Dictionary mapping voucher.id to Voucher.
        _serial_index: Unique index from serial_no to voucher.id.
        _sequence_counters: Next free sequence per (year, month).
    """

    def __init__(self) -> None:
        """Initialize the stub with empty storage."""
        self._vouchers: dict[UUID, Voucher] = {}
        self._serial_index: dict[str, UUID] = {}
        self._sequence_counters: dict[tuple[int, int], int] = {}
        self._serials = SerialNumberGenerator()
        # Lock for simulating atomic conditional writes
        self._cas_lock = asyncio.Lock()

    async def get_by_id(self, voucher_id: UUID) -> Voucher | None:
        return self._vouchers.get(voucher_id)

    async def find_by_serial(self, serial_no: str) -> Voucher | None:
        voucher_id = self._serial_index.get(serial_no)
        if voucher_id is None:
            return None
        return self._vouchers.get(voucher_id)

    async def insert(self, voucher: Voucher) -> None:
        """Store a new voucher.

        Raises:
            ValueError: If voucher.id already exists.
            DuplicateSerialError: If voucher.serial_no already exists.
        """
        async with self._cas_lock:
            if voucher.id in self._vouchers:
                raise ValueError(f"Voucher already exists: {voucher.id}")
            if voucher.serial_no in self._serial_index:
                raise DuplicateSerialError(voucher.serial_no)
            self._vouchers[voucher.id] = voucher
            self._serial_index[voucher.serial_no] = voucher.id

    async def atomic_transition(
        self,
        voucher_id: UUID,
        expected_status: VoucherStatus,
        changes: Mapping[str, Any],
        *,
        expected_issued_at: datetime | None = None,
    ) -> bool:
        """Apply changes if the voucher is still in expected_status.

        Returns:
            True if applied, False if the voucher is missing, its status
            no longer matches, or expected_issued_at is given and differs.

        Raises:
            ValueError: If changes name unknown or immutable fields, or
                touch anything but metadata on a used or disposed record.
        """
        unknown = set(changes) - _VOUCHER_FIELDS
        if unknown:
            raise ValueError(f"Unknown voucher fields: {sorted(unknown)}")
        immutable = set(changes) & _IMMUTABLE_FIELDS
        if immutable:
            raise ValueError(f"Immutable voucher fields: {sorted(immutable)}")

        async with self._cas_lock:
            voucher = self._vouchers.get(voucher_id)
            if voucher is None or voucher.status != expected_status:
                return False
            if (
                expected_issued_at is not None
                and voucher.issued_at != expected_issued_at
            ):
                return False

            if voucher.status in TERMINAL_STATUSES:
                semantic = set(changes) - METADATA_FIELDS
                if semantic:
                    raise ValueError(
                        f"Voucher {voucher_id} is {voucher.status.value}; "
                        f"refusing changes to {sorted(semantic)}"
                    )

            self._vouchers[voucher_id] = replace(voucher, **changes)
            return True

    async def atomic_delete(
        self,
        voucher_id: UUID,
        expected_status: VoucherStatus,
    ) -> bool:
        """Delete the voucher if it is still in expected_status.

        Raises:
            ValueError: If the voucher is used or disposed.
        """
        async with self._cas_lock:
            voucher = self._vouchers.get(voucher_id)
            if voucher is None or voucher.status != expected_status:
                return False
            if voucher.status in UNDELETABLE_STATUSES:
                raise ValueError(
                    f"Voucher {voucher_id} is {voucher.status.value} "
                    "and cannot be deleted"
                )
            del self._vouchers[voucher_id]
            del self._serial_index[voucher.serial_no]
            return True

    async def list_serials_for_month(self, year: int, month: int) -> list[str]:
        prefix = f"{year:04d}{month:02d}"
        return [serial for serial in self._serial_index if serial.startswith(prefix)]

    async def reserve_sequence_block(self, year: int, month: int, count: int) -> int:
        """Reserve count consecutive sequences for a month.

        The first reservation for a month starts after the highest sequence
        already stored for it.

        Raises:
            ValueError: If count is less than 1.
        """
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")

        async with self._cas_lock:
            key = (year, month)
            if key not in self._sequence_counters:
                existing = await self.list_serials_for_month(year, month)
                self._sequence_counters[key] = self._serials.next_sequence(
                    existing, date(year, month, 1)
                )
            start = self._sequence_counters[key]
            self._sequence_counters[key] = start + count
            return start

    # Test helper methods

    def clear(self) -> None:
        """Clear all stored vouchers and counters (for testing)."""
        self._vouchers.clear()
        self._serial_index.clear()
        self._sequence_counters.clear()

    def count(self) -> int:
        """Return the number of stored vouchers (for testing)."""
        return len(self._vouchers)
