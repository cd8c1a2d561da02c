"""Audit recorder port.

The core hands every lifecycle AuditEvent to this sink and does not wait on
its success: a failure to record is logged and never aborts the business
transaction that produced the event.
"""

from __future__ import annotations

from typing import Protocol

from voucher_engine.domain.events.voucher_audit import AuditEvent


class AuditRecorderProtocol(Protocol):
    """Protocol for the external, append-only audit sink."""

    async def record(self, event: AuditEvent) -> None:
        """Record an audit event.

        Args:
            event: The event to append.
        """
        ...
