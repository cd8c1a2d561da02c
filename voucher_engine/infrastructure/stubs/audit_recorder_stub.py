"""Audit recorder stub implementation.

Collects AuditEvents in memory. Tests can make it fail to check that a
broken audit sink never aborts the lifecycle operation that emitted the
event.
"""

from __future__ import annotations

from voucher_engine.application.ports.audit_recorder import AuditRecorderProtocol
from voucher_engine.domain.events.voucher_audit import AuditEvent


class AuditRecorderStub(AuditRecorderProtocol):
    """In-memory audit sink.

    Attributes:
        events: Recorded events in arrival order.
        failure: Exception raised by record() instead of storing, if set.
    """

    def __init__(self, failure: Exception | None = None) -> None:
        self.events: list[AuditEvent] = []
        self.failure = failure

    async def record(self, event: AuditEvent) -> None:
        if self.failure is not None:
            raise self.failure
        self.events.append(event)

    # Test helper methods

    @property
    def actions(self) -> list[str]:
        """Action names of the recorded events, in order."""
        return [event.action for event in self.events]

    def events_for(self, target_id: str) -> list[AuditEvent]:
        """Return events recorded for one target (voucher id or serial)."""
        return [event for event in self.events if event.target_id == target_id]

    def clear(self) -> None:
        """Clear recorded events (for testing)."""
        self.events.clear()
