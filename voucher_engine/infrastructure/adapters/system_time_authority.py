"""System clock implementation of TimeAuthorityProtocol."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo

from voucher_engine.application.ports.time_authority import TimeAuthorityProtocol


class SystemTimeAuthority(TimeAuthorityProtocol):
    """Reads the host clock in the configured zone.

    Attributes:
        _tz: Zone used by now(); payload dates and "today" follow it.
    """

    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)
