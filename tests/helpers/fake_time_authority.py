"""FakeTimeAuthority - Controllable time authority for deterministic tests.

Payload freshness depends on "today", so every test that signs or verifies
a payload pins the clock with this fake instead of reading the host clock.

Usage Patterns:
--------------

1. Frozen Time Pattern:

    >>> fake_time = FakeTimeAuthority(frozen_at=datetime(2024, 12, 1, 9, 30, tzinfo=timezone.utc))
    >>> signer = PayloadSigner(config, time_authority=fake_time)
    >>> # Time never changes unless you advance it

2. Day Rollover Pattern:
    Sign a payload, then move the clock to the next day before verifying.

    >>> fake_time.advance(delta=timedelta(days=1))

3. Pytest Fixture Pattern:
    Use the `fake_time_authority` fixture from conftest.py.

    def test_stale_payload(fake_time_authority, signer):
        payload = signer.make_payload(serial, issued_at=fake_time_authority.now())
        fake_time_authority.advance(delta=timedelta(days=2))
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from voucher_engine.application.ports.time_authority import TimeAuthorityProtocol

DEFAULT_FROZEN_AT = datetime(2024, 12, 1, 9, 30, 0, tzinfo=timezone.utc)


class FakeTimeAuthority(TimeAuthorityProtocol):
    """Controllable time authority for deterministic tests.

    Attributes:
        _current_time: The controlled current time.
    """

    def __init__(self, frozen_at: datetime | None = None) -> None:
        """Initialize the fake time authority.

        Args:
            frozen_at: Optional datetime to freeze time at. Defaults to
                2024-12-01T09:30:00 UTC. Naive values are taken as UTC.
        """
        if frozen_at is None:
            frozen_at = DEFAULT_FROZEN_AT
        if frozen_at.tzinfo is None:
            frozen_at = frozen_at.replace(tzinfo=timezone.utc)
        self._current_time: datetime = frozen_at

    # =========================================================================
    # TimeAuthorityProtocol Implementation
    # =========================================================================

    def now(self) -> datetime:
        """Return the controlled current time."""
        return self._current_time

    def utcnow(self) -> datetime:
        """Return the controlled current time converted to UTC."""
        return self._current_time.astimezone(timezone.utc)

    # =========================================================================
    # Test Control Methods
    # =========================================================================

    def advance(
        self,
        seconds: float | int | None = None,
        delta: timedelta | None = None,
    ) -> None:
        """Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance.
            delta: A timedelta to advance by. Takes precedence over seconds.

        Raises:
            ValueError: If neither argument is given, or the amount is negative.
        """
        if delta is not None:
            advance_seconds = delta.total_seconds()
        elif seconds is not None:
            advance_seconds = float(seconds)
        else:
            raise ValueError("Must provide either 'seconds' or 'delta' argument")

        if advance_seconds < 0:
            raise ValueError(
                f"Cannot advance time backwards. Got {advance_seconds} seconds. "
                "Use set_time() for explicit time changes."
            )

        self._current_time += timedelta(seconds=advance_seconds)

    def set_time(self, dt: datetime) -> None:
        """Set the current time to an explicit value (naive means UTC)."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        self._current_time = dt

    def __repr__(self) -> str:
        return f"FakeTimeAuthority(current_time={self._current_time.isoformat()})"
