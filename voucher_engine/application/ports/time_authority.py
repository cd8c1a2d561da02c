"""Time Authority Protocol - interface for timestamp provisioning.

Services that need the current time inject a TimeAuthorityProtocol instead
of calling datetime.now() directly. Tests inject FakeTimeAuthority to pin
"today", which the payload freshness check depends on.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    """Abstract interface for time authority.

    Example usage:
        class MyService:
            def __init__(self, time_authority: TimeAuthorityProtocol) -> None:
                self._time = time_authority

            def process(self) -> None:
                now = self._time.now()  # NOT datetime.now()
    """

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time with timezone awareness.

        Returns:
            Current timezone-aware datetime.
        """
        ...

    @abstractmethod
    def utcnow(self) -> datetime:
        """Return current UTC time.

        Returns:
            Current datetime in UTC timezone.
        """
        ...
