"""Serial number value object.

Serial layout (14 digits):
    YYYYMM  issuance year and month
    NNNNNN  zero-padded sequence within that month (000001-999999)
    CC      weighted-sum checksum over the first 12 digits, mod 100
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SerialNumberParts:
    """Decoded components of a valid serial number.

    Attributes:
        year: Issuance year (2020-2099).
        month: Issuance month (1-12).
        sequence: Sequence within the month (1-999999).
        checksum: Two-digit checksum string.
    """

    year: int
    month: int
    sequence: int
    checksum: str

    @property
    def year_month(self) -> str:
        """Return the YYYYMM prefix of the serial."""
        return f"{self.year:04d}{self.month:02d}"
