"""Serial number generation and validation.

Serials are 14 decimal digits: YYYYMM + 6-digit sequence + 2-digit checksum.
The checksum is a weighted sum over the first 12 digits with the repeating
weights 3, 7, 1, taken mod 100. It catches every single-digit transcription
error (each weight is coprime with 10) and has nothing to do with the HMAC:
it exists for serials typed in by hand.

Usage:
    generator = SerialNumberGenerator()
    serial = generator.generate(1, date(2024, 12, 1))  # "20241200000130"
    generator.validate(serial)  # True
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date
from typing import Final

from voucher_engine.domain.errors.validation import InvalidSerialError
from voucher_engine.domain.models.serial_number import SerialNumberParts

SERIAL_LENGTH: Final[int] = 14
BASE_LENGTH: Final[int] = 12
CHECKSUM_WEIGHTS: Final[tuple[int, ...]] = (3, 7, 1, 3, 7, 1, 3, 7, 1, 3, 7, 1)
MIN_YEAR: Final[int] = 2020
MAX_YEAR: Final[int] = 2099
MIN_SEQUENCE: Final[int] = 1
MAX_SEQUENCE: Final[int] = 999_999

_SERIAL_PATTERN = re.compile(r"[0-9]{14}")


class SerialNumberGenerator:
    """Produces and validates checksummed voucher serial numbers.

    Stateless and safe to share between any number of concurrent callers.
    """

    @staticmethod
    def checksum(base_number: str) -> str:
        """Compute the two-digit checksum for a 12-digit base number.

        Args:
            base_number: YYYYMM + 6-digit sequence.

        Returns:
            Weighted digit sum mod 100, zero-padded to 2 digits.
        """
        total = sum(
            int(digit) * CHECKSUM_WEIGHTS[i % len(CHECKSUM_WEIGHTS)]
            for i, digit in enumerate(base_number)
        )
        return f"{total % 100:02d}"

    def generate(self, sequence: int, issue_date: date) -> str:
        """Generate the serial for a sequence within the issue month.

        Args:
            sequence: Sequence number within the month (1-999999).
            issue_date: Any date (or datetime) in the issue month.

        Returns:
            The 14-digit serial.

        Raises:
            InvalidSerialError: If the sequence or year is out of range.
        """
        base = f"{issue_date.year:04d}{issue_date.month:02d}{sequence:06d}"
        if not MIN_SEQUENCE <= sequence <= MAX_SEQUENCE:
            raise InvalidSerialError(
                base, f"sequence {sequence} outside {MIN_SEQUENCE}-{MAX_SEQUENCE}"
            )
        if not MIN_YEAR <= issue_date.year <= MAX_YEAR:
            raise InvalidSerialError(
                base, f"year {issue_date.year} outside {MIN_YEAR}-{MAX_YEAR}"
            )
        return base + self.checksum(base)

    def generate_batch(
        self,
        count: int,
        start_sequence: int,
        issue_date: date,
    ) -> list[str]:
        """Generate consecutive serials starting at start_sequence.

        Args:
            count: Number of serials to generate.
            start_sequence: First sequence number.
            issue_date: Any date in the issue month.

        Returns:
            List of serials in sequence order.
        """
        return [
            self.generate(start_sequence + offset, issue_date)
            for offset in range(count)
        ]

    def validate(self, serial: str) -> bool:
        """Check format, date range and checksum of a serial.

        Args:
            serial: Candidate serial number.

        Returns:
            True if the serial is well formed and its checksum matches.
        """
        if not isinstance(serial, str) or not _SERIAL_PATTERN.fullmatch(serial):
            return False

        year = int(serial[0:4])
        month = int(serial[4:6])
        if not MIN_YEAR <= year <= MAX_YEAR or not 1 <= month <= 12:
            return False

        return serial[BASE_LENGTH:] == self.checksum(serial[:BASE_LENGTH])

    def parse(self, serial: str) -> SerialNumberParts:
        """Decode a valid serial into its components.

        Args:
            serial: Serial number to decode.

        Returns:
            SerialNumberParts for the serial.

        Raises:
            InvalidSerialError: If validate() is false for the serial.
        """
        if not self.validate(serial):
            raise InvalidSerialError(str(serial))
        return SerialNumberParts(
            year=int(serial[0:4]),
            month=int(serial[4:6]),
            sequence=int(serial[6:12]),
            checksum=serial[12:14],
        )

    def next_sequence(
        self, existing_serials: Iterable[str | None], issue_date: date
    ) -> int:
        """Return the next free sequence for the issue month.

        Only serials that validate and share the target year-month are
        considered; anything else in existing_serials, including None for
        vouchers that have no serial yet, is ignored.

        Args:
            existing_serials: Serials already allocated.
            issue_date: Any date in the target month.

        Returns:
            max(sequence) + 1, or 1 if the month has no valid serials yet.
        """
        prefix = f"{issue_date.year:04d}{issue_date.month:02d}"
        sequences = [
            int(serial[6:12])
            for serial in existing_serials
            if isinstance(serial, str)
            and self.validate(serial)
            and serial.startswith(prefix)
        ]
        return max(sequences) + 1 if sequences else 1

    def format_for_display(self, serial: str) -> str:
        """Format a serial as YYYY-MM-NNNNNN-CC for printing.

        Invalid serials are returned unchanged.
        """
        if not self.validate(serial):
            return serial
        return f"{serial[0:4]}-{serial[4:6]}-{serial[6:12]}-{serial[12:14]}"
