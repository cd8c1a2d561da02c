"""Personal data carried by a voucher, in plain and encrypted form."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VoucherPii:
    """Plaintext personal data of a voucher recipient.

    Never persisted or logged in this form.
    """

    name: str
    dob: str
    phone: str

    def __repr__(self) -> str:
        return "VoucherPii(<redacted>)"


@dataclass(frozen=True)
class EncryptedVoucherPii:
    """Encrypted field tokens as stored on a voucher record."""

    encrypted_name: str
    encrypted_dob: str
    encrypted_phone: str
