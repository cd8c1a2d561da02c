"""Decryption errors for encrypted personal data fields."""

from voucher_engine.domain.exceptions import VoucherEngineError


class DecryptionError(VoucherEngineError):
    """Raised when an encrypted PII token is recognized but cannot be opened.

    Covers a failed authentication tag on the current format, bad padding on
    the legacy format, and (in strict mode only) unrecognized tokens.

    Attributes:
        token_format: "current", "legacy" or "unrecognized".
        reason: Short description of the failure.
    """

    code = "DECRYPTION_ERROR"

    def __init__(self, token_format: str, reason: str) -> None:
        self.token_format = token_format
        self.reason = reason
        super().__init__(f"Failed to decrypt {token_format} field token: {reason}")
