"""Encryption of recipient personal data at rest.

Encrypted field tokens are hex segments joined by ``:``:

    current: <32 hex iv>:<32 hex tag>:<hex ciphertext>   (AES-256-GCM)
    legacy:  <32 hex iv>:<hex ciphertext>                (AES-256-CBC, PKCS7)

The key is SHA-256 of the configured secret. Legacy tokens carry no
integrity tag; they are decrypted for backward compatibility only and are
never produced.

Anything that looks like neither format is returned unchanged (rows stored
in plaintext before encryption was introduced) unless strict decryption is
configured.
"""

from __future__ import annotations

import hashlib
import os
import re
from enum import Enum
from typing import Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from voucher_engine.application.services.base import LoggingMixin
from voucher_engine.config.voucher_config import VoucherEngineConfig
from voucher_engine.domain.errors.decryption import DecryptionError
from voucher_engine.domain.models.voucher_pii import EncryptedVoucherPii, VoucherPii

IV_LENGTH: Final[int] = 16
TAG_LENGTH: Final[int] = 16
AES_BLOCK_BITS: Final[int] = 128

_IV_HEX = re.compile(r"[0-9a-fA-F]{32}")
_CIPHER_HEX = re.compile(r"(?:[0-9a-fA-F]{2})*")


class MaskKind(Enum):
    """Kinds of personal data that can be masked for display."""

    PHONE = "phone"
    NAME = "name"
    ID = "id"


class PiiCipher(LoggingMixin):
    """Encrypts, decrypts and masks personal data fields.

    Attributes:
        _key: 32-byte AES key derived from the configured secret.
        _strict: Raise on unrecognized tokens instead of passing through.
    """

    def __init__(self, config: VoucherEngineConfig) -> None:
        self._key = hashlib.sha256(config.pii_secret.encode("utf-8")).digest()
        self._aead = AESGCM(self._key)
        self._strict = config.strict_decryption
        self._init_logger()

    def encrypt_field(self, plaintext: str) -> str:
        """Encrypt a value with AES-256-GCM and a fresh random IV.

        Args:
            plaintext: UTF-8 text to protect.

        Returns:
            ``<iv hex>:<tag hex>:<ciphertext hex>``.
        """
        iv = os.urandom(IV_LENGTH)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt_field(self, token: str) -> str:
        """Decrypt a field token in either format.

        Args:
            token: Stored field value.

        Returns:
            The plaintext, or the token itself when it is not recognized as
            an encrypted value (soft-fail mode).

        Raises:
            DecryptionError: A recognized token fails authentication,
                padding or UTF-8 decoding, or (strict mode) the token is
                not recognized.
        """
        parts = token.split(":")
        if len(parts) == 3 and self._is_current(parts):
            return self._decrypt_current(*parts)
        if len(parts) == 2 and self._is_legacy(parts):
            return self._decrypt_legacy(*parts)

        if self._strict:
            raise DecryptionError("unrecognized", "token matches no known format")
        self._log_operation("decrypt_field").warning(
            "unrecognized_token_passthrough", segments=len(parts)
        )
        return token

    @staticmethod
    def _is_current(parts: list[str]) -> bool:
        iv_hex, tag_hex, cipher_hex = parts
        return bool(
            _IV_HEX.fullmatch(iv_hex)
            and _IV_HEX.fullmatch(tag_hex)
            and _CIPHER_HEX.fullmatch(cipher_hex)
        )

    @staticmethod
    def _is_legacy(parts: list[str]) -> bool:
        iv_hex, cipher_hex = parts
        return bool(
            _IV_HEX.fullmatch(iv_hex)
            and cipher_hex
            and _CIPHER_HEX.fullmatch(cipher_hex)
            and len(cipher_hex) % (IV_LENGTH * 2) == 0
        )

    def _decrypt_current(self, iv_hex: str, tag_hex: str, cipher_hex: str) -> str:
        iv = bytes.fromhex(iv_hex)
        sealed = bytes.fromhex(cipher_hex) + bytes.fromhex(tag_hex)
        try:
            plaintext = self._aead.decrypt(iv, sealed, None)
        except InvalidTag as exc:
            raise DecryptionError("current", "authentication tag mismatch") from exc
        return self._decode("current", plaintext)

    def _decrypt_legacy(self, iv_hex: str, cipher_hex: str) -> str:
        log = self._log_operation("decrypt_field", token_format="legacy")
        decryptor = Cipher(
            algorithms.AES(self._key), modes.CBC(bytes.fromhex(iv_hex))
        ).decryptor()
        padded = decryptor.update(bytes.fromhex(cipher_hex)) + decryptor.finalize()

        unpadder = padding.PKCS7(AES_BLOCK_BITS).unpadder()
        try:
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise DecryptionError("legacy", "invalid padding") from exc

        log.info("legacy_token_decrypted")
        return self._decode("legacy", plaintext)

    @staticmethod
    def _decode(token_format: str, plaintext: bytes) -> str:
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError(token_format, "plaintext is not UTF-8") from exc

    def encrypt_voucher_pii(self, pii: VoucherPii) -> EncryptedVoucherPii:
        """Encrypt the three personal data columns of a voucher."""
        return EncryptedVoucherPii(
            encrypted_name=self.encrypt_field(pii.name),
            encrypted_dob=self.encrypt_field(pii.dob),
            encrypted_phone=self.encrypt_field(pii.phone),
        )

    def decrypt_voucher_pii(self, encrypted: EncryptedVoucherPii) -> VoucherPii:
        """Decrypt the three personal data columns of a voucher."""
        return VoucherPii(
            name=self.decrypt_field(encrypted.encrypted_name),
            dob=self.decrypt_field(encrypted.encrypted_dob),
            phone=self.decrypt_field(encrypted.encrypted_phone),
        )

    @staticmethod
    def mask_for_display(value: str, kind: MaskKind) -> str:
        """Mask a plaintext value for display.

        Rules:
            phone: first 3 and last 4 digits (``010-****-5678``); fewer than
                10 digits gives ``***-****-****``.
            name: first and last character kept; 2-character names keep
                the first only; 1 character becomes ``*``.
            id: first 4 characters kept; 4 or fewer become ``****``.

        Args:
            value: Plaintext to mask.
            kind: Which masking rule applies.

        Returns:
            The masked string, or "" for an empty value.
        """
        if not value:
            return ""

        if kind == MaskKind.PHONE:
            digits = re.sub(r"\D", "", value)
            if len(digits) >= 10:
                return f"{digits[:3]}-****-{digits[-4:]}"
            return "***-****-****"

        if kind == MaskKind.NAME:
            if len(value) == 1:
                return "*"
            if len(value) == 2:
                return value[0] + "*"
            return value[0] + "*" * (len(value) - 2) + value[-1]

        if len(value) > 4:
            return value[:4] + "*" * (len(value) - 4)
        return "****"
