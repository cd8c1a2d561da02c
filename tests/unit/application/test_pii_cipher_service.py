"""Unit tests for PiiCipher (field encryption, legacy decryption, masking)."""

from __future__ import annotations

import dataclasses
import hashlib
import os

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from hypothesis import given, settings
from hypothesis import strategies as st

from voucher_engine.application.services.pii_cipher_service import (
    MaskKind,
    PiiCipher,
)
from voucher_engine.config.voucher_config import (
    TEST_VOUCHER_ENGINE_CONFIG,
    VoucherEngineConfig,
)
from voucher_engine.domain.errors.decryption import DecryptionError
from voucher_engine.domain.models.voucher_pii import VoucherPii

LEGACY_KEY = hashlib.sha256(b"test-pii-secret").digest()


def _legacy_token(plaintext: bytes, *, pad: bool = True) -> str:
    """Build an AES-256-CBC token the way older records were written."""
    iv = os.urandom(16)
    if pad:
        padder = padding.PKCS7(128).padder()
        plaintext = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(LEGACY_KEY), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"


class TestCurrentFormat:
    def test_round_trip(self, cipher: PiiCipher) -> None:
        token = cipher.encrypt_field("홍길동")
        assert cipher.decrypt_field(token) == "홍길동"

    def test_token_layout(self, cipher: PiiCipher) -> None:
        iv_hex, tag_hex, cipher_hex = cipher.encrypt_field("010-1234-5678").split(":")
        assert len(iv_hex) == 32
        assert len(tag_hex) == 32
        # GCM adds no padding
        assert len(cipher_hex) == len("010-1234-5678") * 2

    def test_fresh_iv_per_call(self, cipher: PiiCipher) -> None:
        first = cipher.encrypt_field("same value")
        second = cipher.encrypt_field("same value")
        assert first != second
        assert first.split(":")[0] != second.split(":")[0]

    def test_empty_plaintext(self, cipher: PiiCipher) -> None:
        token = cipher.encrypt_field("")
        assert token.endswith(":")
        assert cipher.decrypt_field(token) == ""

    def test_tampered_ciphertext_raises(self, cipher: PiiCipher) -> None:
        iv_hex, tag_hex, cipher_hex = cipher.encrypt_field("1990-01-01").split(":")
        flipped = ("1" if cipher_hex[0] == "0" else "0") + cipher_hex[1:]
        with pytest.raises(DecryptionError) as exc_info:
            cipher.decrypt_field(f"{iv_hex}:{tag_hex}:{flipped}")
        assert exc_info.value.token_format == "current"

    def test_tampered_tag_raises(self, cipher: PiiCipher) -> None:
        iv_hex, tag_hex, cipher_hex = cipher.encrypt_field("1990-01-01").split(":")
        flipped = ("1" if tag_hex[0] == "0" else "0") + tag_hex[1:]
        with pytest.raises(DecryptionError):
            cipher.decrypt_field(f"{iv_hex}:{flipped}:{cipher_hex}")

    def test_wrong_key_raises(
        self, cipher: PiiCipher, config: VoucherEngineConfig
    ) -> None:
        other = PiiCipher(dataclasses.replace(config, pii_secret="other-secret"))
        with pytest.raises(DecryptionError):
            other.decrypt_field(cipher.encrypt_field("홍길동"))

    @settings(max_examples=50)
    @given(st.text())
    def test_round_trip_any_text(self, plaintext: str) -> None:
        cipher = PiiCipher(TEST_VOUCHER_ENGINE_CONFIG)
        assert cipher.decrypt_field(cipher.encrypt_field(plaintext)) == plaintext


class TestLegacyFormat:
    def test_decrypts_cbc_token(self, cipher: PiiCipher) -> None:
        assert cipher.decrypt_field(_legacy_token("김영희".encode())) == "김영희"

    def test_block_aligned_plaintext(self, cipher: PiiCipher) -> None:
        token = _legacy_token(b"0123456789abcdef")
        # A full padding block is appended
        assert len(token.split(":")[1]) == 64
        assert cipher.decrypt_field(token) == "0123456789abcdef"

    def test_bad_padding_raises(self, cipher: PiiCipher) -> None:
        token = _legacy_token(b"\x00" * 16, pad=False)
        with pytest.raises(DecryptionError) as exc_info:
            cipher.decrypt_field(token)
        assert exc_info.value.token_format == "legacy"

    def test_non_utf8_plaintext_raises(self, cipher: PiiCipher) -> None:
        with pytest.raises(DecryptionError, match="UTF-8"):
            cipher.decrypt_field(_legacy_token(b"\xff\xfe"))

    def test_never_produced(self, cipher: PiiCipher) -> None:
        assert cipher.encrypt_field("x").count(":") == 2


class TestUnrecognizedTokens:
    @pytest.mark.parametrize(
        "token",
        [
            "홍길동",
            "010-1234-5678",
            "abc:def",
            f"{'a' * 32}:{'b' * 31}",
            f"{'a' * 32}:{'b' * 32}:{'c' * 3}",
            "a:b:c:d",
        ],
    )
    def test_passthrough(self, cipher: PiiCipher, token: str) -> None:
        assert cipher.decrypt_field(token) == token

    def test_strict_mode_raises(self, config: VoucherEngineConfig) -> None:
        strict = PiiCipher(dataclasses.replace(config, strict_decryption=True))
        with pytest.raises(DecryptionError) as exc_info:
            strict.decrypt_field("홍길동")
        assert exc_info.value.token_format == "unrecognized"

    def test_strict_mode_still_decrypts(self, config: VoucherEngineConfig) -> None:
        strict = PiiCipher(dataclasses.replace(config, strict_decryption=True))
        assert strict.decrypt_field(strict.encrypt_field("홍길동")) == "홍길동"


class TestVoucherPii:
    def test_round_trip(self, cipher: PiiCipher) -> None:
        pii = VoucherPii(name="홍길동", dob="1990-01-01", phone="010-1234-5678")
        encrypted = cipher.encrypt_voucher_pii(pii)
        assert "홍길동" not in encrypted.encrypted_name
        assert cipher.decrypt_voucher_pii(encrypted) == pii

    def test_repr_is_redacted(self) -> None:
        pii = VoucherPii(name="홍길동", dob="1990-01-01", phone="010-1234-5678")
        assert "홍길동" not in repr(pii)


class TestMaskForDisplay:
    @pytest.mark.parametrize(
        ("value", "kind", "expected"),
        [
            ("010-1234-5678", MaskKind.PHONE, "010-****-5678"),
            ("01012345678", MaskKind.PHONE, "010-****-5678"),
            ("02-1234-5678", MaskKind.PHONE, "021-****-5678"),
            ("123-4567", MaskKind.PHONE, "***-****-****"),
            ("김", MaskKind.NAME, "*"),
            ("김철", MaskKind.NAME, "김*"),
            ("김철수", MaskKind.NAME, "김*수"),
            ("남궁민수", MaskKind.NAME, "남**수"),
            ("AB12345", MaskKind.ID, "AB12***"),
            ("ABCD", MaskKind.ID, "****"),
            ("", MaskKind.NAME, ""),
            ("", MaskKind.PHONE, ""),
        ],
    )
    def test_masks(self, value: str, kind: MaskKind, expected: str) -> None:
        assert PiiCipher.mask_for_display(value, kind) == expected
