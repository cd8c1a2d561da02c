"""Unit tests for the voucher engine error taxonomy."""

from __future__ import annotations

from uuid import uuid4

import pytest

from voucher_engine.domain.errors import (
    BatchSizeError,
    ConcurrentModificationError,
    DecryptionError,
    DuplicateSerialError,
    InvalidSerialError,
    InvalidSignatureError,
    InvalidStateTransitionError,
    MalformedPayloadError,
    RecipientAlreadyConsumedError,
    RecipientNotFoundError,
    StalePayloadError,
    VoucherAlreadyUsedError,
    VoucherNotFoundError,
    VoucherRuleViolationError,
    VoucherValidationError,
)
from voucher_engine.domain.exceptions import VoucherEngineError
from voucher_engine.domain.models.voucher import LifecycleOperation, VoucherStatus


class TestErrorCodes:
    """Every error carries a stable code."""

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (InvalidSerialError("123"), "INVALID_SERIAL"),
            (MalformedPayloadError("empty payload"), "INVALID_PAYLOAD"),
            (InvalidSignatureError("20241200000130", "current"), "INVALID_SIGNATURE"),
            (
                StalePayloadError("20241200000130", "20241130", "20241201"),
                "STALE_PAYLOAD",
            ),
            (VoucherNotFoundError("20241200000130"), "NOT_FOUND"),
            (DecryptionError("current", "authentication tag mismatch"), "DECRYPTION_ERROR"),
            (DuplicateSerialError("20241200000130"), "DUPLICATE_SERIAL"),
            (BatchSizeError(1001, 1000), "BATCH_TOO_LARGE"),
            (RecipientNotFoundError(uuid4()), "RECIPIENT_NOT_FOUND"),
            (RecipientAlreadyConsumedError(uuid4()), "RECIPIENT_CONSUMED"),
            (
                ConcurrentModificationError(
                    uuid4(), VoucherStatus.ISSUED, LifecycleOperation.USE
                ),
                "CONCURRENCY_CONFLICT",
            ),
        ],
    )
    def test_code(self, error: VoucherEngineError, code: str) -> None:
        assert error.code == code
        assert isinstance(error, VoucherEngineError)


class TestRetryability:
    """Rule violations are permanent, conflicts are retryable."""

    def test_concurrent_modification_is_retryable_and_not_a_rule_violation(
        self,
    ) -> None:
        error = ConcurrentModificationError(
            uuid4(), VoucherStatus.ISSUED, LifecycleOperation.USE
        )
        assert error.retryable is True
        assert not isinstance(error, VoucherRuleViolationError)

    def test_rule_violations_are_not_retryable(self) -> None:
        voucher_id = uuid4()
        errors = [
            InvalidSerialError("1"),
            InvalidSignatureError("1", "legacy"),
            StalePayloadError("1", "20241130", None),
            VoucherAlreadyUsedError(
                voucher_id, VoucherStatus.USED, LifecycleOperation.USE
            ),
            InvalidStateTransitionError(
                voucher_id, VoucherStatus.REGISTERED, LifecycleOperation.USE
            ),
        ]
        for error in errors:
            assert isinstance(error, VoucherRuleViolationError)
            assert error.retryable is False

    def test_validation_family(self) -> None:
        assert issubclass(InvalidSerialError, VoucherValidationError)
        assert issubclass(MalformedPayloadError, VoucherValidationError)


class TestErrorMessages:
    """Messages name the offending reference."""

    def test_stale_payload_message_mentions_both_dates(self) -> None:
        error = StalePayloadError("20241200000130", "20241130", "20241201")
        assert "20241130" in str(error)
        assert "20241201" in str(error)

    def test_invalid_transition_lists_allowed_statuses(self) -> None:
        error = InvalidStateTransitionError(
            uuid4(),
            VoucherStatus.REGISTERED,
            LifecycleOperation.USE,
            allowed_from=[VoucherStatus.ISSUED],
        )
        assert "issued" in str(error)
        assert error.allowed_from == [VoucherStatus.ISSUED]

    def test_malformed_payload_keeps_reason(self) -> None:
        error = MalformedPayloadError("TS must be 12 digits")
        assert error.reason == "TS must be 12 digits"
