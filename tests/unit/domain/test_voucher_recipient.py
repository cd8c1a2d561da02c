"""Unit tests for the pre-issuance recipient model."""

from __future__ import annotations

from uuid import uuid4

import pytest

from voucher_engine.domain.models.voucher_recipient import (
    RecipientStatus,
    VoucherRecipient,
)


def _make_recipient(**overrides) -> VoucherRecipient:
    defaults = {
        "id": uuid4(),
        "member_id": "M-0001",
        "association": "Riverside Farmers",
        "amount": 50000,
    }
    defaults.update(overrides)
    return VoucherRecipient(**defaults)


class TestVoucherRecipient:
    def test_new_recipient_is_not_consumed(self) -> None:
        recipient = _make_recipient()
        assert recipient.status == RecipientStatus.REGISTERED
        assert not recipient.is_consumed()

    def test_with_status_links_voucher(self) -> None:
        voucher_id = uuid4()
        issued = _make_recipient().with_status(RecipientStatus.ISSUED, voucher_id)
        assert issued.is_consumed()
        assert issued.voucher_id == voucher_id

    def test_cannot_consume_twice(self) -> None:
        issued = _make_recipient().with_status(RecipientStatus.ISSUED, uuid4())
        with pytest.raises(ValueError, match="Invalid recipient transition"):
            issued.with_status(RecipientStatus.ISSUED, uuid4())

    def test_delivery_path(self) -> None:
        issued = _make_recipient().with_status(RecipientStatus.ISSUED, uuid4())
        printed = issued.with_status(RecipientStatus.PRINTED)
        delivered = printed.with_status(RecipientStatus.DELIVERED)
        assert delivered.voucher_id == issued.voucher_id
        assert delivered.status.valid_transitions() == frozenset()

    def test_consumed_status_requires_voucher(self) -> None:
        with pytest.raises(ValueError, match="must reference a voucher"):
            _make_recipient(status=RecipientStatus.ISSUED)

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            _make_recipient(amount=-5)
