"""Unit tests for RedemptionVerificationService."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
from voucher_engine.application.services.payload_signer_service import PayloadSigner
from voucher_engine.application.services.redemption_verification_service import (
    RedemptionVerificationService,
)
from voucher_engine.domain.errors.not_found import VoucherNotFoundError
from voucher_engine.domain.errors.signature import (
    InvalidSignatureError,
    StalePayloadError,
)
from voucher_engine.domain.models.redemption_payload import PayloadFormat
from voucher_engine.domain.models.voucher import Voucher, VoucherStatus
from voucher_engine.infrastructure.stubs.voucher_repository_stub import (
    VoucherRepositoryStub,
)

SERIAL = "20241200000130"


async def _store(
    repository: VoucherRepositoryStub,
    fake_time_authority: FakeTimeAuthority,
    status: VoucherStatus = VoucherStatus.ISSUED,
) -> Voucher:
    now = fake_time_authority.now()
    voucher = Voucher(
        id=uuid4(),
        serial_no=SERIAL,
        amount=50_000,
        status=status,
        issued_at=now if status != VoucherStatus.REGISTERED else None,
        used_at=now if status == VoucherStatus.USED else None,
    )
    await repository.insert(voucher)
    return voucher


class TestVerify:
    @pytest.mark.asyncio
    async def test_current_payload(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
        repository: VoucherRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        voucher = await _store(repository, fake_time_authority)
        payload = signer.make_payload(SERIAL, voucher.issued_at)

        result = await verification_service.verify(payload)

        assert result.voucher == voucher
        assert result.payload_format == PayloadFormat.CURRENT
        assert result.signature_checked
        assert result.date_discrepancy is None

    @pytest.mark.asyncio
    async def test_does_not_change_the_voucher(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
        repository: VoucherRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        voucher = await _store(repository, fake_time_authority)
        await verification_service.verify(signer.make_payload(SERIAL))
        assert await repository.get_by_id(voucher.id) == voucher

    @pytest.mark.asyncio
    async def test_reports_status_as_is(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
        repository: VoucherRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        await _store(repository, fake_time_authority, VoucherStatus.USED)
        result = await verification_service.verify(signer.make_payload(SERIAL))
        assert result.voucher.status == VoucherStatus.USED
        assert not result.voucher.is_redeemable()

    @pytest.mark.asyncio
    async def test_legacy_payload_skips_freshness(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
        repository: VoucherRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        await _store(repository, fake_time_authority, VoucherStatus.REGISTERED)
        timestamp = "202401010000"
        signature = signer.sign_legacy(SERIAL, timestamp)
        payload = f"VCH:{SERIAL}|TS:{timestamp}|SIG:{signature}"

        result = await verification_service.verify(payload)

        assert result.payload_format == PayloadFormat.LEGACY
        assert result.date_discrepancy is None

    @pytest.mark.asyncio
    async def test_bare_serial(
        self,
        verification_service: RedemptionVerificationService,
        repository: VoucherRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        await _store(repository, fake_time_authority)
        result = await verification_service.verify(SERIAL)
        assert result.payload_format == PayloadFormat.BARE
        assert not result.signature_checked

    @pytest.mark.asyncio
    async def test_unknown_serial(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
    ) -> None:
        with pytest.raises(VoucherNotFoundError) as exc_info:
            await verification_service.verify(signer.make_payload(SERIAL))
        assert exc_info.value.reference == SERIAL

    @pytest.mark.asyncio
    async def test_signature_checked_before_lookup(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
    ) -> None:
        payload = signer.make_payload(SERIAL)
        payload = payload[:-1] + ("1" if payload.endswith("0") else "0")
        with pytest.raises(InvalidSignatureError):
            await verification_service.verify(payload)

    @pytest.mark.asyncio
    async def test_stale_after_reissue(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
        repository: VoucherRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        """A code printed before a re-issue two days ago is refused."""
        old_payload = signer.make_payload(SERIAL, fake_time_authority.now())
        fake_time_authority.advance(delta=timedelta(days=1))
        await _store(repository, fake_time_authority)
        fake_time_authority.advance(delta=timedelta(days=1))

        with pytest.raises(StalePayloadError) as exc_info:
            await verification_service.verify(old_payload)
        assert exc_info.value.payload_issued_date == "20241201"
        assert exc_info.value.stored_issued_date == "20241202"

    @pytest.mark.asyncio
    async def test_same_day_reissue_is_flagged(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
        repository: VoucherRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        old_payload = signer.make_payload(SERIAL, fake_time_authority.now())
        fake_time_authority.advance(delta=timedelta(days=1))
        await _store(repository, fake_time_authority)

        result = await verification_service.verify(old_payload)

        assert result.date_discrepancy is not None
        assert result.date_discrepancy.payload_issued_date == "20241201"
        assert result.date_discrepancy.stored_issued_date == "20241202"
        assert result.date_discrepancy.today == "20241202"

    @pytest.mark.asyncio
    async def test_never_issued_voucher_is_stale(
        self,
        verification_service: RedemptionVerificationService,
        signer: PayloadSigner,
        repository: VoucherRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        await _store(repository, fake_time_authority, VoucherStatus.REGISTERED)
        with pytest.raises(StalePayloadError):
            await verification_service.verify(signer.make_payload(SERIAL))
