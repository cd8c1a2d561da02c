"""Unit tests for VoucherMintingService."""

from __future__ import annotations

import dataclasses
from datetime import date
from uuid import UUID, uuid4

import pytest

from voucher_engine.application.services.pii_cipher_service import PiiCipher
from voucher_engine.application.services.serial_number_service import (
    SerialNumberGenerator,
)
from voucher_engine.application.services.voucher_lifecycle_service import (
    VoucherLifecycleService,
)
from voucher_engine.application.services.voucher_minting_service import (
    VoucherMintingService,
)
from voucher_engine.config.voucher_config import VoucherEngineConfig
from voucher_engine.domain.errors.validation import BatchSizeError
from voucher_engine.domain.models.voucher import Voucher, VoucherStatus
from voucher_engine.domain.models.voucher_recipient import (
    RecipientStatus,
    VoucherRecipient,
)
from voucher_engine.infrastructure.stubs.audit_recorder_stub import AuditRecorderStub
from voucher_engine.infrastructure.stubs.voucher_recipient_repository_stub import (
    VoucherRecipientRepositoryStub,
)
from voucher_engine.infrastructure.stubs.voucher_repository_stub import (
    VoucherRepositoryStub,
)

ISSUE_DATE = date(2024, 12, 1)


class _LosingRecipientRepository(VoucherRecipientRepositoryStub):
    """Recipient store where another minting run always consumes first."""

    async def mark_issued(self, recipient_id: UUID, voucher_id: UUID) -> bool:
        return False


def _make_minting(
    lifecycle: VoucherLifecycleService,
    repository: VoucherRepositoryStub,
    recipient_repository: VoucherRecipientRepositoryStub,
    config: VoucherEngineConfig,
) -> VoucherMintingService:
    return VoucherMintingService(
        lifecycle=lifecycle,
        voucher_repository=repository,
        recipient_repository=recipient_repository,
        config=config,
    )


async def _make_recipient(
    recipient_repository: VoucherRecipientRepositoryStub,
    cipher: PiiCipher | None = None,
    **overrides: object,
) -> VoucherRecipient:
    fields: dict[str, object] = {
        "id": uuid4(),
        "member_id": "M-100",
        "association": "Seoul Farmers",
        "amount": 100_000,
    }
    if cipher is not None:
        fields.update(
            encrypted_name=cipher.encrypt_field("홍길동"),
            encrypted_dob=cipher.encrypt_field("1960-05-05"),
            encrypted_phone=cipher.encrypt_field("010-1234-5678"),
        )
    fields.update(overrides)
    recipient = VoucherRecipient(**fields)  # type: ignore[arg-type]
    await recipient_repository.save(recipient)
    return recipient


@pytest.fixture
def minting(
    lifecycle: VoucherLifecycleService,
    repository: VoucherRepositoryStub,
    recipient_repository: VoucherRecipientRepositoryStub,
    config: VoucherEngineConfig,
) -> VoucherMintingService:
    return _make_minting(lifecycle, repository, recipient_repository, config)


class TestMintFromRecipients:
    @pytest.mark.asyncio
    async def test_consecutive_serials(
        self,
        minting: VoucherMintingService,
        recipient_repository: VoucherRecipientRepositoryStub,
        serial_generator: SerialNumberGenerator,
    ) -> None:
        recipients = [await _make_recipient(recipient_repository) for _ in range(3)]

        result = await minting.mint_from_recipients(
            [r.id for r in recipients], ISSUE_DATE
        )

        assert result.batch.success_count == 3
        assert [v.serial_no for v in result.vouchers] == [
            serial_generator.generate(seq, ISSUE_DATE) for seq in (1, 2, 3)
        ]
        assert all(v.status == VoucherStatus.REGISTERED for v in result.vouchers)

    @pytest.mark.asyncio
    async def test_continues_after_existing_serials(
        self,
        minting: VoucherMintingService,
        repository: VoucherRepositoryStub,
        recipient_repository: VoucherRecipientRepositoryStub,
        serial_generator: SerialNumberGenerator,
    ) -> None:
        await repository.insert(
            Voucher(
                id=uuid4(),
                serial_no=serial_generator.generate(5, ISSUE_DATE),
                amount=1,
            )
        )
        recipient = await _make_recipient(recipient_repository)

        result = await minting.mint_from_recipients([recipient.id], ISSUE_DATE)

        assert serial_generator.parse(result.vouchers[0].serial_no).sequence == 6

    @pytest.mark.asyncio
    async def test_consumes_recipient_and_links_voucher(
        self,
        minting: VoucherMintingService,
        recipient_repository: VoucherRecipientRepositoryStub,
    ) -> None:
        recipient = await _make_recipient(recipient_repository)

        result = await minting.mint_from_recipients([recipient.id], ISSUE_DATE)

        voucher = result.vouchers[0]
        stored = await recipient_repository.get(recipient.id)
        assert stored is not None
        assert stored.status == RecipientStatus.ISSUED
        assert stored.voucher_id == voucher.id
        assert voucher.recipient_id == recipient.id
        assert voucher.member_id == "M-100"
        assert voucher.association == "Seoul Farmers"
        assert voucher.amount == 100_000

    @pytest.mark.asyncio
    async def test_copies_encrypted_pii(
        self,
        minting: VoucherMintingService,
        recipient_repository: VoucherRecipientRepositoryStub,
        cipher: PiiCipher,
    ) -> None:
        recipient = await _make_recipient(recipient_repository, cipher)

        result = await minting.mint_from_recipients([recipient.id], ISSUE_DATE)

        voucher = result.vouchers[0]
        assert voucher.encrypted_name == recipient.encrypted_name
        assert cipher.decrypt_field(voucher.encrypted_dob) == "1960-05-05"

    @pytest.mark.asyncio
    async def test_missing_and_consumed_recipients(
        self,
        minting: VoucherMintingService,
        recipient_repository: VoucherRecipientRepositoryStub,
    ) -> None:
        fresh = await _make_recipient(recipient_repository)
        consumed = await _make_recipient(
            recipient_repository, status=RecipientStatus.ISSUED, voucher_id=uuid4()
        )
        missing = uuid4()

        result = await minting.mint_from_recipients(
            [missing, fresh.id, consumed.id], ISSUE_DATE
        )

        assert [o.reference for o in result.batch.outcomes] == [
            str(missing),
            str(fresh.id),
            str(consumed.id),
        ]
        assert [o.error_code for o in result.batch.outcomes] == [
            "RECIPIENT_NOT_FOUND",
            None,
            "RECIPIENT_CONSUMED",
        ]
        assert len(result.vouchers) == 1

    @pytest.mark.asyncio
    async def test_second_run_mints_nothing(
        self,
        minting: VoucherMintingService,
        repository: VoucherRepositoryStub,
        recipient_repository: VoucherRecipientRepositoryStub,
    ) -> None:
        recipient = await _make_recipient(recipient_repository)
        await minting.mint_from_recipients([recipient.id], ISSUE_DATE)

        again = await minting.mint_from_recipients([recipient.id], ISSUE_DATE)

        assert again.vouchers == []
        assert again.batch.failed[0].error_code == "RECIPIENT_CONSUMED"
        assert repository.count() == 1

    @pytest.mark.asyncio
    async def test_duplicate_ids_minted_once(
        self,
        minting: VoucherMintingService,
        recipient_repository: VoucherRecipientRepositoryStub,
    ) -> None:
        recipient = await _make_recipient(recipient_repository)

        result = await minting.mint_from_recipients(
            [recipient.id, recipient.id], ISSUE_DATE
        )

        assert len(result.vouchers) == 1
        assert len(result.batch.outcomes) == 1

    @pytest.mark.asyncio
    async def test_serial_conflict_is_retried(
        self,
        minting: VoucherMintingService,
        repository: VoucherRepositoryStub,
        recipient_repository: VoucherRecipientRepositoryStub,
        serial_generator: SerialNumberGenerator,
        audit_recorder: AuditRecorderStub,
    ) -> None:
        # Another writer takes sequence 2 behind the reservation counter
        assert await repository.reserve_sequence_block(2024, 12, 1) == 1
        await repository.insert(
            Voucher(
                id=uuid4(),
                serial_no=serial_generator.generate(2, ISSUE_DATE),
                amount=1,
            )
        )
        recipient = await _make_recipient(recipient_repository)

        result = await minting.mint_from_recipients([recipient.id], ISSUE_DATE)

        assert result.batch.success_count == 1
        assert result.vouchers[0].serial_no == serial_generator.generate(
            3, ISSUE_DATE
        )
        assert audit_recorder.actions == [
            "voucher.registered.rejected",
            "voucher.registered",
        ]

    @pytest.mark.asyncio
    async def test_serial_conflict_retries_exhausted(
        self,
        lifecycle: VoucherLifecycleService,
        repository: VoucherRepositoryStub,
        recipient_repository: VoucherRecipientRepositoryStub,
        config: VoucherEngineConfig,
        serial_generator: SerialNumberGenerator,
    ) -> None:
        minting = _make_minting(
            lifecycle,
            repository,
            recipient_repository,
            dataclasses.replace(config, serial_allocation_retries=0),
        )
        await repository.reserve_sequence_block(2024, 12, 1)
        await repository.insert(
            Voucher(
                id=uuid4(),
                serial_no=serial_generator.generate(2, ISSUE_DATE),
                amount=1,
            )
        )
        recipient = await _make_recipient(recipient_repository)

        result = await minting.mint_from_recipients([recipient.id], ISSUE_DATE)

        assert result.vouchers == []
        assert result.batch.failed[0].error_code == "DUPLICATE_SERIAL"
        stored = await recipient_repository.get(recipient.id)
        assert stored is not None
        assert not stored.is_consumed()

    @pytest.mark.asyncio
    async def test_lost_recipient_race_removes_voucher(
        self,
        lifecycle: VoucherLifecycleService,
        repository: VoucherRepositoryStub,
        config: VoucherEngineConfig,
        audit_recorder: AuditRecorderStub,
    ) -> None:
        recipients = _LosingRecipientRepository()
        minting = _make_minting(lifecycle, repository, recipients, config)
        recipient = await _make_recipient(recipients)

        result = await minting.mint_from_recipients([recipient.id], ISSUE_DATE)

        assert result.vouchers == []
        assert result.batch.failed[0].error_code == "RECIPIENT_CONSUMED"
        assert repository.count() == 0
        assert audit_recorder.actions == ["voucher.registered", "voucher.deleted"]

    @pytest.mark.asyncio
    async def test_batch_limit(
        self,
        lifecycle: VoucherLifecycleService,
        repository: VoucherRepositoryStub,
        recipient_repository: VoucherRecipientRepositoryStub,
        config: VoucherEngineConfig,
    ) -> None:
        minting = _make_minting(
            lifecycle,
            repository,
            recipient_repository,
            dataclasses.replace(config, max_batch_size=1),
        )
        with pytest.raises(BatchSizeError):
            await minting.mint_from_recipients([uuid4(), uuid4()], ISSUE_DATE)

    @pytest.mark.asyncio
    async def test_empty_request(self, minting: VoucherMintingService) -> None:
        result = await minting.mint_from_recipients([], ISSUE_DATE)
        assert result.vouchers == []
        assert result.batch.outcomes == []
