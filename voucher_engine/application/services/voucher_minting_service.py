"""Voucher minting from pre-issuance recipient records.

Minting turns imported recipients into REGISTERED vouchers:

    1. Reserve a contiguous block of serial sequences for the issue month
    2. Register one voucher per recipient with the next serial of the block
    3. Consume the recipient (conditional REGISTERED -> ISSUED write)

A unique-serial conflict in step 2 (another writer took the serial outside
the reservation) re-reserves a single sequence and retries, up to the
configured number of retries. Losing the conditional write in step 3 means
another minting run consumed the recipient first; the voucher just created
is deleted again so that every recipient yields exactly one voucher.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from voucher_engine.application.dtos.voucher_batch import (
    BatchItemOutcome,
    BatchOperationResult,
)
from voucher_engine.application.ports.voucher_recipient_repository import (
    VoucherRecipientRepositoryProtocol,
)
from voucher_engine.application.ports.voucher_repository import (
    VoucherRepositoryProtocol,
)
from voucher_engine.application.services.base import LoggingMixin
from voucher_engine.application.services.serial_number_service import (
    SerialNumberGenerator,
)
from voucher_engine.application.services.voucher_lifecycle_service import (
    VoucherLifecycleService,
)
from voucher_engine.config.voucher_config import VoucherEngineConfig
from voucher_engine.domain.errors.concurrent_modification import DuplicateSerialError
from voucher_engine.domain.errors.not_found import (
    RecipientAlreadyConsumedError,
    RecipientNotFoundError,
)
from voucher_engine.domain.errors.validation import BatchSizeError
from voucher_engine.domain.events.voucher_audit import SYSTEM_ACTOR_ID
from voucher_engine.domain.exceptions import VoucherEngineError
from voucher_engine.domain.models.voucher import Voucher
from voucher_engine.domain.models.voucher_pii import EncryptedVoucherPii
from voucher_engine.domain.models.voucher_recipient import VoucherRecipient

MINT_OPERATION = "mint"


@dataclass(frozen=True)
class MintResult:
    """Result of a minting run.

    Attributes:
        vouchers: Vouchers created, in request order.
        batch: Per-recipient outcomes (reference is the recipient id).
    """

    vouchers: list[Voucher] = field(default_factory=list)
    batch: BatchOperationResult = field(
        default_factory=lambda: BatchOperationResult(operation=MINT_OPERATION)
    )


class VoucherMintingService(LoggingMixin):
    """Mints vouchers from recipient records with reserved serial blocks."""

    def __init__(
        self,
        lifecycle: VoucherLifecycleService,
        voucher_repository: VoucherRepositoryProtocol,
        recipient_repository: VoucherRecipientRepositoryProtocol,
        config: VoucherEngineConfig,
        serial_generator: SerialNumberGenerator | None = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._vouchers = voucher_repository
        self._recipients = recipient_repository
        self._config = config
        self._serials = serial_generator or SerialNumberGenerator()
        self._init_logger()

    async def mint_from_recipients(
        self,
        recipient_ids: Sequence[UUID],
        issue_date: date,
        actor_id: str = SYSTEM_ACTOR_ID,
    ) -> MintResult:
        """Create one REGISTERED voucher per unconsumed recipient.

        Args:
            recipient_ids: Recipients to mint from.
            issue_date: Date whose year-month prefixes the serials.
            actor_id: Who runs the minting.

        Returns:
            MintResult with created vouchers and per-recipient outcomes.

        Raises:
            BatchSizeError: More recipients than the configured batch size.
        """
        if len(recipient_ids) > self._config.max_batch_size:
            raise BatchSizeError(len(recipient_ids), self._config.max_batch_size)

        log = self._log_operation(
            "mint_from_recipients",
            count=len(recipient_ids),
            year=issue_date.year,
            month=issue_date.month,
            actor_id=actor_id,
        )

        outcomes: dict[UUID, BatchItemOutcome] = {}
        eligible: list[VoucherRecipient] = []
        unique_ids = list(dict.fromkeys(recipient_ids))
        for recipient_id in unique_ids:
            recipient = await self._recipients.get(recipient_id)
            if recipient is None:
                outcomes[recipient_id] = _failed(
                    recipient_id, RecipientNotFoundError(recipient_id)
                )
            elif recipient.is_consumed():
                outcomes[recipient_id] = _failed(
                    recipient_id,
                    RecipientAlreadyConsumedError(recipient_id, recipient.voucher_id),
                )
            else:
                eligible.append(recipient)

        vouchers: list[Voucher] = []
        if eligible:
            start = await self._vouchers.reserve_sequence_block(
                issue_date.year, issue_date.month, len(eligible)
            )
            serials = self._serials.generate_batch(len(eligible), start, issue_date)
            log.info("serial_block_reserved", start_sequence=start, size=len(eligible))

            for recipient, serial in zip(eligible, serials):
                try:
                    voucher = await self._mint_one(
                        recipient, serial, issue_date, actor_id
                    )
                except VoucherEngineError as exc:
                    outcomes[recipient.id] = _failed(recipient.id, exc)
                else:
                    vouchers.append(voucher)
                    outcomes[recipient.id] = BatchItemOutcome(
                        str(recipient.id), succeeded=True
                    )

        batch = BatchOperationResult(
            operation=MINT_OPERATION,
            outcomes=[outcomes[rid] for rid in unique_ids],
        )
        log.info(
            "minting_completed",
            success_count=batch.success_count,
            failure_count=batch.failure_count,
        )
        return MintResult(vouchers=vouchers, batch=batch)

    async def _mint_one(
        self,
        recipient: VoucherRecipient,
        serial: str,
        issue_date: date,
        actor_id: str,
    ) -> Voucher:
        voucher = await self._register_with_retry(
            recipient, serial, issue_date, actor_id
        )

        if not await self._recipients.mark_issued(recipient.id, voucher.id):
            self._log_operation(
                "mint_from_recipients", recipient_id=str(recipient.id)
            ).warning("recipient_consumed_concurrently", voucher_id=str(voucher.id))
            await self._lifecycle.delete(voucher.id, actor_id)
            raise RecipientAlreadyConsumedError(recipient.id)

        return voucher

    async def _register_with_retry(
        self,
        recipient: VoucherRecipient,
        serial: str,
        issue_date: date,
        actor_id: str,
    ) -> Voucher:
        attempts = 0
        while True:
            try:
                return await self._lifecycle.register(
                    serial,
                    recipient.amount,
                    encrypted_pii=_encrypted_pii_of(recipient),
                    member_id=recipient.member_id,
                    association=recipient.association,
                    template_id=recipient.template_id,
                    recipient_id=recipient.id,
                    actor_id=actor_id,
                )
            except DuplicateSerialError:
                attempts += 1
                if attempts > self._config.serial_allocation_retries:
                    raise
                start = await self._vouchers.reserve_sequence_block(
                    issue_date.year, issue_date.month, 1
                )
                self._log_operation(
                    "mint_from_recipients", recipient_id=str(recipient.id)
                ).warning("serial_conflict_retry", serial=serial, attempt=attempts)
                serial = self._serials.generate(start, issue_date)


def _encrypted_pii_of(recipient: VoucherRecipient) -> EncryptedVoucherPii | None:
    if (
        recipient.encrypted_name is None
        or recipient.encrypted_dob is None
        or recipient.encrypted_phone is None
    ):
        return None
    return EncryptedVoucherPii(
        encrypted_name=recipient.encrypted_name,
        encrypted_dob=recipient.encrypted_dob,
        encrypted_phone=recipient.encrypted_phone,
    )


def _failed(recipient_id: UUID, exc: VoucherEngineError) -> BatchItemOutcome:
    return BatchItemOutcome(
        reference=str(recipient_id),
        succeeded=False,
        error_code=exc.code,
        message=str(exc),
    )
