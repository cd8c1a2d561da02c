"""Voucher lifecycle service.

The only writer of a voucher's status. Every operation follows the same
shape:

    1. Load the voucher and consult TRANSITION_TABLE (Voucher.check_operation)
    2. Issue one conditional write conditioned on the status that was read
    3. On a lost conditional write, re-read and report the specific reason
    4. Emit exactly one AuditEvent, whether the attempt succeeded or not

At-most-once redemption rests entirely on step 2: the repository's
``atomic_transition`` is a single ``UPDATE ... WHERE status = 'issued'``, so
of N concurrent use() calls exactly one can succeed. Steps 1 and 3 only pick
the error reported to the losers.

Rejected attempts are logged at warning level with their error code so
that repeated failed redemptions of one serial are visible to fraud
detection.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, NoReturn
from uuid import UUID

from uuid6 import uuid7

from voucher_engine.application.dtos.voucher_batch import (
    BatchDeleteRequest,
    BatchIssueRequest,
    BatchItemOutcome,
    BatchOperationResult,
    BatchRecallRequest,
    RecallMethod,
)
from voucher_engine.application.ports.audit_recorder import AuditRecorderProtocol
from voucher_engine.application.ports.time_authority import TimeAuthorityProtocol
from voucher_engine.application.ports.voucher_repository import (
    VoucherRepositoryProtocol,
)
from voucher_engine.application.services.base import LoggingMixin
from voucher_engine.application.services.pii_cipher_service import PiiCipher
from voucher_engine.application.services.redemption_verification_service import (
    RedemptionVerification,
    RedemptionVerificationService,
)
from voucher_engine.application.services.serial_number_service import (
    SerialNumberGenerator,
)
from voucher_engine.config.voucher_config import VoucherEngineConfig
from voucher_engine.domain.errors.concurrent_modification import (
    ConcurrentModificationError,
)
from voucher_engine.domain.errors.not_found import VoucherNotFoundError
from voucher_engine.domain.errors.state_transition import VoucherStateError
from voucher_engine.domain.errors.validation import BatchSizeError, InvalidSerialError
from voucher_engine.domain.events.voucher_audit import (
    SYSTEM_ACTOR_ID,
    VOUCHER_DELETED_ACTION,
    VOUCHER_DISPOSED_ACTION,
    VOUCHER_ISSUED_ACTION,
    VOUCHER_RECALLED_ACTION,
    VOUCHER_REDEMPTION_ACTION,
    VOUCHER_REGISTERED_ACTION,
    VOUCHER_REISSUED_ACTION,
    VOUCHER_USED_ACTION,
    AuditEvent,
    rejected_action,
)
from voucher_engine.domain.exceptions import VoucherEngineError
from voucher_engine.domain.models.voucher import (
    LifecycleOperation,
    Voucher,
    VoucherStatus,
)
from voucher_engine.domain.models.voucher_pii import EncryptedVoucherPii, VoucherPii

# Target recorded for redemption attempts whose payload never yielded a serial
UNPARSED_PAYLOAD_TARGET = "unparsed-payload"
MISSING_REFERENCE_TARGET = "missing-reference"


@dataclass(frozen=True)
class IssueResult:
    """Result of issue().

    Attributes:
        voucher: The voucher after issuance.
        reissued: True if the voucher was already issued (issued_at was
            refreshed), False for a first issue.
    """

    voucher: Voucher
    reissued: bool


@dataclass(frozen=True)
class RedemptionResult:
    """Result of redeem().

    Attributes:
        voucher: The voucher after the USE transition.
        verification: Payload verification that preceded it.
    """

    voucher: Voucher
    verification: RedemptionVerification


class VoucherLifecycleService(LoggingMixin):
    """Applies lifecycle operations to vouchers through the transition table."""

    def __init__(
        self,
        repository: VoucherRepositoryProtocol,
        audit_recorder: AuditRecorderProtocol,
        time_authority: TimeAuthorityProtocol,
        config: VoucherEngineConfig,
        pii_cipher: PiiCipher,
        verification: RedemptionVerificationService | None = None,
        serial_generator: SerialNumberGenerator | None = None,
    ) -> None:
        """Initialize the lifecycle service.

        Args:
            repository: Voucher storage with conditional writes.
            audit_recorder: External audit sink.
            time_authority: Source of the current time.
            config: Engine configuration.
            pii_cipher: Encrypts personal data on registration.
            verification: Payload verification, required by redeem().
            serial_generator: Serial validator for registration.
        """
        self._repository = repository
        self._audit_recorder = audit_recorder
        self._time = time_authority
        self._config = config
        self._cipher = pii_cipher
        self._verification = verification
        self._serials = serial_generator or SerialNumberGenerator()
        self._init_logger()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(
        self,
        serial_no: str,
        amount: int,
        pii: VoucherPii | None = None,
        *,
        encrypted_pii: EncryptedVoucherPii | None = None,
        member_id: str | None = None,
        association: str | None = None,
        template_id: UUID | None = None,
        recipient_id: UUID | None = None,
        notes: str | None = None,
        actor_id: str = SYSTEM_ACTOR_ID,
    ) -> Voucher:
        """Create a voucher in REGISTERED status.

        Personal data is encrypted before the record is built; plaintext
        never reaches storage.

        Args:
            serial_no: Checksummed serial allocated for the voucher.
            amount: Face value.
            pii: Plaintext personal data of the recipient.
            encrypted_pii: Already encrypted personal data (for example
                copied from a recipient record); used when pii is None.
            member_id: External member identifier.
            association: Recipient's association.
            template_id: Template the voucher is minted from.
            recipient_id: Recipient record consumed to mint it.
            notes: Free-form notes.
            actor_id: Who registers the voucher.

        Returns:
            The stored voucher.

        Raises:
            InvalidSerialError: Serial fails validation.
            DuplicateSerialError: Serial is already taken.
        """
        log = self._log_operation("register", serial=serial_no, actor_id=actor_id)
        try:
            if not self._serials.validate(serial_no):
                raise InvalidSerialError(serial_no)

            encrypted = (
                self._cipher.encrypt_voucher_pii(pii)
                if pii is not None
                else encrypted_pii
            )
            now = self._time.now()
            voucher = Voucher(
                id=uuid7(),
                serial_no=serial_no,
                amount=amount,
                status=VoucherStatus.REGISTERED,
                encrypted_name=encrypted.encrypted_name if encrypted else None,
                encrypted_dob=encrypted.encrypted_dob if encrypted else None,
                encrypted_phone=encrypted.encrypted_phone if encrypted else None,
                member_id=member_id,
                association=association,
                template_id=template_id,
                recipient_id=recipient_id,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            await self._repository.insert(voucher)
        except VoucherEngineError as exc:
            log.warning("register_rejected", error_code=exc.code)
            await self._audit(
                rejected_action(VOUCHER_REGISTERED_ACTION),
                actor_id,
                serial_no,
                before=None,
                after=None,
                details={"serial_no": serial_no, "error_code": exc.code},
            )
            raise

        log.info("voucher_registered", voucher_id=str(voucher.id))
        await self._audit(
            VOUCHER_REGISTERED_ACTION,
            actor_id,
            str(voucher.id),
            before=None,
            after=VoucherStatus.REGISTERED,
            details={"serial_no": serial_no, "amount": amount},
        )
        return voucher

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def issue(
        self, voucher_id: UUID, actor_id: str = SYSTEM_ACTOR_ID
    ) -> IssueResult:
        """Issue a registered voucher, or re-issue an issued one.

        Re-issuing refreshes issued_at, which invalidates every payload
        printed for the previous issuance.

        Raises:
            VoucherNotFoundError: No voucher has this id.
            VoucherStateError: Voucher is used, recalled or disposed.
            ConcurrentModificationError: Another writer changed it first.
        """
        voucher = await self._load_by_id(voucher_id, VOUCHER_ISSUED_ACTION, actor_id)
        reissued = voucher.status == VoucherStatus.ISSUED
        action = VOUCHER_REISSUED_ACTION if reissued else VOUCHER_ISSUED_ACTION

        updated = await self._execute(
            voucher,
            LifecycleOperation.ISSUE,
            action,
            actor_id,
            changes={"issued_at": self._time.now()},
        )
        return IssueResult(voucher=updated, reissued=reissued)

    async def use(
        self,
        serial_no: str,
        site_id: UUID | None,
        actor_id: str = SYSTEM_ACTOR_ID,
    ) -> Voucher:
        """Redeem a voucher by serial at a site.

        Args:
            serial_no: Serial of the voucher.
            site_id: Site where the voucher is redeemed.
            actor_id: Operator performing the redemption.

        Returns:
            The voucher in USED status.

        Raises:
            VoucherNotFoundError: No voucher has this serial.
            VoucherAlreadyUsedError: Already redeemed (including by a
                concurrent caller that won the race).
            VoucherAlreadyRecalledError: Voucher was recalled.
            VoucherAlreadyDisposedError: Voucher was disposed.
            InvalidStateTransitionError: Voucher was never issued.
        """
        voucher = await self._load_by_serial(serial_no, VOUCHER_USED_ACTION, actor_id)
        return await self._use(voucher, site_id, actor_id)

    async def _use(
        self,
        voucher: Voucher,
        site_id: UUID | None,
        actor_id: str,
        details: Mapping[str, Any] | None = None,
    ) -> Voucher:
        return await self._execute(
            voucher,
            LifecycleOperation.USE,
            VOUCHER_USED_ACTION,
            actor_id,
            changes={"used_at": self._time.now(), "used_at_site_id": site_id},
            details={"site_id": str(site_id) if site_id else None, **(details or {})},
            expected_issued_at=voucher.issued_at,
        )

    async def recall(
        self,
        reference: UUID | str,
        reason: str | None = None,
        actor_id: str = SYSTEM_ACTOR_ID,
        method: RecallMethod = RecallMethod.MANUAL,
    ) -> Voucher:
        """Recall an issued voucher.

        Args:
            reference: Voucher id, or its serial number.
            reason: Free-form recall reason.
            actor_id: Administrator recalling the voucher.
            method: How the voucher was collected.

        Returns:
            The voucher in RECALLED status.
        """
        voucher = await self._load_by_reference(
            reference, VOUCHER_RECALLED_ACTION, actor_id
        )
        return await self._execute(
            voucher,
            LifecycleOperation.RECALL,
            VOUCHER_RECALLED_ACTION,
            actor_id,
            changes={
                "recalled_at": self._time.now(),
                "recall_reason": reason,
                "recalled_by": actor_id,
            },
            details={"reason": reason, "method": method.value},
        )

    async def dispose(
        self,
        voucher_id: UUID,
        reason: str | None = None,
        actor_id: str = SYSTEM_ACTOR_ID,
    ) -> Voucher:
        """Write off an issued or recalled voucher."""
        voucher = await self._load_by_id(
            voucher_id, VOUCHER_DISPOSED_ACTION, actor_id
        )
        return await self._execute(
            voucher,
            LifecycleOperation.DISPOSE,
            VOUCHER_DISPOSED_ACTION,
            actor_id,
            changes={
                "disposed_at": self._time.now(),
                "disposal_reason": reason,
                "disposed_by": actor_id,
            },
            details={"reason": reason},
        )

    async def delete(self, voucher_id: UUID, actor_id: str = SYSTEM_ACTOR_ID) -> None:
        """Remove a voucher that has not reached a terminal status.

        Raises:
            VoucherNotFoundError: No voucher has this id.
            VoucherStateError: Voucher is used or disposed.
            ConcurrentModificationError: Another writer changed it first.
        """
        voucher = await self._load_by_id(voucher_id, VOUCHER_DELETED_ACTION, actor_id)
        await self._execute(
            voucher,
            LifecycleOperation.DELETE,
            VOUCHER_DELETED_ACTION,
            actor_id,
            changes={},
        )

    # ------------------------------------------------------------------
    # Redemption
    # ------------------------------------------------------------------

    async def redeem(
        self,
        payload: str,
        site_id: UUID | None,
        actor_id: str = SYSTEM_ACTOR_ID,
    ) -> RedemptionResult:
        """Verify a scanned payload and redeem the voucher it refers to.

        The conditional write is also conditioned on the issued_at that was
        verified, so a re-issue between verification and the write loses the
        race with a retryable ConcurrentModificationError. A retry then
        fails freshness against the new issuance.

        Args:
            payload: Raw string from the QR code or barcode.
            site_id: Site where the voucher is redeemed.
            actor_id: Operator performing the redemption.

        Returns:
            RedemptionResult with the used voucher and the verification.

        Raises:
            MalformedPayloadError, InvalidSerialError, InvalidSignatureError,
            StalePayloadError, VoucherNotFoundError: Verification failed.
            VoucherStateError: The voucher cannot be used.
            ConcurrentModificationError: The voucher was re-issued after
                verification.
        """
        if self._verification is None:
            raise RuntimeError("redeem() requires a RedemptionVerificationService")

        log = self._log_operation("redeem", actor_id=actor_id)
        try:
            verification = await self._verification.verify(payload)
        except VoucherEngineError as exc:
            target = _reference_of(exc)
            log.warning("redemption_rejected", error_code=exc.code, target=target)
            await self._audit(
                rejected_action(VOUCHER_REDEMPTION_ACTION),
                actor_id,
                target,
                before=None,
                after=None,
                details={
                    "error_code": exc.code,
                    "site_id": str(site_id) if site_id else None,
                },
            )
            raise

        discrepancy = verification.date_discrepancy
        voucher = await self._use(
            verification.voucher,
            site_id,
            actor_id,
            details={
                "payload_format": verification.payload_format.value,
                "signature_checked": verification.signature_checked,
                "date_discrepancy": (
                    {
                        "payload_issued_date": discrepancy.payload_issued_date,
                        "stored_issued_date": discrepancy.stored_issued_date,
                    }
                    if discrepancy
                    else None
                ),
            },
        )
        return RedemptionResult(voucher=voucher, verification=verification)

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    async def issue_batch(self, request: BatchIssueRequest) -> BatchOperationResult:
        """Issue every voucher in the request, reporting each separately."""
        self._check_batch_size(len(request.voucher_ids))
        outcomes = []
        for voucher_id in request.voucher_ids:
            try:
                await self.issue(voucher_id, request.actor_id)
            except VoucherEngineError as exc:
                outcomes.append(_failed(str(voucher_id), exc))
            else:
                outcomes.append(BatchItemOutcome(str(voucher_id), succeeded=True))
        return self._finish_batch(LifecycleOperation.ISSUE, outcomes)

    async def recall_batch(self, request: BatchRecallRequest) -> BatchOperationResult:
        """Recall every referenced voucher, reporting each separately."""
        self._check_batch_size(len(request.references))
        outcomes = []
        for reference in request.references:
            try:
                await self.recall(
                    reference, request.reason, request.actor_id, request.method
                )
            except VoucherEngineError as exc:
                outcomes.append(_failed(reference, exc))
            else:
                outcomes.append(BatchItemOutcome(reference, succeeded=True))
        return self._finish_batch(LifecycleOperation.RECALL, outcomes)

    async def delete_batch(self, request: BatchDeleteRequest) -> BatchOperationResult:
        """Delete every voucher in the request, reporting each separately."""
        self._check_batch_size(len(request.voucher_ids))
        outcomes = []
        for voucher_id in request.voucher_ids:
            try:
                await self.delete(voucher_id, request.actor_id)
            except VoucherEngineError as exc:
                outcomes.append(_failed(str(voucher_id), exc))
            else:
                outcomes.append(BatchItemOutcome(str(voucher_id), succeeded=True))
        return self._finish_batch(LifecycleOperation.DELETE, outcomes)

    def _check_batch_size(self, size: int) -> None:
        if size > self._config.max_batch_size:
            raise BatchSizeError(size, self._config.max_batch_size)

    def _finish_batch(
        self,
        operation: LifecycleOperation,
        outcomes: list[BatchItemOutcome],
    ) -> BatchOperationResult:
        result = BatchOperationResult(operation=operation.value, outcomes=outcomes)
        self._log_operation(f"{operation.value}_batch").info(
            "batch_completed",
            success_count=result.success_count,
            failure_count=result.failure_count,
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _execute(
        self,
        voucher: Voucher,
        operation: LifecycleOperation,
        action: str,
        actor_id: str,
        changes: Mapping[str, Any],
        details: Mapping[str, Any] | None = None,
        expected_issued_at: datetime | None = None,
    ) -> Voucher:
        """Run one transition: check, conditional write, audit."""
        log = self._log_operation(
            operation.value,
            voucher_id=str(voucher.id),
            serial=voucher.serial_no,
            actor_id=actor_id,
        )
        base_details = {"serial_no": voucher.serial_no, **(details or {})}
        lost_race = False

        try:
            rule = voucher.check_operation(operation)
            if rule.target is None:
                applied = await self._repository.atomic_delete(
                    voucher.id, voucher.status
                )
                updated = voucher
            else:
                full_changes = {
                    **changes,
                    "status": rule.target,
                    "updated_at": self._time.now(),
                }
                applied = await self._repository.atomic_transition(
                    voucher.id,
                    voucher.status,
                    full_changes,
                    expected_issued_at=expected_issued_at,
                )
                updated = replace(voucher, **full_changes) if applied else voucher

            if not applied:
                lost_race = True
                await self._raise_for_lost_race(voucher, operation)
        except VoucherEngineError as exc:
            after = (
                exc.current_status
                if isinstance(exc, VoucherStateError)
                else voucher.status
            )
            log.warning(
                "lifecycle_operation_rejected",
                error_code=exc.code,
                status=voucher.status.value,
                lost_race=lost_race,
            )
            await self._audit(
                rejected_action(action),
                actor_id,
                str(voucher.id),
                before=voucher.status,
                after=after,
                details={
                    **base_details,
                    "error_code": exc.code,
                    "lost_race": lost_race,
                },
            )
            raise

        after_status = rule.target
        log.info(
            "lifecycle_operation_applied",
            before=voucher.status.value,
            after=after_status.value if after_status else None,
        )
        await self._audit(
            action,
            actor_id,
            str(voucher.id),
            before=voucher.status,
            after=after_status,
            details=base_details,
        )
        return updated

    async def _raise_for_lost_race(
        self, voucher: Voucher, operation: LifecycleOperation
    ) -> None:
        """Explain a conditional write that matched no row.

        Raises:
            VoucherNotFoundError: The voucher was deleted meanwhile.
            VoucherStateError: The operation is no longer permitted from the
                status the winner left behind.
            ConcurrentModificationError: The operation is still permitted;
                the caller may retry.
        """
        current = await self._repository.get_by_id(voucher.id)
        if current is None:
            raise VoucherNotFoundError(voucher.id)
        current.check_operation(operation)
        raise ConcurrentModificationError(voucher.id, voucher.status, operation)

    async def _load_by_id(
        self, voucher_id: UUID, action: str, actor_id: str
    ) -> Voucher:
        voucher = await self._repository.get_by_id(voucher_id)
        if voucher is None:
            await self._reject_not_found(str(voucher_id), action, actor_id)
        return voucher

    async def _load_by_serial(
        self, serial_no: str, action: str, actor_id: str
    ) -> Voucher:
        voucher = await self._repository.find_by_serial(serial_no)
        if voucher is None:
            await self._reject_not_found(serial_no, action, actor_id)
        return voucher

    async def _load_by_reference(
        self, reference: UUID | str, action: str, actor_id: str
    ) -> Voucher:
        if isinstance(reference, UUID):
            return await self._load_by_id(reference, action, actor_id)
        try:
            voucher_id = UUID(reference)
        except ValueError:
            return await self._load_by_serial(reference, action, actor_id)
        return await self._load_by_id(voucher_id, action, actor_id)

    async def _reject_not_found(
        self, reference: str, action: str, actor_id: str
    ) -> NoReturn:
        self._log_operation(action, actor_id=actor_id).warning(
            "voucher_not_found", reference=reference
        )
        await self._audit(
            rejected_action(action),
            actor_id,
            reference,
            before=None,
            after=None,
            details={"error_code": VoucherNotFoundError.code},
        )
        raise VoucherNotFoundError(reference)

    async def _audit(
        self,
        action: str,
        actor_id: str,
        target_id: str,
        before: VoucherStatus | None,
        after: VoucherStatus | None,
        details: Mapping[str, Any],
    ) -> None:
        """Hand an event to the audit sink; failures are only logged.

        An empty target (blank reference or serial) is recorded as
        MISSING_REFERENCE_TARGET.
        """
        target_id = target_id or MISSING_REFERENCE_TARGET
        try:
            event = AuditEvent(
                action=action,
                actor_id=actor_id,
                target_id=target_id,
                before_status=before,
                after_status=after,
                timestamp=self._time.now(),
                details=dict(details),
            )
            await self._audit_recorder.record(event)
        except Exception as e:
            self._log.error(
                "audit_record_failed",
                action=action,
                target_id=target_id,
                error=str(e),
                error_type=type(e).__name__,
            )


def _failed(reference: str, exc: VoucherEngineError) -> BatchItemOutcome:
    return BatchItemOutcome(
        reference=reference,
        succeeded=False,
        error_code=exc.code,
        message=str(exc),
    )


def _reference_of(exc: VoucherEngineError) -> str:
    """Best identifier of the voucher a rejected redemption referred to."""
    for attr in ("serial", "reference"):
        value = getattr(exc, attr, None)
        if value:
            return str(value)
    return UNPARSED_PAYLOAD_TARGET
