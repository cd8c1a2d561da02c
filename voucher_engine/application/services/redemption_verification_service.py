"""Redemption payload verification.

Verification answers "is this scanned code genuine and current?" without
changing anything: decode and verify the signature, look the voucher up by
serial, and compare issue dates. The redemption itself (the USE transition)
is left to VoucherLifecycleService.
"""

from __future__ import annotations

from dataclasses import dataclass

from voucher_engine.application.ports.voucher_repository import (
    VoucherRepositoryProtocol,
)
from voucher_engine.application.services.base import LoggingMixin
from voucher_engine.application.services.payload_signer_service import PayloadSigner
from voucher_engine.domain.errors.not_found import VoucherNotFoundError
from voucher_engine.domain.models.redemption_payload import (
    DateDiscrepancy,
    PayloadFormat,
    RedemptionPayload,
)
from voucher_engine.domain.models.voucher import Voucher


@dataclass(frozen=True)
class RedemptionVerification:
    """Outcome of verifying a scanned payload.

    Attributes:
        voucher: The voucher the payload refers to, as currently stored.
        payload: The decoded payload.
        date_discrepancy: Set when the issue dates differed but the
            mismatch was tolerated under same-day grace.
    """

    voucher: Voucher
    payload: RedemptionPayload
    date_discrepancy: DateDiscrepancy | None = None

    @property
    def payload_format(self) -> PayloadFormat:
        return self.payload.payload_format

    @property
    def signature_checked(self) -> bool:
        return self.payload.is_signed


class RedemptionVerificationService(LoggingMixin):
    """Verifies scanned redemption payloads against storage."""

    def __init__(
        self,
        signer: PayloadSigner,
        repository: VoucherRepositoryProtocol,
    ) -> None:
        self._signer = signer
        self._repository = repository
        self._init_logger()

    async def verify(self, payload: str) -> RedemptionVerification:
        """Verify a scanned payload.

        Args:
            payload: Raw string from the QR code or barcode.

        Returns:
            RedemptionVerification for the referenced voucher. The voucher
            status is reported as-is; whether it can be used is decided by
            the lifecycle transition table.

        Raises:
            MalformedPayloadError: Payload cannot be decoded.
            InvalidSerialError: Serial fails its checksum.
            InvalidSignatureError: Signature does not verify.
            VoucherNotFoundError: No voucher has this serial.
            StalePayloadError: Payload was issued for an earlier issuance.
        """
        decoded = self._signer.parse_payload(payload)
        log = self._log_operation(
            "verify",
            serial=decoded.serial,
            payload_format=decoded.payload_format.value,
        )

        voucher = await self._repository.find_by_serial(decoded.serial)
        if voucher is None:
            log.warning("voucher_not_found")
            raise VoucherNotFoundError(decoded.serial)

        discrepancy = None
        if decoded.issued_date is not None:
            discrepancy = self._signer.check_freshness(
                decoded.serial, decoded.issued_date, voucher.issued_at
            )

        log.info(
            "payload_verified",
            voucher_id=str(voucher.id),
            status=voucher.status.value,
            date_discrepancy=discrepancy is not None,
        )
        return RedemptionVerification(
            voucher=voucher,
            payload=decoded,
            date_discrepancy=discrepancy,
        )
