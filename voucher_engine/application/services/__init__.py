"""Application services for the voucher engine."""

from voucher_engine.application.services.payload_signer_service import PayloadSigner
from voucher_engine.application.services.pii_cipher_service import MaskKind, PiiCipher
from voucher_engine.application.services.redemption_verification_service import (
    RedemptionVerification,
    RedemptionVerificationService,
)
from voucher_engine.application.services.serial_number_service import (
    SerialNumberGenerator,
)
from voucher_engine.application.services.voucher_lifecycle_service import (
    IssueResult,
    RedemptionResult,
    VoucherLifecycleService,
)
from voucher_engine.application.services.voucher_minting_service import (
    MintResult,
    VoucherMintingService,
)

__all__: list[str] = [
    "IssueResult",
    "MaskKind",
    "MintResult",
    "PayloadSigner",
    "PiiCipher",
    "RedemptionResult",
    "RedemptionVerification",
    "RedemptionVerificationService",
    "SerialNumberGenerator",
    "VoucherLifecycleService",
    "VoucherMintingService",
]
