"""Bootstrap wiring for voucher engine services.

Getters build each dependency lazily on first use and return the same
instance afterwards. Storage defaults to the in-memory stubs; a deployment
injects real adapters with the ``set_*`` functions before first use.
"""

from __future__ import annotations

from structlog import get_logger

from voucher_engine.application.ports.audit_recorder import AuditRecorderProtocol
from voucher_engine.application.ports.time_authority import TimeAuthorityProtocol
from voucher_engine.application.ports.voucher_recipient_repository import (
    VoucherRecipientRepositoryProtocol,
)
from voucher_engine.application.ports.voucher_repository import (
    VoucherRepositoryProtocol,
)
from voucher_engine.application.services.payload_signer_service import PayloadSigner
from voucher_engine.application.services.pii_cipher_service import PiiCipher
from voucher_engine.application.services.redemption_verification_service import (
    RedemptionVerificationService,
)
from voucher_engine.application.services.serial_number_service import (
    SerialNumberGenerator,
)
from voucher_engine.application.services.voucher_lifecycle_service import (
    VoucherLifecycleService,
)
from voucher_engine.application.services.voucher_minting_service import (
    VoucherMintingService,
)
from voucher_engine.bootstrap.config import (
    get_voucher_engine_config,
    set_voucher_engine_config,
)
from voucher_engine.infrastructure.adapters.system_time_authority import (
    SystemTimeAuthority,
)
from voucher_engine.infrastructure.stubs.audit_recorder_stub import AuditRecorderStub
from voucher_engine.infrastructure.stubs.voucher_recipient_repository_stub import (
    VoucherRecipientRepositoryStub,
)
from voucher_engine.infrastructure.stubs.voucher_repository_stub import (
    VoucherRepositoryStub,
)

logger = get_logger()

_voucher_repository: VoucherRepositoryProtocol | None = None
_recipient_repository: VoucherRecipientRepositoryProtocol | None = None
_audit_recorder: AuditRecorderProtocol | None = None
_time_authority: TimeAuthorityProtocol | None = None
_serial_generator: SerialNumberGenerator | None = None
_payload_signer: PayloadSigner | None = None
_pii_cipher: PiiCipher | None = None
_verification_service: RedemptionVerificationService | None = None
_lifecycle_service: VoucherLifecycleService | None = None
_minting_service: VoucherMintingService | None = None


def get_voucher_repository() -> VoucherRepositoryProtocol:
    """Get the voucher repository instance."""
    global _voucher_repository
    if _voucher_repository is None:
        logger.warning(
            "voucher_repository_initialized",
            repository_type="InMemoryStub",
            message="No repository injected - data will not persist",
        )
        _voucher_repository = VoucherRepositoryStub()
    return _voucher_repository


def set_voucher_repository(repository: VoucherRepositoryProtocol) -> None:
    """Set the voucher repository instance (for production use)."""
    global _voucher_repository
    _voucher_repository = repository


def get_recipient_repository() -> VoucherRecipientRepositoryProtocol:
    """Get the voucher recipient repository instance."""
    global _recipient_repository
    if _recipient_repository is None:
        _recipient_repository = VoucherRecipientRepositoryStub()
    return _recipient_repository


def set_recipient_repository(repository: VoucherRecipientRepositoryProtocol) -> None:
    """Set the voucher recipient repository instance (for production use)."""
    global _recipient_repository
    _recipient_repository = repository


def get_audit_recorder() -> AuditRecorderProtocol:
    """Get the audit recorder instance."""
    global _audit_recorder
    if _audit_recorder is None:
        _audit_recorder = AuditRecorderStub()
    return _audit_recorder


def set_audit_recorder(recorder: AuditRecorderProtocol) -> None:
    """Set the audit recorder instance (for production use)."""
    global _audit_recorder
    _audit_recorder = recorder


def get_time_authority() -> TimeAuthorityProtocol:
    """Get the time authority, reading the configured zone."""
    global _time_authority
    if _time_authority is None:
        _time_authority = SystemTimeAuthority(get_voucher_engine_config().tzinfo)
    return _time_authority


def set_time_authority(time_authority: TimeAuthorityProtocol) -> None:
    """Set the time authority instance (tests inject a fake clock)."""
    global _time_authority
    _time_authority = time_authority


def get_serial_generator() -> SerialNumberGenerator:
    """Get the serial number generator."""
    global _serial_generator
    if _serial_generator is None:
        _serial_generator = SerialNumberGenerator()
    return _serial_generator


def get_payload_signer() -> PayloadSigner:
    """Get the redemption payload signer."""
    global _payload_signer
    if _payload_signer is None:
        _payload_signer = PayloadSigner(
            config=get_voucher_engine_config(),
            time_authority=get_time_authority(),
            serial_generator=get_serial_generator(),
        )
    return _payload_signer


def get_pii_cipher() -> PiiCipher:
    """Get the personal data cipher."""
    global _pii_cipher
    if _pii_cipher is None:
        _pii_cipher = PiiCipher(get_voucher_engine_config())
    return _pii_cipher


def get_redemption_verification_service() -> RedemptionVerificationService:
    """Get the redemption verification service."""
    global _verification_service
    if _verification_service is None:
        _verification_service = RedemptionVerificationService(
            signer=get_payload_signer(),
            repository=get_voucher_repository(),
        )
    return _verification_service


def get_voucher_lifecycle_service() -> VoucherLifecycleService:
    """Get the voucher lifecycle service."""
    global _lifecycle_service
    if _lifecycle_service is None:
        _lifecycle_service = VoucherLifecycleService(
            repository=get_voucher_repository(),
            audit_recorder=get_audit_recorder(),
            time_authority=get_time_authority(),
            config=get_voucher_engine_config(),
            pii_cipher=get_pii_cipher(),
            verification=get_redemption_verification_service(),
            serial_generator=get_serial_generator(),
        )
    return _lifecycle_service


def get_voucher_minting_service() -> VoucherMintingService:
    """Get the voucher minting service."""
    global _minting_service
    if _minting_service is None:
        _minting_service = VoucherMintingService(
            lifecycle=get_voucher_lifecycle_service(),
            voucher_repository=get_voucher_repository(),
            recipient_repository=get_recipient_repository(),
            config=get_voucher_engine_config(),
            serial_generator=get_serial_generator(),
        )
    return _minting_service


def reset_voucher_engine() -> None:
    """Forget every built instance, including the configuration (for testing)."""
    global _voucher_repository, _recipient_repository, _audit_recorder
    global _time_authority, _serial_generator, _payload_signer, _pii_cipher
    global _verification_service, _lifecycle_service, _minting_service
    _voucher_repository = None
    _recipient_repository = None
    _audit_recorder = None
    _time_authority = None
    _serial_generator = None
    _payload_signer = None
    _pii_cipher = None
    _verification_service = None
    _lifecycle_service = None
    _minting_service = None
    set_voucher_engine_config(None)
