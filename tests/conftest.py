"""
Pytest configuration and shared fixtures for voucher engine tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Time-dependent tests use FakeTimeAuthority, never the host clock
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
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
from voucher_engine.bootstrap.voucher_engine import reset_voucher_engine
from voucher_engine.config.voucher_config import (
    TEST_VOUCHER_ENGINE_CONFIG,
    VoucherEngineConfig,
)
from voucher_engine.infrastructure.stubs.audit_recorder_stub import AuditRecorderStub
from voucher_engine.infrastructure.stubs.voucher_recipient_repository_stub import (
    VoucherRecipientRepositoryStub,
)
from voucher_engine.infrastructure.stubs.voucher_repository_stub import (
    VoucherRepositoryStub,
)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from voucher_engine import __version__

    return __version__


@pytest.fixture(autouse=True)
def _reset_bootstrap() -> Iterator[None]:
    """Forget bootstrap singletons between tests."""
    reset_voucher_engine()
    yield
    reset_voucher_engine()


@pytest.fixture
def config() -> VoucherEngineConfig:
    """Engine configuration with fixed secrets and UTC dates."""
    return TEST_VOUCHER_ENGINE_CONFIG


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    """Clock frozen at 2024-12-01T09:30:00 UTC."""
    return FakeTimeAuthority()


@pytest.fixture
def serial_generator() -> SerialNumberGenerator:
    return SerialNumberGenerator()


@pytest.fixture
def signer(
    config: VoucherEngineConfig, fake_time_authority: FakeTimeAuthority
) -> PayloadSigner:
    return PayloadSigner(config, fake_time_authority)


@pytest.fixture
def cipher(config: VoucherEngineConfig) -> PiiCipher:
    return PiiCipher(config)


@pytest.fixture
def repository() -> VoucherRepositoryStub:
    """Create a fresh voucher repository for each test."""
    return VoucherRepositoryStub()


@pytest.fixture
def recipient_repository() -> VoucherRecipientRepositoryStub:
    return VoucherRecipientRepositoryStub()


@pytest.fixture
def audit_recorder() -> AuditRecorderStub:
    return AuditRecorderStub()


@pytest.fixture
def verification_service(
    signer: PayloadSigner, repository: VoucherRepositoryStub
) -> RedemptionVerificationService:
    return RedemptionVerificationService(signer=signer, repository=repository)


@pytest.fixture
def lifecycle(
    repository: VoucherRepositoryStub,
    audit_recorder: AuditRecorderStub,
    fake_time_authority: FakeTimeAuthority,
    config: VoucherEngineConfig,
    cipher: PiiCipher,
    verification_service: RedemptionVerificationService,
) -> VoucherLifecycleService:
    """Lifecycle service wired to in-memory stubs and a frozen clock."""
    return VoucherLifecycleService(
        repository=repository,
        audit_recorder=audit_recorder,
        time_authority=fake_time_authority,
        config=config,
        pii_cipher=cipher,
        verification=verification_service,
    )
