"""Configuration module for the voucher engine.

Available Configurations:
- VoucherEngineConfig: Secrets and policy switches for the core
"""

from voucher_engine.config.voucher_config import (
    MAX_BATCH_SIZE_LIMIT,
    TEST_VOUCHER_ENGINE_CONFIG,
    VoucherEngineConfig,
    resolve_timezone,
)

__all__ = [
    "MAX_BATCH_SIZE_LIMIT",
    "TEST_VOUCHER_ENGINE_CONFIG",
    "VoucherEngineConfig",
    "resolve_timezone",
]
