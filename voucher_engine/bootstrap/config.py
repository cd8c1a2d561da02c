"""Bootstrap wiring for voucher engine configuration."""

from __future__ import annotations

from dotenv import find_dotenv, load_dotenv
from structlog import get_logger

from voucher_engine.config.voucher_config import VoucherEngineConfig

logger = get_logger()

_config: VoucherEngineConfig | None = None


def get_voucher_engine_config() -> VoucherEngineConfig:
    """Get the engine configuration.

    Loads a ``.env`` file found from the working directory upwards (if
    any) into the environment on first use, then reads the configuration
    from the environment. Variables already set in the environment take
    precedence over the file.

    Raises:
        ValueError: If a required secret is missing or a value is invalid.
    """
    global _config
    if _config is None:
        loaded = load_dotenv(find_dotenv(usecwd=True), override=False)
        _config = VoucherEngineConfig.from_environment()
        logger.info(
            "voucher_engine_config_loaded",
            dotenv_loaded=loaded,
            timezone=_config.timezone_name or "local",
            same_day_grace=_config.same_day_grace,
            allow_bare_serial=_config.allow_bare_serial,
            strict_decryption=_config.strict_decryption,
        )
    return _config


def set_voucher_engine_config(config: VoucherEngineConfig | None) -> None:
    """Set (or with None, forget) the engine configuration."""
    global _config
    _config = config
