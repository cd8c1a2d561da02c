"""Production adapters for voucher engine ports."""

from voucher_engine.infrastructure.adapters.system_time_authority import (
    SystemTimeAuthority,
)

__all__: list[str] = ["SystemTimeAuthority"]
