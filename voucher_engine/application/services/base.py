"""Base service logging mixin.

Gives every service a structlog logger bound with its class name and
component, and an ``_log_operation()`` helper that adds the operation name
and the current correlation ID.

Usage:
    class MyService(LoggingMixin):
        def __init__(self, repository: SomePort) -> None:
            self._repository = repository
            self._init_logger()

        async def do_something(self, serial: str) -> None:
            log = self._log_operation("do_something", serial=serial)
            log.info("operation_started")
"""

import structlog

from voucher_engine.infrastructure.observability.correlation import get_correlation_id
from voucher_engine.infrastructure.observability.logging import get_logger_for_service


class LoggingMixin:
    """Mixin providing structured logging for services.

    Attributes:
        _log: The structlog BoundLogger for this service instance.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "voucher") -> None:
        """Initialize the logger with service name binding.

        Should be called in __init__ after setting up dependencies.

        Args:
            component: The component type for log categorization.
        """
        self._log = get_logger_for_service(self.__class__.__name__, component)

    def _log_operation(
        self,
        operation: str,
        **context: object,
    ) -> structlog.BoundLogger:
        """Create operation-scoped logger with correlation ID.

        Args:
            operation: Name of the operation being performed.
            **context: Additional context to bind to the logger.

        Returns:
            BoundLogger with operation and correlation context.
        """
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )
