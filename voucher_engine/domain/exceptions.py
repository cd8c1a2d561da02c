"""Base exception classes for the voucher engine domain layer."""


class VoucherEngineError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class.
    This enables consistent error handling across the application.

    Attributes:
        code: Stable machine-readable error code returned to callers.
        retryable: True when the caller may retry the same request and
            reasonably expect a different outcome.
    """

    code: str = "VOUCHER_ENGINE_ERROR"
    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
