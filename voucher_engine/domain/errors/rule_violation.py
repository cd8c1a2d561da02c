"""Business rule violation errors for the voucher engine.

A rule violation is permanent: repeating the same request against the
same data produces the same rejection. Callers should reject, not retry.
Contrast with ConcurrentModificationError, which signals a lost race.
"""

from voucher_engine.domain.exceptions import VoucherEngineError


class VoucherRuleViolationError(VoucherEngineError):
    """Raised when a request breaks a voucher business rule.

    Rule violations are NEVER silently ignored. They are returned to the
    calling collaborator as typed errors carrying a stable code.

    Usage:
        raise VoucherRuleViolationError("Voucher amount must be positive")
    """

    code = "RULE_VIOLATION"
