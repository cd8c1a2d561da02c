"""
Voucher Engine - Voucher Lifecycle & Verification Core

Generates checksummed serial numbers, signs and verifies the redemption
payload carried by QR codes and barcodes, enforces the voucher lifecycle
with at-most-once redemption, and keeps recipient PII encrypted at rest.

Core Guarantees:
- A voucher is used at most once, no matter how many callers race it
- Forged or altered redemption payloads are rejected
- Every lifecycle attempt is audited, successful or not
- Personal data never leaves the core unencrypted unless asked for
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
