"""Domain layer for the voucher engine.

Pure models, errors and events. Nothing in this package performs I/O.
"""
