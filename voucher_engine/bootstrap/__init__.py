"""Composition root for wiring dependencies.

This package centralizes infrastructure-aware wiring so callers can obtain
ready-built services without importing infrastructure directly.
"""
