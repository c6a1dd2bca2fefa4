"""
statecheck — Observability

Structured logging setup.
"""

from statecheck.telemetry.logging import setup_logging

__all__ = ["setup_logging"]
