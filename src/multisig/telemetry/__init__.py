"""Telemetry — structured diagnostic logging."""

from multisig.telemetry.logging import setup_logging

__all__ = ["setup_logging"]
