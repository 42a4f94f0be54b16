"""
Cross-cutting utilities: logging setup and clock sources.
"""

from lean_coffee_core.core.clock import Clock, FakeClock, SystemClock, elapsed_ms
from lean_coffee_core.core.logging import get_logger, setup_logging

__all__ = [
    "Clock",
    "FakeClock",
    "SystemClock",
    "elapsed_ms",
    "get_logger",
    "setup_logging",
]
