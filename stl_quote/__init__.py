"""
stl_quote: manufacturing quotes for parts supplied as STL meshes.

The command-line entry point is main.py; QuoteService is the request-level API.
"""

from stl_quote.logging_config import (
    setup_logging,
    get_logger,
    configure_default_logging,
    log_timing,
    timed,
    LogContext,
)

__version__ = "0.1.0"

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_default_logging",
    "log_timing",
    "timed",
    "LogContext",
]
