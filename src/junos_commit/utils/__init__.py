"""Utility modules for retries, logging and auditing."""
from .connection import retry_fixed, with_retry
from .logging_config import (
    setup_logging,
    setup_netconf_debug_log,
    timed,
    timed_section,
    perf_logger,
)

__all__ = [
    "retry_fixed",
    "with_retry",
    "setup_logging",
    "setup_netconf_debug_log",
    "timed",
    "timed_section",
    "perf_logger",
]
