"""Utility modules for logging, auditing and retries."""
from .connection import retry_async, RETRYABLE_EXCEPTIONS, NON_RETRYABLE_EXCEPTIONS
from .logging_config import setup_logging, setup_netconf_trace, timed, timed_section
from .audit_log import ChangeTracker, ChangeRecord, get_recent_changes

__all__ = [
    "retry_async",
    "RETRYABLE_EXCEPTIONS",
    "NON_RETRYABLE_EXCEPTIONS",
    "setup_logging",
    "setup_netconf_trace",
    "timed",
    "timed_section",
    "ChangeTracker",
    "ChangeRecord",
    "get_recent_changes",
]
