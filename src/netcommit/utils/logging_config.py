"""Logging configuration for netcommit.

Library code only creates module loggers under ``netcommit``; applications
call setup_logging once to route them:
- rotating log file with everything at DEBUG
- console output at the configured level
- ``netcommit.perf`` timing of every session round-trip
- JSON lines audit log next to the log file

A NETCONF RPC trace file is attached per session through the
``debug_netconf_log_path`` setting (see setup_netconf_trace).

Environment Variables:
    NETCOMMIT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    NETCOMMIT_LOG_FILE: Path to log file (default: ~/.netcommit/netcommit.log)
    NETCOMMIT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    NETCOMMIT_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    @timed("lock")
    async def lock(self):
        ...

    async with timed_section("create", device_id="srx-1", resource="chassis_cluster"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

perf_logger = logging.getLogger("netcommit.perf")
main_logger = logging.getLogger("netcommit")
trace_logger = logging.getLogger("netcommit.netconf")

MAIN_FORMAT = logging.Formatter(
    "%(asctime)s.%(msecs)03d | %(name)-25s | %(levelname)-7s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> Path:
    """Attach console and rotating file handlers to the ``netcommit`` logger.

    Arguments override the NETCOMMIT_LOG_* variables. Calling it again
    replaces the handlers of the previous call.

    Returns:
        Path of the log file
    """
    from .audit_log import setup_audit_logging

    level_name = (level or os.environ.get("NETCOMMIT_LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    default_path = Path.home() / ".netcommit" / "netcommit.log"
    path = Path(log_file or os.environ.get("NETCOMMIT_LOG_FILE", str(default_path))).expanduser()
    max_size_mb = int(os.environ.get("NETCOMMIT_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("NETCOMMIT_LOG_BACKUPS", "5"))

    path.parent.mkdir(parents=True, exist_ok=True)

    for handler in list(main_logger.handlers):
        main_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(MAIN_FORMAT)

    file_handler = RotatingFileHandler(
        path,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(MAIN_FORMAT)

    main_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    setup_audit_logging(str(path.parent))

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={path}")
    return path


def setup_netconf_trace(path: str) -> None:
    """Write every NETCONF request and reply to a dedicated file."""
    target = os.path.abspath(os.path.expanduser(path))
    for handler in trace_logger.handlers:
        if getattr(handler, "baseFilename", None) == target:
            return
    Path(target).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(target, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(MAIN_FORMAT)
    trace_logger.setLevel(logging.DEBUG)
    trace_logger.addHandler(handler)


def _log_timing(operation: str, dev_id: Optional[str], start: float, error: Optional[Exception], extra_str: str = "") -> None:
    elapsed = (time.perf_counter() - start) * 1000  # ms
    if error is None:
        msg = f"{operation:20s} | {dev_id or 'N/A':15s} | {elapsed:8.2f}ms | OK"
    else:
        msg = f"{operation:20s} | {dev_id or 'N/A':15s} | {elapsed:8.2f}ms | FAIL: {error}"
    if extra_str:
        msg += f" | {extra_str}"
    if error is None:
        perf_logger.info(msg)
    else:
        perf_logger.warning(msg)


def timed(operation: str, device_id: Optional[str] = None):
    """Decorator to log execution time of sync/async functions.

    Args:
        operation: Name of the operation (e.g., "lock", "commit", "query")
        device_id: Optional device identifier (can also be inferred from self.device_id)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            dev_id = device_id
            if dev_id is None and args and hasattr(args[0], 'device_id'):
                dev_id = args[0].device_id

            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log_timing(operation, dev_id, start, e)
                raise
            _log_timing(operation, dev_id, start, None)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            dev_id = device_id
            if dev_id is None and args and hasattr(args[0], 'device_id'):
                dev_id = args[0].device_id

            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_timing(operation, dev_id, start, e)
                raise
            _log_timing(operation, dev_id, start, None)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Args:
        operation: Name of the operation
        device_id: Device identifier
        **extra: Additional context to log
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
    except Exception as e:
        _log_timing(operation, device_id, start, e, extra_str)
        raise
    _log_timing(operation, device_id, start, None, extra_str)
