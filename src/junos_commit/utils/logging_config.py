"""Logging for junos-commit: the package log, a perf log and the NETCONF trace.

Three loggers are configured here:

- `junos_commit` takes every record; the console handler filters by level
- `junos_commit.perf` gets one line per timed step (lock wait, commit, ...)
  and writes only to its own file
- `junos_commit.netconf` gets each RPC and reply when
  `debug_netconf_log_path` is set

`setup_logging()` reads JUNOS_COMMIT_LOG_LEVEL, JUNOS_COMMIT_LOG_FILE,
JUNOS_COMMIT_LOG_MAX_SIZE (MB) and JUNOS_COMMIT_LOG_BACKUPS for anything
not passed in.
"""
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

perf_logger = logging.getLogger("junos_commit.perf")
main_logger = logging.getLogger("junos_commit")
netconf_logger = logging.getLogger("junos_commit.netconf")

_MAIN_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-32s | %(levelname)-7s | %(message)s"
_PERF_FORMAT = "%(asctime)s.%(msecs)03d | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

T = TypeVar("T")


def get_log_level() -> int:
    level = logging.getLevelName(os.environ.get("JUNOS_COMMIT_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def get_log_file() -> Path:
    default = Path.home() / ".junos-commit" / "junos-commit.log"
    return Path(os.environ.get("JUNOS_COMMIT_LOG_FILE", default))


def _rotating(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=int(os.environ.get("JUNOS_COMMIT_LOG_MAX_SIZE", "10")) * 1024 * 1024,
        backupCount=int(os.environ.get("JUNOS_COMMIT_LOG_BACKUPS", "5")),
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: Optional[int] = None, log_file: Optional[Path] = None) -> Path:
    """Attach the console and file handlers. Returns the perf log path.

    Calling it again replaces the handlers of the previous call.
    """
    level = get_log_level() if level is None else level
    log_file = Path(log_file) if log_file is not None else get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    perf_file = log_file.with_name(f"{log_file.stem}-perf{log_file.suffix}")

    for logger in (main_logger, perf_logger):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(_MAIN_FORMAT, datefmt=_DATE_FORMAT)
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)

    main_logger.setLevel(logging.DEBUG)
    main_logger.addHandler(console)
    main_logger.addHandler(_rotating(log_file, formatter))

    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(_rotating(perf_file, logging.Formatter(_PERF_FORMAT, datefmt=_DATE_FORMAT)))
    perf_logger.propagate = False

    main_logger.info(f"Logging to {log_file} at {logging.getLevelName(level)}, perf to {perf_file}")
    return perf_file


def setup_netconf_debug_log(path: str, file_mode: int = 0o644) -> None:
    """Write every RPC and reply to `path`.

    Idempotent per path: a second call with the same path adds no handler.
    """
    log_path = Path(path)
    for handler in netconf_logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path.resolve():
            return

    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_path.touch(mode=file_mode, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_PERF_FORMAT, datefmt=_DATE_FORMAT))
    netconf_logger.setLevel(logging.DEBUG)
    netconf_logger.addHandler(handler)


def _perf_line(operation: str, device_id: Optional[str], started: float, outcome: str) -> str:
    elapsed = (time.perf_counter() - started) * 1000
    return f"{operation:20s} | {device_id or 'N/A':15s} | {elapsed:8.2f}ms | {outcome}"


def timed(operation: str, device_id: Optional[str] = None):
    """Log the duration of a coroutine method to the perf log.

    The device comes from `device_id` or else from `self.device_id`.
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            dev_id = device_id
            if dev_id is None and args:
                dev_id = getattr(args[0], "device_id", None)
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except BaseException as e:
                perf_logger.warning(_perf_line(operation, dev_id, started, f"FAIL: {e!r}"))
                raise
            perf_logger.info(_perf_line(operation, dev_id, started, "OK"))
            return result

        return wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Time an `async with` block; `extra` pairs are appended to the line."""
    suffix = "".join(f" | {k}={v}" for k, v in extra.items())
    started = time.perf_counter()
    try:
        yield
    except BaseException as e:
        perf_logger.warning(_perf_line(operation, device_id, started, f"FAIL: {e!r}") + suffix)
        raise
    perf_logger.info(_perf_line(operation, device_id, started, "OK") + suffix)
