"""
Structured logging configuration for the stl_quote package.

Provides:
- JSON formatter for machine-readable log output
- Console formatter for human-readable output
- Timing context manager and decorator
- Per-request context fields (request id, file name)

Usage:
    from stl_quote.logging_config import setup_logging, get_logger

    # Setup at application start
    setup_logging(level=logging.INFO, json_file="quotes.log.json")

    # Get logger in any module
    logger = get_logger(__name__)
    logger.info("Mesh parsed", extra={"file": "bracket.stl", "faces": 1200})
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar, Union

F = TypeVar('F', bound=Callable[..., Any])

PACKAGE_LOGGER = "stl_quote"

# Attributes every LogRecord carries; anything else came in via `extra=`.
_RESERVED_KEYS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'taskName', 'message', 'asctime',
})

_context_fields: ContextVar[Dict[str, Any]] = ContextVar(
    "stl_quote_log_context", default={}
)


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_KEYS}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs each log record as a single JSON line. Extra fields passed via
    `extra={}` or an active LogContext are included.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...", ...}
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno >= logging.WARNING or record.levelno <= logging.DEBUG:
            log_entry["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for key, value in _extra_fields(record).items():
                try:
                    json.dumps(value)
                    log_entry[key] = value
                except (TypeError, ValueError):
                    log_entry[key] = str(value)

        return json.dumps(log_entry, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with optional colors.

    Format: [TIME] LEVEL logger: message [extra_key=value ...]
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, show_extra: bool = True):
        super().__init__()
        self.use_colors = use_colors
        self.show_extra = show_extra

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level_str = f"{self.COLORS[level]}{level:8}{self.COLORS['RESET']}"
        else:
            level_str = f"{level:8}"

        logger_name = record.name
        prefix = PACKAGE_LOGGER + "."
        if logger_name.startswith(prefix):
            logger_name = logger_name[len(prefix):]

        extra_str = ""
        if self.show_extra:
            extras = []
            for key, value in _extra_fields(record).items():
                if isinstance(value, float):
                    extras.append(f"{key}={value:.3g}")
                elif isinstance(value, (list, tuple)) and len(value) > 3:
                    extras.append(f"{key}=[...{len(value)} items]")
                else:
                    extras.append(f"{key}={value}")
            if extras:
                extra_str = " [" + ", ".join(extras) + "]"

        result = f"[{time_str}] {level_str} {logger_name}: {record.getMessage()}{extra_str}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


class ContextFieldsFilter(logging.Filter):
    """Copy the fields of the active LogContext onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context_fields.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def setup_logging(
    level: int = logging.INFO,
    json_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    use_colors: bool = True,
    root_logger: bool = False,
) -> logging.Logger:
    """Configure logging for the stl_quote package.

    Sets up a human-readable console handler and, optionally, a JSON-lines
    file handler. Both handlers carry the LogContext filter, so context
    fields reach records emitted by any module logger below the package.

    Args:
        level: Minimum log level (default INFO)
        json_file: Optional path for JSON log file
        console: Enable console output (default True)
        use_colors: Use ANSI colors in console (default True)
        root_logger: Configure root logger instead of stl_quote

    Returns:
        Configured logger instance
    """
    logger_name = "" if root_logger else PACKAGE_LOGGER
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    context_filter = ContextFieldsFilter()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
        console_handler.addFilter(context_filter)
        logger.addHandler(console_handler)

    if json_file:
        json_handler = logging.FileHandler(Path(json_file), encoding='utf-8')
        json_handler.setLevel(level)
        json_handler.setFormatter(JSONFormatter())
        json_handler.addFilter(context_filter)
        logger.addHandler(json_handler)

    if not root_logger:
        logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module (typically ``__name__``)."""
    return logging.getLogger(name)


@contextmanager
def log_timing(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    **extra_fields: Any
):
    """Context manager to log operation timing.

    Example:
        with log_timing(logger, "Parsing mesh", file=filename):
            mesh = load_mesh(data, filename)

    Yields:
        dict that can be updated with additional timing info
    """
    timing_info: Dict[str, Any] = {}
    start_time = time.perf_counter()

    logger.log(level, "Starting: %s", operation, extra={
        "event": "start",
        "operation": operation,
        **extra_fields
    })

    try:
        yield timing_info
    except Exception as e:
        elapsed = time.perf_counter() - start_time
        logger.error("Failed: %s (%.3fs) - %s", operation, elapsed, e, extra={
            "event": "error",
            "operation": operation,
            "elapsed_seconds": elapsed,
            "error": str(e),
            **extra_fields
        })
        raise

    elapsed = time.perf_counter() - start_time
    timing_info['elapsed_seconds'] = elapsed
    logger.log(level, "Completed: %s (%.3fs)", operation, elapsed, extra={
        "event": "complete",
        "operation": operation,
        **extra_fields,
        **timing_info
    })


def timed(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    operation: Optional[str] = None,
) -> Callable[[F], F]:
    """Decorator to log function execution time.

    Example:
        @timed(level=logging.INFO)
        def analyze_mesh(mesh):
            ...
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            func_logger = logger or logging.getLogger(func.__module__)
            op_name = operation or func.__name__

            with log_timing(func_logger, op_name, level):
                return func(*args, **kwargs)

        return wrapper  # type: ignore
    return decorator


class LogContext:
    """Context holder for adding common fields to log records.

    Fields are stored in a context variable, so each thread or asyncio task
    sees only the context it entered. Contexts nest; inner fields win.

    Example:
        with LogContext(request_id="abc123", file="bracket.stl"):
            logger.info("Analyzing")  # includes request_id, file
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token = None

    def __enter__(self) -> 'LogContext':
        merged = {**_context_fields.get(), **self.fields}
        self._token = _context_fields.set(merged)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            _context_fields.reset(self._token)
            self._token = None

    @staticmethod
    def current() -> Dict[str, Any]:
        """Fields active in the calling thread or task."""
        return dict(_context_fields.get())


def configure_default_logging(verbose: bool = False) -> logging.Logger:
    """Configure console logging at DEBUG (verbose) or INFO level."""
    level = logging.DEBUG if verbose else logging.INFO
    return setup_logging(level=level, console=True, use_colors=True)
