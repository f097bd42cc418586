"""
Structured Logging Configuration with Correlation IDs

Provides centralized, structured JSON logging for the API and the backtest core.
Features:
- Correlation ID tracking across requests
- Standardized log format: {timestamp, correlation_id, service, level, message}
- Strategy context so every line emitted during a backtest names its strategy
- @log_method decorator for execution time tracking
"""
import logging
import json
import uuid
import time
import functools
import os
from datetime import datetime, timezone
from contextlib import contextmanager
from typing import Iterator, Optional, Any, Callable, TypeVar
from contextvars import ContextVar

# Context variable for correlation ID - thread-safe and async-safe
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_strategy_id: ContextVar[Optional[str]] = ContextVar("strategy_id", default=None)

# Type variable for decorator return type preservation
F = TypeVar("F", bound=Callable[..., Any])

# Standard LogRecord attributes, excluded from the "extra" block
_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message"
}


def get_correlation_id() -> str:
    """
    Get the current correlation ID for the request context.
    Creates a new one if none exists.
    """
    cid = _correlation_id.get()
    if cid is None:
        cid = str(uuid.uuid4())
        _correlation_id.set(cid)
    return cid


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set a correlation ID for the current context.
    If none provided, generates a new UUID.
    Returns the set correlation ID.
    """
    cid = correlation_id or str(uuid.uuid4())
    _correlation_id.set(cid)
    return cid


def clear_correlation_id() -> None:
    """Clear the correlation ID from the current context."""
    _correlation_id.set(None)


def get_strategy_id() -> Optional[str]:
    """Strategy id of the backtest running in this context, if any."""
    return _strategy_id.get()


@contextmanager
def strategy_context(strategy_id: str) -> Iterator[str]:
    """
    Tag log records emitted inside the block with a strategy id.

    Usage:
        with strategy_context("hoffman-irb"):
            engine.run(candles)
    """
    token = _strategy_id.set(strategy_id)
    try:
        yield strategy_id
    finally:
        _strategy_id.reset(token)


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs JSON structured logs.

    Format:
    {
        "timestamp": "2026-01-28T14:30:00.123456Z",
        "correlation_id": "abc123-...",
        "strategy_id": "bb-squeeze-breakout",  # only inside a backtest
        "service": "engine",
        "level": "INFO",
        "message": "12 trades | 7W-5L | ...",
        "extra": {...}  # Any additional context
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "correlation_id": get_correlation_id(),
            "service": record.name.split(".")[-1] if "." in record.name else record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }

        strategy_id = get_strategy_id()
        if strategy_id:
            log_entry["strategy_id"] = strategy_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra = {}
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    extra[key] = value
                except (TypeError, ValueError):
                    extra[key] = str(value)

        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter for development.
    Still includes correlation ID but in a readable format.
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        short_cid = correlation_id[:8] if correlation_id else "--------"

        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        strategy_id = get_strategy_id()
        strategy_tag = f"{{{strategy_id}}} " if strategy_id else ""

        # Format: [correlation_id] LEVEL service - {strategy} message
        formatted = (
            f"[{short_cid}] "
            f"{color}{record.levelname:8}{reset} "
            f"{record.name.split('.')[-1]:20} - "
            f"{strategy_tag}{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def get_logger(name: str, use_json: bool = False) -> logging.Logger:
    """
    Get a configured logger for a service.

    Args:
        name: Logger name (typically __name__ of the module)
        use_json: If True, use JSON structured output; otherwise console format

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)

        if use_json:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(ConsoleFormatter())

        logger.addHandler(handler)

        # Don't propagate to root logger to avoid duplicate logs
        logger.propagate = False

    return logger


def log_method(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    log_result: bool = False
) -> Callable[[F], F]:
    """
    Decorator to log function entry, exit, and execution time.

    Args:
        logger: Logger to use (if None, uses the function's module logger)
        level: Log level for the messages
        log_result: If True, log the return value

    Usage:
        @log_method(level=logging.INFO)
        def run_backtest(candles, strategy_id):
            ...
    """
    def decorator(func: F) -> F:
        _logger = logger or logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            func_name = func.__qualname__
            start_time = time.perf_counter()

            _logger.log(level, f"ENTER: {func_name}", extra={"function": func_name})

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                execution_time_ms = (time.perf_counter() - start_time) * 1000
                _logger.error(
                    f"ERROR: {func_name} ({execution_time_ms:.2f}ms) - {type(e).__name__}: {e}",
                    extra={
                        "function": func_name,
                        "execution_time_ms": round(execution_time_ms, 2),
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                    exc_info=True
                )
                raise

            execution_time_ms = (time.perf_counter() - start_time) * 1000
            exit_extra = {
                "function": func_name,
                "execution_time_ms": round(execution_time_ms, 2),
            }
            if log_result:
                exit_extra["result"] = _safe_repr(result)

            _logger.log(
                level,
                f"EXIT: {func_name} ({execution_time_ms:.2f}ms)",
                extra=exit_extra
            )
            return result

        return wrapper  # type: ignore

    return decorator


def _safe_repr(obj: Any, max_length: int = 200) -> str:
    """
    Create a safe string representation of an object for logging.
    Truncates long strings and handles non-serializable objects.
    """
    try:
        result = json.dumps(obj)
    except (TypeError, ValueError):
        result = repr(obj)

    if len(result) > max_length:
        return result[:max_length - 3] + "..."
    return result


# FastAPI middleware for correlation ID injection
class CorrelationIdMiddleware:
    """
    ASGI middleware that sets a correlation ID for each request.

    Checks for existing correlation ID in X-Correlation-ID header,
    otherwise generates a new one.

    Usage in FastAPI:
        from services.logging_config import CorrelationIdMiddleware
        app.add_middleware(CorrelationIdMiddleware)
    """

    def __init__(self, app: Any):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        correlation_id = headers.get(b"x-correlation-id", b"").decode() or None
        set_correlation_id(correlation_id)

        async def send_with_correlation_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                response_headers = list(message.get("headers", []))
                response_headers.append((b"x-correlation-id", get_correlation_id().encode()))
                message["headers"] = response_headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_correlation_id)
        finally:
            clear_correlation_id()


def setup_logging(use_json: Optional[bool] = None, level: Optional[int] = None) -> None:
    """
    Configure logging for the entire application.

    Args:
        use_json: If True, use JSON structured output. Defaults to LOG_FORMAT=json
        level: Root logging level. Defaults to LOG_LEVEL, then INFO
    """
    if use_json is None:
        use_json = os.getenv("LOG_FORMAT", "console").lower() == "json"
    if level is None:
        level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if use_json:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())

    root_logger.addHandler(handler)
