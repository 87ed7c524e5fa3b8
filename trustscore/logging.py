"""
Structured Logging
==================

JSON-structured logging with correlation IDs, account context,
and a per-module logger factory.

Uses structlog for structured, machine-readable log output.

Author: TrustScore Team
Version: 1.0.0
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

import structlog

# Context variables for request correlation
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_account_id: ContextVar[str] = ContextVar("account_id", default="")


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID for current context. Returns the ID."""
    cid = correlation_id or str(uuid.uuid4())[:12]
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str:
    """Get current correlation ID."""
    return _correlation_id.get()


@contextmanager
def bind_account(account_id: str) -> Iterator[None]:
    """Attach an account ID to every log line emitted inside the block."""
    token = _account_id.set(account_id)
    try:
        yield
    finally:
        _account_id.reset(token)


def _add_correlation_id(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """Structlog processor to inject correlation ID."""
    cid = _correlation_id.get()
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def _add_account_id(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """Structlog processor to inject the account being scored."""
    account_id = _account_id.get()
    if account_id and "account_id" not in event_dict:
        event_dict["account_id"] = account_id
    return event_dict


def _add_service_info(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """Structlog processor to inject service metadata."""
    event_dict["service"] = "trustscore"
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structured logging for the TrustScore service.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON; otherwise human-readable
        log_file: Optional path to write logs to a file
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_correlation_id,
        _add_account_id,
        _add_service_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Silence noisy third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """
    Get a structured logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)
