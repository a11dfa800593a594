"""
Structured logging for limit-order sessions.

Hosts call ``setup_logging`` once. Sessions bind their chain and account
with ``bind_order_context`` so every record they emit, including stdlib
``logging`` records from the providers, carries them.
"""

import logging
import sys
from typing import List, Optional

import structlog

from .config import settings

QUIET_LOGGERS = ("httpcore", "httpx")


def _shared_processors() -> List[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def setup_logging(log_level: Optional[str] = None) -> None:
    """Route stdlib and structlog output through one handler.

    JSON lines by default; the console renderer when running at DEBUG.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    shared = _shared_processors()

    if level == logging.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        shared.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_order_context(chain_id: Optional[int], account: Optional[str]) -> None:
    """Attach the session's chain and account to subsequent log records."""
    structlog.contextvars.bind_contextvars(
        chain_id=chain_id,
        account=account.lower() if account else None,
    )


def clear_order_context() -> None:
    structlog.contextvars.unbind_contextvars("chain_id", "account")
