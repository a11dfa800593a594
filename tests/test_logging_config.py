import logging

import structlog

from limitswap.logging_config import bind_order_context, clear_order_context, setup_logging


def test_setup_logging_sets_root_level():
    """Root logger level follows the requested level and quiets httpx."""

    setup_logging("WARNING")

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_debug_uses_console_renderer():
    """DEBUG switches to the human-readable console renderer."""

    setup_logging("debug")

    formatter = logging.getLogger().handlers[0].formatter
    assert logging.getLogger().level == logging.DEBUG
    assert any(isinstance(p, structlog.dev.ConsoleRenderer) for p in formatter.processors)


def test_order_context_is_bound_and_cleared():
    """Chain and account ride along on every record until cleared."""

    bind_order_context(1, "0xABC")
    context = structlog.contextvars.get_contextvars()
    assert context["chain_id"] == 1
    assert context["account"] == "0xabc"

    clear_order_context()
    assert "account" not in structlog.contextvars.get_contextvars()
    assert "chain_id" not in structlog.contextvars.get_contextvars()
