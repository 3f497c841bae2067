import json
import logging

import pytest
import structlog

from dca_chat.infrastructure.logging import ChatContextFilter, _create_json_formatter, chat_context, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message="hello"):
    return logging.LogRecord("dca_chat.test", logging.INFO, __file__, 1, message, None, None)


def test_chat_context_binds_and_unbinds():
    with chat_context("0xABC", chat_id="turn-1") as chat_id:
        assert chat_id == "turn-1"
        assert structlog.contextvars.get_contextvars() == {"chat_id": "turn-1", "wallet": "0xabc"}

    assert "chat_id" not in structlog.contextvars.get_contextvars()


def test_chat_context_generates_ids():
    with chat_context() as first:
        pass
    with chat_context() as second:
        pass

    assert first and second and first != second


def test_filter_sets_placeholder_outside_a_chat():
    record = _record()

    assert ChatContextFilter().filter(record)
    assert record.chat_id == "-"


def test_json_formatter_includes_chat_context():
    formatter = _create_json_formatter()

    with chat_context("0xABC", chat_id="turn-9"):
        line = formatter.format(_record("plan created"))

    payload = json.loads(line)
    assert payload["event"] == "plan created"
    assert payload["chat_id"] == "turn-9"
    assert payload["wallet"] == "0xabc"
    assert payload["level"] == "info"


def test_setup_logging_installs_single_handler(restore_root_logger):
    root = setup_logging("debug", format_type="json")
    setup_logging("debug", format_type="json")

    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


def test_color_format_shows_chat_id_and_wallet():
    from dca_chat.infrastructure.logging import _create_color_formatter

    record = _record("calling agent")
    with chat_context("0xABC", chat_id="turn-3"):
        ChatContextFilter().filter(record)
    line = _create_color_formatter().format(record)

    assert "| turn-3 | 0xabc | dca_chat.test | calling agent" in line


def test_filter_sets_wallet_placeholder_without_wallet():
    record = _record()
    with chat_context(chat_id="turn-4"):
        ChatContextFilter().filter(record)

    assert record.chat_id == "turn-4"
    assert record.wallet == "-"
