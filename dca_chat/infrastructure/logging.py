"""
Logging configuration for the chat service.

Two output formats:
- ``color``: human-readable lines for development (colorlog)
- ``json``: one JSON object per line for production (structlog)

``chat_context`` binds the chat request id and wallet to every record logged
while a request is handled, so bridge and extractor lines can be grouped per
conversation turn.
"""

import logging
import os
import sys
import uuid
from contextlib import contextmanager
from typing import Iterator, Literal, Optional

import colorlog
import structlog

LogFormat = Literal["color", "json"]

_NOISY_LOGGERS = ("httpx", "httpcore", "langchain", "openai", "anthropic", "google_genai")


class ChatContextFilter(logging.Filter):
    """Copy the bound chat context onto stdlib records for the color format."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = structlog.contextvars.get_contextvars()
        record.chat_id = context.get("chat_id", "-")
        record.wallet = context.get("wallet", "-")
        return True


def setup_logging(
    level: int | str = logging.INFO,
    format_type: LogFormat | None = None,
    json_indent: int | None = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Logging level name or number
        format_type: "color" or "json"; read from LOG_FORMAT when None
        json_indent: Indentation for JSON output (None for compact)
    """
    if format_type is None:
        format_type = os.getenv("LOG_FORMAT", "color").lower()
    if format_type not in ("color", "json"):
        format_type = "color"

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(ChatContextFilter())
    if format_type == "color":
        handler.setFormatter(_create_color_formatter())
    else:
        handler.setFormatter(_create_json_formatter(json_indent))
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # uvicorn's access log duplicates the per-request lines written by the app
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return root_logger


def _create_color_formatter() -> logging.Formatter:
    return colorlog.ColoredFormatter(
        fmt="%(log_color)s%(asctime)s | %(levelname)-8s | %(chat_id)s | %(wallet)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        },
        style="%",
    )


def _create_json_formatter(indent: int | None = None) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(indent=indent),
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ],
    )


def new_chat_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def chat_context(wallet: Optional[str] = None, chat_id: Optional[str] = None) -> Iterator[str]:
    """Bind ``chat_id`` (and the wallet, when known) for the duration of one chat turn."""
    chat_id = chat_id or new_chat_id()
    bound = {"chat_id": chat_id}
    if wallet:
        bound["wallet"] = wallet.lower()
    with structlog.contextvars.bound_contextvars(**bound):
        yield chat_id


class LoggerMixin:
    """Mixin class to add logging capability to any class."""

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, "_logger"):
            self._logger = logging.getLogger(
                f"{self.__class__.__module__}.{self.__class__.__name__}"
            )
        return self._logger
