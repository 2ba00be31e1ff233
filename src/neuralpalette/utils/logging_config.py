"""
Standard logging configuration for Neural Palette.

Every module logs through the ``neuralpalette`` logger hierarchy. Output can
go through a plain StreamHandler or Rich's RichHandler, and API keys that
leak into provider error messages are masked before they are emitted.
"""

import logging
import re
from typing import Iterable, Optional, Union

from rich.logging import RichHandler

LOGGER_NAME = "neuralpalette"

# sk-..., sk-ant-..., and bare bearer tokens
_SECRET_PATTERN = re.compile(r"(sk-(?:ant-)?[A-Za-z0-9_\-]{6})[A-Za-z0-9_\-]+|(Bearer\s+)\S+")


def get_logger(name: str = "") -> logging.Logger:
    """
    Get a logger for a Neural Palette module.

    Args:
        name: The module name (prefixed with 'neuralpalette.').
              Empty string returns the root neuralpalette logger.

    Returns:
        A Logger instance.

    Example:
        >>> get_logger("manager").name
        'neuralpalette.manager'
    """
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def mask_secrets(message: str) -> str:
    """Replace anything that looks like a provider API key with a masked form."""

    def _mask(match: "re.Match[str]") -> str:
        if match.group(2):
            return f"{match.group(2)}***"
        return f"{match.group(1)}***"

    return _SECRET_PATTERN.sub(_mask, message)


class SecretMaskingFilter(logging.Filter):
    """Logging filter that masks API keys in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        rendered = record.getMessage()
        masked = mask_secrets(rendered)
        if masked != rendered:
            record.msg = masked
            record.args = None
        return True


def configure_logging(
    level: Union[int, str] = logging.WARNING,
    format: Optional[str] = None,
    handler: Optional[logging.Handler] = None,
    rich: bool = False,
    quiet_loggers: Iterable[str] = ("httpx", "httpcore"),
) -> None:
    """
    Configure Neural Palette logging.

    Args:
        level: Log level (int or string like "DEBUG", "INFO").
        format: Log message format. Defaults to standard format.
        handler: Custom handler. Defaults to StreamHandler (or RichHandler).
        rich: Use Rich's handler for console output.
        quiet_loggers: Third-party loggers raised to WARNING so that request
            lines from the HTTP client do not drown out our own messages.

    Example:
        >>> configure_logging(level="DEBUG", rich=True)
    """
    logger = get_logger()

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    logger.setLevel(level)

    if handler is None and not logger.handlers:
        if rich:
            handler = RichHandler(rich_tracebacks=True, show_path=False)
            format = format or "%(name)s: %(message)s"
        else:
            handler = logging.StreamHandler()
            format = format or "[%(levelname)s] %(name)s: %(message)s"
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(format))

    if handler is not None:
        if not any(isinstance(f, SecretMaskingFilter) for f in handler.filters):
            handler.addFilter(SecretMaskingFilter())
        logger.addHandler(handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
