# Inspired / borrowed from the `click-logging` python package.
import logging
import os
import sys
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from enum import IntEnum
from typing import IO, Any, Optional, Union

import click
from yarl import URL


class LogLevel(IntEnum):
    ERROR = logging.ERROR
    WARNING = logging.WARNING
    SUCCESS = logging.INFO + 1
    INFO = logging.INFO
    DEBUG = logging.DEBUG


logging.addLevelName(LogLevel.SUCCESS.value, LogLevel.SUCCESS.name)
DEFAULT_LOG_LEVEL = LogLevel.INFO.name
DEFAULT_LOG_FORMAT = "%(levelname_semicolon_padded)s %(message)s"
LOG_LEVEL_ENV_VAR_NAME = "ETHRPC_LOG_LEVEL"
HIDDEN_MESSAGE = "[hidden]"

CLICK_STYLE_KWARGS = {
    LogLevel.ERROR: dict(fg="bright_red"),
    LogLevel.WARNING: dict(fg="bright_yellow"),
    LogLevel.SUCCESS: dict(fg="bright_green"),
    LogLevel.INFO: dict(fg="blue"),
    LogLevel.DEBUG: dict(fg="blue"),
}
CLICK_ECHO_KWARGS = {
    LogLevel.ERROR: dict(err=True),
    LogLevel.WARNING: dict(err=True),
    LogLevel.SUCCESS: dict(),
    LogLevel.INFO: dict(),
    LogLevel.DEBUG: dict(),
}


def _isatty(stream: IO) -> bool:
    """Returns ``True`` if the stream is part of a tty.
    Borrowed from ``click._compat``."""
    # noinspection PyBroadException
    try:
        return stream.isatty()
    except Exception:
        return False


class EthRPCColorFormatter(logging.Formatter):
    def __init__(self, fmt: Optional[str] = None):
        super().__init__(fmt=fmt or DEFAULT_LOG_FORMAT)

    def format(self, record):
        record.levelname_semicolon_padded = f"{record.levelname}:".ljust(8)
        if _isatty(sys.stdout) and _isatty(sys.stderr):
            # Only color log messages when sys.stdout and sys.stderr are sent to the terminal.
            level = LogLevel(record.levelno)
            styles: dict[str, Any] = CLICK_STYLE_KWARGS.get(level, {})
            record.levelname_semicolon_padded = click.style(
                record.levelname_semicolon_padded, **styles
            )

        return super().format(record)


class ClickHandler(logging.Handler):
    def __init__(self, echo_kwargs: dict):
        super().__init__()
        self.echo_kwargs = echo_kwargs

    def emit(self, record):
        try:
            msg = self.format(record)
            click.echo(msg, **self.echo_kwargs.get(record.levelno, {}))
        except Exception:
            self.handleError(record)


class EthRPCLogger:
    _mentioned_verbosity_option = False

    def __init__(self, _logger: logging.Logger, fmt: str):
        self.error = _logger.error
        self.warning = _logger.warning
        self.info = _logger.info
        self.debug = _logger.debug
        self._logger = _logger
        self.fmt = fmt
        self.set_level(os.environ.get(LOG_LEVEL_ENV_VAR_NAME) or DEFAULT_LOG_LEVEL)

    @classmethod
    def create(cls, fmt: Optional[str] = None) -> "EthRPCLogger":
        fmt = fmt or DEFAULT_LOG_FORMAT
        _logger = get_logger("ethrpc", fmt=fmt)
        return cls(_logger, fmt)

    def success(self, message: str, *args, **kwargs):
        """
        Log at the ``SUCCESS`` level, which sits between ``INFO`` and ``WARNING``.
        """
        self._logger.log(LogLevel.SUCCESS.value, message, *args, **kwargs)

    @property
    def level(self) -> int:
        return self._logger.level

    def set_level(self, level: Union[str, int, LogLevel]):
        """
        Change the global ethrpc logger log-level.

        Args:
            level (Union[str, int, LogLevel]): The name of the level or the value of the log-level.
        """
        self._logger.setLevel(_get_level(level))

    @contextmanager
    def at_level(self, level: Union[str, int, LogLevel]) -> Iterator:
        """
        Change the log-level in a context.

        Args:
            level (Union[str, int, LogLevel]): The level to use.

        Returns:
            Iterator
        """

        initial_level = self.level
        self.set_level(level)
        try:
            yield
        finally:
            self.set_level(initial_level)

    def log_error(self, err: Exception):
        """
        Avoids logging empty messages.
        """
        message = str(err)
        if message:
            self._logger.error(message)

    def warn_from_exception(self, err: Exception, message: str):
        """
        Warn the user with the given message,
        log the stack-trace of the error at the DEBUG level, and
        mention how to enable DEBUG logging (only once).
        """
        message = self._create_message_from_error(err, message)
        self._logger.warning(message)
        self.log_debug_stack_trace()

    def error_from_exception(self, err: Exception, message: str):
        """
        Log an error to the user with the given message,
        log the stack-trace of the error at the DEBUG level, and
        mention how to enable DEBUG logging (only once).
        """
        message = self._create_message_from_error(err, message)
        self._logger.error(message)
        self.log_debug_stack_trace()

    def _create_message_from_error(self, err: Exception, message: str):
        err_type_name = getattr(type(err), "__name__", "Exception")
        message = f"{message}\n\t{err_type_name}: {err}"
        if not self._mentioned_verbosity_option:
            message += f"\n\t(Set ${LOG_LEVEL_ENV_VAR_NAME}=DEBUG to see full stack-trace)"
            EthRPCLogger._mentioned_verbosity_option = True

        return message

    def log_debug_stack_trace(self):
        stack_trace = traceback.format_exc()
        self._logger.debug(stack_trace)


def _format_logger(_logger: logging.Logger, fmt: str):
    handler = ClickHandler(echo_kwargs=CLICK_ECHO_KWARGS)
    handler.setFormatter(EthRPCColorFormatter(fmt=fmt))

    # Remove existing handler(s)
    for existing_handler in _logger.handlers[:]:
        if isinstance(existing_handler, ClickHandler):
            _logger.removeHandler(existing_handler)

    _logger.addHandler(handler)


def get_logger(name: str, fmt: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the given ``name`` and configure it for usage with ethrpc.

    Args:
        name (str): The name of the logger.
        fmt (Optional[str]): The format of the logger. Defaults to
          ``"%(levelname_semicolon_padded)s %(message)s"``.

    Returns:
        ``logging.Logger``
    """
    _logger = logging.getLogger(name)
    _format_logger(_logger, fmt=fmt or DEFAULT_LOG_FORMAT)
    return _logger


def _get_level(level: Optional[Union[str, int, LogLevel]] = None) -> str:
    if level is None:
        return DEFAULT_LOG_LEVEL
    elif isinstance(level, LogLevel):
        return level.name
    elif isinstance(level, int) or (isinstance(level, str) and level.isnumeric()):
        return LogLevel(int(level)).name
    elif isinstance(level, str) and level.lower().startswith("loglevel."):
        # Handle 'LogLevel.' prefix.
        return level.split(".")[-1].strip().upper()

    return level.upper()


def sanitize_url(url: str) -> str:
    """Removes sensitive information from given URL"""

    url_obj = URL(url).with_user(None).with_password(None)

    # If there is a path, hide it but show that you are hiding it.
    # Use string interpolation to prevent URL-character encoding.
    if url_obj.path in ("", "/"):
        return f"{url_obj}"

    return f"{url_obj.with_path('')}/{HIDDEN_MESSAGE}"


logger = EthRPCLogger.create()


__all__ = ["DEFAULT_LOG_LEVEL", "logger", "LogLevel", "EthRPCLogger", "get_logger", "sanitize_url"]
