from __future__ import annotations

import json
import logging
import sys
import textwrap
from typing import TYPE_CHECKING, Any

from colorama import Fore, Style, just_fix_windows_console

if TYPE_CHECKING:
    from ribot.configuration import Configuration

just_fix_windows_console()

_LOG_NAME_COLOR = Fore.LIGHTBLACK_EX

_LOG_LEVEL_COLOR = {
    logging.DEBUG: Fore.BLUE,
    logging.INFO: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED,
}

_LOG_LEVEL_SHORT_ALIAS = {
    logging.DEBUG: 'DEBUG',
    logging.INFO: 'INFO ',
    logging.WARNING: 'WARN ',
    logging.ERROR: 'ERROR',
}

# Keeps continuation lines aligned with the message column
_LOG_MESSAGE_INDENT = ' ' * 6


def get_configured_log_level(config: Configuration) -> int:
    if 'log_level' in config.model_fields_set:
        return logging.getLevelName(config.log_level)

    if sys.flags.dev_mode:
        return logging.DEBUG

    return logging.INFO


def configure_logger(logger: logging.Logger, config: Configuration, *, remove_old_handlers: bool = False) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(RibotLogFormatter())

    if remove_old_handlers:
        for old_handler in logger.handlers[:]:
            logger.removeHandler(old_handler)

    logger.addHandler(handler)
    logger.setLevel(get_configured_log_level(config))


class RibotLogFormatter(logging.Formatter):
    """Log formatter printing the colored level, the message, the extra fields as JSON and an indented traceback.

    A formatted line looks like `[ribot.spider] INFO  Crawl finished ({"requests_finished": 3})`.
    """

    # Extra fields passed with `logger.log(..., extra={...})` end up as plain attributes of the record, so they are
    # found by diffing against the attributes of an empty record.
    empty_record = logging.LogRecord('dummy', 0, 'dummy', 0, 'dummy', None, None)

    def __init__(
        self,
        include_logger_name: bool = True,  # noqa: FBT001, FBT002
        *args: Any,
        **kwargs: Any,
    ) -> None:
        """Initialize a new instance.

        Args:
            include_logger_name: Include logger name at the beginning of the log line.
            args: Arguments passed to the parent class.
            kwargs: Keyword arguments passed to the parent class.
        """
        super().__init__(*args, **kwargs)
        self.include_logger_name = include_logger_name

    def _get_extra_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        return {key: value for key, value in record.__dict__.items() if key not in self.empty_record.__dict__}

    def format(self, record: logging.LogRecord) -> str:
        logger_name_string = f'{_LOG_NAME_COLOR}[{record.name}]{Style.RESET_ALL} '

        level_color_code = _LOG_LEVEL_COLOR.get(record.levelno, '')
        level_short_alias = _LOG_LEVEL_SHORT_ALIAS.get(record.levelno, record.levelname)
        level_string = f'{level_color_code}{level_short_alias}{Style.RESET_ALL} '

        extra_string = ''
        extra = self._get_extra_fields(record)
        if extra:
            extra_string = (
                f' {Fore.LIGHTBLACK_EX}({json.dumps(extra, ensure_ascii=False, default=str)}){Style.RESET_ALL}'
            )

        # Populates `record.message` and `record.exc_text`
        super().format(record)

        log_string = textwrap.indent(self.formatMessage(record), _LOG_MESSAGE_INDENT).lstrip()

        exception_string = ''
        if record.exc_text:
            exception_string = '\n' + textwrap.indent(record.exc_text.rstrip(), _LOG_MESSAGE_INDENT)

        if self.include_logger_name:
            return f'{logger_name_string}{level_string}{log_string}{extra_string}{exception_string}'

        return f'{level_string}{log_string}{extra_string}{exception_string}'
