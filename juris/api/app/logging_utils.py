import logging
import re
from typing import Any

_CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def sanitize_log_value(value: Any, max_length: int = 512) -> str:
    """
    Normalize user-controlled values before they reach log sinks.

    Inbound notification subjects and bodies come straight from the internet;
    newlines are escaped, control characters replaced and the final length
    limited so a crafted email cannot forge multi-line log entries.
    """
    if value is None:
        return "<none>"

    text = str(value)
    text = text.replace("\r", "\\r").replace("\n", "\\n")
    text = _CONTROL_CHAR_PATTERN.sub("?", text)

    if len(text) > max_length:
        text = text[:max_length] + "...[truncated]"

    return text


class LogSanitizerFilter(logging.Filter):
    """Filter that sanitizes log arguments to prevent log injection.

    Numeric arguments pass through unchanged so %d and %f placeholders still
    format.
    """

    def __init__(self, max_length: int = 512):
        super().__init__("juris-log-sanitizer")
        self.max_length = max_length

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.args:
            return True

        if isinstance(record.args, tuple):
            record.args = tuple(self._sanitize(arg) for arg in record.args)
        elif isinstance(record.args, dict):
            record.args = {key: self._sanitize(val) for key, val in record.args.items()}

        return True

    def _sanitize(self, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return value
        return sanitize_log_value(value, self.max_length)


def install_log_sanitizer(
    target_logger: logging.Logger | None = None, max_length: int = 512
) -> None:
    """
    Attach the sanitizer filter to the provided logger (defaults to root).

    This runs once per process; subsequent calls are ignored.
    """
    logger = target_logger or logging.getLogger()
    for existing in logger.filters:
        if isinstance(existing, LogSanitizerFilter):
            return
    logger.addFilter(LogSanitizerFilter(max_length))


def configure_logging(level: str = "INFO") -> None:
    """Basic stream logging for the API process.

    Logger filters only see records emitted on that logger, so the sanitizer
    is also attached to the root handlers to cover propagated records.
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    install_log_sanitizer()
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, LogSanitizerFilter) for f in handler.filters):
            handler.addFilter(LogSanitizerFilter())
