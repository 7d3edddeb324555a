import sys
from typing import Optional, Iterator, Protocol, runtime_checkable
from contextvars import ContextVar
from contextlib import contextmanager
from loguru import logger as _loguru_logger  # type: ignore

from .constant import *
from .type import LoggerConfig

# Delivery context (async-safe), rendered on every log line
_consumer_tag_var: ContextVar[Optional[str]] = ContextVar(CONSUMER_TAG_KEY, default=None)
_delivery_tag_var: ContextVar[Optional[int]] = ContextVar(DELIVERY_TAG_KEY, default=None)


@runtime_checkable
class ILogger(Protocol):
    """Protocol defining the Logger interface."""

    def delivery_context(
        self, consumer_tag: Optional[str] = None, delivery_tag: Optional[int] = None
    ) -> Iterator[None]: ...

    def get_consumer_tag(self) -> Optional[str]: ...

    def get_delivery_tag(self) -> Optional[int]: ...

    def debug(self, message: str, **kwargs) -> None: ...

    def info(self, message: str, **kwargs) -> None: ...

    def warning(self, message: str, **kwargs) -> None: ...

    def error(self, message: str, **kwargs) -> None: ...

    def exception(self, message: str, **kwargs) -> None: ...


class Logger(ILogger):
    """loguru wrapper that tags lines with the delivery being handled.

    Logger(config) installs a console handler and replaces loguru's
    defaults; it is meant to be built once by the application. Logger()
    without a config only forwards to loguru and leaves its handlers
    alone, which is what the library classes use when none is injected.

    Usage:
        logger = Logger(LoggerConfig(level="DEBUG"))

        with logger.delivery_context(consumer_tag="ctag-1", delivery_tag=42):
            logger.info("Processing delivery")
    """

    def __init__(self, config: Optional[LoggerConfig] = None):
        self.config = config
        self._loguru = _loguru_logger

        if config is None:
            return

        self._loguru.remove()

        if self.config.enable_console:
            self._add_console_handler()

    def _add_console_handler(self) -> None:
        service_name = self.config.service_name

        def patch_record(record):
            """Copy the delivery context into the record."""
            consumer_tag = _consumer_tag_var.get()
            delivery_tag = _delivery_tag_var.get()

            record["extra"][SERVICE_KEY] = service_name
            record["extra"][CONSUMER_TAG_KEY] = consumer_tag or "-"
            record["extra"][DELIVERY_TAG_KEY] = "-" if delivery_tag is None else delivery_tag

            return True

        format_str = (
            f"{LOG_FORMAT_TIME} | {LOG_FORMAT_LEVEL} | {LOG_FORMAT_SERVICE} | "
            f"{LOG_FORMAT_DELIVERY} | {LOG_FORMAT_LOCATION} - {LOG_FORMAT_MESSAGE}"
        )

        self._loguru.add(
            sys.stdout,
            colorize=self.config.colorize,
            format=format_str,
            level=self.config.level.value,
            filter=patch_record,
        )

    @contextmanager
    def delivery_context(
        self, consumer_tag: Optional[str] = None, delivery_tag: Optional[int] = None
    ):
        """Tag log lines emitted inside the block with a delivery.

        Args:
            consumer_tag: Consumer tag of the subscription
            delivery_tag: Broker delivery tag of the message
        """
        consumer_token = _consumer_tag_var.set(consumer_tag)
        delivery_token = _delivery_tag_var.set(delivery_tag)

        try:
            yield
        finally:
            _delivery_tag_var.reset(delivery_token)
            _consumer_tag_var.reset(consumer_token)

    def get_consumer_tag(self) -> Optional[str]:
        return _consumer_tag_var.get()

    def get_delivery_tag(self) -> Optional[int]:
        return _delivery_tag_var.get()

    def debug(self, message: str, **kwargs) -> None:
        self._loguru.opt(depth=1).debug(message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._loguru.opt(depth=1).info(message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._loguru.opt(depth=1).warning(message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._loguru.opt(depth=1).error(message, **kwargs)

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback."""
        self._loguru.opt(depth=1).exception(message, **kwargs)

    def bind(self, **kwargs):
        """Bind extra fields, returning the underlying loguru logger."""
        return self._loguru.bind(**kwargs)


__all__ = [
    "Logger",
    "ILogger",
    "LoggerConfig",
]
