from .type import LoggerConfig
from .constant import LogLevel
from .logger import Logger, ILogger

__all__ = [
    "Logger",
    "ILogger",
    "LoggerConfig",
    "LogLevel",
]
