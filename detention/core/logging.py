"""
Logging Configuration and Utilities

Configures standard library logging through dictConfig with a JSON
formatter (python-json-logger) and a coloured console formatter (colorlog),
and provides a context-carrying logger adapter.
"""

import logging
import logging.config
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

# Context variables for request tracking
request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

SERVICE_NAME = "detention-scheduler"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter for structured logging"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['service'] = SERVICE_NAME

        req_id = request_id.get()
        if req_id:
            log_record['request_id'] = req_id

        uid = user_id.get()
        if uid:
            log_record['user_id'] = uid

        if record.exc_info:
            log_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info),
            }


class LoggingConfig:
    """Centralized logging configuration"""

    @staticmethod
    def build_config(
        level: str = "INFO",
        log_format: str = "text",
        log_file: Optional[str] = None,
        colored: bool = False,
    ) -> Dict[str, Any]:
        if log_format == "json":
            console_formatter = "json"
        elif colored:
            console_formatter = "colored"
        else:
            console_formatter = "standard"

        handlers: Dict[str, Any] = {
            'console': {
                'level': level,
                'class': 'logging.StreamHandler',
                'formatter': console_formatter,
            },
        }
        if log_file:
            handlers['file'] = {
                'level': level,
                'class': 'logging.handlers.RotatingFileHandler',
                'filename': log_file,
                'maxBytes': 10485760,  # 10MB
                'backupCount': 10,
                'formatter': 'json',
                'encoding': 'utf8',
            }

        return {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'standard': {
                    'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
                },
                'json': {
                    '()': CustomJsonFormatter,
                    'format': '%(asctime)s %(name)s %(levelname)s %(message)s',
                },
                'colored': {
                    '()': 'colorlog.ColoredFormatter',
                    'format': '%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                    'log_colors': {
                        'DEBUG': 'cyan',
                        'INFO': 'green',
                        'WARNING': 'yellow',
                        'ERROR': 'red',
                        'CRITICAL': 'red,bg_white',
                    },
                },
            },
            'handlers': handlers,
            'loggers': {
                '': {
                    'handlers': list(handlers),
                    'level': level,
                },
                'uvicorn.access': {'level': 'WARNING'},
                'sqlalchemy.engine': {'level': 'WARNING'},
                'httpx': {'level': 'WARNING'},
            },
        }

    @staticmethod
    def configure(
        level: str = "INFO",
        log_format: str = "text",
        log_file: Optional[str] = None,
        colored: bool = False,
    ) -> None:
        logging.config.dictConfig(
            LoggingConfig.build_config(level, log_format, log_file, colored)
        )


class LoggerAdapter:
    """Enhanced logger adapter with context management"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._context: Dict[str, Any] = {}

    def add_context(self, **kwargs):
        """Add context to all log messages"""
        self._context.update(kwargs)
        return self

    def _log(self, level: int, message: str, *args, **kwargs):
        """Internal log method with context"""
        extra = dict(kwargs.get('extra') or {})
        extra.update(self._context)
        kwargs['extra'] = extra

        self.logger.log(level, message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs):
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs):
        self._log(logging.CRITICAL, message, *args, **kwargs)


def get_logger(name: Optional[str] = None) -> LoggerAdapter:
    """
    Get configured logger instance.

    Args:
        name: Logger name (defaults to the package logger)

    Returns:
        Enhanced logger adapter
    """
    return LoggerAdapter(logging.getLogger(name or "detention"))


def setup_logging(settings) -> None:
    """Initialize logging configuration from application settings"""
    LoggingConfig.configure(
        level=settings.LOG_LEVEL,
        log_format=settings.LOG_FORMAT,
        log_file=settings.LOG_FILE,
        colored=settings.is_development(),
    )
    get_logger(__name__).info(
        "Logging system initialized",
        extra={'log_level': settings.LOG_LEVEL, 'log_format': settings.LOG_FORMAT},
    )


__all__ = [
    'get_logger',
    'setup_logging',
    'LoggerAdapter',
    'LoggingConfig',
    'CustomJsonFormatter',
    'request_id',
    'user_id',
]
