"""
Structured Logging Configuration

Provides:
- JSON structured logging for production
- Colorized console output for development
- Performance logging decorator for search paths

Usage:
    from core.logging_config import setup_logging, get_logger

    # At startup
    setup_logging(level='INFO', json_format=True)

    # In modules
    logger = get_logger(__name__)
    logger.info('Message', extra={'doc_count': 12})
"""

import logging
import json
import sys
import time
import traceback
from datetime import datetime, timezone
from functools import wraps

# Attributes present on every LogRecord; anything else came from ``extra``.
_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'asctime', 'taskName',
))


def _extra_fields(record):
    """Fields passed via ``extra=`` on the logging call."""
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith('_')
    }


# =============================================================================
# Custom Formatters
# =============================================================================

class JSONFormatter(logging.Formatter):
    """One JSON object per line, including any ``extra`` fields."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc)
                                 .isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        log_entry.update(_extra_fields(record))

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_entry, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Human-readable console output.

    The level name is coloured; ``extra`` fields are appended as
    ``key=value`` pairs, with ``duration_ms`` shown last in parentheses.
    """

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'
    TIME_FORMAT = '%H:%M:%S'

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, '')
        when = datetime.fromtimestamp(record.created).strftime(self.TIME_FORMAT)
        line = f'{when} {color}{record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}'

        extras = _extra_fields(record)
        duration = extras.pop('duration_ms', None)
        if extras:
            line += ' ' + ' '.join(f'{k}={v}' for k, v in sorted(extras.items()))
        if duration is not None:
            line += f' ({duration}ms)'

        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


# =============================================================================
# Logger Setup
# =============================================================================

def setup_logging(level='INFO', json_format=False, stream=None):
    """
    Configure the root logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format instead of colored console output
        stream: Output stream (default: stdout)

    Returns:
        The configured root logger
    """
    numeric_level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Replace rather than stack handlers on repeated calls
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(numeric_level)

    if json_format:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter())

    root_logger.addHandler(console_handler)

    root_logger.debug('Logging configured', extra={
        'format': 'json' if json_format else 'colored',
        'log_level': level
    })

    return root_logger


def get_logger(name):
    """Return the named logger."""
    return logging.getLogger(name)


# =============================================================================
# Performance Logging Decorator
# =============================================================================

def log_performance(logger_name=None):
    """
    Decorator to log function performance.

    Usage:
        @log_performance('docretrieval.search')
        def search(self, query, top_k):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(logger_name or func.__module__)
            start_time = time.perf_counter()

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration_ms = int((time.perf_counter() - start_time) * 1000)
                logger.error(
                    f'{func.__name__} failed: {str(e)}',
                    extra={
                        'function': func.__name__,
                        'duration_ms': duration_ms,
                        'error_type': type(e).__name__,
                    }
                )
                raise

            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.debug(
                f'{func.__name__} completed',
                extra={
                    'function': func.__name__,
                    'duration_ms': duration_ms,
                }
            )
            return result

        return wrapper
    return decorator
