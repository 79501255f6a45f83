# 📄 File: app/shared/utils/logging.py

# 🧭 Purpose (Layman Explanation):
# This file sets up a smart logging system that records what happens in the app in a structured way,
# making it easy to see which farmer hit a rate limit, why a login failed, or when a retry happened.

# 🧪 Purpose (Technical Summary):
# Implements structured logging with JSON formatting, request-scoped contextual information
# and security event helpers used by the admission pipeline.

# 🔗 Dependencies:
# - python-json-logger: JSON log formatting
# - logging: Python standard logging
# - contextvars: Request context tracking

# 🔄 Connected Modules / Calls From:
# Used by: request logging middleware, rate limiter, authenticator, ownership authorizer,
# error classifier and retry orchestrator

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Optional
from uuid import uuid4

from pythonjsonlogger import jsonlogger

from app.shared.config.settings import get_settings

# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
# Holder created per request by log_context; bind_user fills it once the caller is known
user_scope_var: ContextVar[Optional[Dict[str, str]]] = ContextVar('user_scope', default=None)

_logging_configured = False
_loggers_cache: Dict[str, "StructuredLogger"] = {}

SERVICE_NAME = 'krishivedha-api'


class ContextFilter(logging.Filter):
    """
    Adds request ID, user ID, hostname and service name to every record
    so both the JSON and the text formatter can reference them.
    """

    def __init__(self):
        super().__init__()
        self.hostname = os.uname().nodename if hasattr(os, 'uname') else 'unknown'

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get('')
        scope = user_scope_var.get()
        record.user_id = scope['user_id'] if scope else ''
        record.hostname = self.hostname
        record.service = SERVICE_NAME
        return True


class JSONFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that flattens ``extra_fields`` into the log entry."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        extra_fields = getattr(record, 'extra_fields', None)
        if extra_fields:
            log_record.update(extra_fields)
            log_record.pop('extra_fields', None)
        if not log_record.get('request_id'):
            log_record.pop('request_id', None)
        if not log_record.get('user_id'):
            log_record.pop('user_id', None)


class SecurityLogger:
    """
    Logger for security-related events and audit trails.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_authentication(
        self,
        reason: str,
        success: bool,
        ip_address: Optional[str] = None,
        path: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        """Log authentication events."""
        extra_fields = {
            'event_type': 'authentication',
            'reason': reason,
            'success': success,
        }
        if ip_address:
            extra_fields['ip_address'] = ip_address
        if path:
            extra_fields['path'] = path
        if user_id:
            extra_fields['principal_id'] = user_id

        level = logging.INFO if success else logging.WARNING
        self.logger.log(
            level,
            f"Authentication {'succeeded' if success else 'failed'}: {reason}",
            extra={'extra_fields': extra_fields}
        )

    def log_authorization(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        granted: bool,
        reason: Optional[str] = None,
    ):
        """Log authorization events."""
        extra_fields = {
            'event_type': 'authorization',
            'principal_id': user_id,
            'resource_type': resource_type,
            'resource_id': resource_id,
            'granted': granted,
        }
        if reason:
            extra_fields['reason'] = reason

        level = logging.INFO if granted else logging.WARNING
        self.logger.log(
            level,
            f"Authorization on {resource_type}:{resource_id} for user {user_id} - "
            f"{'granted' if granted else 'denied'}",
            extra={'extra_fields': extra_fields}
        )


class StructuredLogger:
    """
    Enhanced logger with structured logging capabilities.

    Keyword arguments passed to the level methods become structured
    fields on the emitted record.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.security = SecurityLogger(self.logger)

    def debug(self, message: str, extra: Dict = None, **kwargs):
        self._log(logging.DEBUG, message, extra, **kwargs)

    def info(self, message: str, extra: Dict = None, **kwargs):
        self._log(logging.INFO, message, extra, **kwargs)

    def warning(self, message: str, extra: Dict = None, **kwargs):
        self._log(logging.WARNING, message, extra, **kwargs)

    def error(self, message: str, extra: Dict = None, exc_info: Any = False, **kwargs):
        self._log(logging.ERROR, message, extra, exc_info=exc_info, **kwargs)

    def _log(self, level: int, message: str, extra: Dict = None, **kwargs):
        """Internal log method with extra fields handling."""
        extra_fields = dict(extra or {})

        for key, value in kwargs.items():
            if key not in ['exc_info', 'stack_info', 'stacklevel']:
                extra_fields[key] = value

        clean_kwargs = {k: v for k, v in kwargs.items()
                        if k in ['exc_info', 'stack_info', 'stacklevel']}

        if extra_fields:
            clean_kwargs['extra'] = {'extra_fields': extra_fields}

        self.logger.log(level, message, **clean_kwargs)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Setup application logging configuration.

    Installs a single stdout handler on the root logger with either the
    JSON or the text formatter. Calling it more than once is a no-op.
    """
    global _logging_configured

    if _logging_configured:
        return logging.getLogger("startup")

    settings = get_settings()
    log_level = log_level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format.lower() == 'json':
        formatter = JSONFormatter('%(asctime)s %(message)s %(request_id)s %(user_id)s %(service)s')
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ContextFilter())
    root_logger.addHandler(console_handler)

    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)

    _logging_configured = True
    return logging.getLogger("startup")


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        StructuredLogger instance
    """
    if name in _loggers_cache:
        return _loggers_cache[name]

    logger = StructuredLogger(name)
    _loggers_cache[name] = logger
    return logger


@contextmanager
def log_context(request_id: Optional[str] = None, user_id: Optional[str] = None):
    """
    Context manager for adding contextual information to logs.

    Args:
        request_id: Request identifier (generated when omitted)
        user_id: Authenticated principal identifier
    """
    if request_id is None:
        request_id = str(uuid4())

    scope = {'user_id': user_id or ''}
    request_token = request_id_var.set(request_id)
    user_token = user_scope_var.set(scope)

    try:
        yield {'request_id': request_id, 'user_id': user_id}
    finally:
        request_id_var.reset(request_token)
        user_scope_var.reset(user_token)


def bind_user(user_id: str) -> None:
    """Attach the authenticated user to the log context of the current request."""
    scope = user_scope_var.get()
    if scope is not None:
        scope['user_id'] = user_id
