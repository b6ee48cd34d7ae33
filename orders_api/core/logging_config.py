"""
Structured JSON logging for the orders service.

Every record is one JSON document on stdout carrying the service name,
environment, source location and, when known, the request context
(request id, correlation id, Pub/Sub message id).
"""

import json
import logging
import os
import re
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
message_id_var: ContextVar[Optional[str]] = ContextVar('pubsub_message_id', default=None)

class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON documents"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "@timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": os.getenv('SERVICE_NAME', 'orders-service'),
            "environment": os.getenv('ENVIRONMENT', 'development'),
            "version": os.getenv('SERVICE_VERSION', '1.0.0'),
            "location": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        trace = get_request_context()
        if trace:
            log_obj["trace"] = trace

        if record.exc_info:
            log_obj["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        if hasattr(record, 'extra_fields'):
            log_obj["custom"] = record.extra_fields

        return json.dumps(log_obj, default=str, ensure_ascii=False)

class SecurityFilter(logging.Filter):
    """Mask API key values that end up in a log message"""

    PATTERN = re.compile(r"(x-api-key|api_key|authorization)(\"?\s*[:=]\s*\"?)([^\s\",}]+)", re.IGNORECASE)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = self.PATTERN.sub(r"\1\2***REDACTED***", message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True

def setup_logging(service_name: str, level: str = "INFO") -> None:
    """
    Configure the root logger for the service

    Args:
        service_name: Name reported in every record
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    os.environ['SERVICE_NAME'] = service_name

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    console_handler.addFilter(SecurityFilter())
    root_logger.addHandler(console_handler)

    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)

    root_logger.info(
        "Logging initialized",
        extra={'extra_fields': {'service': service_name, 'level': level}}
    )

class LoggerAdapter(logging.LoggerAdapter):
    """Inject the current request context into every record"""

    def process(self, msg, kwargs):
        extra = kwargs.get('extra', {})
        extra.update(get_request_context())
        kwargs['extra'] = extra
        return msg, kwargs

def get_logger(name: str) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name), {})

def get_request_context() -> Dict[str, Any]:
    context = {}
    if request_id_var.get():
        context["request_id"] = request_id_var.get()
    if correlation_id_var.get():
        context["correlation_id"] = correlation_id_var.get()
    if message_id_var.get():
        context["pubsub_message_id"] = message_id_var.get()
    return context

def set_request_context(
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    message_id: Optional[str] = None
) -> None:
    if request_id:
        request_id_var.set(request_id)
    if correlation_id:
        correlation_id_var.set(correlation_id)
    if message_id:
        message_id_var.set(message_id)

def generate_request_id() -> str:
    return str(uuid.uuid4())

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with its outcome and duration
    Propagates X-Request-ID back to the caller
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get('X-Request-ID') or generate_request_id()
        set_request_context(
            request_id=request_id,
            correlation_id=request.headers.get('X-Correlation-ID')
        )

        logger = get_logger(__name__)
        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={'extra_fields': {
                'method': request.method,
                'path': request.url.path,
                'client_host': request.client.host if request.client else None
            }}
        )

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                exc_info=True,
                extra={'extra_fields': {'duration_ms': (time.time() - start_time) * 1000}}
            )
            raise

        logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={'extra_fields': {
                'method': request.method,
                'path': request.url.path,
                'status_code': response.status_code,
                'duration_ms': (time.time() - start_time) * 1000
            }}
        )
        response.headers['X-Request-ID'] = request_id
        return response
