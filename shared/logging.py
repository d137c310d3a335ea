"""
Shared logging configuration for the CloudWatch exporter.
"""

import sys
import structlog
import logging
import time
from typing import Any, Dict, Optional
from contextvars import ContextVar

# Context variables for correlation
flush_id_var: ContextVar[Optional[str]] = ContextVar('flush_id', default=None)
region_var: ContextVar[Optional[str]] = ContextVar('region', default=None)


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structured logging for a service."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_flush_context,
            add_timestamp,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # botocore is chatty at DEBUG; keep it one notch quieter than us
    logging.getLogger("botocore").setLevel(
        max(getattr(logging, log_level.upper()), logging.INFO)
    )


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service context to log events."""
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["service"] = logger_name.split(".")[0]

    return event_dict


def add_flush_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the current flush and destination region to log events."""
    flush_id = flush_id_var.get()
    if flush_id:
        event_dict["flush_id"] = flush_id

    region = region_var.get()
    if region:
        event_dict.setdefault("region", region)

    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add high-precision timestamp to log events."""
    event_dict["timestamp"] = time.time()
    return event_dict


def set_flush_context(flush_id: Optional[str] = None, region: Optional[str] = None):
    """Set flush context in logging."""
    if flush_id:
        flush_id_var.set(flush_id)
    if region:
        region_var.set(region)


def clear_context():
    """Clear all context variables."""
    flush_id_var.set(None)
    region_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
