"""
Shared error handling for the CloudWatch exporter.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class ExporterException(Exception):
    """Base exception for exporter services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(ExporterException):
    """Invalid or unreadable exporter configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class CredentialResolutionError(ExporterException):
    """Credentials could not be resolved from config or instance metadata."""

    def __init__(self, message: str = "Credential resolution failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("CREDENTIAL_ERROR", message, details)


class ExportError(ExporterException):
    """A single PutMetricData call failed."""

    def __init__(self, namespace: str, message: str = "PutMetricData failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXPORT_ERROR", f"{namespace}: {message}", details)
        self.namespace = namespace
