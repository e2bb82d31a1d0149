"""Error taxonomy and startup diagnostics for the Platform API MCP Gateway."""

import logging
from typing import Dict, Any, Optional, List

from ..models.schema import CompilationWarning
from ..models.tool import ToolBuildFailure

__all__ = [
    "GatewayError",
    "ConfigurationError",
    "SchemaFetchError",
    "SchemaCompilationError",
    "RegistrationError",
    "ProxyCallError",
    "CompilationWarning",
    "ErrorHandler",
]

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base exception class for gateway errors."""
    def __init__(self, message: str, error_code: str = "GATEWAY_ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(GatewayError):
    """Missing or invalid startup configuration (endpoints, token)."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


class SchemaFetchError(GatewayError):
    """Schema retrieval failed: network, non-success status or malformed body."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "SCHEMA_FETCH_ERROR", details)


class SchemaCompilationError(GatewayError):
    """A schema document could not be turned into a parameter contract."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "SCHEMA_COMPILE_ERROR", details)


class RegistrationError(GatewayError):
    """Tool registration with the MCP server failed."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "REGISTRATION_ERROR", details)


class ProxyCallError(GatewayError):
    """Remote endpoint call failed at invocation time."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PROXY_CALL_ERROR", details)


class ErrorHandler:
    """Collects per-endpoint startup failures.

    The registry reports every skipped endpoint here instead of only logging
    it, so callers can inspect what happened after ``setup_tools`` returns.
    """

    def __init__(self):
        self._failures: List[ToolBuildFailure] = []

    def handle_error(self, endpoint_id: str, error: Exception, stage: str) -> ToolBuildFailure:
        """Log an endpoint failure and record it as a structured diagnostic."""
        failure = ToolBuildFailure(endpoint_id=endpoint_id, stage=stage, reason=str(error))
        self._log_error(failure, error)
        self._failures.append(failure)
        return failure

    def _log_error(self, failure: ToolBuildFailure, error: Exception) -> None:
        if isinstance(error, (SchemaFetchError, RegistrationError)):
            logger.error(f"Endpoint {failure.endpoint_id} - {type(error).__name__} during {failure.stage}: {failure.reason}")
        elif isinstance(error, SchemaCompilationError):
            logger.warning(f"Endpoint {failure.endpoint_id} - schema rejected: {failure.reason}")
        else:
            logger.error(
                f"Endpoint {failure.endpoint_id} - unexpected error during {failure.stage}: {failure.reason}",
                exc_info=error,
            )

    @property
    def failures(self) -> List[ToolBuildFailure]:
        return list(self._failures)

    def summary(self) -> Dict[str, int]:
        """Count recorded failures per stage."""
        counts: Dict[str, int] = {}
        for failure in self._failures:
            counts[failure.stage] = counts.get(failure.stage, 0) + 1
        return counts

