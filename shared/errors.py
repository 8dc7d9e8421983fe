"""
Shared error handling for the Kube Auth Mock.

Every error leaves the service as ``{"success": false, "error": "<message>"}``,
the body shape test harnesses already parse. The status code travels with the
exception so handlers never have to guess it.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = False
    error: str


class KubeAuthException(Exception):
    """Base exception for Kube Auth Mock services."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message)


class MalformedRequestError(KubeAuthException):
    """Request body could not be decoded into the expected payload."""

    status_code = 400

    def __init__(self, message: str = "Malformed request", details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_REQUEST", message, details)


class MethodNotImplementedError(KubeAuthException):
    """A known route was called with a method it does not serve."""

    status_code = 501

    def __init__(self, expectation: str, method: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "METHOD_NOT_IMPLEMENTED",
            f"{expectation} but got \"{method}\"",
            details,
        )


class RouteNotImplementedError(KubeAuthException):
    """No route matches the request target."""

    status_code = 501

    def __init__(self, target: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("ROUTE_NOT_IMPLEMENTED", f"unimplemented request: {target}", details)


class IssuanceError(KubeAuthException):
    """Key generation or token signing failed."""

    status_code = 500

    def __init__(self, message: str = "Token issuance failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("ISSUANCE_ERROR", message, details)
