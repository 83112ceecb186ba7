"""
Gateway Errors

Every pipeline stage either returns a typed result or raises one of these.
The FastAPI handler in main.py turns them into JSON or plain-text responses
depending on the request mode.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """
    Terminal, user-visible failure.

    Attributes:
        status_code: HTTP status to answer with
        code: Short machine-checkable code
        error: Short title of the failure
        message: Human-readable detail (the plain-text body)
        context: Extra fields included in the JSON body
    """
    status_code: int = 500
    code: str = "internal_error"
    error: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.error
        self.context: Dict[str, Any] = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "error": self.error,
            "message": self.message,
            **self.context,
        }


class InvalidIdentifier(GatewayError):
    status_code = 400
    code = "invalid_identifier"
    error = "Invalid work id"


class Unauthenticated(GatewayError):
    status_code = 401
    code = "unauthenticated"
    error = "Invalid or missing API key"


class PaymentIneligible(GatewayError):
    status_code = 403
    code = "payment_required"
    error = "Payment required"


class UpstreamLocationAbsent(GatewayError):
    status_code = 404
    code = "upstream_location_absent"
    error = "No best_oa_location for this work"


class ArtifactAbsent(GatewayError):
    status_code = 404
    code = "artifact_absent"
    error = "Artifact not found"


class IndexStoreFault(GatewayError):
    status_code = 500
    code = "index_store_fault"
    error = "Internal server error (DynamoDB)"


class MalformedUpstreamReference(GatewayError):
    status_code = 502
    code = "malformed_upstream_reference"
    error = "Unrecognized best_oa_location.id format"
