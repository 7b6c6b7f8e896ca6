"""Gateway error taxonomy.

Policy rejections and provider failures are ordinary results, not exceptions.
Only the classes below leave the gateway as errors, each with the HTTP status
it maps to.
"""
from typing import Optional


class GatewayError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_body(self) -> dict:
        return {"error": self.message, "code": self.code}


class ActionNotFoundError(GatewayError):
    status_code = 404
    code = "not_found"


class PayloadValidationError(GatewayError):
    """The stored payload (or the credentials it needs) cannot be dispatched."""

    status_code = 400
    code = "invalid_payload"


class PersistenceError(GatewayError):
    """One or more of the gateway's own writes failed.

    Raised only after every remaining write was still attempted.
    """

    status_code = 500
    code = "persistence_failed"

    def __init__(self, message: str, failed_steps: Optional[list[str]] = None):
        super().__init__(message)
        self.failed_steps = failed_steps or []
