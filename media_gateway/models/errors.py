"""
Error taxonomy for the media gateway.

Every caller-visible failure is a `GatewayError` carrying an HTTP status and a
short category message. Diagnostic detail goes to the log, never into the
message.
"""

from typing import Optional


class GatewayError(Exception):
    """Base exception for caller-visible gateway failures."""

    status_code = 500

    def __init__(self, code: str, message: str, status_code: Optional[int] = None):
        self.code = code
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> dict:
        return {"error": self.message}


class InvalidInputError(GatewayError):
    status_code = 400

    def __init__(self, message: str = "Invalid input"):
        super().__init__("INVALID_INPUT", message)


class UnauthenticatedError(GatewayError):
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__("UNAUTHENTICATED", message)


class AccessDeniedError(GatewayError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__("ACCESS_DENIED", message)


class ObjectNotFoundError(GatewayError):
    status_code = 404

    def __init__(self, message: str = "File not found"):
        super().__init__("NOT_FOUND", message)


class RateLimitedError(GatewayError):
    status_code = 429

    def __init__(self, message: str = "Too many requests"):
        super().__init__("RATE_LIMITED", message)


class MisconfiguredError(GatewayError):
    status_code = 500

    def __init__(self, message: str = "Storage not configured"):
        super().__init__("MISCONFIGURED", message)


class DependencyUnavailableError(GatewayError):
    status_code = 500

    def __init__(self, message: str = "Dependency unavailable"):
        super().__init__("DEPENDENCY_UNAVAILABLE", message)


class SignerError(Exception):
    """Raised by a signer when a URL cannot be produced."""


class AccessOracleError(Exception):
    """Raised by an access oracle on transport or protocol failure."""
