"""
Gateway error taxonomy.

Every error is scoped to a single request and rendered to the caller as a
JSON envelope ``{"code": ..., "msg": ...}``.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for errors reported to the caller."""

    status_code = 500

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = self.status_code if code is None else code

    @property
    def http_status(self) -> int:
        """Status line code; the body always carries ``code``."""
        return self.status_code


class InvalidSignature(GatewayError):
    status_code = 401


class MethodNotAllowed(GatewayError):
    status_code = 405

    def __init__(self, message: str = "Only GET/HEAD/OPTIONS are allowed"):
        super().__init__(message)


class UpstreamBusinessError(GatewayError):
    """Non-success envelope from the link service, passed through as-is."""

    status_code = 502

    def __init__(self, code: int, message: str):
        super().__init__(message, code=code)

    @property
    def http_status(self) -> int:
        # Codes that cannot appear on a status line fall back to 502
        if 100 <= self.code <= 599:
            return self.code
        return self.status_code


class UpstreamTransportError(GatewayError):
    status_code = 502


class InternalRequestBuildError(GatewayError):
    status_code = 500
