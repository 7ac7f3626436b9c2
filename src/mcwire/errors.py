from __future__ import annotations

from typing import Optional


class McWireError(Exception):
    pass


class WireError(McWireError):
    """Failure talking to the server. Never shown to callers as-is."""

    def __init__(self, message: str, phase: Optional[str] = None):
        super().__init__(message)
        self.phase = phase


class TransportError(WireError):
    pass


class ProtocolError(WireError):
    pass


class AuthError(WireError):
    pass


class OperationFailed(McWireError):
    def __init__(self, message: str = "operation failed"):
        super().__init__(message)


class ValidationError(McWireError):
    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class ForbiddenError(ValidationError):
    def __init__(self, reason: str = "role not permitted for this command"):
        super().__init__("role", reason)
