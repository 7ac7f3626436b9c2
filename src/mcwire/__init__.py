"""Minecraft query and RCON clients.

- packet framing is kept apart from the socket exchanges that drive it
- every exchange is one short-lived socket bound to one deadline
- the command registry is validated before any network I/O
"""

from .api import fetch_server_status, run_command
from .commands import REGISTRY, Role, build_command
from .errors import (
    AuthError,
    ForbiddenError,
    OperationFailed,
    ProtocolError,
    TransportError,
    ValidationError,
)
from .packet import RconFrame, StatusReport
from .query import QueryClient
from .rcon import RconClient, RequestIds

__all__ = [
    "AuthError",
    "ForbiddenError",
    "OperationFailed",
    "ProtocolError",
    "QueryClient",
    "REGISTRY",
    "RconClient",
    "RconFrame",
    "RequestIds",
    "Role",
    "StatusReport",
    "TransportError",
    "ValidationError",
    "build_command",
    "fetch_server_status",
    "run_command",
]
