from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from .commands import Role, build_command
from .constants import DEFAULT_PACING_MS, DEFAULT_QUERY_PORT, DEFAULT_RCON_PORT, DEFAULT_TIMEOUT_MS
from .errors import OperationFailed, WireError
from .net import check_address
from .packet import StatusReport
from .query import QueryClient
from .rcon import SHARED_IDS, RconClient, RequestIds

logger = logging.getLogger(__name__)


def fetch_server_status(
    host: str,
    port: int = DEFAULT_QUERY_PORT,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> StatusReport:
    """Query the server's status. Wire failures surface as ``OperationFailed``."""
    check_address(host, port)
    try:
        return QueryClient(host, port, timeout_ms=timeout_ms).query()
    except WireError as exc:
        logger.error(
            "status query to %s:%d failed during %s: %s: %s",
            host,
            port,
            exc.phase,
            type(exc).__name__,
            exc,
        )
        raise OperationFailed() from exc


def run_command(
    host: str,
    port: int = DEFAULT_RCON_PORT,
    *,
    key: str,
    args: Sequence[str] = (),
    role: Union[Role, str],
    password: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    pacing_ms: float = DEFAULT_PACING_MS,
    ids: Optional[RequestIds] = None,
) -> str:
    """Validate, render and execute a registry command over RCON.

    Validation and role checks happen before any socket is opened and raise
    ``ValidationError``/``ForbiddenError`` with details. Transport, protocol
    and auth failures are logged here and raised as ``OperationFailed``.
    """
    check_address(host, port)
    role = Role.parse(role)
    command = build_command(key, args, role)
    logger.info("%s runs %s on %s:%d", role.value, key, host, port)

    client = RconClient(
        host,
        port,
        password=password,
        timeout_ms=timeout_ms,
        pacing_ms=pacing_ms,
        ids=ids or SHARED_IDS,
    )
    try:
        return client.execute(command)
    except WireError as exc:
        logger.error(
            "rcon %s on %s:%d failed during %s: %s: %s",
            key,
            host,
            port,
            exc.phase,
            type(exc).__name__,
            exc,
        )
        raise OperationFailed() from exc
