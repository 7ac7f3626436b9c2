from __future__ import annotations

import logging
from dataclasses import dataclass

from .constants import DEFAULT_QUERY_PORT, DEFAULT_TIMEOUT_MS, QUERY_SESSION_ID
from .errors import WireError
from .net import Deadline, UdpEndpoint
from .packet import StatusReport, decode_handshake, decode_stat, encode_handshake, encode_stat

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class QueryClient:
    """Full-stat client for the UDP query protocol.

    Every ``query()`` uses a fresh socket: the challenge token is only
    valid for the socket that asked for it.
    """

    host: str
    port: int = DEFAULT_QUERY_PORT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    session_id: bytes = QUERY_SESSION_ID

    def query(self) -> StatusReport:
        deadline = Deadline.after(self.timeout_ms)
        phase = "connect"
        try:
            with UdpEndpoint.connect(self.host, self.port, deadline) as udp:
                phase = "handshake"
                token = self.handshake(udp)
                phase = "stat"
                return self.stat(udp, token)
        except WireError as exc:
            if exc.phase is None:
                exc.phase = phase
            raise

    def handshake(self, udp: UdpEndpoint) -> int:
        udp.send(encode_handshake(self.session_id))
        token = decode_handshake(udp.recv(), self.session_id)
        logger.debug("query handshake with %s:%d ok; token=%d", self.host, self.port, token)
        return token

    def stat(self, udp: UdpEndpoint, token: int) -> StatusReport:
        udp.send(encode_stat(self.session_id, token))
        raw = udp.recv()
        try:
            report = decode_stat(raw)
        except WireError:
            logger.debug("unparseable stat response from %s:%d: %r", self.host, self.port, raw)
            raise
        logger.debug(
            "query stat from %s:%d; players=%d/%d",
            self.host,
            self.port,
            report.player_count,
            report.max_players,
        )
        return report
