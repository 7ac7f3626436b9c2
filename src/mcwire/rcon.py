from __future__ import annotations

import enum
import logging
import random
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from .constants import (
    DEFAULT_PACING_MS,
    DEFAULT_RCON_PORT,
    DEFAULT_TIMEOUT_MS,
    INT32_MAX,
    INVALID_AUTH_ID,
    TYPE_MARKER,
)
from .errors import AuthError, ProtocolError, WireError
from .net import Deadline, Pacing, TcpStream
from .packet import FrameType, RconFrame

logger = logging.getLogger(__name__)


class RequestIds:
    """Thread-safe request id source.

    Ids only have to be unique within one connection, so a single counter
    is shared by every client in the process (``SHARED_IDS``). Tests pass
    their own instance with a fixed seed.
    """

    def __init__(self, seed: Optional[int] = None):
        self._lock = threading.Lock()
        self._last = random.randint(0, 9999) if seed is None else seed

    def next(self) -> int:
        with self._lock:
            self._last = self._last + 1 if 0 < self._last < INT32_MAX else 1
            return self._last


SHARED_IDS = RequestIds()


class RconState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    EXECUTING = "executing"
    DRAINING = "draining"
    CLOSED = "closed"


class RconSession:
    """One TCP connection used for exactly one command."""

    def __init__(self, host: str, port: int, deadline: Deadline, ids: RequestIds, pacing: Pacing):
        self.host = host
        self.port = port
        self.deadline = deadline
        self.ids = ids
        self.pacing = pacing
        self.state = RconState.DISCONNECTED
        self._stream: Optional[TcpStream] = None

    def _expect(self, state: RconState) -> None:
        if self.state is not state:
            raise RuntimeError(f"rcon session is {self.state.value}, expected {state.value}")

    def _write(self, frame: RconFrame) -> None:
        assert self._stream is not None
        self._stream.send(frame.to_bytes())
        if frame.kind != FrameType.AUTH:
            logger.debug("rcon write id=%d type=%d body=%r", frame.request_id, frame.kind, frame.text)

    def _read(self) -> RconFrame:
        assert self._stream is not None
        return RconFrame.read(self._stream.recv_exact)

    def connect(self) -> None:
        self._expect(RconState.DISCONNECTED)
        self._stream = TcpStream.connect(self.host, self.port, self.deadline)
        self.state = RconState.CONNECTED

    def authenticate(self, password: str) -> None:
        self._expect(RconState.CONNECTED)
        self.state = RconState.AUTHENTICATING
        auth_id = self.ids.next()
        self._write(RconFrame(auth_id, FrameType.AUTH, password.encode("utf-8")))

        reply = self._read()
        if reply.request_id == INVALID_AUTH_ID:
            raise AuthError("password rejected by server")
        if reply.request_id != auth_id:
            raise ProtocolError(f"auth reply id mismatch: got {reply.request_id} expected {auth_id}")
        self.state = RconState.AUTHENTICATED

    def execute(self, command: str) -> str:
        """Run ``command`` and collect its whole, possibly multi-frame, answer.

        A response carries no total length, so right after the command an
        invalid-type marker frame is sent. The server answers frames of one
        connection in order, so the marker's reply arrives only after the
        last frame of the command's answer.
        """
        self._expect(RconState.AUTHENTICATED)
        self.state = RconState.EXECUTING
        command_id = self.ids.next()
        marker_id = self.ids.next()

        self._write(RconFrame(command_id, FrameType.COMMAND, command.encode("utf-8")))
        # back-to-back writes get merged into one server-side read otherwise
        self.pacing.sleep_if_needed()
        self._write(RconFrame(marker_id, TYPE_MARKER))

        self.state = RconState.DRAINING
        chunks: List[bytes] = []
        while True:
            frame = self._read()
            if frame.request_id == command_id:
                chunks.append(frame.body)
            elif frame.request_id == marker_id:
                break
            else:
                logger.warning(
                    "rcon %s:%d: unexpected frame id=%d (command=%d marker=%d) type=%d body_len=%d",
                    self.host,
                    self.port,
                    frame.request_id,
                    command_id,
                    marker_id,
                    frame.kind,
                    len(frame.body),
                )

        return b"".join(chunks).decode("utf-8", errors="replace")

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self.state = RconState.CLOSED

    def __enter__(self) -> "RconSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@dataclass(slots=True)
class RconClient:
    host: str
    port: int = DEFAULT_RCON_PORT
    password: str = field(default="", repr=False)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    pacing_ms: float = DEFAULT_PACING_MS
    ids: RequestIds = SHARED_IDS

    def execute(self, command: str) -> str:
        deadline = Deadline.after(self.timeout_ms)
        session = RconSession(self.host, self.port, deadline, self.ids, Pacing(self.pacing_ms))
        with session:
            try:
                session.connect()
                session.authenticate(self.password)
                return session.execute(command)
            except WireError as exc:
                if exc.phase is None:
                    exc.phase = session.state.value
                raise
