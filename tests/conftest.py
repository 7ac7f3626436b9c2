from __future__ import annotations

import socket
import struct
import threading
import time
from functools import partial
from typing import Dict, List, Optional, Sequence

import pytest

from mcwire.constants import QUERY_PLAYER_MARKER, QUERY_SESSION_ID
from mcwire.errors import ProtocolError
from mcwire.packet import RconFrame

TOKEN = 9513307


def build_stat_response(
    kv: Dict[str, str],
    players: Sequence[str],
    session_id: bytes = QUERY_SESSION_ID,
) -> bytes:
    header = b"\x00" + session_id + b"splitnum\x00\x80\x00"
    body = b"".join(k.encode() + b"\x00" + v.encode() + b"\x00" for k, v in kv.items())
    names = b"".join(p.encode() + b"\x00" for p in players)
    return header + body + QUERY_PLAYER_MARKER + names + b"\x00"


DEFAULT_KV = {
    "hostname": "Box",
    "gametype": "SMP",
    "game_id": "MINECRAFT",
    "version": "1.20.4",
    "plugins": "",
    "map": "world",
    "numplayers": "2",
    "maxplayers": "20",
    "hostport": "25565",
    "hostip": "127.0.0.1",
}


def _recv_exact(conn: socket.socket, n: int) -> bytes:
    data = b""
    while len(data) < n:
        chunk = conn.recv(n - len(data))
        if not chunk:
            break
        data += chunk
    return data


class FakeRconServer:
    """Single-connection RCON server driven by a fixed script."""

    def __init__(
        self,
        password: str = "hunter2",
        replies: Sequence[bytes] = (b"",),
        stray: bool = False,
        auth_reply_id: Optional[int] = None,
        auth_reply_body: bytes = b"",
        silent: bool = False,
    ):
        self.password = password
        self.replies = list(replies)
        self.stray = stray
        self.auth_reply_id = auth_reply_id
        self.auth_reply_body = auth_reply_body
        self.silent = silent
        self.received: List[RconFrame] = []
        self.arrivals: List[float] = []
        self.connections = 0

        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(1)
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self._stopped = threading.Event()
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "FakeRconServer":
        self.thread.start()
        return self

    def close(self) -> None:
        self._stopped.set()
        self.thread.join(timeout=2.0)
        self.sock.close()

    def _serve(self) -> None:
        while not self._stopped.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            break
        else:
            return
        self.connections += 1
        conn.settimeout(5.0)
        with conn:
            try:
                self._script(conn)
            except (OSError, ProtocolError):
                pass

    def _record(self, frame: RconFrame) -> None:
        self.received.append(frame)
        self.arrivals.append(time.monotonic())

    def _script(self, conn: socket.socket) -> None:
        read = partial(_recv_exact, conn)
        auth = RconFrame.read(read)
        self._record(auth)

        if self.auth_reply_id is not None:
            reply_id = self.auth_reply_id
        elif auth.body.decode() != self.password:
            reply_id = -1
        else:
            reply_id = auth.request_id
        conn.sendall(RconFrame(reply_id, 2, self.auth_reply_body).to_bytes())
        if reply_id != auth.request_id:
            return

        command = RconFrame.read(read)
        self._record(command)
        marker = RconFrame.read(read)
        self._record(marker)
        if self.silent:
            conn.recv(1)
            return

        if self.stray:
            conn.sendall(RconFrame(command.request_id + 1000, 0, b"chatter").to_bytes())
        for body in self.replies:
            conn.sendall(RconFrame(command.request_id, 0, body).to_bytes())
        conn.sendall(RconFrame(marker.request_id, 0, b"Unknown request c8").to_bytes())


class FakeQueryServer:
    """UDP query responder; answers any number of handshake/stat pairs."""

    def __init__(
        self,
        kv: Optional[Dict[str, str]] = None,
        players: Sequence[str] = ("a", "b"),
        handshake_reply: Optional[bytes] = None,
        stat_reply: Optional[bytes] = None,
        silent: bool = False,
    ):
        self.kv = DEFAULT_KV if kv is None else kv
        self.players = list(players)
        self.handshake_reply = handshake_reply
        self.stat_reply = stat_reply
        self.silent = silent
        self.stat_tokens: List[int] = []

        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self._stopped = threading.Event()
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "FakeQueryServer":
        self.thread.start()
        return self

    def close(self) -> None:
        self._stopped.set()
        self.thread.join(timeout=2.0)
        self.sock.close()

    def _serve(self) -> None:
        while not self._stopped.is_set():
            try:
                data, addr = self.sock.recvfrom(2048)
            except socket.timeout:
                continue
            except OSError:
                return
            if self.silent or data[:2] != b"\xfe\xfd":
                continue
            session = data[3:7]
            if data[2] == 0x09:
                reply = self.handshake_reply
                if reply is None:
                    reply = b"\x09" + session + str(TOKEN).encode() + b"\x00"
            else:
                (token,) = struct.unpack(">i", data[7:11])
                self.stat_tokens.append(token)
                reply = self.stat_reply
                if reply is None:
                    reply = build_stat_response(self.kv, self.players, session)
            self.sock.sendto(reply, addr)


@pytest.fixture
def rcon_server():
    servers: List[FakeRconServer] = []

    def start(**kwargs) -> FakeRconServer:
        srv = FakeRconServer(**kwargs).start()
        servers.append(srv)
        return srv

    yield start
    for srv in servers:
        srv.close()


@pytest.fixture
def query_server():
    servers: List[FakeQueryServer] = []

    def start(**kwargs) -> FakeQueryServer:
        srv = FakeQueryServer(**kwargs).start()
        servers.append(srv)
        return srv

    yield start
    for srv in servers:
        srv.close()


@pytest.fixture
def stat_response():
    return build_stat_response
