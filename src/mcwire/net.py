from __future__ import annotations

import socket
import time
from dataclasses import dataclass
from typing import Tuple

from .constants import QUERY_BUFFER_SIZE
from .errors import TransportError, ValidationError


@dataclass(frozen=True, slots=True)
class Deadline:
    """One absolute deadline shared by every blocking call of an exchange."""

    expires_at: float

    @classmethod
    def after(cls, timeout_ms: float) -> "Deadline":
        return cls(time.monotonic() + timeout_ms / 1000.0)

    def remaining(self) -> float:
        left = self.expires_at - time.monotonic()
        if left <= 0:
            raise TransportError("deadline exceeded")
        return left


@dataclass(frozen=True, slots=True)
class Pacing:
    delay_ms: float = 0.0

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)


def parse_address(text: str, default_port: int) -> Tuple[str, int]:
    """Split ``host``, ``host:port`` or ``[v6]:port`` into a (host, port) pair."""
    text = text.strip()
    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep:
            raise ValidationError("address", f"unterminated IPv6 literal: {text!r}")
        port_text = rest[1:] if rest.startswith(":") else ""
    elif text.count(":") == 1:
        host, _, port_text = text.partition(":")
    else:
        host, port_text = text, ""

    if not port_text:
        return host, default_port
    try:
        return host, int(port_text)
    except ValueError:
        raise ValidationError("address", f"invalid port: {port_text!r}") from None


def check_address(host: str, port: int) -> None:
    if not host or not host.strip():
        raise ValidationError("address", "host is empty")
    if not 0 < port < 65536:
        raise ValidationError("address", f"port out of range: {port}")


class UdpEndpoint:
    """A connected datagram socket whose every call honours one deadline."""

    def __init__(self, sock: socket.socket, deadline: Deadline):
        self.sock = sock
        self.deadline = deadline

    @classmethod
    def connect(cls, host: str, port: int, deadline: Deadline) -> "UdpEndpoint":
        try:
            family, kind, proto, _, addr = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)[0]
            sock = socket.socket(family, kind, proto)
        except OSError as exc:
            raise TransportError(f"resolve {host}:{port} failed: {exc}") from exc
        try:
            sock.settimeout(deadline.remaining())
            sock.connect(addr)
        except OSError as exc:
            sock.close()
            raise TransportError(f"udp connect {host}:{port} failed: {exc}") from exc
        except TransportError:
            sock.close()
            raise
        return cls(sock, deadline)

    def send(self, data: bytes) -> None:
        try:
            self.sock.settimeout(self.deadline.remaining())
            self.sock.send(data)
        except OSError as exc:
            raise TransportError(f"udp send failed: {exc}") from exc

    def recv(self, bufsize: int = QUERY_BUFFER_SIZE) -> bytes:
        try:
            self.sock.settimeout(self.deadline.remaining())
            return self.sock.recv(bufsize)
        except socket.timeout as exc:
            raise TransportError("udp read timed out") from exc
        except OSError as exc:
            raise TransportError(f"udp recv failed: {exc}") from exc

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class TcpStream:
    """Stream socket with exact-length reads, bound to one deadline."""

    def __init__(self, sock: socket.socket, deadline: Deadline):
        self.sock = sock
        self.deadline = deadline

    @classmethod
    def connect(cls, host: str, port: int, deadline: Deadline) -> "TcpStream":
        try:
            sock = socket.create_connection((host, port), timeout=deadline.remaining())
        except socket.timeout as exc:
            raise TransportError(f"tcp dial {host}:{port} timed out") from exc
        except OSError as exc:
            raise TransportError(f"tcp dial {host}:{port} failed: {exc}") from exc
        return cls(sock, deadline)

    def send(self, data: bytes) -> None:
        try:
            self.sock.settimeout(self.deadline.remaining())
            self.sock.sendall(data)
        except OSError as exc:
            raise TransportError(f"tcp write failed: {exc}") from exc

    def recv_exact(self, length: int) -> bytes:
        chunks = []
        remaining = length
        while remaining > 0:
            try:
                self.sock.settimeout(self.deadline.remaining())
                chunk = self.sock.recv(remaining)
            except socket.timeout as exc:
                raise TransportError("tcp read timed out") from exc
            except OSError as exc:
                raise TransportError(f"tcp read failed: {exc}") from exc
            if not chunk:
                raise TransportError("connection closed by server")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def close(self) -> None:
        self.sock.close()
