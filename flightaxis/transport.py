"""
TCP transport used for FlightAxis SOAP calls.

One ``SocketTransport`` is one connection: connect, send a request, receive
the reply with per-call timeouts, close.  Anything that offers the same four
methods can be handed to :class:`flightaxis.soap.SoapClient` instead.
"""

import logging
import select
import socket

log = logging.getLogger(__name__)


class SocketTransport:
    """Non-blocking TCP byte stream with timeout-bounded receives."""

    def __init__(self, connect_timeout_s: float = 1.0):
        self.connect_timeout_s = connect_timeout_s
        self.sock = None

    def connect(self, host: str, port: int) -> bool:
        try:
            self.sock = socket.create_connection((host, port),
                                                 timeout=self.connect_timeout_s)
        except OSError as exc:
            log.debug("connect to %s:%d failed: %s", host, port, exc)
            self.sock = None
            return False
        self.sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self.sock.setblocking(False)
        return True

    def send(self, data: bytes):
        # Socket is non-blocking; wait for writability between partial sends
        view = memoryview(data)
        while view:
            try:
                sent = self.sock.send(view)
            except BlockingIOError:
                _, writable, _ = select.select([], [self.sock], [], self.connect_timeout_s)
                if not writable:
                    raise TimeoutError("send stalled")
                continue
            view = view[sent:]

    def recv(self, max_bytes: int, timeout_ms: int) -> bytes:
        """Return up to ``max_bytes``; ``b""`` on timeout, error or EOF."""
        if self.sock is None or max_bytes <= 0:
            return b""
        readable, _, _ = select.select([self.sock], [], [], timeout_ms / 1000.0)
        if not readable:
            return b""
        try:
            return self.sock.recv(max_bytes)
        except OSError as exc:
            log.debug("recv failed: %s", exc)
            return b""

    def close(self):
        if self.sock is not None:
            self.sock.close()
            self.sock = None
