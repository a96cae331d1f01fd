import re

import pytest

from flightaxis.reply import FIELD_TABLE
from flightaxis.soap import SoapClient

_ACTION_RE = re.compile(rb"soapaction: '([^']+)'")


def make_reply(values=None, keys=None) -> bytes:
    """ExchangeData reply body with every key in ``keys`` (default: all)."""
    values = values or {}
    keys = [k for k, _ in FIELD_TABLE] if keys is None else keys
    elements = "".join(f"<{k}>{values.get(k, 0.0)}</{k}>" for k in keys)
    return ("<?xml version='1.0' encoding='UTF-8'?>"
            "<SOAP-ENV:Envelope xmlns:SOAP-ENV='http://schemas.xmlsoap.org/soap/envelope/'>"
            "<SOAP-ENV:Body><ReturnData><m-previousInputsState>"
            "<m-selectedChannels>-1</m-selectedChannels>"
            "</m-previousInputsState><m-aircraftState>"
            f"{elements}"
            "</m-aircraftState></ReturnData></SOAP-ENV:Body>"
            "</SOAP-ENV:Envelope>").encode("utf-8")


def http_response(body: bytes) -> bytes:
    return (b"HTTP/1.1 200 OK\r\n"
            b"Server: gSOAP/2.7\r\n"
            b"Content-Type: text/xml; charset=utf-8\r\n"
            b"Content-Length: " + str(len(body)).encode() + b"\r\n"
            b"Connection: close\r\n"
            b"\r\n" + body)


class ScriptedConnection:
    """Transport returning pre-recorded chunks, one per recv call."""

    def __init__(self, chunks=(), connect_ok=True):
        self.chunks = list(chunks)
        self.connect_ok = connect_ok
        self.sent = b""
        self.recv_calls = []
        self.closed = False

    def connect(self, host, port):
        return self.connect_ok

    def send(self, data):
        self.sent += data

    def recv(self, max_bytes, timeout_ms):
        self.recv_calls.append((max_bytes, timeout_ms))
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        assert len(chunk) <= max_bytes
        return chunk

    def close(self):
        self.closed = True


class FakeFlightAxis:
    """
    Stands in for RealFlight.  Every connection it hands out answers the
    request it receives: admin actions get an empty envelope, ExchangeData
    gets the next scripted body (``None`` means no reply at all).
    """

    def __init__(self, exchange_replies=(), admin_ok=True):
        self.exchange_replies = list(exchange_replies)
        self.admin_ok = admin_ok
        self.requests = []

    @property
    def actions(self):
        return [action for action, _ in self.requests]

    def transport(self):
        return _FakeFlightAxisConnection(self)

    def client(self):
        return SoapClient("rf.local", 18083, transport_factory=self.transport)

    def answer(self, request: bytes):
        action = _ACTION_RE.search(request).group(1).decode()
        body = request.split(b"\r\n\r\n", 1)[1]
        self.requests.append((action, body))
        if action == "ExchangeData":
            reply = self.exchange_replies.pop(0) if self.exchange_replies else None
        else:
            reply = b"<ok/>" if self.admin_ok else None
        return b"" if reply is None else http_response(reply)


class _FakeFlightAxisConnection:

    def __init__(self, server):
        self.server = server
        self.pending = b""

    def connect(self, host, port):
        return True

    def send(self, data):
        self.pending = self.server.answer(data)

    def recv(self, max_bytes, timeout_ms):
        chunk, self.pending = self.pending[:max_bytes], self.pending[max_bytes:]
        return chunk

    def close(self):
        pass


class FakeClock:
    """Wall clock in seconds, advanced by hand."""

    def __init__(self, t=1.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, dt):
        self.t += dt


@pytest.fixture
def clock():
    return FakeClock()
