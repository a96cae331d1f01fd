"""
Minimal SOAP-over-HTTP framing for the FlightAxis controller interface.

FlightAxis only understands a handful of fixed actions, each a single POST
carrying an XML envelope.  The reply is an HTTP response whose body is read
up to its declared Content-Length.  Nothing here tries to be a general HTTP
client: no chunked encoding, no redirects, no connection reuse.
"""

import logging
import re

from . import config as cfg
from .transport import SocketTransport

log = logging.getLogger(__name__)

ENVELOPE_TEMPLATE = (
    "<?xml version='1.0' encoding='UTF-8'?>"
    "<soap:Envelope xmlns:soap='http://schemas.xmlsoap.org/soap/envelope/'"
    " xmlns:xsd='http://www.w3.org/2001/XMLSchema'"
    " xmlns:xsi='http://www.w3.org/2001/XMLSchema-instance'>\n"
    "<soap:Body>\n"
    "<{action}>{inner}</{action}>\n"
    "</soap:Body>\n"
    "</soap:Envelope>"
)

REQUEST_HEADER_TEMPLATE = (
    "POST / HTTP/1.1\r\n"
    "soapaction: '{action}'\r\n"
    "content-length: {length}\r\n"
    "content-type: text/xml;charset='UTF-8'\r\n"
    "Connection: Keep-Alive\r\n"
    "\r\n"
)

# Placeholder arguments FlightAxis expects on the administrative calls
ADMIN_PLACEHOLDER = "<a>1</a><b>2</b>"

HEADER_END = b"\r\n\r\n"
_CONTENT_LENGTH_RE = re.compile(rb"content-length:\s*(\d+)", re.IGNORECASE)


# ═══════════════════════════════════════════════════════════════════════════════
#  Errors
# ═══════════════════════════════════════════════════════════════════════════════
class SoapError(Exception):
    """A SOAP exchange failed; the caller keeps its previous state."""


class ConnectFailed(SoapError):
    pass


class SendFailed(SoapError):
    pass


class NoData(SoapError):
    pass


class NoLength(SoapError):
    pass


class NoBody(SoapError):
    pass


class ReplyTooLarge(SoapError):
    pass


class IncompleteBody(SoapError):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
#  Request building
# ═══════════════════════════════════════════════════════════════════════════════
def soap_envelope(action: str, inner: str = "") -> str:
    """Wrap ``inner`` XML in ``<action>`` inside the standard SOAP envelope."""
    return ENVELOPE_TEMPLATE.format(action=action, inner=inner)


def exchange_data_body(channels) -> str:
    """
    Body of the per-tick ExchangeData call.

    ``channels`` are the eight 0..1 values FlightAxis applies to its
    controller inputs; each is sent with four decimal places.
    """
    channels = list(channels)
    if len(channels) != cfg.NUM_CHANNELS:
        raise ValueError(f"ExchangeData needs {cfg.NUM_CHANNELS} channels, "
                         f"got {len(channels)}")
    items = "".join(f"<item>{float(v):.4f}</item>\n" for v in channels)
    inner = ("\n<pControlInputs>\n"
             f"<m-selectedChannels>{cfg.SELECTED_CHANNELS_MASK}</m-selectedChannels>\n"
             "<m-channelValues-0to1>\n"
             f"{items}"
             "</m-channelValues-0to1>\n"
             "</pControlInputs>\n")
    return soap_envelope("ExchangeData", inner)


def build_request(action: str, body: str) -> bytes:
    """
    Frame ``body`` as an HTTP POST for ``action``.

    The content-length is taken from the encoded body that is appended, so
    the declared and actual lengths always agree.
    """
    payload = body.encode("utf-8")
    header = REQUEST_HEADER_TEMPLATE.format(action=action, length=len(payload))
    return header.encode("ascii") + payload


# ═══════════════════════════════════════════════════════════════════════════════
#  Response reading
# ═══════════════════════════════════════════════════════════════════════════════
def read_response(conn, timeout_first_ms: int = cfg.REPLY_TIMEOUT_FIRST_MS,
                  timeout_continuation_ms: int = cfg.REPLY_TIMEOUT_CONT_MS,
                  max_bytes: int = cfg.REPLY_MAX_BYTES) -> bytes:
    """
    Receive one HTTP reply from ``conn`` and return its body.

    A body split over several TCP segments is reassembled; that is the only
    retry this module does.  Raises a :class:`SoapError` subclass otherwise.
    """
    buf = conn.recv(max_bytes, timeout_first_ms)
    if not buf:
        raise NoData("no data")

    m = _CONTENT_LENGTH_RE.search(buf)
    if m is None:
        raise NoLength("no Content-Length")
    content_length = int(m.group(1))

    sep = buf.find(HEADER_END, m.end())
    if sep < 0:
        raise NoBody("no body")
    body_start = sep + len(HEADER_END)

    expected = body_start + content_length
    if expected > max_bytes:
        raise ReplyTooLarge(f"reply too large {expected}")

    while len(buf) < expected:
        chunk = conn.recv(max_bytes - len(buf), timeout_continuation_ms)
        if not chunk:
            raise IncompleteBody(f"incomplete body {len(buf)}/{expected}")
        buf += chunk

    return buf[body_start:expected]


# ═══════════════════════════════════════════════════════════════════════════════
#  Client
# ═══════════════════════════════════════════════════════════════════════════════
class SoapClient:
    """
    Issues SOAP calls against one FlightAxis endpoint.

    Every call opens a new connection from ``transport_factory`` and closes
    it once the reply is in (or has failed).
    """

    def __init__(self, host: str = cfg.FLIGHTAXIS_HOST,
                 port: int = cfg.FLIGHTAXIS_PORT,
                 transport_factory=SocketTransport):
        self.host = host
        self.port = port
        self.transport_factory = transport_factory

    def request(self, action: str, body: str) -> bytes:
        conn = self.transport_factory()
        if not conn.connect(self.host, self.port):
            raise ConnectFailed(f"connect to {self.host}:{self.port} failed")
        try:
            try:
                conn.send(build_request(action, body))
            except OSError as exc:
                raise SendFailed(f"send to {self.host}:{self.port} failed: {exc}") from exc
            reply = read_response(conn)
        finally:
            conn.close()
        log.debug("%s -> %d byte reply", action, len(reply))
        return reply

    def call(self, action: str, inner: str = "") -> bytes:
        """Shorthand for an action whose body is a plain envelope."""
        return self.request(action, soap_envelope(action, inner))
