"""Wire protocol between `run --server-socket` and the daemon.

Every message is one frame on the Unix socket:

    +----------------+---------+---------------------+
    | length: u32 BE | version | body: UTF-8 JSON    |
    +----------------+---------+---------------------+

``length`` counts the body only. A connection carries any number of
request/response pairs, strictly alternating.
"""

import json
import socket
import struct
from dataclasses import dataclass, field
from typing import Any, Optional

PROTOCOL_VERSION = 1
MAX_BODY_LEN = 1 << 20

HEADER = struct.Struct(">IB")


class ProtocolError(Exception):
    """Malformed frame or message."""
    pass


# Error codes
class ErrorCode:
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    INVALID_PARAMS = -32602

    # Custom error codes
    PROCESSING_FAILED = 1001


# Method names
class Method:
    PING = "ping"
    RUN = "run"


# === Framing ===

def _recv_exactly(sock: socket.socket, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining:
        chunk = sock.recv(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def send_frame(sock: socket.socket, body: bytes) -> None:
    """Send one frame."""
    if len(body) > MAX_BODY_LEN:
        raise ProtocolError(f"Message too large ({len(body)} bytes)")
    sock.sendall(HEADER.pack(len(body), PROTOCOL_VERSION) + body)


def recv_frame(sock: socket.socket) -> Optional[bytes]:
    """Receive one frame.

    Returns:
        The frame body, or None if the peer closed the connection between frames

    Raises:
        ProtocolError: On a truncated, oversized or wrong-version frame
    """
    header = _recv_exactly(sock, HEADER.size)
    if not header:
        return None
    if len(header) < HEADER.size:
        raise ProtocolError("Connection closed inside frame header")

    length, version = HEADER.unpack(header)
    if version != PROTOCOL_VERSION:
        raise ProtocolError(f"Unsupported protocol version {version}")
    if length > MAX_BODY_LEN:
        raise ProtocolError(f"Message too large ({length} bytes)")

    body = _recv_exactly(sock, length)
    if len(body) < length:
        raise ProtocolError("Connection closed inside frame body")
    return body


# === Messages ===

def load_message(data: bytes) -> dict:
    """Decode a message body to a dict."""
    try:
        obj = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Invalid JSON: {e}")
    if not isinstance(obj, dict):
        raise ProtocolError("Message must be a JSON object")
    return obj


@dataclass
class Request:
    """Request sent to the daemon."""
    method: str
    params: dict = field(default_factory=dict)
    routes: list = field(default_factory=list)
    id: int = 0

    def to_bytes(self) -> bytes:
        return json.dumps({
            "id": self.id,
            "method": self.method,
            "params": self.params,
            "routes": self.routes,
        }).encode("utf-8")

    @classmethod
    def from_dict(cls, obj: dict) -> "Request":
        return cls(
            method=obj.get("method", ""),
            params=obj.get("params") or {},
            routes=obj.get("routes") or [],
            id=obj.get("id", 0),
        )


@dataclass
class Response:
    """Daemon reply: either a result or an error."""
    result: Optional[Any]
    error: Optional[dict]
    id: int

    def to_bytes(self) -> bytes:
        obj = {"id": self.id}
        if self.error:
            obj["error"] = self.error
        else:
            obj["result"] = self.result
        return json.dumps(obj).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Response":
        obj = load_message(data)
        error = obj.get("error")
        if error is not None and not (isinstance(error, dict) and "message" in error):
            raise ProtocolError("Malformed error in response")
        if error is None and "result" not in obj:
            raise ProtocolError("Response has neither result nor error")
        return cls(result=obj.get("result"), error=error, id=obj.get("id", 0))

    @classmethod
    def success(cls, result: Any, request_id: int) -> "Response":
        """Create a success response."""
        return cls(result=result, error=None, id=request_id)

    @classmethod
    def failure(cls, code: int, message: str, request_id: int) -> "Response":
        """Create an error response."""
        return cls(result=None, error={"code": code, "message": message}, id=request_id)
