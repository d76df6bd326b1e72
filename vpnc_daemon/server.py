"""Privileged daemon for systemd-networkd-vpnc.

Runs as root, listens on a Unix socket for lifecycle events forwarded by
unprivileged `run --server-socket` invocations, and applies them to the
systemd-networkd configuration.

Connections are served one at a time: the next connection is accepted only
after the current one is closed by the client.
"""

import logging
import os
import signal
import socket
from pathlib import Path
from typing import List, Optional, Union

from vpnc_core import (
    Changed,
    ConnectionParameters,
    LifecycleProcessor,
    ParameterError,
    Route,
    __version__,
)
from .platform import get_pid_file, get_socket_path, is_root, running_daemon_pid
from .protocol import (
    ErrorCode,
    Method,
    ProtocolError,
    Request,
    Response,
    load_message,
    recv_frame,
    send_frame,
)
from .validator import validate_request

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

log = logging.getLogger(__name__)


def setup_logging(log_file: Optional[Union[str, Path]] = None, debug: bool = False) -> None:
    """Log to stderr and, if given, to ``log_file``."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )


class AgentServer:
    """Serves LifecycleProcessor over a Unix socket, one connection at a time."""

    def __init__(self, socket_path: Union[str, Path], processor=None):
        self._socket_path = str(socket_path)
        self._processor = processor if processor is not None else LifecycleProcessor()
        self._socket: Optional[socket.socket] = None
        self._running = False

    @property
    def socket_path(self) -> str:
        return self._socket_path

    def bind(self) -> None:
        """Create the listening socket, replacing a stale socket file."""
        if os.path.exists(self._socket_path):
            os.remove(self._socket_path)

        self._socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._socket.bind(self._socket_path)
        os.chmod(self._socket_path, 0o666)  # Allow non-root clients
        self._socket.listen(5)
        self._socket.settimeout(1.0)  # Allow periodic check of _running

        log.info(f"Daemon listening on {self._socket_path}")

    def serve_forever(self) -> None:
        """Accept and serve connections until stop() is called."""
        if self._socket is None:
            self.bind()

        self._running = True
        while self._running:
            try:
                conn, _ = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                log.error(f"Accept error: {e}")
                continue

            # Serving inline keeps .network writes and reloads strictly ordered
            self._handle_connection(conn)

        self._cleanup()

    def stop(self) -> None:
        """Ask serve_forever() to return after the current connection."""
        self._running = False

    def _cleanup(self) -> None:
        if self._socket:
            self._socket.close()
            self._socket = None
        if os.path.exists(self._socket_path):
            os.remove(self._socket_path)
        log.info("Daemon stopped")

    def _handle_connection(self, conn: socket.socket) -> None:
        """Serve requests on one connection until the client closes it."""
        log.debug("Client connected")
        with conn:
            conn.settimeout(None)
            while True:
                try:
                    data = recv_frame(conn)
                    if data is None:
                        break
                    response = self.handle_request(data)
                    send_frame(conn, response.to_bytes())
                except (ProtocolError, OSError) as e:
                    log.warning(f"Dropping connection: {e}")
                    break
        log.debug("Client disconnected")

    def handle_request(self, data: bytes) -> Response:
        """Turn one request frame into a response. Never raises for bad input."""
        try:
            request = load_message(data)
        except ProtocolError as e:
            log.error(f"Invalid request: {e}")
            return Response.failure(ErrorCode.PARSE_ERROR, str(e), 0)

        request_id = request.get("id") if isinstance(request.get("id"), int) else 0

        #################################
        # INPUT VALIDATION / SANITIZING #
        #################################
        valid, error = validate_request(request)
        if not valid:
            log.warning(f"Invalid request: {error}")
            return Response.failure(ErrorCode.INVALID_REQUEST, error, request_id)

        req = Request.from_dict(request)
        if req.method == Method.PING:
            return Response.success({"pong": True, "version": __version__}, req.id)

        try:
            params = ConnectionParameters.from_dict(req.params)
            routes = [Route.from_dict(route) for route in req.routes]
        except ParameterError as e:
            log.warning(f"Invalid parameters: {e}")
            return Response.failure(ErrorCode.INVALID_PARAMS, str(e), req.id)

        if params.split_routes_inc != len(routes):
            error = f"Expected {params.split_routes_inc} routes, got {len(routes)}"
            log.warning(f"Invalid parameters: {error}")
            return Response.failure(ErrorCode.INVALID_PARAMS, error, req.id)

        log.info(f"Received reason={params.reason.value} for {params.tundev}")
        try:
            changed = self._processor.process(params, routes)
        except Exception as e:
            # Report to the caller, keep serving
            log.error(f"Processing reason={params.reason.value} for {params.tundev} failed: {e}")
            return Response.failure(ErrorCode.PROCESSING_FAILED, str(e), req.id)

        return Response.success({"changed": changed is Changed.YES}, req.id)


def run_daemon(socket_path: Optional[Union[str, Path]] = None) -> int:
    """Daemon entry point.

    Returns:
        Process exit status
    """
    if not is_root():
        log.error("Daemon must run as root")
        return 1

    socket_path = str(socket_path or get_socket_path())
    other = running_daemon_pid(socket_path)
    if other is not None:
        log.error(f"Another daemon (PID {other}) is serving {socket_path}")
        return 1

    pid_file = get_pid_file(socket_path)
    pid_file.write_text(str(os.getpid()))

    server = AgentServer(socket_path)

    def handle_signal(signum, frame):
        log.info(f"Received signal {signum}, shutting down...")
        server.stop()

    # Handle signals for clean shutdown
    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    try:
        server.serve_forever()
    finally:
        if pid_file.exists():
            pid_file.unlink()
    return 0
