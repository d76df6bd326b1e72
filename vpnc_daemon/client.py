"""Client to forward lifecycle events to the daemon."""

import itertools
import os
import socket
from typing import Mapping, Optional

from vpnc_core import ConnectionParameters, RouteSet, from_env

from .platform import get_socket_path
from .protocol import Method, ProtocolError, Request, Response, recv_frame, send_frame


class DaemonError(Exception):
    """Error communicating with daemon."""
    pass


class DaemonNotRunning(DaemonError):
    """Daemon is not running."""
    pass


class RemoteError(DaemonError):
    """The daemon reported a failure."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class DaemonClient:
    """Client for sending requests to the daemon.

    Each request opens its own connection, waits for the answer, and closes
    the connection, so the daemon can move on to other callers.
    """

    def __init__(self, socket_path: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize client.

        Args:
            socket_path: Daemon socket (default: the platform socket path)
            timeout: Socket timeout in seconds (default: wait forever)
        """
        self._socket_path = str(socket_path or get_socket_path())
        self._timeout = timeout
        self._ids = itertools.count(1)

    def _send(self, request: Request) -> Response:
        """Send a request to the daemon and return its response.

        Raises:
            DaemonNotRunning: If daemon is not running
            DaemonError: If communication fails
        """
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self._timeout)

        try:
            sock.connect(self._socket_path)
        except FileNotFoundError:
            sock.close()
            raise DaemonNotRunning(f"Daemon not running (no socket at {self._socket_path})")
        except ConnectionRefusedError:
            sock.close()
            raise DaemonNotRunning(f"Daemon not responding on {self._socket_path}")
        except OSError as e:
            sock.close()
            raise DaemonError(f"Cannot connect to daemon: {e}")

        try:
            send_frame(sock, request.to_bytes())
            data = recv_frame(sock)
            if data is None:
                raise DaemonError("Daemon closed the connection without answering")
            return Response.from_bytes(data)
        except socket.timeout:
            raise DaemonError("Timeout waiting for daemon response")
        except ProtocolError as e:
            raise DaemonError(f"Invalid response from daemon: {e}")
        except OSError as e:
            raise DaemonError(f"Communication error: {e}")
        finally:
            sock.close()

    def _call(self, method: str, **kwargs):
        request = Request(method=method, id=next(self._ids), **kwargs)
        response = self._send(request)
        if response.id != request.id:
            raise DaemonError(f"Response id {response.id} does not match request id {request.id}")
        if response.error:
            raise RemoteError(response.error["message"], response.error.get("code"))
        return response.result

    def run(self, params: ConnectionParameters, routes: RouteSet) -> dict:
        """Process a lifecycle event in the daemon.

        Returns:
            Result dict with 'changed'

        Raises:
            RemoteError: If the daemon failed to process the event
        """
        return self._call(
            Method.RUN,
            params=params.to_dict(),
            routes=[route.to_dict() for route in routes],
        )

    def ping(self) -> dict:
        """Check the daemon.

        Returns:
            Result dict with 'pong', 'version'
        """
        return self._call(Method.PING)

    def is_daemon_running(self) -> bool:
        """Check if daemon is running.

        Returns:
            True if daemon is responding
        """
        try:
            self.ping()
            return True
        except DaemonError:
            return False


def run_remotely(socket_path: str, environ: Mapping[str, str] = os.environ) -> dict:
    """Read the event from ``environ`` and process it in the daemon (convenience function)."""
    params, routes = from_env(environ)
    return DaemonClient(socket_path).run(params, routes)
