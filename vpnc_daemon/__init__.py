"""systemd-networkd-vpnc - Privileged daemon."""

from .client import DaemonClient, DaemonError, DaemonNotRunning, RemoteError, run_remotely
from .platform import is_root, get_socket_path
from .server import AgentServer, run_daemon

__all__ = [
    "AgentServer",
    "DaemonClient",
    "DaemonError",
    "DaemonNotRunning",
    "RemoteError",
    "get_socket_path",
    "is_root",
    "run_daemon",
    "run_remotely",
]
