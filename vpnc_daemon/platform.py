"""Host abstractions for the daemon (Linux only: systemd-networkd)."""

import os
from pathlib import Path
from typing import Optional, Union

import psutil

APP_NAME = "systemd-networkd-vpnc"


# === Paths ===

def get_socket_path() -> str:
    """Get the default daemon socket path."""
    # try /run first, fall back to /var/run
    if os.path.isdir("/run"):
        return f"/run/{APP_NAME}.sock"
    return f"/var/run/{APP_NAME}.sock"


def get_pid_file(socket_path: Union[str, Path]) -> Path:
    """Get the PID file of the daemon serving ``socket_path``."""
    socket_path = Path(socket_path)
    return socket_path.with_name(socket_path.name + ".pid")


def get_log_file() -> Path:
    """Get the default daemon log file path."""
    return Path(f"/var/log/{APP_NAME}-daemon.log")


# === Privileges ===

def is_root() -> bool:
    """Check if running with root privileges."""
    return os.geteuid() == 0


# === Process Management ===

def is_process_running(pid: int) -> bool:
    """Check if a process is running.

    Args:
        pid: Process ID

    Returns:
        True if running
    """
    try:
        proc = psutil.Process(pid)
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False


def read_pid_file(pid_file: Path) -> Optional[int]:
    """Read a PID file.

    Returns:
        The PID, or None if the file is missing or unreadable
    """
    try:
        return int(pid_file.read_text().strip())
    except (ValueError, OSError):
        return None


def running_daemon_pid(socket_path: Union[str, Path]) -> Optional[int]:
    """Get the PID of another live daemon serving ``socket_path``, if any."""
    pid = read_pid_file(get_pid_file(socket_path))
    if pid is None or pid == os.getpid():
        return None
    return pid if is_process_running(pid) else None
