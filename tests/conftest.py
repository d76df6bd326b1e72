"""Shared fixtures."""

import shutil
import tempfile
import threading
from pathlib import Path

import pytest

from vpnc_core import Changed, ConnectionParameters, Reason, Route
from vpnc_daemon import AgentServer


class RecordingApplier:
    """Stands in for networkctl."""

    def __init__(self):
        self.reloads = 0

    def reload(self):
        self.reloads += 1


class RecordingProcessor:
    """Records which tunnel devices were processed; fails for ``fail_for``."""

    def __init__(self, fail_for=()):
        self.calls = []
        self.fail_for = set(fail_for)

    def process(self, params, routes):
        self.calls.append(params.tundev)
        if params.tundev in self.fail_for:
            raise OSError(13, "Permission denied")
        return Changed.YES


def make_params(reason=Reason.CONNECT, **kwargs) -> ConnectionParameters:
    values = {
        "vpngateway": "203.0.113.1",
        "tundev": "tun0",
        "address": "10.0.0.5",
    }
    values.update(kwargs)
    return ConnectionParameters(reason=reason, **values)


def make_route(addr, masklen, mask="255.255.255.0") -> Route:
    return Route(addr=addr, mask=mask, masklen=masklen)


@pytest.fixture
def applier():
    return RecordingApplier()


@pytest.fixture
def socket_dir():
    # Unix socket paths are limited to ~108 bytes; tmp_path can be longer
    path = Path(tempfile.mkdtemp(prefix="vpnc-"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def start_agent(socket_dir):
    """Start an AgentServer in a background thread."""
    started = []

    def start(processor):
        server = AgentServer(socket_dir / "agent.sock", processor)
        server.bind()
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        started.append((server, thread))
        return server

    yield start

    for server, thread in started:
        server.stop()
        thread.join(timeout=5)
