"""Tests for the command line entry point and daemon platform helpers."""

import os
import subprocess

import pytest

import systemd_networkd_vpnc
from vpnc_daemon import platform

from conftest import RecordingProcessor

VPNC_ENV = {
    "reason": "connect",
    "VPNGATEWAY": "203.0.113.1",
    "TUNDEV": "tun7",
    "INTERNAL_IP4_ADDRESS": "10.0.0.5",
}


@pytest.fixture
def vpnc_env(monkeypatch):
    for name in list(os.environ):
        if name.lower() in {"reason", "vpngateway", "tundev"} or name.upper().startswith(("INTERNAL_IP4_", "CISCO_")):
            monkeypatch.delenv(name)
    for name, value in VPNC_ENV.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


class TestRun:
    """Tests for the `run` subcommand."""

    def test_local_no_change(self, vpnc_env):
        vpnc_env.setenv("reason", "pre-init")
        assert systemd_networkd_vpnc.main(["run"]) == 0

    def test_local_missing_parameter(self, vpnc_env, capsys):
        vpnc_env.delenv("TUNDEV")

        assert systemd_networkd_vpnc.main(["run"]) == 1
        assert "Error: missing parameter: tundev" in capsys.readouterr().err

    def test_remote(self, vpnc_env, start_agent):
        processor = RecordingProcessor()
        server = start_agent(processor)

        assert systemd_networkd_vpnc.main(["run", "--server-socket", server.socket_path]) == 0
        assert processor.calls == ["tun7"]

    def test_remote_failure(self, vpnc_env, start_agent, capsys):
        server = start_agent(RecordingProcessor(fail_for={"tun7"}))

        assert systemd_networkd_vpnc.main(["run", "--server-socket", server.socket_path]) == 1
        assert "Permission denied" in capsys.readouterr().err

    def test_remote_not_running(self, vpnc_env, socket_dir, capsys):
        path = str(socket_dir / "missing.sock")

        assert systemd_networkd_vpnc.main(["run", "--server-socket", path]) == 1
        assert "Daemon not running" in capsys.readouterr().err

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            systemd_networkd_vpnc.main([])


class TestPlatform:
    """Tests for daemon platform helpers."""

    def test_pid_file_next_to_socket(self):
        assert str(platform.get_pid_file("/run/vpnc.sock")) == "/run/vpnc.sock.pid"

    def test_no_pid_file(self, socket_dir):
        assert platform.running_daemon_pid(socket_dir / "agent.sock") is None

    def test_own_pid_ignored(self, socket_dir):
        socket_path = socket_dir / "agent.sock"
        platform.get_pid_file(socket_path).write_text(str(os.getpid()))

        assert platform.running_daemon_pid(socket_path) is None

    def test_live_daemon_detected(self, socket_dir):
        socket_path = socket_dir / "agent.sock"
        other = subprocess.Popen(["sleep", "30"])
        try:
            platform.get_pid_file(socket_path).write_text(str(other.pid))
            assert platform.running_daemon_pid(socket_path) == other.pid
        finally:
            other.kill()
            other.wait()

        assert platform.running_daemon_pid(socket_path) is None

    def test_garbage_pid_file(self, socket_dir):
        socket_path = socket_dir / "agent.sock"
        platform.get_pid_file(socket_path).write_text("not a pid")

        assert platform.running_daemon_pid(socket_path) is None

    def test_daemon_requires_root(self, monkeypatch, socket_dir):
        monkeypatch.setattr("vpnc_daemon.server.is_root", lambda: False)
        log_file = socket_dir / "daemon.log"

        argv = ["daemon", "--socket-path", str(socket_dir / "agent.sock"), "--log-file", str(log_file)]
        assert systemd_networkd_vpnc.main(argv) == 1
        assert log_file.exists()

    def test_daemon_log_file_default(self):
        args = systemd_networkd_vpnc.build_parser().parse_args(["daemon"])
        assert args.log_file == str(platform.get_log_file())

    def test_daemon_log_file_unwritable(self, socket_dir, capsys):
        log_file = socket_dir / "missing" / "daemon.log"

        assert systemd_networkd_vpnc.main(["daemon", "--log-file", str(log_file)]) == 1
        assert "Cannot open log file" in capsys.readouterr().err
