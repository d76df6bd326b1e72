#!/usr/bin/env python3
"""
systemd-networkd-vpnc - vpnc-script for systemd-networkd

Configures the tunnel device created by openconnect/vpnc through a
systemd-networkd .network file instead of calling ip/route directly.

Usage:
    systemd-networkd-vpnc run                          (apply the event in this process, needs root)
    systemd-networkd-vpnc run --server-socket PATH     (forward the event to the daemon)
    systemd-networkd-vpnc daemon [--socket-path PATH]  (privileged daemon, run as root)

openconnect example:
    openconnect --script 'systemd-networkd-vpnc run --server-socket /run/systemd-networkd-vpnc.sock' ...
"""

import argparse
import logging
import sys

from vpnc_core import VpncError, from_env, run_locally
from vpnc_daemon import DaemonError, run_daemon, run_remotely
from vpnc_daemon.platform import get_log_file
from vpnc_daemon.server import LOG_FORMAT, setup_logging

log = logging.getLogger("systemd-networkd-vpnc")


def print_error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def cmd_run(args) -> int:
    """Handle one lifecycle event from the environment."""
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format=LOG_FORMAT,
    )

    try:
        if args.server_socket:
            run_remotely(args.server_socket)
        else:
            params, routes = from_env()
            run_locally(params, routes)
    except (VpncError, DaemonError, OSError) as e:
        print_error(str(e))
        return 1
    return 0


def cmd_daemon(args) -> int:
    """Run the privileged daemon until SIGTERM/SIGINT."""
    try:
        setup_logging(args.log_file, args.debug)
    except OSError as e:
        print_error(f"Cannot open log file: {e}")
        return 1

    try:
        return run_daemon(args.socket_path)
    except OSError as e:
        log.error(f"Daemon failed: {e}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="systemd-networkd-vpnc",
        description="vpnc-script that configures the VPN tunnel with systemd-networkd",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the script based on the config inside the environment variables")
    run.add_argument(
        "--server-socket",
        metavar="PATH",
        help="Path to the daemon's UNIX socket. If missing, the script is run locally without a daemon.",
    )
    run.add_argument("--debug", action="store_true", help="Enable debug output")
    run.set_defaults(func=cmd_run)

    daemon = subparsers.add_parser("daemon", help="Start the daemon listening for config requests")
    daemon.add_argument("--socket-path", metavar="PATH", help="Path to the UNIX socket to listen on")
    daemon.add_argument(
        "--log-file",
        metavar="PATH",
        default=str(get_log_file()),
        help="Also log to this file (default: %(default)s)",
    )
    daemon.add_argument("--debug", action="store_true", help="Enable debug output")
    daemon.set_defaults(func=cmd_daemon)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
