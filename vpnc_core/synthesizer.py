"""systemd-networkd configuration for the VPN tunnel device.

One ``<tundev>.network`` file per tunnel is written on connect and removed
on disconnect. Every other lifecycle event leaves the filesystem alone.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import IO, Iterable, Tuple, Union

from .errors import MissingParameter
from .params import ConnectionParameters, Reason, RouteSet

SYSTEMD_NETWORKD_CONFIG_DIR = "/etc/systemd/network/"
DEFAULT_MTU = 1412
DEFAULT_ROUTE_ADDR = "0.0.0.0"

log = logging.getLogger(__name__)


class Changed(Enum):
    """Whether the on-disk network configuration was modified."""
    YES = "yes"
    NO = "no"


def network_file_path(tundev: str, config_dir: Union[str, Path] = SYSTEMD_NETWORKD_CONFIG_DIR) -> Path:
    """Get the .network file path for a tunnel device."""
    return Path(config_dir) / f"{tundev}.network"


def _write_section(file: IO[str], name: str, entries: Iterable[Tuple[str, object]]) -> None:
    file.write(f"\n[{name}]\n")
    for key, value in entries:
        file.write(f"{key}={value}\n")


class ConfigSynthesizer:
    """Maps one lifecycle event to a change of the tunnel's .network file."""

    def __init__(
            self,
            params: ConnectionParameters,
            routes: RouteSet,
            config_dir: Union[str, Path] = SYSTEMD_NETWORKD_CONFIG_DIR,
    ):
        self.params = params
        self.routes = routes
        self.network_file = network_file_path(params.tundev, config_dir)

    def run(self) -> Changed:
        """Apply the event to the filesystem.

        Returns:
            Changed.YES if the .network file was written or removed

        Raises:
            OSError: On any filesystem failure
            MissingParameter: If a netmask is given without a network address
        """
        handlers = {
            Reason.PRE_INIT: self.pre_init,
            Reason.CONNECT: self.connect,
            Reason.DISCONNECT: self.disconnect,
            Reason.ATTEMPT_RECONNECT: self.attempt_reconnect,
            Reason.RECONNECT: self.reconnect,
        }
        log.debug(f"Handling reason={self.params.reason.value} for {self.params.tundev}")
        return handlers[self.params.reason]()

    def pre_init(self) -> Changed:
        return Changed.NO

    def attempt_reconnect(self) -> Changed:
        return Changed.NO

    def reconnect(self) -> Changed:
        return Changed.NO

    def disconnect(self) -> Changed:
        # No existence check: a missing file is an error
        self.network_file.unlink()
        log.info(f"Removed {self.network_file}")
        return Changed.YES

    def connect(self) -> Changed:
        params = self.params

        if params.banner is not None:
            print(f"Connect Banner:\n{params.banner}")
            log.info(f"Connect banner: {params.banner}")

        self.network_file.parent.mkdir(parents=True, exist_ok=True)

        with open(self.network_file, "w", encoding="utf-8") as file:
            _write_section(file, "Link", [
                ("MTUBytes", params.mtu if params.mtu is not None else DEFAULT_MTU),
            ])
            _write_section(file, "Address", [
                ("Address", f"{params.address}/32"),
            ])
            # Gateway is the tunnel address itself, not VPNGATEWAY
            _write_section(file, "Route", [
                ("Destination", f"{params.address}/32"),
                ("Gateway", params.address),
            ])

            if params.netmask is not None:
                if params.netaddr is None:
                    raise MissingParameter("internal_ip4_netaddr")
                _write_section(file, "Route", [
                    ("Destination", f"{params.netaddr}/{params.netmasklen}"),
                    ("Scope", "link"),
                ])

            default_route = False
            if params.split_routes_inc > 0:
                for route in self.routes:
                    if route.addr == DEFAULT_ROUTE_ADDR:
                        default_route = True
                    else:
                        _write_section(file, "Route", [
                            ("Scope", "link"),
                            ("Destination", f"{route.addr}/{route.masklen}"),
                        ])
            else:
                default_route = params.address != ""

            _write_section(file, "Match", [
                ("Name", params.tundev),
            ])
            _write_section(file, "Network", [
                ("Description", f"Cisco VPN to {params.vpngateway}"),
                ("DHCP", "no"),
                ("IPv6AcceptRA", "no"),
            ])

            if default_route:
                file.write("DefaultRouteOnDevice=yes\n")

            if params.dns is not None:
                # Domains= only accompanies DNS servers
                if params.def_domain is not None:
                    file.write(f"Domains={params.def_domain}\n")
                for nameserver in params.dns.split():
                    file.write(f"DNS={nameserver}\n")

        log.info(f"Wrote {self.network_file}")
        return Changed.YES


def synthesize(
        params: ConnectionParameters,
        routes: RouteSet,
        config_dir: Union[str, Path] = SYSTEMD_NETWORKD_CONFIG_DIR,
) -> Changed:
    """Apply one lifecycle event to the tunnel's .network file (convenience function)."""
    return ConfigSynthesizer(params, routes, config_dir).run()
