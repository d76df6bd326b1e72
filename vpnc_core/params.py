"""Connection parameters passed by the VPN client to its connection script.

openconnect/vpnc export the lifecycle event and the tunnel settings as
environment variables (the "vpnc-script" interface). This module turns that
flat namespace into typed values with documented defaults, and back into
plain dicts for the daemon protocol.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import InvalidParameter, MissingParameter

DEFAULT_NETMASKLEN = 32
SPLIT_INC_PREFIX = "CISCO_SPLIT_INC_{}_"

# Marks a parameter without default
REQUIRED = object()


class Reason(Enum):
    """Lifecycle event that triggered the script."""
    PRE_INIT = "pre-init"
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    ATTEMPT_RECONNECT = "attempt-reconnect"
    RECONNECT = "reconnect"


# === Value parsers ===

def _string(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidParameter(name, value, "expected a string")
    return value


def _unsigned(bits: Optional[int]) -> Callable[[str, Any], int]:
    """Build a parser for unsigned integers of the given width (None = unbounded)."""

    def parse(name: str, value: Any) -> int:
        if isinstance(value, bool):
            raise InvalidParameter(name, value, "expected an integer")
        if isinstance(value, str):
            try:
                value = int(value.strip(), 10)
            except ValueError:
                raise InvalidParameter(name, value, "expected an integer")
        if not isinstance(value, int):
            raise InvalidParameter(name, value, "expected an integer")
        if value < 0 or (bits is not None and value >= 1 << bits):
            raise InvalidParameter(name, value, "out of range")
        return value

    return parse


def _reason(name: str, value: Any) -> Reason:
    try:
        return Reason(_string(name, value))
    except ValueError:
        valid = ", ".join(r.value for r in Reason)
        raise InvalidParameter(name, value, f"expected one of: {valid}")


# (attribute, variable name, parser, default)
ParameterTable = Tuple[Tuple[str, str, Callable[[str, Any], Any], Any], ...]


def _collect(table: ParameterTable, values: Mapping[str, Any]) -> Dict[str, Any]:
    """Parse ``values`` (keyed by lower-case variable name) according to ``table``."""
    kwargs = {}
    for attr, name, parser, default in table:
        value = values.get(name)
        if value is None:
            if default is REQUIRED:
                raise MissingParameter(name)
            kwargs[attr] = default
        else:
            kwargs[attr] = parser(name, value)
    return kwargs


@dataclass
class Route:
    """One split-tunnel route (CISCO_SPLIT_INC_<n>_*)."""
    addr: str
    mask: str
    masklen: int
    protocol: int = 0
    sport: int = 0
    dport: int = 0

    FIELDS = (
        ("addr", "addr", _string, REQUIRED),
        ("mask", "mask", _string, REQUIRED),
        ("masklen", "masklen", _unsigned(8), REQUIRED),
        ("protocol", "protocol", _unsigned(8), 0),
        ("sport", "sport", _unsigned(16), 0),
        ("dport", "dport", _unsigned(16), 0),
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Route":
        return cls(**_collect(cls.FIELDS, data))

    @classmethod
    def from_env(cls, prefix: str, environ: Mapping[str, str] = os.environ) -> "Route":
        """Read the route whose variables all start with ``prefix``."""
        values = {
            key[len(prefix):].lower(): value
            for key, value in environ.items()
            if key.startswith(prefix)
        }
        try:
            return cls.from_dict(values)
        except MissingParameter as e:
            raise MissingParameter(f"{prefix}{e.name.upper()}")
        except InvalidParameter as e:
            raise InvalidParameter(f"{prefix}{e.name.upper()}", e.value, e.reason)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, attr) for attr, name, _, _ in self.FIELDS}


RouteSet = List[Route]


@dataclass
class ConnectionParameters:
    """Typed view of the vpnc-script environment."""
    reason: Reason
    vpngateway: str
    tundev: str
    address: str
    mtu: Optional[int] = None
    netmask: Optional[str] = None
    netmasklen: int = DEFAULT_NETMASKLEN
    netaddr: Optional[str] = None
    dns: Optional[str] = None
    nbns: Optional[str] = None
    def_domain: Optional[str] = None
    banner: Optional[str] = None
    split_routes_inc: int = 0

    FIELDS = (
        ("reason", "reason", _reason, REQUIRED),
        ("vpngateway", "vpngateway", _string, REQUIRED),
        ("tundev", "tundev", _string, REQUIRED),
        ("address", "internal_ip4_address", _string, REQUIRED),
        ("mtu", "internal_ip4_mtu", _unsigned(32), None),
        ("netmask", "internal_ip4_netmask", _string, None),
        ("netmasklen", "internal_ip4_netmasklen", _unsigned(8), DEFAULT_NETMASKLEN),
        ("netaddr", "internal_ip4_netaddr", _string, None),
        ("dns", "internal_ip4_dns", _string, None),
        ("nbns", "internal_ip4_nbns", _string, None),
        ("def_domain", "cisco_def_domain", _string, None),
        ("banner", "cisco_banner", _string, None),
        ("split_routes_inc", "cisco_split_inc", _unsigned(None), 0),
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConnectionParameters":
        return cls(**_collect(cls.FIELDS, data))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "ConnectionParameters":
        # openconnect exports `reason` in lower case and everything else in upper case
        return cls.from_dict({key.lower(): value for key, value in environ.items()})

    def to_dict(self) -> Dict[str, Any]:
        data = {name: getattr(self, attr) for attr, name, _, _ in self.FIELDS}
        data["reason"] = self.reason.value
        return data


def split_routes(params: ConnectionParameters, environ: Mapping[str, str] = os.environ) -> RouteSet:
    """Read the ``params.split_routes_inc`` split-include routes from ``environ``.

    Raises:
        ParameterError: If any route group is missing or malformed
    """
    return [
        Route.from_env(SPLIT_INC_PREFIX.format(n), environ)
        for n in range(params.split_routes_inc)
    ]


def from_env(environ: Mapping[str, str] = os.environ) -> Tuple[ConnectionParameters, RouteSet]:
    """Read connection parameters and their split routes from ``environ``."""
    params = ConnectionParameters.from_env(environ)
    return params, split_routes(params, environ)
