"""systemd-networkd-vpnc - Core library.

Turns vpnc-script lifecycle events into systemd-networkd configuration.
"""

from .errors import (
    VpncError,
    ParameterError,
    MissingParameter,
    InvalidParameter,
    NetworkctlNotFound,
)
from .networkctl import Networkctl
from .params import (
    Reason,
    Route,
    RouteSet,
    ConnectionParameters,
    split_routes,
    from_env,
)
from .processor import LifecycleProcessor, NetworkApplier, run_locally
from .synthesizer import (
    SYSTEMD_NETWORKD_CONFIG_DIR,
    Changed,
    ConfigSynthesizer,
    network_file_path,
    synthesize,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "VpncError",
    "ParameterError",
    "MissingParameter",
    "InvalidParameter",
    "NetworkctlNotFound",
    # Parameters
    "Reason",
    "Route",
    "RouteSet",
    "ConnectionParameters",
    "split_routes",
    "from_env",
    # Configuration
    "SYSTEMD_NETWORKD_CONFIG_DIR",
    "Changed",
    "ConfigSynthesizer",
    "network_file_path",
    "synthesize",
    # Processing
    "Networkctl",
    "NetworkApplier",
    "LifecycleProcessor",
    "run_locally",
]
