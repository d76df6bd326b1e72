"""Runs one lifecycle event: update the .network file, then reload networkd."""

import logging
from pathlib import Path
from typing import Optional, Protocol, Union

from .networkctl import Networkctl
from .params import ConnectionParameters, RouteSet
from .synthesizer import SYSTEMD_NETWORKD_CONFIG_DIR, Changed, ConfigSynthesizer

log = logging.getLogger(__name__)


class NetworkApplier(Protocol):
    """Anything that can make the network manager reload its configuration."""

    def reload(self) -> None:
        ...


class LifecycleProcessor:
    """Processes lifecycle events in the current process.

    Used directly by `run` without a daemon, and by the daemon for each
    request it receives. Errors are not caught here.
    """

    def __init__(
            self,
            config_dir: Union[str, Path] = SYSTEMD_NETWORKD_CONFIG_DIR,
            applier: Optional[NetworkApplier] = None,
    ):
        self.config_dir = config_dir
        self._applier = applier

    @property
    def applier(self) -> NetworkApplier:
        # Created on first use so events that change nothing work without networkd
        if self._applier is None:
            self._applier = Networkctl()
        return self._applier

    def process(self, params: ConnectionParameters, routes: RouteSet) -> Changed:
        changed = ConfigSynthesizer(params, routes, self.config_dir).run()
        if changed is Changed.YES:
            log.info("Network configuration changed, reloading systemd-networkd")
            self.applier.reload()
        return changed


def run_locally(params: ConnectionParameters, routes: RouteSet) -> Changed:
    """Process one event in this process (convenience function)."""
    return LifecycleProcessor().process(params, routes)
