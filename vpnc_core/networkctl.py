"""Wrapper around systemd's `networkctl` command."""

import logging
import subprocess
from shutil import which
from typing import Optional

from .errors import NetworkctlNotFound

NETWORKCTL = "networkctl"

log = logging.getLogger(__name__)


class Networkctl:
    """Tells systemd-networkd to pick up configuration changes.

    The binary is looked up in PATH once, so later changes to the directories
    in PATH do not change which executable is run.
    """

    def __init__(self, path: Optional[str] = None):
        self.bin = which(NETWORKCTL, path=path)
        if self.bin is None:
            raise NetworkctlNotFound(f"`{NETWORKCTL}` not found")

    def reload(self) -> None:
        """Run `networkctl reload`.

        Only a failure to spawn the process is an error; the exit status of
        networkctl is logged but not checked.

        Raises:
            OSError: If the process cannot be started
        """
        result = subprocess.run([self.bin, "reload"])
        if result.returncode != 0:
            log.warning(f"{self.bin} reload exited with status {result.returncode}")
