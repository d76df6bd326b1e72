"""Error types for systemd-networkd-vpnc.

Filesystem failures are not wrapped: they surface as the ``OSError`` raised
by the failing call.
"""


class VpncError(Exception):
    """Base error for this package."""
    pass


class ParameterError(VpncError):
    """Connection parameters could not be acquired."""
    pass


class MissingParameter(ParameterError):
    """A required parameter is absent."""

    def __init__(self, name: str):
        super().__init__(f"missing parameter: {name}")
        self.name = name


class InvalidParameter(ParameterError):
    """A parameter is present but malformed."""

    def __init__(self, name: str, value, reason: str):
        super().__init__(f"invalid value for {name}={value!r}: {reason}")
        self.name = name
        self.value = value
        self.reason = reason


class NetworkctlNotFound(VpncError):
    """The networkctl executable is not on PATH."""
    pass
