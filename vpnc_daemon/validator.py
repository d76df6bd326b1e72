"""Input validation for daemon requests."""

import re
from typing import Optional, Tuple

from .protocol import Method

# Valid methods
VALID_METHODS = {Method.PING, Method.RUN}

# Interface name: what the kernel accepts, minus '/' and whitespace (e.g., tun0, vpn-corp)
RE_TUNDEV = re.compile(r'^[a-zA-Z0-9_.:-]+\Z')

# Free-form values end up as Key=Value lines; no line breaks or other control characters
RE_VALUE = re.compile(r'^[^\x00-\x1f\x7f]*\Z')

# Written to the log only, never to the .network file
MULTILINE_PARAMS = {"cisco_banner"}

# Length limits
MAX_TUNDEV_LEN = 15       # IFNAMSIZ - 1
MAX_ROUTES = 4096


def validate_request(request: dict) -> Tuple[bool, Optional[str]]:
    """Validate an incoming request.

    Only the shape is checked here; field types and ranges are checked when
    the parameters are parsed.

    Returns:
        (True, None) if valid, (False, error_message) if invalid
    """
    if not isinstance(request, dict):
        return False, "Request must be a JSON object"

    method = request.get("method")
    if not method or method not in VALID_METHODS:
        return False, f"Invalid method: {method}"

    if not isinstance(request.get("id", 0), int):
        return False, "Invalid request id"

    if method == Method.RUN:
        params = request.get("params")
        if not isinstance(params, dict):
            return False, "Missing 'params' object"

        routes = request.get("routes", [])
        if not isinstance(routes, list) or not all(isinstance(r, dict) for r in routes):
            return False, "'routes' must be a list of objects"
        if len(routes) > MAX_ROUTES:
            return False, "Too many routes"

        # The network file is named after the device; keep it inside the config dir
        tundev = params.get("tundev")
        if not isinstance(tundev, str) or not tundev:
            return False, "Missing 'tundev' parameter"
        if len(tundev) > MAX_TUNDEV_LEN or not RE_TUNDEV.match(tundev) or tundev in (".", ".."):
            return False, "Invalid tundev format"

        for name, value in params.items():
            if name not in MULTILINE_PARAMS and isinstance(value, str) and not RE_VALUE.match(value):
                return False, f"Invalid characters in '{name}'"

        for n, route in enumerate(routes):
            for name, value in route.items():
                if isinstance(value, str) and not RE_VALUE.match(value):
                    return False, f"Invalid characters in route {n} '{name}'"

    return True, None
