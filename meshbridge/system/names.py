from meshbridge.core.errors import NameExhaustedError

from meshbridge.system.controller import NetworkController

MAX_INDEX = 64

MESH_PREFIX = "mesh"
BRIDGE_PREFIX = "bridge"


def next_free(ctl: NetworkController, prefix: str, limit: int = MAX_INDEX) -> str:
    """Lowest ``{prefix}{n}`` not already present on the host."""
    for index in range(limit):
        name = f"{prefix}{index}"
        if not ctl.interface_exists(name):
            return name
    raise NameExhaustedError(f"No free interface name between {prefix}0 and {prefix}{limit - 1}")
