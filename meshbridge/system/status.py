import yaml

from meshbridge.core.models import InterfaceInfo, InterfaceKind
from meshbridge.system.controller import NetworkController
from meshbridge.system.reset import LOOPBACK, MESH_PATTERN
from meshbridge.system.services import MANAGED_DAEMONS


def _kind(name: str, bridges, radio) -> InterfaceKind:
    if name == LOOPBACK:
        return InterfaceKind.LOOPBACK
    if name in bridges:
        return InterfaceKind.BRIDGE
    if radio is not None:
        return InterfaceKind.MESH if MESH_PATTERN.match(name) else InterfaceKind.WIRELESS
    return InterfaceKind.WIRED


def status_snapshot(ctl: NetworkController) -> dict:
    """What the host looks like right now, without touching anything."""
    bridges = ctl.list_bridges()
    interfaces = []
    for name in ctl.list_interfaces():
        radio = ctl.wireless_radio(name)
        info = InterfaceInfo(
            name=name,
            kind=_kind(name, bridges, radio),
            up=ctl.interface_is_up(name),
            address=ctl.interface_address(name),
            radio=f"phy{radio}" if radio is not None else None,
            master=ctl.bridge_of(name),
        )
        interfaces.append(info.model_dump(mode="json", exclude_none=True))

    return {
        "interfaces": interfaces,
        "bridges": {b: ctl.bridge_members(b) for b in bridges},
        "routes": [
            {"destination": r.destination, "netmask": r.netmask, "device": r.device}
            for r in ctl.list_routes()
        ],
        "daemons": {d: ctl.find_processes(d) for d in MANAGED_DAEMONS},
    }


def status_yaml(ctl: NetworkController) -> str:
    return yaml.safe_dump(status_snapshot(ctl), sort_keys=False)
