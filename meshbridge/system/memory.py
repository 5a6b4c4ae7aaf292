"""In-memory NetworkController.

Models a host as plain dictionaries so the whole pipeline can run without
root privileges or hardware. Failures are injected by adding
``(operation, target)`` pairs to ``fail``, e.g. ``("delete_route", "eth0")``.
"""
import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from meshbridge.core.models import InterfaceKind, RouteEntry
from meshbridge.system.controller import NetworkController

MESH_POINT = "mesh point"


@dataclass
class Radio:
    channels: List[int] = field(default_factory=lambda: list(range(1, 12)))
    disabled: List[int] = field(default_factory=list)
    modes: List[str] = field(default_factory=lambda: ["managed", "AP", MESH_POINT])


@dataclass
class Link:
    kind: InterfaceKind = InterfaceKind.WIRED
    up: bool = True
    addresses: List[str] = field(default_factory=list)
    radio: Optional[int] = None
    master: Optional[str] = None
    channel: Optional[Tuple[int, str]] = None
    mesh_id: Optional[str] = None


class MemoryNetworkController(NetworkController):
    def __init__(self):
        self.links: Dict[str, Link] = {}
        self.radios: Dict[int, Radio] = {}
        self.routes: List[RouteEntry] = []
        self.processes: Dict[int, str] = {}
        self.programs: Set[str] = {"hostapd", "dnsmasq"}
        # daemons that refuse a graceful stop / a SIGKILL / to keep running
        self.stubborn: Set[str] = set()
        self.unkillable: Set[str] = set()
        self.crashing: Set[str] = set()
        self.fail: Set[Tuple[str, str]] = set()
        self.calls: List[Tuple[str, ...]] = []
        self._pids = itertools.count(1000)

    # setup helpers

    def add_wired(self, name: str, up: bool = True, address: Optional[str] = None) -> None:
        self.links[name] = Link(InterfaceKind.WIRED, up=up, addresses=[address] if address else [])

    def add_wireless(self, name: str, radio: int = 0, up: bool = True, **radio_kw) -> None:
        if radio not in self.radios:
            self.radios[radio] = Radio(**radio_kw)
        self.links[name] = Link(InterfaceKind.WIRELESS, up=up, radio=radio)

    def add_existing_bridge(self, name: str, members: List[str]) -> None:
        self.links[name] = Link(InterfaceKind.BRIDGE)
        for m in members:
            self.links[m].master = name

    def add_route(self, destination: str, netmask: str, device: str) -> None:
        self.routes.append(RouteEntry(destination=destination, netmask=netmask, device=device))

    def spawn(self, name: str) -> int:
        pid = next(self._pids)
        self.processes[pid] = name
        return pid

    def _failing(self, op: str, target: str) -> bool:
        self.calls.append((op, target))
        return (op, target) in self.fail

    # queries

    def list_interfaces(self) -> List[str]:
        return list(self.links)

    def interface_exists(self, name: str) -> bool:
        return name in self.links

    def interface_is_up(self, name: str) -> bool:
        return name in self.links and self.links[name].up

    def interface_address(self, name: str) -> Optional[str]:
        link = self.links.get(name)
        return link.addresses[0] if link and link.addresses else None

    def wireless_radio(self, name: str) -> Optional[int]:
        link = self.links.get(name)
        return link.radio if link else None

    def _radio(self, phy: str) -> Optional[Radio]:
        if not phy.startswith("phy") or not phy[3:].isdigit():
            return None
        return self.radios.get(int(phy[3:]))

    def radio_channels(self, phy: str) -> List[int]:
        radio = self._radio(phy)
        if radio is None:
            return []
        return sorted(set(radio.channels) - set(radio.disabled))

    def radio_interface_modes(self, phy: str) -> List[str]:
        radio = self._radio(phy)
        return [m.lower() for m in radio.modes] if radio else []

    def list_bridges(self) -> List[str]:
        return [n for n, link in self.links.items() if link.kind == InterfaceKind.BRIDGE]

    def bridge_members(self, bridge: str) -> List[str]:
        return [n for n, link in self.links.items() if link.master == bridge]

    def list_routes(self) -> List[RouteEntry]:
        return list(self.routes)

    def find_processes(self, name: str) -> List[int]:
        return [pid for pid, proc in self.processes.items() if proc == name]

    def have_program(self, name: str) -> bool:
        return name in self.programs

    # mutations

    def delete_wireless_interface(self, name: str) -> bool:
        if self._failing("delete_wireless_interface", name) or name not in self.links:
            return False
        del self.links[name]
        return True

    def add_mesh_interface(self, phy: str, name: str, mesh_id: str) -> bool:
        radio = self._radio(phy)
        if self._failing("add_mesh_interface", name) or radio is None or name in self.links:
            return False
        self.links[name] = Link(InterfaceKind.MESH, up=False, radio=int(phy[3:]), mesh_id=mesh_id)
        return True

    def set_channel(self, name: str, channel: int, mode: str) -> bool:
        if self._failing("set_channel", name) or name not in self.links:
            return False
        self.links[name].channel = (channel, mode)
        return True

    def set_link(self, name: str, up: bool) -> bool:
        if self._failing("set_link", name) or name not in self.links:
            return False
        self.links[name].up = up
        return True

    def add_address(self, name: str, address: str) -> bool:
        if self._failing("add_address", name) or name not in self.links:
            return False
        self.links[name].addresses.append(address)
        return True

    def create_bridge(self, name: str) -> bool:
        if self._failing("create_bridge", name) or name in self.links:
            return False
        self.links[name] = Link(InterfaceKind.BRIDGE, up=False)
        return True

    def delete_bridge(self, name: str) -> bool:
        if self._failing("delete_bridge", name) or name not in self.list_bridges():
            return False
        if self.bridge_members(name):
            return False
        del self.links[name]
        return True

    def add_bridge_member(self, bridge: str, member: str) -> bool:
        if self._failing("add_bridge_member", member):
            return False
        if bridge not in self.list_bridges() or member not in self.links or member == bridge:
            return False
        self.links[member].master = bridge
        return True

    def remove_bridge_member(self, bridge: str, member: str) -> bool:
        if self._failing("remove_bridge_member", member):
            return False
        link = self.links.get(member)
        if link is None or link.master != bridge:
            return False
        link.master = None
        return True

    def delete_route(self, route: RouteEntry) -> bool:
        if self._failing("delete_route", route.device) or route not in self.routes:
            return False
        self.routes.remove(route)
        return True

    def stop_service(self, name: str) -> bool:
        if self._failing("stop_service", name):
            return False
        if name not in self.stubborn:
            for pid in self.find_processes(name):
                del self.processes[pid]
        return True

    def kill_process(self, pid: int) -> bool:
        name = self.processes.get(pid)
        if name is None:
            return True
        if self._failing("kill_process", name) or name in self.unkillable:
            return False
        del self.processes[pid]
        return True

    def start_daemon(self, argv: List[str]) -> bool:
        name = argv[0].rsplit("/", 1)[-1]
        if self._failing("start_daemon", name) or name not in self.programs:
            return False
        self.calls.append(("argv",) + tuple(argv))
        if name not in self.crashing:
            self.spawn(name)
        return True
