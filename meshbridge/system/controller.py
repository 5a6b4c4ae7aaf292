import logging
import os
import re
import shutil
import signal
import subprocess
import time
from abc import ABC, abstractmethod
from ipaddress import IPv4Network
from typing import List, Optional

from meshbridge.core.models import RouteEntry

SETTLE_DELAY = float(os.environ.get("MESHBRIDGE_SETTLE_DELAY", "2"))

logger = logging.getLogger(__name__)


class NetworkController(ABC):
    """Everything the reconciler needs from the host.

    Queries return observed state. Mutations return True on success and
    False on failure; they never raise for an ordinary command failure.
    """

    # queries

    @abstractmethod
    def list_interfaces(self) -> List[str]: ...

    @abstractmethod
    def interface_exists(self, name: str) -> bool: ...

    @abstractmethod
    def interface_is_up(self, name: str) -> bool: ...

    @abstractmethod
    def interface_address(self, name: str) -> Optional[str]: ...

    @abstractmethod
    def wireless_radio(self, name: str) -> Optional[int]:
        """Index N of the phyN radio the wireless interface lives on."""

    @abstractmethod
    def radio_channels(self, phy: str) -> List[int]:
        """Enabled channels of a radio, sorted, disabled ones excluded."""

    @abstractmethod
    def radio_interface_modes(self, phy: str) -> List[str]: ...

    @abstractmethod
    def list_bridges(self) -> List[str]: ...

    @abstractmethod
    def bridge_members(self, bridge: str) -> List[str]: ...

    @abstractmethod
    def list_routes(self) -> List[RouteEntry]: ...

    @abstractmethod
    def find_processes(self, name: str) -> List[int]: ...

    @abstractmethod
    def have_program(self, name: str) -> bool: ...

    # mutations

    @abstractmethod
    def delete_wireless_interface(self, name: str) -> bool: ...

    @abstractmethod
    def add_mesh_interface(self, phy: str, name: str, mesh_id: str) -> bool: ...

    @abstractmethod
    def set_channel(self, name: str, channel: int, mode: str) -> bool: ...

    @abstractmethod
    def set_link(self, name: str, up: bool) -> bool: ...

    @abstractmethod
    def add_address(self, name: str, address: str) -> bool: ...

    @abstractmethod
    def create_bridge(self, name: str) -> bool: ...

    @abstractmethod
    def delete_bridge(self, name: str) -> bool: ...

    @abstractmethod
    def add_bridge_member(self, bridge: str, member: str) -> bool: ...

    @abstractmethod
    def remove_bridge_member(self, bridge: str, member: str) -> bool: ...

    @abstractmethod
    def delete_route(self, route: RouteEntry) -> bool: ...

    @abstractmethod
    def stop_service(self, name: str) -> bool:
        """Ask the init system to stop a service."""

    @abstractmethod
    def kill_process(self, pid: int) -> bool: ...

    @abstractmethod
    def start_daemon(self, argv: List[str]) -> bool: ...

    def settle(self) -> None:
        """Pause so kernel/driver state catches up with the last mutation."""

    def bridge_of(self, name: str) -> Optional[str]:
        for bridge in self.list_bridges():
            if name in self.bridge_members(bridge):
                return bridge
        return None


# Parsers for ip/iw output. Kept as plain functions so they can be tested
# against captured text.

_CHANNEL_LINE = re.compile(r"\*\s+\d+(?:\.\d+)?\s+MHz\s+\[(\d+)\]")
_WIPHY_LINE = re.compile(r"^\s*wiphy\s+(\d+)\s*$", re.MULTILINE)


def parse_link_names(out: str) -> List[str]:
    """Names from `ip -o link show` output."""
    names = []
    for ln in out.splitlines():
        parts = ln.split(": ", 2)
        if len(parts) < 2:
            continue
        name = parts[1].split("@")[0].strip()
        if name and name not in names:
            names.append(name)
    return names


def parse_link_up(out: str) -> bool:
    m = re.search(r"<([^>]*)>", out)
    return bool(m) and "UP" in m.group(1).split(",")


def parse_ipv4_address(out: str) -> Optional[str]:
    """First address from `ip -o -4 addr show dev X` output."""
    for ln in out.splitlines():
        parts = ln.split()
        if "inet" in parts:
            i = parts.index("inet")
            if i + 1 < len(parts):
                return parts[i + 1].split("/")[0]
    return None


def parse_wiphy(out: str) -> Optional[int]:
    m = _WIPHY_LINE.search(out)
    return int(m.group(1)) if m else None


def parse_phy_channels(out: str) -> List[int]:
    channels = set()
    for ln in out.splitlines():
        if "(disabled)" in ln:
            continue
        m = _CHANNEL_LINE.search(ln)
        if m:
            channels.add(int(m.group(1)))
    return sorted(channels)


def parse_interface_modes(out: str) -> List[str]:
    modes = []
    inside = False
    for ln in out.splitlines():
        s = ln.strip()
        if s.startswith("Supported interface modes"):
            inside = True
            continue
        if inside:
            if not s.startswith("*"):
                break
            modes.append(s.lstrip("*").strip().lower())
    return modes


def parse_routes(out: str) -> List[RouteEntry]:
    """Entries from `ip -4 route show` output, one per line; lines without a device are skipped."""
    routes = []
    for ln in out.splitlines():
        parts = ln.split()
        if not parts or "dev" not in parts:
            continue
        i = parts.index("dev")
        if i + 1 >= len(parts):
            continue
        dest = "0.0.0.0/0" if parts[0] == "default" else parts[0]
        try:
            net = IPv4Network(dest, strict=False)
        except ValueError:
            continue
        route = RouteEntry(
            destination=str(net.network_address),
            netmask=str(net.netmask),
            device=parts[i + 1],
        )
        routes.append(route)
    return routes


def _have(cmd: str) -> bool:
    return shutil.which(cmd) is not None


def _run(cmd: List[str]) -> subprocess.CompletedProcess:
    logger.debug("+ %s", " ".join(cmd))
    try:
        res = subprocess.run(cmd, check=False, text=True, capture_output=True)
    except OSError as e:
        logger.debug("  %s: %s", cmd[0], e)
        return subprocess.CompletedProcess(cmd, 127, "", str(e))
    if res.returncode != 0:
        logger.debug("  exit %d: %s", res.returncode, (res.stderr or "").strip())
    return res


def _ok(cmd: List[str]) -> bool:
    return _run(cmd).returncode == 0


def _out(cmd: List[str]) -> str:
    res = _run(cmd)
    return res.stdout if res.returncode == 0 else ""


class SystemNetworkController(NetworkController):
    """Drives the live host through ip, iw, pgrep and the init system."""

    def __init__(self, settle_delay: float = SETTLE_DELAY):
        self.settle_delay = settle_delay

    def settle(self) -> None:
        if self.settle_delay > 0:
            time.sleep(self.settle_delay)

    def list_interfaces(self) -> List[str]:
        return parse_link_names(_out(["ip", "-o", "link", "show"]))

    def interface_exists(self, name: str) -> bool:
        return _ok(["ip", "link", "show", "dev", name])

    def interface_is_up(self, name: str) -> bool:
        return parse_link_up(_out(["ip", "-o", "link", "show", "dev", name]))

    def interface_address(self, name: str) -> Optional[str]:
        return parse_ipv4_address(_out(["ip", "-o", "-4", "addr", "show", "dev", name]))

    def wireless_radio(self, name: str) -> Optional[int]:
        return parse_wiphy(_out(["iw", "dev", name, "info"]))

    def radio_channels(self, phy: str) -> List[int]:
        return parse_phy_channels(_out(["iw", "phy", phy, "info"]))

    def radio_interface_modes(self, phy: str) -> List[str]:
        return parse_interface_modes(_out(["iw", "phy", phy, "info"]))

    def list_bridges(self) -> List[str]:
        return parse_link_names(_out(["ip", "-o", "link", "show", "type", "bridge"]))

    def bridge_members(self, bridge: str) -> List[str]:
        return parse_link_names(_out(["ip", "-o", "link", "show", "master", bridge]))

    def list_routes(self) -> List[RouteEntry]:
        return parse_routes(_out(["ip", "-4", "route", "show"]))

    def find_processes(self, name: str) -> List[int]:
        # pgrep exits 1 when nothing matches
        out = _out(["pgrep", "-x", name])
        return [int(p) for p in out.split() if p.isdigit()]

    def have_program(self, name: str) -> bool:
        return _have(name)

    def delete_wireless_interface(self, name: str) -> bool:
        return _ok(["iw", "dev", name, "del"])

    def add_mesh_interface(self, phy: str, name: str, mesh_id: str) -> bool:
        return _ok(["iw", "phy", phy, "interface", "add", name, "type", "mp", "mesh_id", mesh_id])

    def set_channel(self, name: str, channel: int, mode: str) -> bool:
        return _ok(["iw", "dev", name, "set", "channel", str(channel), mode])

    def set_link(self, name: str, up: bool) -> bool:
        return _ok(["ip", "link", "set", "dev", name, "up" if up else "down"])

    def add_address(self, name: str, address: str) -> bool:
        # Addresses are treated as /24 hosts throughout.
        return _ok(["ip", "addr", "add", f"{address}/24", "dev", name])

    def create_bridge(self, name: str) -> bool:
        return _ok(["ip", "link", "add", "name", name, "type", "bridge"])

    def delete_bridge(self, name: str) -> bool:
        return _ok(["ip", "link", "del", "dev", name, "type", "bridge"])

    def add_bridge_member(self, bridge: str, member: str) -> bool:
        return _ok(["ip", "link", "set", "dev", member, "master", bridge])

    def remove_bridge_member(self, bridge: str, member: str) -> bool:
        return _ok(["ip", "link", "set", "dev", member, "nomaster"])

    def delete_route(self, route: RouteEntry) -> bool:
        return _ok(["ip", "-4", "route", "del", str(route.network), "dev", route.device])

    def stop_service(self, name: str) -> bool:
        if _have("systemctl"):
            return _ok(["systemctl", "stop", name])
        script = f"/etc/init.d/{name}"
        if os.access(script, os.X_OK):
            return _ok([script, "stop"])
        return False

    def kill_process(self, pid: int) -> bool:
        logger.debug("+ kill -9 %d", pid)
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            return True
        except PermissionError as e:
            logger.debug("  kill %d: %s", pid, e)
            return False
        return True

    def start_daemon(self, argv: List[str]) -> bool:
        logger.debug("+ %s &", " ".join(argv))
        try:
            subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.debug("  %s: %s", argv[0], e)
            return False
        return True
