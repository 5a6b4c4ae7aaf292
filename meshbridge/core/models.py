import re
from enum import Enum
from ipaddress import IPv4Network
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

FREQUENCY_MODES = ("HT20", "HT40+", "HT40-")

_LIST_SPLIT = re.compile(r"[\s,]+")


def _is_yes(value: str) -> bool:
    return value.strip().lower() == "yes"


class Section(BaseModel):
    # Every option is a plain string; absent options are "".
    model_config = ConfigDict(frozen=True, extra="forbid")


class GeneralConfig(Section):
    debug: str = ""

    @property
    def debug_enabled(self) -> bool:
        return _is_yes(self.debug)


class MeshConfig(Section):
    mesh: str = ""
    mesh_dev: str = ""
    mesh_id: str = ""
    mesh_channel: str = ""
    mesh_frequency: str = ""
    mesh_ip: str = ""
    mesh_if: str = ""

    @property
    def enabled(self) -> bool:
        return _is_yes(self.mesh)

    @property
    def complete(self) -> bool:
        return all([self.mesh_dev, self.mesh_id, self.mesh_channel, self.mesh_frequency])


class BridgeConfig(Section):
    bridge: str = ""
    bridge_if: str = ""
    bridge_nics: str = ""
    bridge_ip: str = ""

    @property
    def enabled(self) -> bool:
        return _is_yes(self.bridge)

    @property
    def members(self) -> List[str]:
        return [n for n in _LIST_SPLIT.split(self.bridge_nics.strip()) if n]


class HostapdConfig(Section):
    hostapd: str = ""
    hostapd_if: str = ""
    hostapd_ssid: str = ""
    hostapd_channel: str = ""
    hostapd_passphrase: str = ""
    hostapd_hwmode: str = ""
    hostapd_hidden: str = ""

    @property
    def enabled(self) -> bool:
        return _is_yes(self.hostapd)

    @property
    def complete(self) -> bool:
        return all([self.hostapd_if, self.hostapd_ssid, self.hostapd_channel, self.hostapd_passphrase])


class DnsmasqConfig(Section):
    dnsmasq: str = ""
    dnsmasq_if: str = ""
    dnsmasq_min_ip: str = ""
    dnsmasq_max_ip: str = ""
    dnsmasq_ip: str = ""
    dnsmasq_leasetime: str = ""

    @property
    def enabled(self) -> bool:
        return _is_yes(self.dnsmasq)

    @property
    def complete(self) -> bool:
        return all([self.dnsmasq_if, self.dnsmasq_min_ip, self.dnsmasq_max_ip])


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    mesh: MeshConfig = Field(default_factory=MeshConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    hostapd: HostapdConfig = Field(default_factory=HostapdConfig)
    dnsmasq: DnsmasqConfig = Field(default_factory=DnsmasqConfig)


class InterfaceKind(Enum):
    WIRED = "wired"
    WIRELESS = "wireless"
    MESH = "mesh"
    BRIDGE = "bridge"
    LOOPBACK = "loopback"


class InterfaceInfo(BaseModel):
    """Observed state of one network interface"""

    name: str = Field(..., description="Interface name (e.g., wlan0)")
    kind: InterfaceKind = Field(InterfaceKind.WIRED, description="Type of interface")
    up: bool = Field(False, description="Administrative state")
    address: Optional[str] = Field(None, description="First IPv4 address, if any")
    radio: Optional[str] = Field(None, description="Physical radio (phyN) for wireless interfaces")
    master: Optional[str] = Field(None, description="Bridge this interface belongs to")


class RouteEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    destination: str
    netmask: str
    device: str

    @property
    def network(self) -> IPv4Network:
        return IPv4Network(f"{self.destination}/{self.netmask}", strict=False)


class Topology(BaseModel):
    """Names the build phases settled on, handed to the service phases."""

    mesh_interface: Optional[str] = None
    bridge_interface: Optional[str] = None


class PipelineStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class PipelineResult(BaseModel):
    status: PipelineStatus = PipelineStatus.SUCCESS
    message: str = ""
    phase: Optional[str] = None
    topology: Topology = Field(default_factory=Topology)

    @property
    def ok(self) -> bool:
        return self.status == PipelineStatus.SUCCESS

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
