import os
import re
from typing import Dict

from meshbridge.core.models import DnsmasqConfig, HostapdConfig

HOSTAPD_CONF = "hostapd.conf"
DNSMASQ_CONF = "dnsmasq.conf"
DHCP_LEASEFILE = "/tmp/dhcp.leases"
DEFAULT_HWMODE = "g"
DEFAULT_LEASETIME = "12h"


def _hidden_flag(hc: HostapdConfig) -> str:
    return "1" if hc.hostapd_hidden.strip().lower() == "yes" else "0"


def hostapd_settings(hc: HostapdConfig) -> Dict[str, str]:
    """Keys meshbridge owns inside an existing hostapd.conf."""
    settings = {
        "interface": hc.hostapd_if,
        "ssid": hc.hostapd_ssid,
        "ignore_broadcast_ssid": _hidden_flag(hc),
        "channel": hc.hostapd_channel,
        "wpa_passphrase": hc.hostapd_passphrase,
    }
    if hc.hostapd_hwmode:
        settings["hw_mode"] = hc.hostapd_hwmode
    return settings


def render_hostapd(hc: HostapdConfig) -> str:
    return f"""interface={hc.hostapd_if}
driver=nl80211
ssid={hc.hostapd_ssid}
hw_mode={hc.hostapd_hwmode or DEFAULT_HWMODE}
channel={hc.hostapd_channel}
macaddr_acl=0
auth_algs=1
ignore_broadcast_ssid={_hidden_flag(hc)}

wpa=2
wpa_passphrase={hc.hostapd_passphrase}
wpa_key_mgmt=WPA-PSK
rsn_pairwise=CCMP
"""


def dhcp_range(dc: DnsmasqConfig, subnet: str) -> str:
    """``subnet`` is the first three octets, e.g. ``192.168.50``."""
    lease = dc.dnsmasq_leasetime or DEFAULT_LEASETIME
    return (
        f"{dc.dnsmasq_if},{subnet}.{int(dc.dnsmasq_min_ip)},"
        f"{subnet}.{int(dc.dnsmasq_max_ip)},{lease}"
    )


def dnsmasq_settings(dc: DnsmasqConfig, subnet: str) -> Dict[str, str]:
    return {"dhcp-range": dhcp_range(dc, subnet)}


def render_dnsmasq(dc: DnsmasqConfig, subnet: str) -> str:
    return f"""dhcp-range={dhcp_range(dc, subnet)}
dhcp-leasefile={DHCP_LEASEFILE}
"""


def patch_conf(text: str, settings: Dict[str, str]) -> str:
    """Rewrite ``key=`` lines in place; keys not present yet are appended."""
    lines = text.splitlines()
    seen = set()
    for i, ln in enumerate(lines):
        for key, value in settings.items():
            if re.match(rf"^{re.escape(key)}=", ln):
                lines[i] = f"{key}={value}"
                seen.add(key)
    for key, value in settings.items():
        if key not in seen:
            lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


def _write(path: str, content: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


def write_or_patch(path: str, fresh: str, settings: Dict[str, str]) -> None:
    """Create ``path`` from ``fresh``, or patch only ``settings`` if it already exists."""
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            current = f.read()
        _write(path, patch_conf(current, settings))
    else:
        _write(path, fresh)
