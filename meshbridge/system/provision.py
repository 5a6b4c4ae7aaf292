import logging
import os
from typing import List, Optional

from meshbridge.core import validate
from meshbridge.core.errors import ServiceStartError, ValidationError
from meshbridge.core.models import AppConfig, Topology
from meshbridge.core.report import Transcript
from meshbridge.system.controller import NetworkController
from meshbridge.system.render import (
    DNSMASQ_CONF,
    HOSTAPD_CONF,
    dnsmasq_settings,
    hostapd_settings,
    render_dnsmasq,
    render_hostapd,
    write_or_patch,
)
from meshbridge.system.services import DNSMASQ, HOSTAPD

logger = logging.getLogger(__name__)


def _start(ctl: NetworkController, daemon: str, argv: List[str], transcript: Transcript) -> None:
    started = ctl.start_daemon(argv)
    ctl.settle()
    running = started and bool(ctl.find_processes(daemon))
    transcript.step(f"Starting {daemon} services", running)
    if not running:
        raise ServiceStartError(f"Failed to start {daemon} services")


def _attach(ctl: NetworkController, bridge: Optional[str], interface: str, transcript: Transcript) -> None:
    if not bridge:
        return
    # skip interfaces already enslaved somewhere, and the bridge itself
    if interface == bridge or ctl.bridge_of(interface) is not None:
        logger.debug("%s already belongs to a bridge", interface)
        return
    # the flush left it down
    ok = ctl.add_bridge_member(bridge, interface) and ctl.set_link(interface, up=True)
    transcript.step(f"Adding ethernet adapter {interface} to bridge {bridge}", ok)
    if not ok:
        raise ServiceStartError(f"Failed to add ethernet adapter {interface} to bridge {bridge}")


def provision_access_point(
    ctl: NetworkController,
    cfg: AppConfig,
    topology: Topology,
    conf_dir: str,
    transcript: Transcript,
) -> bool:
    """Configure and start hostapd. Returns False when not requested."""
    hc = cfg.hostapd
    if not (hc.enabled and hc.complete):
        return False

    transcript.banner("Preparing to activate hostapd services")

    transcript.check(
        f"Validating AP service ethernet device {hc.hostapd_if}",
        lambda: validate.require_wireless_device(ctl, hc.hostapd_if, role="AP service"),
    )

    phy = validate.resolve_physical_radio(ctl, hc.hostapd_if)
    transcript.note(f"Mapping wireless ethernet device {hc.hostapd_if} to physical radio device: {phy}")

    transcript.check("Verifying radio channel", lambda: validate.require_channel(ctl, phy, hc.hostapd_channel))

    if not ctl.have_program(HOSTAPD):
        raise ServiceStartError("Could not find the hostapd command")

    path = os.path.join(conf_dir, HOSTAPD_CONF)
    write_or_patch(path, render_hostapd(hc), hostapd_settings(hc))
    logger.info("Wrote %s", path)

    _start(ctl, HOSTAPD, [HOSTAPD, "-B", path], transcript)
    _attach(ctl, topology.bridge_interface, hc.hostapd_if, transcript)
    return True


def _range_bound(value: str) -> int:
    try:
        bound = int(value.strip())
    except ValueError:
        raise ValidationError(f"DHCP range number \"{value}\" is not a number")
    if not 1 <= bound <= 254:
        raise ValidationError("One or more DHCP range numbers are out of bounds")
    return bound


def _subnet_prefix(ctl: NetworkController, cfg: AppConfig) -> str:
    dc = cfg.dnsmasq
    if dc.dnsmasq_ip:
        address = validate.require_ipv4(dc.dnsmasq_ip)
    else:
        address = ctl.interface_address(dc.dnsmasq_if)
        if not address:
            raise ValidationError("Cannot find an IP address from which to determine a DHCP range")
    return ".".join(address.split(".")[:3])


def provision_dhcp(
    ctl: NetworkController,
    cfg: AppConfig,
    topology: Topology,
    conf_dir: str,
    transcript: Transcript,
) -> bool:
    """Configure and start dnsmasq. Returns False when not requested."""
    dc = cfg.dnsmasq
    if not (dc.enabled and dc.complete):
        return False

    transcript.banner("Preparing to activate dnsmasq services")

    transcript.check(
        f"Validating DHCP service ethernet device {dc.dnsmasq_if}",
        lambda: validate.require_wired_device(ctl, dc.dnsmasq_if, role="DHCP service"),
    )

    low, high = _range_bound(dc.dnsmasq_min_ip), _range_bound(dc.dnsmasq_max_ip)
    if low > high:
        raise ValidationError(f"DHCP range start {low} is above its end {high}")

    subnet = _subnet_prefix(ctl, cfg)

    if not ctl.have_program(DNSMASQ):
        raise ServiceStartError("Could not find the dnsmasq command")

    path = os.path.join(conf_dir, DNSMASQ_CONF)
    write_or_patch(path, render_dnsmasq(dc, subnet), dnsmasq_settings(dc, subnet))
    logger.info("Wrote %s", path)

    _start(ctl, DNSMASQ, [DNSMASQ, "-C", path], transcript)
    _attach(ctl, topology.bridge_interface, dc.dnsmasq_if, transcript)
    return True
