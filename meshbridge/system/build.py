import logging
from typing import List, Optional, Tuple

from meshbridge.core import validate
from meshbridge.core.errors import (
    BridgeBuildError,
    DeviceResolutionError,
    MeshBuildError,
    NoBridgeMembersError,
    UnknownDeviceError,
    ValidationError,
)
from meshbridge.core.models import AppConfig, MeshConfig
from meshbridge.core.report import Transcript
from meshbridge.system.controller import NetworkController
from meshbridge.system.names import BRIDGE_PREFIX, MESH_PREFIX, next_free

logger = logging.getLogger(__name__)


def _check_mesh(ctl: NetworkController, mc: MeshConfig, transcript: Transcript) -> Tuple[str, int]:
    transcript.check(
        f"Validating wireless ethernet device {mc.mesh_dev}",
        lambda: validate.require_wireless_device(ctl, mc.mesh_dev),
    )
    phy = validate.resolve_physical_radio(ctl, mc.mesh_dev)
    transcript.note(f"Mapping wireless ethernet device {mc.mesh_dev} to physical radio device: {phy}")

    if not validate.supports_mesh_point(ctl, phy):
        raise MeshBuildError(f"Wireless radio device {phy} ({mc.mesh_dev}) does not support mesh point mode")

    channel = transcript.check(
        "Verifying radio channel", lambda: validate.require_channel(ctl, phy, mc.mesh_channel)
    )
    transcript.check(
        "Verifying radio frequency corridor",
        lambda: validate.require_frequency_corridor(ctl, phy, mc.mesh_frequency, channel),
    )
    if mc.mesh_ip:
        transcript.check("Verifying IP address validity", lambda: validate.require_ipv4(mc.mesh_ip))
    return phy, channel


def build_mesh(ctl: NetworkController, cfg: AppConfig, transcript: Transcript) -> Optional[str]:
    """Create the configured mesh-point interface; returns its name, or None when not requested.

    Every failure surfaces as MeshBuildError; a rejected parameter is kept as
    its ``__cause__``.
    """
    mc = cfg.mesh
    if not (mc.enabled and mc.complete):
        return None

    transcript.banner("Preparing to create a new wireless mesh interface")

    try:
        phy, channel = _check_mesh(ctl, mc, transcript)
    except (ValidationError, DeviceResolutionError) as e:
        raise MeshBuildError(f"Cannot create wireless mesh on {mc.mesh_dev}: {e}") from e

    mesh_if = mc.mesh_if
    if not mesh_if:
        mesh_if = next_free(ctl, MESH_PREFIX)
        transcript.note(f"Calculating next mesh interface index: {mesh_if}")

    ok = ctl.add_mesh_interface(phy, mesh_if, mc.mesh_id)
    transcript.step(f"Instantiating {mesh_if} on physical radio device {phy}", ok)
    ctl.settle()
    if not ok:
        raise MeshBuildError(f"Failed to create mesh interface {mesh_if} on physical radio device {phy}")

    ok = ctl.set_channel(mesh_if, channel, mc.mesh_frequency)
    transcript.step(f"Setting up {mesh_if} on physical radio device {phy}", ok)
    if not ok:
        raise MeshBuildError(
            f"Failed to set channel and frequency corridor on mesh interface {mesh_if} "
            f"on physical radio device {phy}"
        )

    # the station interface shares the radio and has to get out of the way
    ok = ctl.set_link(mc.mesh_dev, up=False) and ctl.set_link(mesh_if, up=True)
    transcript.step(f"Bringing {mesh_if} online", ok)
    ctl.settle()
    if not ok:
        raise MeshBuildError(f"Failed to activate mesh interface {mesh_if} on physical radio device {phy}")

    if mc.mesh_ip:
        ok = ctl.add_address(mesh_if, mc.mesh_ip)
        transcript.step(f"Assigning IP address {mc.mesh_ip} to {mesh_if}", ok)
        if not ok:
            raise MeshBuildError(f"Failed to assign IP address {mc.mesh_ip} to mesh interface {mesh_if}")

    logger.info("Mesh interface %s up on %s (mesh id %s)", mesh_if, phy, mc.mesh_id)
    return mesh_if


def bridge_members(cfg: AppConfig, mesh_interface: Optional[str]) -> List[str]:
    members = set(cfg.bridge.members)
    if mesh_interface:
        members.add(mesh_interface)
    return sorted(members)


def build_bridge(
    ctl: NetworkController,
    cfg: AppConfig,
    mesh_interface: Optional[str],
    transcript: Transcript,
) -> str:
    bc = cfg.bridge
    if not bc.enabled:
        raise NoBridgeMembersError("No network devices listed for bridging")

    transcript.banner("Preparing to activate new ethernet bridge")

    members = bridge_members(cfg, mesh_interface)
    if not members:
        raise NoBridgeMembersError("No network devices listed for bridging")

    bridge_if = bc.bridge_if
    if not bridge_if:
        bridge_if = next_free(ctl, BRIDGE_PREFIX)
        transcript.note(f"Calculating next bridge index: {bridge_if}")

    # validate everything before touching the host
    invalid = []
    for member in members:
        ok = validate.valid_wired_device(ctl, member)
        transcript.step(f"Validating bridge member ethernet device {member}", ok)
        if not ok:
            invalid.append(member)
    if invalid:
        raise UnknownDeviceError(
            f"At least one of the following network interfaces listed for bridging are invalid: "
            f"{' '.join(members)} (unknown: {' '.join(invalid)})"
        )
    if bc.bridge_ip:
        transcript.check("Verifying IP address validity", lambda: validate.require_ipv4(bc.bridge_ip))

    ok = ctl.create_bridge(bridge_if)
    transcript.step(f"Creating ethernet bridge {bridge_if}", ok)
    ctl.settle()
    if not ok:
        raise BridgeBuildError(f"Failed to create bridge device {bridge_if}")

    failed = []
    for member in members:
        # members were taken down by the flush; a down port forwards nothing
        ok = ctl.add_bridge_member(bridge_if, member) and ctl.set_link(member, up=True)
        transcript.step(f"Adding ethernet adapter {member} to bridge {bridge_if}", ok)
        if not ok:
            failed.append(member)
        ctl.settle()
    if failed:
        raise BridgeBuildError(
            f"Failed to add one or more of the following network interfaces to bridge {bridge_if}: "
            f"{' '.join(failed)}"
        )

    if bc.bridge_ip:
        ok = ctl.add_address(bridge_if, bc.bridge_ip)
        transcript.step(f"Assigning IP address {bc.bridge_ip} to {bridge_if}", ok)
        if not ok:
            raise BridgeBuildError(
                f"Failed to assign IP address \"{bc.bridge_ip}\" to bridge interface \"{bridge_if}\""
            )

    ok = ctl.set_link(bridge_if, up=True)
    transcript.step(f"Bringing {bridge_if} online", ok)
    if not ok:
        raise BridgeBuildError(f"Failed to activate bridge interface \"{bridge_if}\"")

    logger.info("Bridge %s up with members %s", bridge_if, ", ".join(members))
    return bridge_if
