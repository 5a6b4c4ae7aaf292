"""Teardown of whatever network state the host already has.

Each flush walks everything it finds before reporting, so one stuck device
does not hide the rest from teardown.
"""
import re

from meshbridge.core.errors import (
    BridgeTeardownError,
    InterfaceTeardownError,
    MeshTeardownError,
    RouteTeardownError,
)
from meshbridge.core.report import Transcript
from meshbridge.system.controller import NetworkController
from meshbridge.system.names import MESH_PREFIX

MESH_PATTERN = re.compile(rf"^{MESH_PREFIX}\d")
LOOPBACK = "lo"


def flush_meshes(ctl: NetworkController, transcript: Transcript) -> None:
    meshes = [n for n in ctl.list_interfaces() if MESH_PATTERN.match(n)]
    transcript.found("Looking for wireless meshes", meshes)

    errors = 0
    for mesh in meshes:
        if ctl.delete_wireless_interface(mesh):
            transcript.note(f"Successfully removed mesh interface {mesh}")
        else:
            transcript.note(f"WARNING:  Could not disable mesh {mesh}")
            errors += 1
        ctl.settle()

    if errors:
        raise MeshTeardownError(f"Errors were encountered while removing {errors} existing mesh interface(s)")


def flush_bridges(ctl: NetworkController, transcript: Transcript) -> None:
    bridges = ctl.list_bridges()
    transcript.found("Looking for ethernet bridges", bridges)

    errors = 0
    for bridge in bridges:
        ctl.set_link(bridge, up=False)

        member_errors = 0
        for member in ctl.bridge_members(bridge):
            ok = ctl.remove_bridge_member(bridge, member)
            transcript.step(f"Removing ethernet device {member} from bridge {bridge}", ok)
            if not ok:
                member_errors += 1
            ctl.settle()
        errors += member_errors

        # members first; a bridge is only deleted once it is empty
        if member_errors:
            transcript.note(f"Leaving ethernet bridge {bridge} in place", depth=2)
            continue
        ok = ctl.delete_bridge(bridge)
        transcript.step(f"Removing ethernet bridge {bridge}", ok)
        if not ok:
            errors += 1
        ctl.settle()

    if errors:
        raise BridgeTeardownError("Errors were encountered while disabling existing ethernet bridges")


def flush_interfaces(ctl: NetworkController, transcript: Transcript) -> None:
    nics = [n for n in ctl.list_interfaces() if n != LOOPBACK]
    transcript.found("Looking for ethernet adapters", nics)

    errors = 0
    for nic in nics:
        ok = ctl.set_link(nic, up=False)
        transcript.step(f"Taking ethernet adapter {nic} offline", ok)
        if not ok:
            errors += 1
        ctl.settle()

    if errors:
        raise InterfaceTeardownError("Errors were encountered while disabling existing ethernet interfaces")


def flush_routes(ctl: NetworkController, transcript: Transcript) -> None:
    routes = ctl.list_routes()
    transcript.counted("Looking for route rules", len(routes))

    errors = 0
    for counter, route in enumerate(routes, start=1):
        ok = ctl.delete_route(route)
        transcript.step(f"Deleting route rule {counter} for ethernet adapter {route.device}", ok)
        if not ok:
            errors += 1
        ctl.settle()

    if errors:
        raise RouteTeardownError("Errors were encountered while removing existing routes")
