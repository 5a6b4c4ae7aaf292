import logging
from typing import Callable, List, Optional, Tuple

from meshbridge.core.errors import MeshBridgeError
from meshbridge.core.models import AppConfig, PipelineResult, PipelineStatus, Topology
from meshbridge.core.report import Transcript
from meshbridge.system.build import build_bridge, build_mesh
from meshbridge.system.controller import NetworkController
from meshbridge.system.provision import provision_access_point, provision_dhcp
from meshbridge.system.reset import flush_bridges, flush_interfaces, flush_meshes, flush_routes
from meshbridge.system.services import DNSMASQ, HOSTAPD, stop_if_running

logger = logging.getLogger(__name__)

Phase = Tuple[str, Callable[[], None]]


def phases(
    ctl: NetworkController,
    cfg: AppConfig,
    conf_dir: str,
    transcript: Transcript,
    topology: Topology,
) -> List[Phase]:
    """The reconcile run, in order.

    Daemons stop before any interface is touched. The mesh exists before the
    bridge, and the bridge before any daemon is attached to it.
    """

    def _mesh() -> None:
        topology.mesh_interface = build_mesh(ctl, cfg, transcript)

    def _bridge() -> None:
        topology.bridge_interface = build_bridge(ctl, cfg, topology.mesh_interface, transcript)

    return [
        ("stop-hostapd", lambda: stop_if_running(ctl, HOSTAPD, transcript)),
        ("stop-dnsmasq", lambda: stop_if_running(ctl, DNSMASQ, transcript)),
        ("flush-meshes", lambda: flush_meshes(ctl, transcript)),
        ("flush-bridges", lambda: flush_bridges(ctl, transcript)),
        ("flush-interfaces", lambda: flush_interfaces(ctl, transcript)),
        ("flush-routes", lambda: flush_routes(ctl, transcript)),
        ("build-mesh", _mesh),
        ("build-bridge", _bridge),
        ("provision-hostapd", lambda: provision_access_point(ctl, cfg, topology, conf_dir, transcript)),
        ("provision-dnsmasq", lambda: provision_dhcp(ctl, cfg, topology, conf_dir, transcript)),
    ]


def apply(
    cfg: AppConfig,
    ctl: NetworkController,
    conf_dir: str,
    transcript: Optional[Transcript] = None,
) -> PipelineResult:
    """Tear down existing network state and rebuild what ``cfg`` asks for.

    Stops at the first failing phase. Nothing already done is rolled back.
    """
    transcript = transcript or Transcript()
    topology = Topology()

    for name, run in phases(ctl, cfg, conf_dir, transcript, topology):
        logger.debug("Phase %s", name)
        try:
            run()
        except MeshBridgeError as e:
            logger.error("Phase %s failed: %s", name, e)
            transcript.halted(str(e))
            return PipelineResult(
                status=PipelineStatus.FAILURE,
                message=str(e),
                phase=name,
                topology=topology,
            )

    logger.info("Reconcile complete: mesh=%s bridge=%s", topology.mesh_interface, topology.bridge_interface)
    return PipelineResult(status=PipelineStatus.SUCCESS, topology=topology)
