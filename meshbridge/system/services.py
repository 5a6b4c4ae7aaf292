import logging

from meshbridge.core.errors import ServiceStopError
from meshbridge.core.report import Transcript
from meshbridge.system.controller import NetworkController

HOSTAPD = "hostapd"
DNSMASQ = "dnsmasq"
MANAGED_DAEMONS = (HOSTAPD, DNSMASQ)

logger = logging.getLogger(__name__)


def stop_if_running(ctl: NetworkController, daemon: str, transcript: Transcript) -> None:
    if not ctl.find_processes(daemon):
        return

    # graceful first
    if ctl.stop_service(daemon):
        ctl.settle()
    else:
        logger.info("No working service hook for %s, falling back to signals", daemon)

    pids = ctl.find_processes(daemon)
    for pid in pids:
        if not ctl.kill_process(pid):
            logger.warning("Could not kill %s (pid %d)", daemon, pid)
        ctl.settle()

    stopped = not ctl.find_processes(daemon)
    transcript.step(f"Stopping service {daemon}", stopped, depth=0)
    if not stopped:
        raise ServiceStopError(f"Failed to terminate the {daemon} service for mesh initialization")

