"""
Shared fixtures: an in-memory host with two wired NICs, one wireless station
on phy0 (channels 1-11 enabled, 12-13 disabled by regulatory) and loopback.
"""
import io
import logging

import pytest

from meshbridge.core.config import parse_config
from meshbridge.core.logging_utils import setup_logging
from meshbridge.core.models import InterfaceKind
from meshbridge.core.report import Transcript
from meshbridge.system.memory import Link, MemoryNetworkController


@pytest.fixture(autouse=True)
def setup_test_logging():
    setup_logging(level=logging.INFO)


@pytest.fixture
def ctl() -> MemoryNetworkController:
    host = MemoryNetworkController()
    host.links["lo"] = Link(InterfaceKind.LOOPBACK)
    host.add_wired("eth0", address="192.168.50.1")
    host.add_wired("eth1")
    host.add_wireless("wlan0", radio=0, channels=list(range(1, 14)), disabled=[12, 13])
    return host


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def transcript(out) -> Transcript:
    return Transcript(out)


@pytest.fixture
def make_config():
    def _make(text: str):
        return parse_config(text)

    return _make


MESH_AND_BRIDGE = """
[mesh]
mesh=yes
mesh_dev=wlan0
mesh_id=meshnet
mesh_channel=6
mesh_frequency=HT20

[bridge]
bridge=yes
"""


@pytest.fixture
def mesh_and_bridge(make_config):
    return make_config(MESH_AND_BRIDGE)
