"""Tests for building the mesh interface and the bridge."""
import pytest

from meshbridge.core.errors import (
    BridgeBuildError,
    InvalidAddressError,
    InvalidChannelError,
    InvalidFrequencyError,
    MeshBuildError,
    NoBridgeMembersError,
    UnknownDeviceError,
)
from meshbridge.core.models import InterfaceKind
from meshbridge.system.build import bridge_members, build_bridge, build_mesh

MESH = """
[mesh]
mesh=yes
mesh_dev=wlan0
mesh_id=meshnet
mesh_channel={channel}
mesh_frequency={mode}
{extra}
"""


@pytest.fixture
def mesh_config(make_config):
    def _make(channel="6", mode="HT20", extra=""):
        return make_config(MESH.format(channel=channel, mode=mode, extra=extra))

    return _make


class TestBuildMesh:
    def test_disabled(self, ctl, make_config, transcript):
        cfg = make_config("[mesh]\nmesh=no\nmesh_dev=wlan0\n")

        assert build_mesh(ctl, cfg, transcript) is None

    def test_incomplete_parameters_skip(self, ctl, make_config, transcript):
        cfg = make_config("[mesh]\nmesh=yes\nmesh_dev=wlan0\nmesh_id=meshnet\n")

        assert build_mesh(ctl, cfg, transcript) is None
        assert ctl.calls == []

    def test_builds_mesh_point(self, ctl, mesh_config, transcript):
        name = build_mesh(ctl, mesh_config(), transcript)

        assert name == "mesh0"
        link = ctl.links["mesh0"]
        assert link.kind == InterfaceKind.MESH
        assert link.mesh_id == "meshnet"
        assert link.radio == 0
        assert link.channel == (6, "HT20")
        assert link.up
        assert not ctl.links["wlan0"].up

    def test_assigns_address(self, ctl, mesh_config, transcript):
        build_mesh(ctl, mesh_config(extra="mesh_ip=10.10.0.1"), transcript)

        assert ctl.interface_address("mesh0") == "10.10.0.1"

    def test_configured_name_is_used(self, ctl, mesh_config, transcript):
        assert build_mesh(ctl, mesh_config(extra="mesh_if=backhaul0"), transcript) == "backhaul0"

    def test_allocates_next_free_name(self, ctl, mesh_config, transcript):
        ctl.add_wired("mesh0")

        assert build_mesh(ctl, mesh_config(), transcript) == "mesh1"

    def test_unknown_device(self, ctl, make_config, transcript, out):
        cfg = make_config(MESH.format(channel="6", mode="HT20", extra="").replace("wlan0", "wlan5"))

        with pytest.raises(MeshBuildError, match="wlan5") as exc:
            build_mesh(ctl, cfg, transcript)
        assert isinstance(exc.value.__cause__, UnknownDeviceError)
        assert "FAILED" in out.getvalue()

    def test_radio_without_mesh_point(self, ctl, mesh_config, transcript):
        ctl.radios[0].modes = ["managed", "AP"]

        with pytest.raises(MeshBuildError, match="does not support mesh point"):
            build_mesh(ctl, mesh_config(), transcript)

    def test_disabled_channel(self, ctl, mesh_config, transcript):
        with pytest.raises(MeshBuildError, match="Invalid channel 13") as exc:
            build_mesh(ctl, mesh_config(channel="13"), transcript)
        assert isinstance(exc.value.__cause__, InvalidChannelError)

    def test_bad_corridor_creates_nothing(self, ctl, mesh_config, transcript):
        with pytest.raises(MeshBuildError) as exc:
            build_mesh(ctl, mesh_config(channel="11", mode="HT40+"), transcript)
        assert isinstance(exc.value.__cause__, InvalidFrequencyError)
        assert "mesh0" not in ctl.links

    def test_bad_address_creates_nothing(self, ctl, mesh_config, transcript):
        with pytest.raises(MeshBuildError) as exc:
            build_mesh(ctl, mesh_config(extra="mesh_ip=10.0.0.255"), transcript)
        assert isinstance(exc.value.__cause__, InvalidAddressError)
        assert "mesh0" not in ctl.links

    def test_create_failure(self, ctl, mesh_config, transcript):
        ctl.fail.add(("add_mesh_interface", "mesh0"))

        with pytest.raises(MeshBuildError, match="Failed to create mesh interface mesh0"):
            build_mesh(ctl, mesh_config(), transcript)

    def test_channel_failure_stops_before_bringing_up(self, ctl, mesh_config, transcript):
        ctl.fail.add(("set_channel", "mesh0"))

        with pytest.raises(MeshBuildError, match="channel and frequency corridor"):
            build_mesh(ctl, mesh_config(), transcript)
        assert not ctl.links["mesh0"].up


class TestBridgeMembers:
    def test_mesh_merged_and_deduplicated(self, make_config):
        cfg = make_config("[bridge]\nbridge=yes\nbridge_nics=eth1 eth0 mesh0\n")

        assert bridge_members(cfg, "mesh0") == ["eth0", "eth1", "mesh0"]

    def test_no_mesh(self, make_config):
        cfg = make_config("[bridge]\nbridge=yes\nbridge_nics=eth0\n")

        assert bridge_members(cfg, None) == ["eth0"]


class TestBuildBridge:
    def test_disabled_is_an_error(self, ctl, make_config, transcript):
        cfg = make_config("[bridge]\nbridge=no\n")

        with pytest.raises(NoBridgeMembersError, match="No network devices listed for bridging"):
            build_bridge(ctl, cfg, "mesh0", transcript)

    def test_no_members(self, ctl, make_config, transcript):
        cfg = make_config("[bridge]\nbridge=yes\n")

        with pytest.raises(NoBridgeMembersError):
            build_bridge(ctl, cfg, None, transcript)
        assert ctl.list_bridges() == []

    def test_builds_bridge(self, ctl, make_config, transcript):
        ctl.add_wireless("mesh0", radio=0)
        cfg = make_config("[bridge]\nbridge=yes\nbridge_nics=eth1\nbridge_ip=192.168.9.1\n")

        name = build_bridge(ctl, cfg, "mesh0", transcript)

        assert name == "bridge0"
        assert sorted(ctl.bridge_members("bridge0")) == ["eth1", "mesh0"]
        assert ctl.interface_is_up("bridge0")
        assert ctl.interface_is_up("eth1")
        assert ctl.interface_address("bridge0") == "192.168.9.1"

    def test_configured_name(self, ctl, make_config, transcript):
        cfg = make_config("[bridge]\nbridge=yes\nbridge_if=br-mesh\nbridge_nics=eth0\n")

        assert build_bridge(ctl, cfg, None, transcript) == "br-mesh"

    def test_invalid_member_blocks_creation(self, ctl, make_config, transcript, out):
        cfg = make_config("[bridge]\nbridge=yes\nbridge_nics=eth0 eth7\n")

        with pytest.raises(UnknownDeviceError, match="unknown: eth7"):
            build_bridge(ctl, cfg, None, transcript)

        assert ctl.list_bridges() == []
        assert not any(c[0] in ("create_bridge", "add_bridge_member") for c in ctl.calls)
        assert "Validating bridge member ethernet device eth0" in out.getvalue()

    def test_invalid_address_blocks_creation(self, ctl, make_config, transcript):
        cfg = make_config("[bridge]\nbridge=yes\nbridge_nics=eth0\nbridge_ip=0.1.2.3\n")

        with pytest.raises(InvalidAddressError):
            build_bridge(ctl, cfg, None, transcript)
        assert ctl.list_bridges() == []

    def test_member_failures_are_aggregated(self, ctl, make_config, transcript):
        ctl.fail.add(("add_bridge_member", "eth0"))
        cfg = make_config("[bridge]\nbridge=yes\nbridge_nics=eth0 eth1\n")

        with pytest.raises(BridgeBuildError, match="eth0"):
            build_bridge(ctl, cfg, None, transcript)
        # later members are still attempted
        assert ctl.bridge_members("bridge0") == ["eth1"]

    def test_create_failure(self, ctl, make_config, transcript):
        ctl.fail.add(("create_bridge", "bridge0"))
        cfg = make_config("[bridge]\nbridge=yes\nbridge_nics=eth0\n")

        with pytest.raises(BridgeBuildError, match="Failed to create bridge device bridge0"):
            build_bridge(ctl, cfg, None, transcript)
