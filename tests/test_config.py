"""Tests for the config file loader."""
import pydantic
import pytest
import yaml

from meshbridge.core import config as config_module
from meshbridge.core.config import config_as_yaml, config_dir, load_config, parse_config
from meshbridge.core.errors import ConfigError


SAMPLE = """
# meshbridge sample
[general]
debug=no

[mesh]
mesh=yes
mesh_dev=wlan0
mesh_id=meshnet
mesh_channel=6
mesh_frequency=HT40+

[bridge]
bridge=yes
bridge_nics="eth0 eth1"
bridge_ip = 10.0.0.1

[hostapd]
hostapd=yes
hostapd_ssid='My Network'
hostapd_passphrase=s3cret#value
"""


class TestParseConfig:
    """Tests for parse_config."""

    def test_sections_populate_models(self):
        cfg = parse_config(SAMPLE)

        assert cfg.mesh.enabled
        assert cfg.mesh.mesh_dev == "wlan0"
        assert cfg.mesh.mesh_frequency == "HT40+"
        assert cfg.mesh.complete
        assert cfg.bridge.bridge_ip == "10.0.0.1"
        assert not cfg.general.debug_enabled

    def test_quotes_are_stripped(self):
        cfg = parse_config(SAMPLE)

        assert cfg.bridge.bridge_nics == "eth0 eth1"
        assert cfg.hostapd.hostapd_ssid == "My Network"

    def test_hash_inside_value_is_kept(self):
        cfg = parse_config(SAMPLE)

        assert cfg.hostapd.hostapd_passphrase == "s3cret#value"

    def test_missing_options_default_to_empty(self):
        cfg = parse_config(SAMPLE)

        assert cfg.mesh.mesh_ip == ""
        assert cfg.mesh.mesh_if == ""
        assert cfg.dnsmasq.dnsmasq_if == ""
        assert not cfg.dnsmasq.enabled

    def test_last_write_wins(self):
        cfg = parse_config("[mesh]\nmesh_channel=1\n[bridge]\nbridge=yes\n[mesh]\nmesh_channel=11\n")

        assert cfg.mesh.mesh_channel == "11"

    def test_bridge_members_split_on_space_and_comma(self):
        cfg = parse_config("[bridge]\nbridge_nics=eth0, eth1  eth2\n")

        assert cfg.bridge.members == ["eth0", "eth1", "eth2"]

    def test_feature_flag_is_case_insensitive(self):
        cfg = parse_config("[bridge]\nbridge=YES\n")

        assert cfg.bridge.enabled

    def test_config_is_immutable(self):
        cfg = parse_config(SAMPLE)

        with pytest.raises(pydantic.ValidationError):
            cfg.mesh.mesh_dev = "wlan1"

    def test_second_parse_does_not_inherit_values(self):
        parse_config("[mesh]\nmesh_ip=10.1.1.1\n")
        cfg = parse_config("[mesh]\nmesh=yes\n")

        assert cfg.mesh.mesh_ip == ""


class TestParseErrors:
    """Malformed input is rejected with ConfigError."""

    def test_line_without_equals(self):
        with pytest.raises(ConfigError, match="expected key=value"):
            parse_config("[mesh]\nmesh yes\n")

    def test_shell_statement_is_not_evaluated(self):
        with pytest.raises(ConfigError):
            parse_config("[mesh]\n$(reboot)\n")

    def test_unknown_section(self):
        with pytest.raises(ConfigError, match="unknown section"):
            parse_config("[firewall]\nenabled=yes\n")

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="unknown option 'bridge_if'"):
            parse_config("[mesh]\nbridge_if=br0\n")

    def test_key_before_section(self):
        with pytest.raises(ConfigError, match="before any section"):
            parse_config("mesh=yes\n[mesh]\n")

    def test_comments_only(self):
        with pytest.raises(ConfigError, match="no options"):
            parse_config("# nothing\n\n[mesh]\n")


class TestLoadConfig:
    def test_load_from_file(self, tmp_path):
        path = tmp_path / "meshbridge.conf"
        path.write_text(SAMPLE)

        cfg = load_config(str(path))

        assert cfg.mesh.mesh_id == "meshnet"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Could not locate"):
            load_config(str(tmp_path / "nope.conf"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "meshbridge.conf"
        path.write_text("  \n")

        with pytest.raises(ConfigError, match="empty"):
            load_config(str(path))

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "meshbridge.conf"
        path.write_bytes(b"\xff\xfe[mesh]\n")

        with pytest.raises(ConfigError, match="Could not read config file"):
            load_config(str(path))

    def test_unreadable_file(self, tmp_path, monkeypatch):
        path = tmp_path / "meshbridge.conf"
        path.write_text(SAMPLE)

        def _denied(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(config_module, "open", _denied, raising=False)

        with pytest.raises(ConfigError, match="Permission denied"):
            load_config(str(path))

    def test_config_dir_is_parent_directory(self, tmp_path):
        path = tmp_path / "meshbridge.conf"

        assert config_dir(str(path)) == str(tmp_path)

    def test_yaml_dump(self):
        data = yaml.safe_load(config_as_yaml(parse_config(SAMPLE)))

        assert data["mesh"]["mesh_dev"] == "wlan0"
        assert data["bridge"]["bridge_nics"] == "eth0 eth1"
        assert data["dnsmasq"]["dnsmasq"] == ""
