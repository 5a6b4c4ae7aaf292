import logging
import os
import re
from typing import Dict

import yaml

from .errors import ConfigError
from .models import AppConfig, BridgeConfig, DnsmasqConfig, GeneralConfig, HostapdConfig, MeshConfig

CONFIG_PATH = os.environ.get("MESHBRIDGE_CONFIG", "/etc/meshbridge/meshbridge.conf")

SECTIONS = {
    "general": GeneralConfig,
    "mesh": MeshConfig,
    "bridge": BridgeConfig,
    "hostapd": HostapdConfig,
    "dnsmasq": DnsmasqConfig,
}

_HEADER = re.compile(r"^\[\s*([A-Za-z0-9_-]+)\s*\]$")
_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

logger = logging.getLogger(__name__)


def config_dir(path: str) -> str:
    """Directory generated daemon files are written to."""
    return os.path.dirname(os.path.abspath(path))


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_config(text: str, source: str = "<string>") -> AppConfig:
    values: Dict[str, Dict[str, str]] = {name: {} for name in SECTIONS}
    section = None
    count = 0

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        header = _HEADER.match(line)
        if header:
            section = header.group(1).lower()
            if section not in SECTIONS:
                raise ConfigError(f"{source}:{lineno}: unknown section [{section}]")
            continue

        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not _KEY.match(key):
            raise ConfigError(f"{source}:{lineno}: expected key=value, got {raw.strip()!r}")
        if section is None:
            raise ConfigError(f"{source}:{lineno}: option {key!r} appears before any section header")
        if key not in SECTIONS[section].model_fields:
            raise ConfigError(f"{source}:{lineno}: unknown option {key!r} in section [{section}]")

        values[section][key] = _unquote(value.strip())
        count += 1

    if count == 0:
        raise ConfigError(f"Config file \"{source}\" defines no options")

    return AppConfig(**{name: model(**values[name]) for name, model in SECTIONS.items()})


def load_config(path: str = CONFIG_PATH) -> AppConfig:
    if not os.path.isfile(path):
        raise ConfigError(f"Could not locate config file \"{path}\"")
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not read config file \"{path}\": {e}") from e
    if not text.strip():
        raise ConfigError(f"Config file \"{path}\" is empty")
    cfg = parse_config(text, source=path)
    logger.debug("Loaded configuration from %s", path)
    return cfg


def config_as_yaml(cfg: AppConfig) -> str:
    return yaml.safe_dump(cfg.model_dump(), sort_keys=False)
