"""meshbridge command line.

Usage:
    meshbridge [CONFIG] [--status] [--show-config] [--log-level LEVEL]

Environment variables:
    MESHBRIDGE_CONFIG          default config path (/etc/meshbridge/meshbridge.conf)
    MESHBRIDGE_LOG_LEVEL       log level override
    MESHBRIDGE_SETTLE_DELAY    seconds to wait after each host change (default: 2)
"""
import argparse
import logging
import sys
from typing import List, Optional

from meshbridge.core.config import CONFIG_PATH, config_as_yaml, config_dir, load_config
from meshbridge.core.errors import ConfigError
from meshbridge.core.logging_utils import set_level, setup_logging
from meshbridge.core.report import Transcript
from meshbridge.system.status import status_yaml
from meshbridge.system.apply import apply
from meshbridge.system.controller import NetworkController, SystemNetworkController

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meshbridge",
        description="Rebuild mesh, bridge, hostapd and dnsmasq state from a config file",
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=CONFIG_PATH,
        help=f"Path to the configuration file (default: {CONFIG_PATH})",
    )
    parser.add_argument("--status", action="store_true", help="Print the live topology as YAML and exit")
    parser.add_argument("--show-config", action="store_true", help="Print the parsed configuration as YAML and exit")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level for stderr (default: WARNING)",
    )
    return parser


def main(argv: Optional[List[str]] = None, ctl: Optional[NetworkController] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level) if args.log_level else None)

    ctl = ctl or SystemNetworkController()
    transcript = Transcript()

    if args.status:
        sys.stdout.write(status_yaml(ctl))
        return 0

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        transcript.halted(str(e))
        return 1

    if args.show_config:
        sys.stdout.write(config_as_yaml(cfg))
        return 0

    if cfg.general.debug_enabled:
        set_level(logging.DEBUG)

    transcript.banner(f"Using configuration parameters from: \"{args.config}\"")
    result = apply(cfg, ctl, config_dir(args.config), transcript)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
