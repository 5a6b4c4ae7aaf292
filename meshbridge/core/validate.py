"""Predicates over addresses and observed device state.

None of these mutate anything. The ``require_*`` helpers turn a failed
predicate into the matching ValidationError for callers that want to stop.
"""
from typing import Optional

from .errors import (
    DeviceResolutionError,
    InvalidAddressError,
    InvalidChannelError,
    InvalidFrequencyError,
    UnknownDeviceError,
)
from .models import FREQUENCY_MODES


def _octet(text: str) -> Optional[int]:
    if not (text.isascii() and text.isdigit()) or len(text) > 3:
        return None
    return int(text)


def valid_ipv4(addr: str) -> bool:
    """Assignable host address: first/last octet 1-254, middle octets 0-254."""
    parts = (addr or "").strip().split(".")
    if len(parts) != 4:
        return False
    octets = [_octet(p) for p in parts]
    if any(o is None for o in octets):
        return False
    first, second, third, last = octets
    return 1 <= first <= 254 and 0 <= second <= 254 and 0 <= third <= 254 and 1 <= last <= 254


def valid_wired_device(ctl, name: str) -> bool:
    return bool(name) and ctl.interface_exists(name)


def valid_wireless_device(ctl, name: str) -> bool:
    return bool(name) and ctl.wireless_radio(name) is not None


def resolve_physical_radio(ctl, name: str) -> str:
    index = ctl.wireless_radio(name) if name else None
    if index is None:
        raise DeviceResolutionError(f"Invalid wireless ethernet device \"{name}\"")
    return f"phy{index}"


def _channel_number(channel) -> Optional[int]:
    try:
        return int(str(channel).strip())
    except ValueError:
        return None


def valid_channel(ctl, phy: str, channel) -> bool:
    number = _channel_number(channel)
    return number is not None and number in ctl.radio_channels(phy)


def valid_frequency_corridor(ctl, phy: str, mode: str, channel) -> bool:
    if mode not in FREQUENCY_MODES:
        return False
    if mode == "HT20":
        return True
    number = _channel_number(channel)
    channels = ctl.radio_channels(phy)
    if number is None or not channels:
        return False
    if mode == "HT40+":
        return number < channels[-1]
    return number > channels[0]


def supports_mesh_point(ctl, phy: str) -> bool:
    return "mesh point" in ctl.radio_interface_modes(phy)


def require_ipv4(addr: str) -> str:
    if not valid_ipv4(addr):
        raise InvalidAddressError(f"Invalid IP address \"{addr}\"")
    return addr


def require_wired_device(ctl, name: str, role: str = "wired") -> str:
    if not name:
        raise UnknownDeviceError(f"No {role} ethernet device specified")
    if not valid_wired_device(ctl, name):
        raise UnknownDeviceError(f"Invalid {role} ethernet device \"{name}\"")
    return name


def require_wireless_device(ctl, name: str, role: str = "wireless") -> str:
    if not name:
        raise UnknownDeviceError(f"No {role} ethernet device specified")
    if not valid_wireless_device(ctl, name):
        raise UnknownDeviceError(f"Invalid {role} ethernet device \"{name}\"")
    return name


def require_channel(ctl, phy: str, channel) -> int:
    if not valid_channel(ctl, phy, channel):
        raise InvalidChannelError(f"Invalid channel {channel} for physical radio device {phy}")
    return _channel_number(channel)


def require_frequency_corridor(ctl, phy: str, mode: str, channel) -> str:
    if not valid_frequency_corridor(ctl, phy, mode, channel):
        raise InvalidFrequencyError(
            f"Invalid frequency corridor {mode} on channel {channel} for physical radio device {phy}"
        )
    return mode
