"""
Error taxonomy.

Every phase of a reconcile run raises one of these; the pipeline driver
catches MeshBridgeError, stops, and reports the message.
"""


class MeshBridgeError(Exception):
    """Base class for all meshbridge failures."""


class ConfigError(MeshBridgeError):
    """Configuration file missing, empty or malformed."""


class ServiceStopError(MeshBridgeError):
    pass


class ServiceStartError(MeshBridgeError):
    """Daemon binary missing, or no process found after starting it."""


class TeardownError(MeshBridgeError):
    pass


class MeshTeardownError(TeardownError):
    pass


class BridgeTeardownError(TeardownError):
    pass


class InterfaceTeardownError(TeardownError):
    pass


class RouteTeardownError(TeardownError):
    pass


class ValidationError(MeshBridgeError):
    pass


class InvalidAddressError(ValidationError):
    pass


class UnknownDeviceError(ValidationError):
    pass


class InvalidChannelError(ValidationError):
    pass


class InvalidFrequencyError(ValidationError):
    pass


class DeviceResolutionError(MeshBridgeError):
    """A wireless device could not be mapped to its physical radio."""


class NameExhaustedError(MeshBridgeError):
    """Every probed name in an enumerated namespace is taken."""


class MeshBuildError(MeshBridgeError):
    pass


class NoBridgeMembersError(MeshBridgeError):
    pass


class BridgeBuildError(MeshBridgeError):
    pass
