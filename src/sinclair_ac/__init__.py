"""Local-network UDP client for Sinclair (Gree-protocol) air conditioners."""

__version__ = "0.1.0"

from sinclair_ac.client import SinclairClient  # noqa: E402
from sinclair_ac.config import ClientConfig, load_config  # noqa: E402
from sinclair_ac.protocol.exceptions import CodecError, SinclairProtocolError  # noqa: E402
from sinclair_ac.protocol.properties import FanSpeed, Mode, Power, PropertyCode, SwingVertical  # noqa: E402
from sinclair_ac.structs import (  # noqa: E402
    BindingState,
    ClientEvent,
    DesiredState,
    DeviceIdentity,
    DeviceState,
    EventKind,
)
from sinclair_ac.transport.exceptions import (  # noqa: E402
    BindError,
    BusyError,
    RequestTimeoutError,
    SinclairConnectionError,
    SocketError,
)

__all__ = [
    "BindError",
    "BindingState",
    "BusyError",
    "ClientConfig",
    "ClientEvent",
    "CodecError",
    "DesiredState",
    "DeviceIdentity",
    "DeviceState",
    "EventKind",
    "FanSpeed",
    "Mode",
    "Power",
    "PropertyCode",
    "RequestTimeoutError",
    "SinclairClient",
    "SinclairConnectionError",
    "SinclairProtocolError",
    "SocketError",
    "SwingVertical",
    "__version__",
    "load_config",
]
