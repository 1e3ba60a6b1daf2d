"""CDP protocol client: session, HTTP discovery and target reuse."""

from ot_inspect.protocol.discovery import DevToolsClient, Target
from ot_inspect.protocol.session import PendingCall, ProtocolSession
from ot_inspect.protocol.targets import TargetRegistry, navigate

__all__ = [
    "DevToolsClient",
    "PendingCall",
    "ProtocolSession",
    "Target",
    "TargetRegistry",
    "navigate",
]
