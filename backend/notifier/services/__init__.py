"""Services for notification dispatch."""
from .credentials import CredentialMinter
from .devices import DeviceDirectory
from .dispatcher import Dispatcher, DispatchResult, PushOutcome
from .preferences import is_eligible, filter_eligible
from .push_sender import PushSender
from .recorder import NotificationRecorder

__all__ = [
    "CredentialMinter",
    "DeviceDirectory",
    "Dispatcher",
    "DispatchResult",
    "PushOutcome",
    "is_eligible",
    "filter_eligible",
    "PushSender",
    "NotificationRecorder",
]
