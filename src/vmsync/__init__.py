"""vmsync - Reactive state synchronization for VM-manager daemon clients."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("vmsync")
except PackageNotFoundError:
    __version__ = "0+local"
from vmsync._constants import (
    BRIDGED_NETWORK_KEY,
    DRIVER_KEY,
    HOTKEY_KEY,
    ON_APP_CLOSE_KEY,
    PASSPHRASE_KEY,
    PRIMARY_NAME_KEY,
    PRIVILEGED_MOUNTS_KEY,
)
from vmsync.client import DaemonClient, RemoteClient
from vmsync.config import ServerAddress, SyncConfig, parse_server_address
from vmsync.context import SyncContext
from vmsync.exceptions import (
    ConfigError,
    GraphError,
    InitializationError,
    TransportError,
    UnavailableError,
    VmSyncError,
    WriteFailedError,
)
from vmsync.models import InstanceStatus, NetworkInterface, Snapshot, Status, VmInfo
from vmsync.settings import IniSettingsFile, JsonFileStore, KeyValueStore, SettingsFile
from vmsync.state.values import AsyncValue, Data, Failure, Pending

__all__ = [
    "__version__",
    "AsyncValue",
    "BRIDGED_NETWORK_KEY",
    "ConfigError",
    "DRIVER_KEY",
    "DaemonClient",
    "Data",
    "Failure",
    "GraphError",
    "HOTKEY_KEY",
    "IniSettingsFile",
    "InitializationError",
    "InstanceStatus",
    "JsonFileStore",
    "KeyValueStore",
    "NetworkInterface",
    "ON_APP_CLOSE_KEY",
    "PASSPHRASE_KEY",
    "PRIMARY_NAME_KEY",
    "PRIVILEGED_MOUNTS_KEY",
    "Pending",
    "RemoteClient",
    "ServerAddress",
    "SettingsFile",
    "Snapshot",
    "Status",
    "SyncConfig",
    "SyncContext",
    "TransportError",
    "UnavailableError",
    "VmInfo",
    "VmSyncError",
    "WriteFailedError",
    "parse_server_address",
]
