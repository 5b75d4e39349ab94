"""Settings synchronizers.

Three disjoint key namespaces, one cache family each:

* :class:`~vmsync.settings.remote.RemoteSettings` - daemon settings,
* :class:`~vmsync.settings.local_file.FileSettings` - the shared client
  settings file,
* :class:`~vmsync.settings.persisted.StoreSettings` - the GUI's private store.
"""

from vmsync.settings.backends import IniSettingsFile, JsonFileStore, KeyValueStore, SettingsFile
from vmsync.settings.local_file import FileSettings
from vmsync.settings.persisted import StoreSettings
from vmsync.settings.remote import RemoteSettings

__all__ = [
    "FileSettings",
    "IniSettingsFile",
    "JsonFileStore",
    "KeyValueStore",
    "RemoteSettings",
    "SettingsFile",
    "StoreSettings",
]
