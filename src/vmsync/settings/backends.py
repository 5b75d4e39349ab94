"""Local backing stores for client-side settings.

Two stores live on the local machine:

* the client settings file, shared with other client processes (a
  command-line companion may rewrite it at any time), read as an INI file
  where ``section.option`` keys address ``[section] option = value``;
* the GUI's private key-value store, a flat JSON object.
"""

from __future__ import annotations

import configparser
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from vmsync._redact import redact_setting

_logger = logging.getLogger(__name__)


class SettingsFile(Protocol):
    """Whole-file key lookup on the watched client settings file."""

    @property
    def path(self) -> Path:
        ...

    def get(self, key: str) -> str:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class KeyValueStore(Protocol):
    """Synchronous string store handed to the context at startup."""

    def get_string(self, key: str) -> str | None:
        ...

    def set_string(self, key: str, value: str) -> None:
        ...


def _split_key(key: str) -> tuple[str, str]:
    section, sep, option = key.partition(".")
    if not sep or not section or not option:
        raise ValueError(f"settings key must look like 'section.option', got {key!r}")
    return section, option


class IniSettingsFile:
    """INI-backed :class:`SettingsFile`.

    Missing files, sections or options read as ``""``.  Writes rewrite the
    file in place so watchers see a modification of this exact path.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(os.path.abspath(os.fspath(path)))

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # type: ignore[assignment,method-assign]
        try:
            with self._path.open(encoding="utf-8") as fh:
                parser.read_file(fh)
        except FileNotFoundError:
            pass
        return parser

    def get(self, key: str) -> str:
        section, option = _split_key(key)
        return self._load().get(section, option, fallback="")

    def set(self, key: str, value: str) -> None:
        section, option = _split_key(key)
        parser = self._load()
        if not parser.has_section(section):
            parser.add_section(section)
        parser.set(section, option, value)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as fh:
            parser.write(fh)
        _logger.debug("Wrote %s=%r to %s", key, redact_setting(key, value), self._path)


class JsonFileStore:
    """Flat JSON :class:`KeyValueStore` with atomic replacement on write."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(os.fspath(path))
        self._data: dict[str, str] = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            loaded = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError):
            _logger.warning("Ignoring unreadable store %s", self._path, exc_info=True)
            return {}
        if not isinstance(loaded, dict):
            _logger.warning("Ignoring store %s: top level is not an object", self._path)
            return {}
        return {str(k): v for k, v in loaded.items() if isinstance(v, str)}

    def get_string(self, key: str) -> str | None:
        return self._data.get(key)

    def set_string(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2, sort_keys=True)
                fh.write("\n")
            os.replace(tmp_path, self._path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
