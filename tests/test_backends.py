from __future__ import annotations

from pathlib import Path

import pytest

from vmsync._constants import PRIMARY_NAME_KEY
from vmsync.settings.backends import IniSettingsFile


class TestIniSettingsFile:
    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        backend = IniSettingsFile(tmp_path / "absent.conf")
        assert backend.get(PRIMARY_NAME_KEY) == ""

    def test_reads_section_option(self, tmp_path: Path) -> None:
        path = tmp_path / "client.conf"
        path.write_text("[client]\nprimary-name = builder\n\n[gui]\nTheme = dark\n", encoding="utf-8")
        backend = IniSettingsFile(path)

        assert backend.get(PRIMARY_NAME_KEY) == "builder"
        assert backend.get("gui.Theme") == "dark"
        assert backend.get("gui.theme") == ""
        assert backend.get("client.missing") == ""

    def test_set_creates_file_and_keeps_other_values(self, tmp_path: Path) -> None:
        path = tmp_path / "config" / "client.conf"
        backend = IniSettingsFile(path)

        backend.set("gui.theme", "dark")
        backend.set(PRIMARY_NAME_KEY, "primary")
        backend.set(PRIMARY_NAME_KEY, "builder")

        assert backend.get("gui.theme") == "dark"
        assert IniSettingsFile(path).get(PRIMARY_NAME_KEY) == "builder"

    def test_set_rewrites_the_same_file(self, tmp_path: Path) -> None:
        path = tmp_path / "client.conf"
        backend = IniSettingsFile(path)
        backend.set(PRIMARY_NAME_KEY, "primary")
        inode = path.stat().st_ino

        backend.set(PRIMARY_NAME_KEY, "builder")

        assert path.stat().st_ino == inode

    def test_values_are_not_interpolated(self, tmp_path: Path) -> None:
        backend = IniSettingsFile(tmp_path / "client.conf")
        backend.set("client.template", "%(name)s")
        assert backend.get("client.template") == "%(name)s"

    @pytest.mark.parametrize("key", ["primary-name", ".name", "client.", ""])
    def test_malformed_keys_rejected(self, tmp_path: Path, key: str) -> None:
        backend = IniSettingsFile(tmp_path / "client.conf")
        with pytest.raises(ValueError):
            backend.get(key)

    def test_path_is_absolute(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        backend = IniSettingsFile("client.conf")
        assert backend.path == (tmp_path / "client.conf").resolve()
        assert backend.path.is_absolute()
