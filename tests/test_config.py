"""Tests for the openconnect credential file."""

import stat
from pathlib import Path
from types import SimpleNamespace

import pytest

from ocsso.config import default_config_path, write_oc_config
from ocsso.errors import ConfigWriteError


def test_byte_exact_output(tmp_path):
    path = tmp_path / "oc.cookie"

    write_oc_config("C1", "F1", "https://vpn.example.com", path)

    assert path.read_bytes() == b"cookie=C1\nservercert=F1\n# host=https://vpn.example.com\n"


def test_owner_only_permissions(tmp_path):
    path = write_oc_config("C1", "F1", "https://vpn.example.com", tmp_path / "oc.cookie")

    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_overwrite_tightens_permissions(tmp_path):
    path = tmp_path / "oc.cookie"
    path.write_text("cookie=old\n")
    path.chmod(0o644)

    write_oc_config("C2", "F2", "https://vpn.example.com", path)

    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert path.read_text() == "cookie=C2\nservercert=F2\n# host=https://vpn.example.com\n"


def test_creates_parent_directories(tmp_path):
    path = tmp_path / "a" / "b" / "oc.cookie"

    write_oc_config("C1", "F1", "https://vpn.example.com", str(path))

    assert path.exists()


def test_write_failure(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    with pytest.raises(ConfigWriteError) as exc:
        write_oc_config("C1", "F1", "https://vpn.example.com", blocker / "oc.cookie")
    assert exc.value.path == str(blocker / "oc.cookie")


def test_default_path_in_user_cache(tmp_path, monkeypatch):
    monkeypatch.delenv("SUDO_USER", raising=False)
    monkeypatch.setattr("platformdirs.user_cache_dir", lambda app: str(tmp_path / app))

    assert default_config_path() == Path(tmp_path / "ocsso-login" / "openconnect.cookie")


def test_default_path_for_sudo_user(monkeypatch):
    import pwd

    monkeypatch.setenv("SUDO_USER", "alice")
    monkeypatch.setattr("os.geteuid", lambda: 0)
    monkeypatch.setattr(pwd, "getpwnam", lambda name: SimpleNamespace(pw_dir=f"/home/{name}"))

    assert default_config_path() == Path("/home/alice/.cache/ocsso-login/openconnect.cookie")


def test_default_path_unknown_sudo_user(tmp_path, monkeypatch):
    import pwd

    def getpwnam(name):
        raise KeyError(name)

    monkeypatch.setenv("SUDO_USER", "ghost")
    monkeypatch.setattr("os.geteuid", lambda: 0)
    monkeypatch.setattr(pwd, "getpwnam", getpwnam)
    monkeypatch.setattr("platformdirs.user_cache_dir", lambda app: str(tmp_path / app))

    assert default_config_path() == tmp_path / "ocsso-login" / "openconnect.cookie"
