import sys
import tempfile
from pathlib import Path

import pytest

from hudson_desktop.local.config import (
    SidecarConfig, default_resource_dir, handshake_path_for, is_truthy, resolve_handshake_path,
)
from hudson_desktop.local.supervisor.process_utils import build_launch_spec


def test_from_env_reads_overrides():
    config = SidecarConfig.from_env({
        "HUDSON_BACKEND_BIN": " /opt/hudson/bin/hudson ",
        "HUDSON_BACKEND_ARGS": "foreground  --sname hudson",
        "HUDSON_ENABLE_NEON": "TRUE",
        "HUDSON_NEON_CREDENTIALS_PATH": "/etc/hudson/neon.json",
        "HUDSON_HANDSHAKE_PATH": "/run/hudson/port.json",
    })

    assert config.backend_bin == Path("/opt/hudson/bin/hudson")
    assert config.backend_args == ("foreground", "--sname", "hudson")
    assert config.enable_neon is True
    assert config.neon_credentials_path == "/etc/hudson/neon.json"
    assert config.handshake_path == Path("/run/hudson/port.json")


def test_blank_values_are_unset():
    config = SidecarConfig.from_env({"HUDSON_BACKEND_BIN": "   ", "HUDSON_NEON_CREDENTIALS_PATH": ""})
    assert config.backend_bin is None
    assert config.neon_credentials_path is None
    assert config.backend_args is None


@pytest.mark.parametrize("value", ["true", "1", "t", "yes", "Y"])
def test_truthy_values(value):
    assert is_truthy(value)


@pytest.mark.parametrize("value", [None, "", "false", "0", "no", "enabled"])
def test_falsy_values(value):
    assert not is_truthy(value)


def test_launch_spec_defaults_to_offline_storage():
    config = SidecarConfig.from_env({})
    spec = build_launch_spec(Path("hudson"), ["foreground"], config, base_env={"PATH": "/usr/bin"})

    assert spec.env["HUDSON_ENABLE_NEON"] == "false"
    assert spec.env["PATH"] == "/usr/bin"
    assert "HUDSON_NEON_CREDENTIALS_PATH" not in spec.env


def test_launch_spec_overrides_inherited_storage_flag():
    # A stray inherited value must not switch storage mode on its own.
    config = SidecarConfig.from_env({"HUDSON_ENABLE_NEON": "maybe"})
    spec = build_launch_spec(Path("hudson"), [], config, base_env={"HUDSON_ENABLE_NEON": "true"})
    assert spec.env["HUDSON_ENABLE_NEON"] == "false"


def test_launch_spec_enables_networked_storage_when_asked():
    config = SidecarConfig.from_env({
        "HUDSON_ENABLE_NEON": "true",
        "HUDSON_NEON_CREDENTIALS_PATH": "/secrets/neon.json",
    })
    spec = build_launch_spec(Path("hudson"), [], config, base_env={})

    assert spec.env["HUDSON_ENABLE_NEON"] == "true"
    assert spec.env["HUDSON_NEON_CREDENTIALS_PATH"] == "/secrets/neon.json"


def test_launch_spec_is_immutable():
    spec = build_launch_spec(Path("hudson"), ["foreground"], SidecarConfig(), base_env={})
    assert spec.command == ["hudson", "foreground"]
    with pytest.raises(TypeError):
        spec.env["HUDSON_ENABLE_NEON"] = "true"
    with pytest.raises(AttributeError):
        spec.args = ()


def test_handshake_path_per_platform(tmp_path):
    assert handshake_path_for("darwin") == Path("/tmp/hudson_port.json")
    assert handshake_path_for("win32", {"APPDATA": str(tmp_path)}) == tmp_path / "Hudson" / "port.json"
    assert handshake_path_for("win32", {}) == Path(tempfile.gettempdir()) / "Hudson" / "port.json"
    assert handshake_path_for("linux") == Path(tempfile.gettempdir()) / "hudson_port.json"


def test_handshake_path_override(tmp_path):
    config = SidecarConfig(handshake_path=tmp_path / "port.json")
    assert resolve_handshake_path(config, "darwin") == tmp_path / "port.json"


def test_resource_dir_override(tmp_path):
    assert default_resource_dir(SidecarConfig(resource_dir=tmp_path)) == tmp_path


def test_no_resource_dir_when_running_from_source(monkeypatch):
    monkeypatch.delattr(sys, "frozen", raising=False)
    assert default_resource_dir(SidecarConfig()) is None


def test_frozen_build_uses_meipass(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "_MEIPASS", str(tmp_path), raising=False)
    monkeypatch.setattr(sys, "platform", "linux")
    assert default_resource_dir(SidecarConfig()) == tmp_path
