"""Unit tests for settings resolution."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from imapsweep.imap.client import LOGOUT_TIMEOUT
from imapsweep.settings import Settings


def test_dedicated_variable_takes_precedence():
    settings = Settings.resolve({"IMAPSWEEP_CONFIG_HOME": "/srv/sweep", "XDG_CONFIG_HOME": "/x"})

    assert settings.config_file == Path("/srv/sweep/imapsweep/config.yaml")
    assert settings.ca_file == Path("/srv/sweep/ca.pem")
    assert settings.logout_timeout == LOGOUT_TIMEOUT


def test_xdg_config_home_is_used_next():
    settings = Settings.resolve({"XDG_CONFIG_HOME": "/home/a/.cfg"})

    assert settings.config_file == Path("/home/a/.cfg/imapsweep/config.yaml")


def test_home_config_is_the_fallback(monkeypatch):
    monkeypatch.setenv("HOME", "/home/b")

    settings = Settings.resolve({})

    assert settings.config_file == Path("/home/b/.config/imapsweep/config.yaml")


def test_process_environment_is_read_by_default(monkeypatch, tmp_path):
    monkeypatch.setenv("IMAPSWEEP_CONFIG_HOME", str(tmp_path))

    assert Settings.resolve().ca_file == tmp_path / "ca.pem"


def test_logout_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(config_file=Path("c"), ca_file=Path("a"), logout_timeout=0)
