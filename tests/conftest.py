from __future__ import annotations

import pytest

from ciphercanvas import config
from ciphercanvas.generator import Encryption, encode_wifi
from ciphercanvas.svg import render_svg

DARK = "#000000"
LIGHT = "#ffffff"


@pytest.fixture(scope="session")
def wifi_matrix():
    return encode_wifi("MyWifi", "secret123", Encryption.WPA)


@pytest.fixture(scope="session")
def wifi_svg(wifi_matrix):
    return render_svg(wifi_matrix, 128, foreground=DARK, background=LIGHT)


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point the user config directory at a temporary location."""
    home = tmp_path / "config-home"
    monkeypatch.setattr(config, "config_dir", lambda: home)
    return home
