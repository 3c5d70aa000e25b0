"""Tests for color normalization."""

from __future__ import annotations

import pytest

from dxf_scene.colors import aci_to_hex, normalize_hex, rgb_to_hex


class TestNormalizeHex:
    """Document colors become uppercase #RRGGBB."""

    @pytest.mark.parametrize(("value", "expected"), [
        ("#ff8000", "#FF8000"),
        ("FF8000", "#FF8000"),
        ("#f80", "#FF8800"),
        ("#ff800080", "#FF8000"),
        ("  #00ff00 ", "#00FF00"),
    ])
    def test_accepted(self, value, expected):
        assert normalize_hex(value) == expected

    @pytest.mark.parametrize("value", ["red", "#12345", "#gg0000", "", "#"])
    def test_rejected(self, value, caplog):
        assert normalize_hex(value) is None
        assert "invalid color" in caplog.text

    def test_none(self):
        assert normalize_hex(None) is None


class TestAci:
    """ACI numbers map through the default AutoCAD palette."""

    def test_red(self):
        assert aci_to_hex(1) == "#FF0000"

    def test_white(self):
        assert aci_to_hex("7") == "#FFFFFF"

    @pytest.mark.parametrize("value", [0, 256, -1, "-7", 300, "blue"])
    def test_no_color(self, value):
        assert aci_to_hex(value) is None


def test_rgb_to_hex():
    assert rgb_to_hex(1, 171, 255) == "#01ABFF"
