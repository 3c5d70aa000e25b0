"""Tests for the tokenizer module."""

from __future__ import annotations

import pytest
from ezdxf.math import Vec3

from dxf_scene.dxf_writer import write_dxf
from dxf_scene.errors import MalformedGroupCode, UnterminatedRecord
from dxf_scene.geometry import SimpleKernel
from dxf_scene.tokenizer import decode_dxf, is_code_line, iter_tokens, tokenize


def _pairs(text: str) -> list[tuple[int, str]]:
    return [(t.code, t.value) for t in iter_tokens(text)]


class TestIterTokens:
    """Test line pairing and trimming."""

    def test_simple_pairs(self):
        assert _pairs("0\nLINE\n8\nWalls\n") == [(0, "LINE"), (8, "Walls")]

    def test_trims_padding_and_crlf(self):
        text = "  0\r\nSECTION\r\n  2\r\n\tENTITIES  \r\n"
        assert _pairs(text) == [(0, "SECTION"), (2, "ENTITIES")]

    def test_skips_blank_lines(self):
        text = "0\n\n   \nLINE\n\n10\n\n1.5\n"
        assert _pairs(text) == [(0, "LINE"), (10, "1.5")]

    def test_negative_group_code(self):
        assert _pairs("-1\nabc\n") == [(-1, "abc")]

    def test_value_that_looks_like_code_is_a_value(self):
        """The line after a code is always its value, even if numeric."""
        assert _pairs("8\n0\n62\n7\n") == [(8, "0"), (62, "7")]

    def test_stray_non_code_line_skipped(self):
        assert _pairs("0\nLINE\nstray\n8\nA\n") == [(0, "LINE"), (8, "A")]

    def test_line_numbers(self):
        tokens = list(iter_tokens("0\nLINE\n\n10\n1.0\n"))
        assert [t.line for t in tokens] == [1, 4]


class TestErrors:
    """Test fatal and non-fatal failures."""

    def test_malformed_code_raises(self):
        with pytest.raises(MalformedGroupCode) as exc_info:
            list(iter_tokens("0\nLINE\n1x\nfoo\n"))
        assert exc_info.value.line == 3
        assert exc_info.value.text == "1x"

    def test_fractional_code_is_malformed(self):
        with pytest.raises(MalformedGroupCode):
            list(iter_tokens("10.5\n1.0\n"))

    def test_out_of_range_code_is_malformed(self):
        with pytest.raises(MalformedGroupCode):
            list(iter_tokens("99999999999\nx\n"))

    def test_tokens_are_lazy(self):
        """Tokens before a malformed code are produced before the error."""
        tokens = iter_tokens("0\nLINE\n1x\nfoo\n")
        assert next(tokens).value == "LINE"
        with pytest.raises(MalformedGroupCode):
            next(tokens)

    def test_trailing_code_dropped(self):
        assert _pairs("0\nLINE\n10\n") == [(0, "LINE")]

    def test_trailing_code_strict(self):
        with pytest.raises(UnterminatedRecord):
            list(iter_tokens("0\nLINE\n10\n", strict=True))


class TestDecode:
    """Test byte decoding."""

    def test_str_passthrough(self):
        assert decode_dxf("0\nEOF") == "0\nEOF"

    def test_utf8_bom(self):
        assert decode_dxf(b"\xef\xbb\xbf0\nEOF") == "0\nEOF"

    def test_latin1_fallback(self):
        text = decode_dxf(b"1\nM\xfcller\n")
        assert text == "1\nMüller\n"

    def test_tokenize_bytes(self):
        tokens = tokenize(b"0\nLINE\n0\nEOF\n")
        assert [t.value for t in tokens] == ["LINE", "EOF"]


def test_is_code_line():
    assert is_code_line("10")
    assert is_code_line("-5")
    assert not is_code_line("-")
    assert not is_code_line("LINE")
    assert not is_code_line("")


def test_writer_output_tokenizes():
    """Re-tokenizing the writer's own output never raises."""
    kernel = SimpleKernel()
    shapes = [
        kernel.make_edge_from_line(Vec3(0, 0), Vec3(1e-7, -3.5)),
        kernel.make_edge_from_circle(Vec3(-2, 2), Vec3(0, 0, 1), 1e12),
        kernel.make_wire_from_points([Vec3(0, 0), Vec3(1, 0), Vec3(1, 1)], closed=True),
    ]
    tokens = tokenize(write_dxf(shapes, kernel))
    assert tokens[-1].value == "EOF"
