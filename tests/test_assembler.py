"""Tests for the assembler module."""

from __future__ import annotations

from dxf_scene.assembler import assemble_entities
from dxf_scene.tokenizer import iter_tokens


def _records(text: str):
    return assemble_entities(iter_tokens(text))


class TestEntityBoundaries:
    """Code 0 closes one record and opens the next."""

    def test_one_record_per_marker(self):
        text = "0\nLINE\n10\n1\n0\nCIRCLE\n40\n2\n0\nARC\n40\n3\n"
        records = _records(text)
        assert [r.type for r in records] == ["LINE", "CIRCLE", "ARC"]

    def test_trailing_record_closed(self):
        """A stream ending without a final code 0 still closes its last record."""
        records = _records("0\nLINE\n10\n1\n0\nCIRCLE\n40\n2\n")
        assert len(records) == 2
        assert records[-1].type == "CIRCLE"
        assert records[-1].fields == {40: "2"}

    def test_section_markers_are_records(self):
        text = "0\nSECTION\n2\nENTITIES\n0\nLINE\n0\nENDSEC\n0\nEOF\n"
        records = _records(text)
        assert [r.type for r in records] == ["SECTION", "LINE", "ENDSEC", "EOF"]

    def test_tokens_before_first_marker_ignored(self):
        records = _records("8\nLost\n999\ncomment\n0\nLINE\n")
        assert len(records) == 1
        assert records[0].tags == []
        assert records[0].layer == "0"

    def test_empty_stream(self):
        assert _records("") == []


class TestFields:
    """Repeated codes are kept in order; fields is last-write-wins."""

    def test_repeated_codes_kept_in_tags(self):
        text = "0\nLWPOLYLINE\n10\n1\n20\n2\n10\n3\n20\n4\n"
        record = _records(text)[0]
        assert record.get_all(10) == ["1", "3"]
        assert record.tags == [(10, "1"), (20, "2"), (10, "3"), (20, "4")]
        assert record.fields == {10: "3", 20: "4"}
        assert record.get(10) == "3"

    def test_has(self):
        record = _records("0\nLINE\n10\n1\n20\n2\n")[0]
        assert record.has(10, 20)
        assert not record.has(10, 11)


class TestLayerAndColor:
    """Ambient layer and per-record color."""

    def test_default_layer(self):
        assert _records("0\nLINE\n")[0].layer == "0"

    def test_layer_is_ambient(self):
        """A record without code 8 inherits the last layer seen."""
        text = "0\nLINE\n8\nWalls\n0\nCIRCLE\n40\n1\n0\nARC\n8\nDoors\n"
        records = _records(text)
        assert [r.layer for r in records] == ["Walls", "Walls", "Doors"]

    def test_color_only_on_its_record(self):
        text = "0\nLINE\n62\n1\n0\nCIRCLE\n"
        records = _records(text)
        assert records[0].color == "1"
        assert records[1].color is None

    def test_rgb(self):
        text = "0\nLINE\n62\n1\n0\nLINE\n62\n256\n0\nLINE\n"
        records = _records(text)
        assert records[0].rgb == "#FF0000"
        assert records[1].rgb is None
        assert records[2].rgb is None

    def test_layers_are_independent_between_calls(self):
        _records("0\nLINE\n8\nWalls\n")
        assert _records("0\nLINE\n")[0].layer == "0"
