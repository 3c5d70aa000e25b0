"""Exceptions raised by the DXF codec and the geometry kernel."""

from __future__ import annotations


class DxfError(ValueError):
    """Base class for every codec error."""


class MalformedGroupCode(DxfError):
    """A code line that is not an integer. Aborts the whole import."""

    def __init__(self, text: str, line: int = 0) -> None:
        self.text = text
        self.line = line
        super().__init__(f"Malformed group code {text!r} on line {line}")


class UnterminatedRecord(DxfError):
    """The stream ended between a code line and its value line."""


class UnsupportedEntityType(DxfError):
    """An entity type the builders do not model."""


class IncompleteEntityFields(DxfError):
    """A modelled entity is missing a required group code or has a bad value."""


class GeometryError(DxfError):
    """The kernel refused to build degenerate geometry."""
