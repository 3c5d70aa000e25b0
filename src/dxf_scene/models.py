"""Data classes for DXF tokens, entity records and scene-graph nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .colors import aci_to_hex


@dataclass(frozen=True)
class Token:
    """One group-code/value pair, in file order."""
    code: int
    value: str
    line: int = 0  # 1-based line number of the code line


@dataclass
class EntityRecord:
    """All group codes between one code-0 marker and the next."""
    type: str
    tags: list[tuple[int, str]] = field(default_factory=list)
    layer: str = "0"
    color: str | None = None  # raw code-62 value
    line: int = 0

    @property
    def fields(self) -> dict[int, str]:
        """Last-write-wins view of the tags, keyed by group code."""
        return dict(self.tags)

    def get(self, code: int, default: str | None = None) -> str | None:
        """Return the last value stored under ``code``."""
        for tag_code, value in reversed(self.tags):
            if tag_code == code:
                return value
        return default

    def get_all(self, code: int) -> list[str]:
        return [value for tag_code, value in self.tags if tag_code == code]

    def has(self, *codes: int) -> bool:
        present = {tag_code for tag_code, _ in self.tags}
        return all(code in present for code in codes)

    @property
    def rgb(self) -> str | None:
        """The code-62 color as ``#RRGGBB``, or None for BYLAYER/BYBLOCK."""
        if self.color is None:
            return None
        return aci_to_hex(self.color)


@dataclass
class ShapeNode:
    """A node of an imported scene.

    ``shape`` is None for group nodes, whose meaning lives in ``children``.
    Nodes carrying a shape are leaves.
    """
    name: str = ""
    shape: Any = None
    color: str | None = None  # "#RRGGBB"
    children: list[ShapeNode] = field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.shape is None

    def iter_shapes(self) -> list[Any]:
        """Collect every shape in the subtree, depth first."""
        shapes: list[Any] = []
        stack = [self]
        while stack:
            node = stack.pop()
            if node.shape is not None:
                shapes.append(node.shape)
            stack.extend(reversed(node.children))
        return shapes


@dataclass
class SkippedEntity:
    """A modelled entity that could not be turned into a shape."""
    type: str
    reason: str
    line: int = 0
    layer: str = "0"


@dataclass
class DxfDrawing:
    """Everything produced by one import call."""
    records: list[EntityRecord] = field(default_factory=list)
    shapes: list[Any] = field(default_factory=list)
    skipped: list[SkippedEntity] = field(default_factory=list)
    unsupported: dict[str, int] = field(default_factory=dict)
    header: dict[str, str] = field(default_factory=dict)

    @property
    def entity_count(self) -> int:
        return len(self.shapes)


@dataclass
class DxfInventory:
    """Summary of what's in a DXF file, for the inspect command."""
    filepath: str = ""
    dxf_version: str = ""
    units: str | None = None
    layers: dict[str, int] = field(default_factory=dict)
    entity_counts: dict[str, int] = field(default_factory=dict)
    bounding_box: tuple[tuple[float, float], tuple[float, float]] | None = None
    recognized: int = 0
    skipped: list[SkippedEntity] = field(default_factory=list)
