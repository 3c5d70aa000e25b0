"""In-memory CAD document: a label tree with named, colored, shared shapes.

Labels are a tagged union: a ``ShapeLabel`` owns its shape (or, for an
assembly, the compound of its children), while a ``ReferenceLabel`` is an
instance of another label and resolves to it explicitly.

Assembly compounds are rebuilt by the building methods whenever a
descendant's shape changes, so every query is read-only and a finished
document can be classified from several threads at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypeAlias

from .geometry import GeometryKernel, SimpleKernel
from .scene import ColorSlot


@dataclass(eq=False)
class ShapeLabel:
    name: str | None = None
    shape: Any = None
    colors: dict[ColorSlot, str] = field(default_factory=dict)
    children: list[Label] = field(default_factory=list)
    free: bool = False
    sub_shape: bool = False
    assembly: bool = False  # shape is the compound of its children


@dataclass(eq=False)
class ReferenceLabel:
    target: Label
    name: str | None = None
    colors: dict[ColorSlot, str] = field(default_factory=dict)
    children: list[Label] = field(default_factory=list)
    free: bool = False
    sub_shape: bool = False


Label: TypeAlias = ShapeLabel | ReferenceLabel


def resolve(label: Label) -> ShapeLabel:
    """Follow a reference chain to the label that owns a shape."""
    seen: set[int] = set()
    while isinstance(label, ReferenceLabel):
        if id(label) in seen:
            msg = "Reference cycle in label tree"
            raise ValueError(msg)
        seen.add(id(label))
        label = label.target
    return label


class LabelDocument:
    """A label tree implementing the classifier's document queries.

    Top-level shapes are added under the main label and flagged free.
    Assembly labels take the compound of their children's shapes.
    """

    def __init__(self, name: str = "", kernel: GeometryKernel | None = None) -> None:
        self.kernel = kernel or SimpleKernel()
        self.root = ShapeLabel(name=name)
        self._shape_labels: dict[int, tuple[Any, ShapeLabel]] = {}
        self._parents: dict[int, Label] = {}
        self._referrers: dict[int, list[ReferenceLabel]] = {}

    # --- Building ---

    def add_shape(
        self,
        shape: Any,
        name: str | None = None,
        color: str | None = None,
        parent: Label | None = None,
        free: bool = True,
        color_slot: ColorSlot = ColorSlot.SURFACE,
    ) -> ShapeLabel:
        label = ShapeLabel(name=name, shape=shape, free=free)
        if color is not None:
            label.colors[color_slot] = color
        self._attach(label, parent)
        self._register(shape, label)
        self._shape_changed(label)
        return label

    def add_assembly(
        self,
        name: str | None = None,
        parent: Label | None = None,
        free: bool = True,
        color: str | None = None,
    ) -> ShapeLabel:
        label = ShapeLabel(name=name, free=free, assembly=True)
        if color is not None:
            label.colors[ColorSlot.GENERIC] = color
        self._attach(label, parent)
        return label

    def add_reference(
        self,
        target: Label,
        name: str | None = None,
        parent: Label | None = None,
        free: bool = False,
        color: str | None = None,
    ) -> ReferenceLabel:
        label = ReferenceLabel(target=target, name=name, free=free)
        if color is not None:
            label.colors[ColorSlot.SURFACE] = color
        self._referrers.setdefault(id(target), []).append(label)
        self._attach(label, parent)
        self._shape_changed(label)
        return label

    def add_sub_shape(
        self,
        parent: Label,
        shape: Any,
        name: str | None = None,
        color: str | None = None,
    ) -> ShapeLabel:
        label = ShapeLabel(name=name, shape=shape, sub_shape=True)
        if color is not None:
            label.colors[ColorSlot.SURFACE] = color
        parent.children.append(label)
        self._register(shape, label)
        return label

    def _attach(self, label: Label, parent: Label | None) -> None:
        owner = parent or self.root
        owner.children.append(label)
        self._parents[id(label)] = owner

    def _register(self, shape: Any, label: ShapeLabel) -> None:
        if shape is not None and id(shape) not in self._shape_labels:
            self._shape_labels[id(shape)] = (shape, label)

    def _unregister(self, shape: Any, label: ShapeLabel) -> None:
        entry = self._shape_labels.get(id(shape))
        if entry is not None and entry[1] is label:
            del self._shape_labels[id(shape)]

    def _shape_changed(self, label: Label) -> None:
        """Rebuild every assembly whose compound includes ``label``'s shape."""
        pending = [label]
        seen: set[int] = set()
        while pending:
            current = pending.pop()
            if id(current) in seen:
                continue
            seen.add(id(current))
            pending.extend(self._referrers.get(id(current), ()))
            parent = self._parents.get(id(current))
            if isinstance(parent, ShapeLabel) and parent.assembly:
                self._rebuild_assembly(parent)
                pending.append(parent)

    def _rebuild_assembly(self, label: ShapeLabel) -> None:
        shapes = [
            resolve(child).shape
            for child in label.children
            if not child.sub_shape and resolve(child).shape is not None
        ]
        if label.shape is not None:
            self._unregister(label.shape, label)
        label.shape = self.kernel.make_compound(shapes) if shapes else None
        self._register(label.shape, label)

    # --- Queries ---

    def main_label(self) -> ShapeLabel:
        return self.root

    def children(self, label: Label) -> list[Label]:
        return list(label.children)

    def has_children(self, label: Label) -> bool:
        return bool(label.children)

    def is_reference(self, label: Label) -> bool:
        return isinstance(label, ReferenceLabel)

    def resolve_reference(self, label: Label) -> Label | None:
        if isinstance(label, ReferenceLabel):
            return label.target
        return None

    def is_free_shape(self, label: Label) -> bool:
        return label.free and self.get_shape(label) is not None

    def is_sub_shape(self, label: Label) -> bool:
        return label.sub_shape

    def get_name(self, label: Label) -> str | None:
        return label.name

    def get_color(self, label: Label, slot: ColorSlot) -> str | None:
        return label.colors.get(slot)

    def get_shape(self, label: Label) -> Any | None:
        return resolve(label).shape

    def find_label(self, shape: Any) -> ShapeLabel | None:
        entry = self._shape_labels.get(id(shape))
        return entry[1] if entry is not None else None
