"""Classify a CAD document's label tree into a tree of ShapeNodes.

Document-based imports (STEP, IGES) hand over a label tree; every label is
either a *mesh* node, carrying one concrete shape, or a *group* node whose
meaning is its children. Compound shapes found at mesh labels are then
decomposed by their direct sub-shapes, so the document-driven and the
topology-driven split compose into one uniform tree.

Trees are built with explicit work stacks, so nesting depth never bounds
the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Protocol

from .colors import normalize_hex
from .geometry import GeometryKernel, ShapeKind, SimpleKernel
from .models import ShapeNode

logger = logging.getLogger(__name__)


class ColorSlot(Enum):
    SURFACE = "surface"
    CURVE = "curve"
    GENERIC = "generic"


# First hit wins
COLOR_PRIORITY = (ColorSlot.SURFACE, ColorSlot.CURVE, ColorSlot.GENERIC)

# Shape kinds decomposed into group nodes
_GROUP_KINDS = frozenset({ShapeKind.COMPOUND, ShapeKind.COMPSOLID})


class ShapeDocument(Protocol):
    """Read-only queries the classifier needs from a CAD document."""

    def main_label(self) -> Any: ...

    def children(self, label: Any) -> list[Any]: ...

    def has_children(self, label: Any) -> bool: ...

    def is_reference(self, label: Any) -> bool: ...

    def resolve_reference(self, label: Any) -> Any | None: ...

    def is_free_shape(self, label: Any) -> bool: ...

    def is_sub_shape(self, label: Any) -> bool: ...

    def get_name(self, label: Any) -> str | None: ...

    def get_color(self, label: Any, slot: ColorSlot) -> str | None: ...

    def get_shape(self, label: Any) -> Any | None: ...

    def find_label(self, shape: Any) -> Any | None: ...


def label_name(document: ShapeDocument, label: Any) -> str:
    """Name of a label, following reference chains to the referred label."""
    seen: set[int] = set()
    while document.is_reference(label):
        if id(label) in seen:
            logger.warning("Reference cycle while resolving a label name")
            return ""
        seen.add(id(label))
        label = document.resolve_reference(label)
        if label is None:
            return ""
    return document.get_name(label) or ""


def label_color(document: ShapeDocument, label: Any) -> str | None:
    """Color of a label as ``#RRGGBB``.

    The label's own surface, curve and generic colors are tried in that
    order; a reference label without a color of its own falls back to the
    label it refers to.
    """
    seen: set[int] = set()
    while label is not None and id(label) not in seen:
        seen.add(id(label))
        for slot in COLOR_PRIORITY:
            color = normalize_hex(document.get_color(label, slot))
            if color is not None:
                return color
        if not document.is_reference(label):
            return None
        label = document.resolve_reference(label)
    return None


def is_mesh_node(document: ShapeDocument, label: Any) -> bool:
    """Decide whether a label is a leaf carrying one concrete shape."""
    # if there are no children, it is a mesh node
    if not document.has_children(label):
        return True

    children = document.children(label)

    # if it has a subshape child, treat it as mesh node
    if any(document.is_sub_shape(child) for child in children):
        return True

    # if it doesn't have a freeshape child, treat it as a mesh node
    return not any(document.is_free_shape(child) for child in children)


def shape_node(shape: Any, name: str = "Shape", color: str | None = None) -> ShapeNode:
    """Wrap a single shape as a leaf node (mesh formats such as STL)."""
    return ShapeNode(name=name, shape=shape, color=normalize_hex(color))


def decompose_shape(
    shape: Any,
    kernel: GeometryKernel | None = None,
    document: ShapeDocument | None = None,
    label: Any = None,
) -> ShapeNode:
    """Split compound / compsolid shapes into group nodes by direct sub-shapes.

    Names and colors come from the document label holding each shape. The
    top-level shape falls back to ``label`` when the document does not know
    it.
    """
    kernel = kernel or SimpleKernel()
    root = _shape_to_node(shape, kernel, document, label)
    stack = [(root, shape)]
    while stack:
        node, current = stack.pop()
        if not node.is_group:
            continue
        for sub_shape in kernel.sub_shapes(current):
            child = _shape_to_node(sub_shape, kernel, document, None)
            node.children.append(child)
            stack.append((child, sub_shape))
    return root


def classify_document(document: ShapeDocument, kernel: GeometryKernel | None = None) -> ShapeNode:
    """Build the ShapeNode tree of a document.

    The main label is always a group node of its free-shape children, and
    group labels only descend into free-shape children.
    """
    kernel = kernel or SimpleKernel()
    root_label = document.main_label()
    root = _label_to_node(document, root_label)

    stack = [(root, root_label)]
    while stack:
        node, label = stack.pop()
        for child_label in document.children(label):
            if not document.is_free_shape(child_label):
                continue
            if is_mesh_node(document, child_label):
                node.children.append(_mesh_node(document, kernel, child_label))
                continue
            child = _label_to_node(document, child_label)
            node.children.append(child)
            stack.append((child, child_label))

    return root


def _label_to_node(document: ShapeDocument, label: Any) -> ShapeNode:
    return ShapeNode(name=label_name(document, label), color=label_color(document, label))


def _mesh_node(document: ShapeDocument, kernel: GeometryKernel, label: Any) -> ShapeNode:
    shape = document.get_shape(label)
    if shape is None:
        logger.debug("Mesh label %r has no shape", label_name(document, label))
        return _label_to_node(document, label)
    return decompose_shape(shape, kernel, document, label)


def _shape_to_node(
    shape: Any,
    kernel: GeometryKernel,
    document: ShapeDocument | None,
    fallback_label: Any,
) -> ShapeNode:
    found = None
    if document is not None:
        found = document.find_label(shape)
        if found is None:
            found = fallback_label

    name = label_name(document, found) if found is not None else ""
    if kernel.shape_kind(shape) in _GROUP_KINDS:
        return ShapeNode(name=name)

    color = label_color(document, found) if found is not None else None
    return ShapeNode(name=name, shape=shape, color=color)
