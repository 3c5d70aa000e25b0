"""Tests for the scene-graph classifier."""

from __future__ import annotations

from ezdxf.math import Vec3, Z_AXIS

from dxf_scene.document import LabelDocument
from dxf_scene.geometry import Compound, ShapeKind, SimpleKernel
from dxf_scene.scene import (
    ColorSlot,
    classify_document,
    decompose_shape,
    is_mesh_node,
    label_color,
    label_name,
    shape_node,
)

kernel = SimpleKernel()


def _edge(x: float = 0.0):
    return kernel.make_edge_from_line(Vec3(x, 0), Vec3(x + 1, 0))


class FlagOnlyDocument(LabelDocument):
    """A document whose free flag does not depend on the label having a shape."""

    def is_free_shape(self, label):
        return label.free


class TestIsMeshNode:
    """Leaf/group decision for one label."""

    def test_no_children(self):
        doc = LabelDocument()
        part = doc.add_shape(_edge())
        assert is_mesh_node(doc, part)

    def test_sub_shape_child_wins(self):
        """A sub-shape child makes the label a mesh even beside a free child."""
        doc = LabelDocument()
        asm = doc.add_assembly("Asm")
        doc.add_shape(_edge(), parent=asm)
        doc.add_sub_shape(asm, _edge(5))
        assert is_mesh_node(doc, asm)

    def test_free_child_makes_group(self):
        doc = LabelDocument()
        asm = doc.add_assembly("Asm")
        doc.add_shape(_edge(), parent=asm)
        assert not is_mesh_node(doc, asm)

    def test_no_free_child(self):
        doc = LabelDocument()
        asm = doc.add_assembly("Asm")
        doc.add_shape(_edge(), parent=asm, free=False)
        assert is_mesh_node(doc, asm)


class TestClassifyDocument:
    """Whole-tree classification."""

    def test_root_is_group_of_free_children(self):
        doc = LabelDocument(name="Model")
        a = _edge()
        doc.add_shape(a, name="A")
        doc.add_shape(_edge(3), name="Hidden", free=False)
        root = classify_document(doc)
        assert root.name == "Model"
        assert root.is_group
        assert [child.name for child in root.children] == ["A"]
        assert root.children[0].shape is a

    def test_empty_document(self):
        """The main label is a group even without children."""
        doc = LabelDocument(name="Model")
        root = classify_document(doc)
        assert root.is_group
        assert root.children == []

    def test_assembly(self):
        doc = LabelDocument()
        asm = doc.add_assembly("Frame", color="#00ff00")
        doc.add_shape(_edge(), name="Left", parent=asm, color="#ff0000")
        doc.add_shape(_edge(2), name="Right", parent=asm)
        root = classify_document(doc)
        (frame,) = root.children
        assert frame.name == "Frame"
        assert frame.color == "#00FF00"
        assert frame.shape is None
        assert [(c.name, c.color) for c in frame.children] == [("Left", "#FF0000"), ("Right", None)]
        assert all(not c.is_group for c in frame.children)

    def test_group_skips_non_free_children(self):
        doc = LabelDocument()
        asm = doc.add_assembly("Asm")
        doc.add_shape(_edge(), name="Kept", parent=asm)
        doc.add_shape(_edge(2), name="Dropped", parent=asm, free=False)
        (asm_node,) = classify_document(doc).children
        assert [c.name for c in asm_node.children] == ["Kept"]

    def test_reference_resolves_name_and_color(self):
        doc = LabelDocument()
        bolt = doc.add_shape(_edge(), name="Bolt", color="#ff0000", free=False)
        asm = doc.add_assembly("Asm")
        doc.add_reference(bolt, parent=asm, free=True)
        doc.add_reference(bolt, parent=asm, free=True, color="#0000ff")
        (asm_node,) = classify_document(doc).children
        first, second = asm_node.children
        assert (first.name, first.color) == ("Bolt", "#FF0000")
        assert first.shape is bolt.shape
        # the leaf takes its color from the label holding the shape
        assert second.color == "#FF0000"

    def test_mesh_with_sub_shapes_decomposes(self):
        doc = LabelDocument()
        hole, edge = _edge(), _edge(4)
        plate = doc.add_shape(kernel.make_compound([hole, edge]), name="Plate")
        doc.add_sub_shape(plate, hole, name="Hole", color="#00f")
        (plate_node,) = classify_document(doc).children
        assert plate_node.name == "Plate"
        assert plate_node.is_group
        assert [(c.name, c.color) for c in plate_node.children] == [("Hole", "#0000FF"), ("", None)]
        assert [c.shape for c in plate_node.children] == [hole, edge]

    def test_mesh_without_shape_is_empty_group(self):
        doc = FlagOnlyDocument()
        doc.add_assembly("Empty")
        (node,) = classify_document(doc).children
        assert node.name == "Empty"
        assert node.shape is None
        assert node.children == []

    def test_deep_nesting(self):
        doc = LabelDocument()
        parent = None
        depth = 3000
        for i in range(depth):
            parent = doc.add_assembly(f"L{i}", parent=parent)
        leaf = _edge()
        doc.add_shape(leaf, name="Leaf", parent=parent)

        node = classify_document(doc)
        levels = 0
        while node.children:
            (node,) = node.children
            levels += 1
        assert levels == depth + 1
        assert node.name == "Leaf"
        assert node.shape is leaf


class TestNamesAndColors:
    """Label name and color resolution."""

    def test_color_priority(self):
        doc = LabelDocument()
        label = doc.add_shape(_edge(), color="#111111", color_slot=ColorSlot.GENERIC)
        label.colors[ColorSlot.CURVE] = "#222222"
        assert label_color(doc, label) == "#222222"
        label.colors[ColorSlot.SURFACE] = "#333333"
        assert label_color(doc, label) == "#333333"

    def test_invalid_color_skipped(self):
        doc = LabelDocument()
        label = doc.add_shape(_edge(), color="not-a-color")
        label.colors[ColorSlot.GENERIC] = "#abcdef"
        assert label_color(doc, label) == "#ABCDEF"

    def test_reference_chain(self):
        doc = LabelDocument()
        part = doc.add_shape(_edge(), name="Part", color="#123456")
        ref1 = doc.add_reference(part)
        ref2 = doc.add_reference(ref1, name="Ignored")
        assert label_name(doc, ref2) == "Part"
        assert label_color(doc, ref2) == "#123456"

    def test_reference_cycle(self):
        doc = LabelDocument()
        part = doc.add_shape(_edge(), name="Part")
        ref1 = doc.add_reference(part)
        ref2 = doc.add_reference(ref1)
        ref1.target = ref2
        assert label_name(doc, ref1) == ""
        assert label_color(doc, ref1) is None

    def test_unnamed(self):
        doc = LabelDocument()
        assert label_name(doc, doc.add_shape(_edge())) == ""


class TestDecomposeShape:
    """Topology-driven split of compound shapes."""

    def test_plain_shape_is_leaf(self):
        edge = _edge()
        node = decompose_shape(edge)
        assert node.shape is edge
        assert node.children == []

    def test_nested_compounds(self):
        a, b, c = _edge(), _edge(2), kernel.make_edge_from_circle(Vec3(0, 0), Z_AXIS, 1.0)
        inner = Compound((b, c), ShapeKind.COMPSOLID)
        node = decompose_shape(kernel.make_compound([a, inner]))
        assert node.is_group
        assert node.children[0].shape is a
        assert node.children[1].is_group
        assert [n.shape for n in node.children[1].children] == [b, c]
        assert node.iter_shapes() == [a, b, c]

    def test_deep_compound(self):
        shape = _edge()
        for _ in range(3000):
            shape = kernel.make_compound([shape])
        node = decompose_shape(shape)
        assert len(node.iter_shapes()) == 1

    def test_fallback_label(self):
        doc = LabelDocument()
        label = doc.add_assembly("Holder", color="#fff")
        edge = _edge()
        node = decompose_shape(edge, kernel, doc, label)
        assert (node.name, node.color) == ("Holder", "#FFFFFF")


def test_shape_node():
    edge = _edge()
    node = shape_node(edge, color="#abc")
    assert (node.name, node.shape, node.color) == ("Shape", edge, "#AABBCC")
    assert not node.is_group


def test_classify_leaves_document_unchanged():
    doc = LabelDocument(name="Model")
    part = doc.add_shape(_edge(), free=False)
    asm = doc.add_assembly("Asm")
    doc.add_reference(part, name="Instance", parent=asm)
    doc.add_shape(_edge(2), name="Loose", parent=asm)
    labels = [doc.root, part, asm, *asm.children]
    shapes = [doc.get_shape(label) for label in labels]
    classify_document(doc)
    classify_document(doc)
    assert [doc.get_shape(label) for label in labels] == shapes
    assert [label.shape for label in (doc.root, part, asm)] == shapes[:3]
