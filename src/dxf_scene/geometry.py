"""Geometry kernel boundary used by the DXF builders and writer.

The codec never computes topology itself: it asks a ``GeometryKernel`` to
build edges, wires and faces, and to classify and walk existing shapes.
``SimpleKernel`` is a small boundary-representation model covering what the
codec needs (line, circle and trimmed-circle edges, wires, planar polygon
faces and compounds). Points are ezdxf ``Vec3`` values.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from ezdxf.math import OCS, Vec3, Z_AXIS

from .errors import GeometryError

TWO_PI = 2.0 * math.pi

# Minimum edge length / radius accepted by SimpleKernel
LINEAR_TOLERANCE = 1e-9
# Parameter span counted as a full turn
ANGULAR_TOLERANCE = 1e-9


class ShapeKind(Enum):
    COMPOUND = "compound"
    COMPSOLID = "compsolid"
    SOLID = "solid"
    SHELL = "shell"
    FACE = "face"
    WIRE = "wire"
    EDGE = "edge"
    VERTEX = "vertex"


class CurveKind(Enum):
    LINE = "line"
    CIRCLE = "circle"
    TRIMMED_CIRCLE = "trimmed_circle"
    OTHER = "other"


# --- Curves ---


@dataclass(frozen=True)
class LineCurve:
    """Unbounded line through ``origin`` along the unit vector ``direction``."""
    origin: Vec3
    direction: Vec3

    def value(self, t: float) -> Vec3:
        return self.origin + self.direction * t


@dataclass(frozen=True)
class CircleCurve:
    """Full circle parametrized by angle (radians) in the plane of ``normal``.

    The parameter is measured from the x-axis of the arbitrary-axis OCS of
    ``normal``, counter-clockwise around ``normal``. For the WCS z-axis that
    is the usual angle from +X.
    """
    center: Vec3
    radius: float
    normal: Vec3 = Z_AXIS

    def value(self, t: float) -> Vec3:
        ocs = OCS(self.normal)
        return self.center + (ocs.ux * math.cos(t) + ocs.uy * math.sin(t)) * self.radius

    def parameter(self, point: Vec3) -> float:
        """Angle of ``point`` around the circle, in [0, 2pi)."""
        ocs = OCS(self.normal)
        d = Vec3(point) - self.center
        return math.atan2(d.dot(ocs.uy), d.dot(ocs.ux)) % TWO_PI


@dataclass(frozen=True)
class TrimmedCurve:
    """A basis curve restricted to [first, last]."""
    basis: LineCurve | CircleCurve
    first: float
    last: float

    def value(self, t: float) -> Vec3:
        return self.basis.value(t)


Curve = LineCurve | CircleCurve | TrimmedCurve


# --- Shapes ---
# Shapes compare by identity so they can key document lookups.


@dataclass(frozen=True, eq=False)
class Edge:
    curve: Curve
    first: float
    last: float

    @property
    def start(self) -> Vec3:
        return self.curve.value(self.first)

    @property
    def end(self) -> Vec3:
        return self.curve.value(self.last)


@dataclass(frozen=True, eq=False)
class Wire:
    edges: tuple[Edge, ...]

    @property
    def is_closed(self) -> bool:
        return self.edges[0].start.isclose(self.edges[-1].end, abs_tol=LINEAR_TOLERANCE)


@dataclass(frozen=True, eq=False)
class Face:
    outer: Wire


@dataclass(frozen=True, eq=False)
class Compound:
    members: tuple[Any, ...] = field(default_factory=tuple)
    kind: ShapeKind = ShapeKind.COMPOUND


class GeometryKernel(Protocol):
    """Capabilities the codec and classifier need from a geometry kernel."""

    def make_edge_from_line(self, p1: Vec3, p2: Vec3) -> Any: ...

    def make_edge_from_circle(
        self, center: Vec3, normal: Vec3, radius: float, start: float, end: float
    ) -> Any: ...

    def make_wire_from_points(self, points: Sequence[Vec3], closed: bool) -> Any: ...

    def make_wire_from_edges(self, edges: Sequence[Any]) -> Any: ...

    def make_face_from_polygon(self, points: Sequence[Vec3]) -> Any: ...

    def make_compound(self, shapes: Iterable[Any]) -> Any: ...

    def shape_kind(self, shape: Any) -> ShapeKind: ...

    def curve_kind(self, edge: Any) -> CurveKind: ...

    def edges(self, shape: Any) -> list[Any]: ...

    def wire_edges(self, wire: Any) -> list[Any]: ...

    def face_boundary(self, face: Any) -> list[Any]: ...

    def sub_shapes(self, shape: Any) -> list[Any]: ...

    def line_points(self, edge: Any) -> tuple[Vec3, Vec3]: ...

    def circle_params(self, edge: Any) -> tuple[Vec3, float, Vec3, float, float]: ...

    def edge_start(self, edge: Any) -> Vec3: ...

    def edge_end(self, edge: Any) -> Vec3: ...


class SimpleKernel:
    """Reference kernel over the dataclasses in this module."""

    # --- Constructors ---

    def make_edge_from_line(self, p1: Vec3, p2: Vec3) -> Edge:
        p1, p2 = Vec3(p1), Vec3(p2)
        length = p1.distance(p2)
        if length < LINEAR_TOLERANCE:
            msg = f"Zero-length line at {p1}"
            raise GeometryError(msg)
        return Edge(LineCurve(p1, (p2 - p1).normalize()), 0.0, length)

    def make_edge_from_circle(
        self,
        center: Vec3,
        normal: Vec3,
        radius: float,
        start: float = 0.0,
        end: float = TWO_PI,
    ) -> Edge:
        if radius < LINEAR_TOLERANCE:
            msg = f"Non-positive circle radius {radius}"
            raise GeometryError(msg)
        if end <= start:
            msg = f"Empty circle parameter range [{start}, {end}]"
            raise GeometryError(msg)
        circle = CircleCurve(Vec3(center), float(radius), Vec3(normal).normalize())
        if end - start >= TWO_PI - ANGULAR_TOLERANCE:
            return Edge(circle, start, end)
        return Edge(TrimmedCurve(circle, start, end), start, end)

    def make_wire_from_points(self, points: Sequence[Vec3], closed: bool = False) -> Wire:
        pts = [Vec3(p) for p in points]
        if len(pts) < 2:
            msg = "A wire needs at least 2 points"
            raise GeometryError(msg)
        edges = [self.make_edge_from_line(a, b) for a, b in zip(pts, pts[1:])]
        if closed and not pts[-1].isclose(pts[0], abs_tol=LINEAR_TOLERANCE):
            edges.append(self.make_edge_from_line(pts[-1], pts[0]))
        return Wire(tuple(edges))

    def make_wire_from_edges(self, edges: Sequence[Edge]) -> Wire:
        if not edges:
            msg = "A wire needs at least 1 edge"
            raise GeometryError(msg)
        return Wire(tuple(edges))

    def make_face_from_polygon(self, points: Sequence[Vec3]) -> Face:
        if len(points) < 3:
            msg = "A polygon face needs at least 3 points"
            raise GeometryError(msg)
        return Face(self.make_wire_from_points(points, closed=True))

    def make_compound(self, shapes: Iterable[Any]) -> Compound:
        return Compound(tuple(shapes))

    # --- Queries ---

    def shape_kind(self, shape: Any) -> ShapeKind:
        if isinstance(shape, Edge):
            return ShapeKind.EDGE
        if isinstance(shape, Wire):
            return ShapeKind.WIRE
        if isinstance(shape, Face):
            return ShapeKind.FACE
        if isinstance(shape, Compound):
            return shape.kind
        msg = f"Unknown shape type: {type(shape)}"
        raise TypeError(msg)

    def curve_kind(self, edge: Edge) -> CurveKind:
        curve = edge.curve
        if isinstance(curve, LineCurve):
            return CurveKind.LINE
        if isinstance(curve, CircleCurve):
            return CurveKind.CIRCLE
        if isinstance(curve, TrimmedCurve):
            if isinstance(curve.basis, CircleCurve):
                return CurveKind.TRIMMED_CIRCLE
            if isinstance(curve.basis, LineCurve):
                return CurveKind.LINE
        return CurveKind.OTHER

    def edges(self, shape: Any) -> list[Edge]:
        """All edges of a shape in exploration order."""
        result: list[Edge] = []
        stack = [shape]
        while stack:
            current = stack.pop()
            if isinstance(current, Edge):
                result.append(current)
            else:
                stack.extend(reversed(self.sub_shapes(current)))
        return result

    def wire_edges(self, wire: Wire) -> list[Edge]:
        return list(wire.edges)

    def face_boundary(self, face: Face) -> list[Edge]:
        return list(face.outer.edges)

    def sub_shapes(self, shape: Any) -> list[Any]:
        if isinstance(shape, Compound):
            return list(shape.members)
        if isinstance(shape, Face):
            return [shape.outer]
        if isinstance(shape, Wire):
            return list(shape.edges)
        return []

    def line_points(self, edge: Edge) -> tuple[Vec3, Vec3]:
        return edge.start, edge.end

    def circle_params(self, edge: Edge) -> tuple[Vec3, float, Vec3, float, float]:
        """Return (center, radius, normal, first, last) of a circular edge."""
        curve = edge.curve
        circle = curve.basis if isinstance(curve, TrimmedCurve) else curve
        if not isinstance(circle, CircleCurve):
            msg = "Edge is not circular"
            raise GeometryError(msg)
        return circle.center, circle.radius, circle.normal, edge.first, edge.last

    def edge_start(self, edge: Edge) -> Vec3:
        return edge.start

    def edge_end(self, edge: Edge) -> Vec3:
        return edge.end


def is_full_range(first: float, last: float) -> bool:
    return last - first >= TWO_PI - ANGULAR_TOLERANCE
