"""Polyline vertex scanning and LWPOLYLINE bulge <-> arc conversion.

DXF stores every polyline vertex under the same group codes (10/20/30), so
vertices are read by scanning the ordered tag list: each code 10 starts a
new vertex and the following 20/30/42 codes fill it in.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from ezdxf.math import Vec3, Z_AXIS

from .geometry import TWO_PI, CircleCurve

CODE_X = 10
CODE_Y = 20
CODE_Z = 30
CODE_BULGE = 42

# Bulges smaller than this are straight segments
BULGE_EPSILON = 1e-10


@dataclass
class PolylineVertex:
    x: float
    y: float | None = None
    z: float = 0.0
    bulge: float = 0.0

    @property
    def point(self) -> Vec3:
        return Vec3(self.x, self.y or 0.0, self.z)


@dataclass
class BulgeArc:
    """Circle data for one bulged polyline segment.

    ``start`` / ``end`` are circle parameters (radians) around ``normal``;
    a negative bulge (clockwise arc) uses the -Z normal so the parameter
    still increases from the first vertex to the second.
    """
    center: Vec3
    radius: float
    normal: Vec3
    start: float
    end: float


def scan_vertices(tags: Iterable[tuple[int, str]], use_z: bool = False) -> list[PolylineVertex]:
    """Collect polyline vertices from an ordered tag list.

    A vertex without a Y value is dropped. Z values are only kept when
    ``use_z`` is set (3D polylines).

    Raises:
        ValueError: A coordinate is not a number.
    """
    vertices: list[PolylineVertex] = []
    current: PolylineVertex | None = None

    for code, value in tags:
        if code == CODE_X:
            current = PolylineVertex(x=float(value))
            vertices.append(current)
        elif current is None:
            continue
        elif code == CODE_Y:
            current.y = float(value)
        elif code == CODE_Z and use_z:
            current.z = float(value)
        elif code == CODE_BULGE:
            current.bulge = float(value)

    return [v for v in vertices if v.y is not None]


def bulge_to_arc(p1: Vec3, p2: Vec3, bulge: float) -> BulgeArc | None:
    """Convert a DXF bulge value between two points to circle data.

    The bulge is the tangent of 1/4 of the included angle.
    Positive bulge = counterclockwise arc; negative = clockwise.
    Returns None for a zero-length chord.
    """
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    chord = math.hypot(dx, dy)

    if chord < 1e-12:
        return None

    # Sagitta and radius
    s = bulge * chord / 2.0
    radius = abs((chord**2 / 4.0 + s**2) / (2.0 * s))

    # Midpoint of chord
    mx = (p1.x + p2.x) / 2.0
    my = (p1.y + p2.y) / 2.0

    # Unit normal to chord (pointing left of p1→p2)
    nx = -dy / chord
    ny = dx / chord

    # Distance from midpoint to center, negative when the arc spans > 180°
    d = radius - abs(s)
    if bulge > 0:
        cx = mx + d * nx
        cy = my + d * ny
    else:
        cx = mx - d * nx
        cy = my - d * ny

    center = Vec3(cx, cy, p1.z)
    normal = Z_AXIS if bulge > 0 else -Z_AXIS
    circle = CircleCurve(center, radius, normal)
    start = circle.parameter(p1)
    end = circle.parameter(p2)
    if end <= start:
        end += TWO_PI

    return BulgeArc(center=center, radius=radius, normal=normal, start=start, end=end)


def arc_bulge(first: float, last: float, normal: Vec3) -> float:
    """Bulge of a circular edge running from parameter ``first`` to ``last``."""
    bulge = math.tan((last - first) / 4.0)
    if normal.z < 0:
        return -bulge
    return bulge
