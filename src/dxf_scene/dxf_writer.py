"""Serialize kernel shapes as ASCII DXF text.

The output has a fixed grammar: a minimal HEADER, a TABLES section with the
default layer "0", and an ENTITIES section holding LINE, CIRCLE, ARC,
LWPOLYLINE and 3DFACE records. Curves and shapes with no DXF counterpart
are omitted.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ezdxf.math import Vec3, Z_AXIS

from .geometry import (
    ANGULAR_TOLERANCE,
    LINEAR_TOLERANCE,
    CircleCurve,
    CurveKind,
    GeometryKernel,
    ShapeKind,
    SimpleKernel,
    is_full_range,
)
from .polyline import arc_bulge

logger = logging.getLogger(__name__)

DEFAULT_LAYER = "0"


@dataclass
class WriterOptions:
    version: str = "AC1015"  # $ACADVER
    insunits: int = 4  # $INSUNITS, 4 = mm


# ─── Tag Emission Helpers ────────────────────────────────────────────────


def _fmt(value: float) -> str:
    """Shortest round-trip text for a float, without negative zero."""
    return repr(float(value) + 0.0)


def _tag(out: list[str], code: int, value: Any) -> None:
    out.append(f"{code:>3}")
    out.append(_fmt(value) if isinstance(value, float) else str(value))


def _point(out: list[str], index: int, p: Vec3) -> None:
    """Emit a point on codes 1x/2x/3x."""
    _tag(out, 10 + index, float(p.x))
    _tag(out, 20 + index, float(p.y))
    _tag(out, 30 + index, float(p.z))


def _begin_entity(out: list[str], entity_type: str) -> None:
    _tag(out, 0, entity_type)
    _tag(out, 8, DEFAULT_LAYER)


# ─── Sections ────────────────────────────────────────────────────────────


def emit_header(out: list[str], options: WriterOptions) -> None:
    _tag(out, 0, "SECTION")
    _tag(out, 2, "HEADER")
    _tag(out, 9, "$ACADVER")
    _tag(out, 1, options.version)
    _tag(out, 9, "$INSUNITS")
    _tag(out, 70, options.insunits)
    _tag(out, 0, "ENDSEC")


def emit_tables(out: list[str]) -> None:
    _tag(out, 0, "SECTION")
    _tag(out, 2, "TABLES")
    _tag(out, 0, "TABLE")
    _tag(out, 2, "LAYER")
    _tag(out, 70, 1)
    _tag(out, 0, "LAYER")
    _tag(out, 2, DEFAULT_LAYER)
    _tag(out, 70, 0)
    _tag(out, 62, 7)
    _tag(out, 6, "CONTINUOUS")
    _tag(out, 0, "ENDTAB")
    _tag(out, 0, "ENDSEC")


# ─── Entity Emission ─────────────────────────────────────────────────────


def _in_xy_plane(normal: Vec3) -> bool:
    return normal.isclose(Z_AXIS) or normal.isclose(-Z_AXIS)


def emit_edge(out: list[str], edge: Any, kernel: GeometryKernel) -> bool:
    """Emit one edge as LINE, CIRCLE or ARC. Returns False if omitted."""
    kind = kernel.curve_kind(edge)

    if kind is CurveKind.LINE:
        p1, p2 = kernel.line_points(edge)
        _begin_entity(out, "LINE")
        _point(out, 0, p1)
        _point(out, 1, p2)
        return True

    if kind in (CurveKind.CIRCLE, CurveKind.TRIMMED_CIRCLE):
        center, radius, normal, first, last = kernel.circle_params(edge)
        if not _in_xy_plane(normal):
            logger.debug("Omitting circular edge with normal %s", normal)
            return False
        if kind is CurveKind.CIRCLE and is_full_range(first, last):
            _begin_entity(out, "CIRCLE")
            _point(out, 0, center)
            _tag(out, 40, float(radius))
            return True
        start_angle, end_angle = _arc_angles(edge, kernel, center, normal, first, last)
        _begin_entity(out, "ARC")
        _point(out, 0, center)
        _tag(out, 40, float(radius))
        _tag(out, 50, start_angle)
        _tag(out, 51, end_angle)
        return True

    logger.debug("Omitting edge with unsupported curve kind %s", kind)
    return False


def _arc_angles(
    edge: Any,
    kernel: GeometryKernel,
    center: Vec3,
    normal: Vec3,
    first: float,
    last: float,
) -> tuple[float, float]:
    """Start/end angles in degrees of a counter-clockwise DXF arc.

    Arcs around -Z run clockwise in the XY plane, so the DXF arc starts at
    the edge's end point instead.
    """
    sweep = math.degrees(last - first)
    if normal.isclose(Z_AXIS):
        start = math.degrees(first) % 360.0
    else:
        p = kernel.edge_end(edge)
        start = math.degrees(math.atan2(p.y - center.y, p.x - center.x)) % 360.0
    end = start + sweep
    if end > 360.0:
        end -= 360.0
    return start, end


def _wire_vertices(edges: list[Any], kernel: GeometryKernel) -> list[tuple[Vec3, float]] | None:
    """(start point, bulge) per polyline segment, or None if an arc leaves the XY plane.

    Arcs sweeping more than half a turn are split in two, so no bulge
    exceeds 1 and a full circle keeps two distinct vertices.
    """
    vertices: list[tuple[Vec3, float]] = []
    for edge in edges:
        if kernel.curve_kind(edge) not in (CurveKind.CIRCLE, CurveKind.TRIMMED_CIRCLE):
            vertices.append((kernel.edge_start(edge), 0.0))
            continue
        center, radius, normal, first, last = kernel.circle_params(edge)
        if not _in_xy_plane(normal):
            return None
        if last - first > math.pi + ANGULAR_TOLERANCE:
            mid = (first + last) / 2.0
            vertices.append((kernel.edge_start(edge), arc_bulge(first, mid, normal)))
            vertices.append((CircleCurve(center, radius, normal).value(mid), arc_bulge(mid, last, normal)))
        else:
            vertices.append((kernel.edge_start(edge), arc_bulge(first, last, normal)))
    return vertices


def emit_lwpolyline(out: list[str], wire: Any, kernel: GeometryKernel) -> bool:
    """Emit a wire as one LWPOLYLINE listing each edge's start point."""
    edges = kernel.wire_edges(wire)
    if not edges:
        return False
    vertices = _wire_vertices(edges, kernel)
    if vertices is None:
        logger.debug("Omitting LWPOLYLINE for a wire with arcs outside the XY plane")
        return False

    last_point = kernel.edge_end(edges[-1])
    closed = last_point.isclose(vertices[0][0], abs_tol=LINEAR_TOLERANCE)
    if not closed:
        vertices.append((last_point, 0.0))

    _begin_entity(out, "LWPOLYLINE")
    _tag(out, 90, len(vertices))
    _tag(out, 70, 1 if closed else 0)
    elevation = vertices[0][0].z
    if elevation != 0.0 and all(math.isclose(p.z, elevation) for p, _ in vertices):
        _tag(out, 38, float(elevation))
    for p, bulge in vertices:
        _tag(out, 10, float(p.x))
        _tag(out, 20, float(p.y))
        if bulge != 0.0:
            _tag(out, 42, float(bulge))
    return True


def emit_3dface(out: list[str], face: Any, kernel: GeometryKernel) -> bool:
    """Emit a face as one 3DFACE from its first four boundary points."""
    points = [kernel.edge_start(edge) for edge in kernel.face_boundary(face)][:4]
    if len(points) < 3:
        logger.debug("Omitting face with %d boundary points", len(points))
        return False
    if len(points) == 3:
        points.append(points[2])

    _begin_entity(out, "3DFACE")
    for i, p in enumerate(points):
        _point(out, i, p)
    return True


def emit_shape(out: list[str], shape: Any, kernel: GeometryKernel) -> int:
    """Emit every DXF entity for one shape. Returns the number emitted.

    Each edge becomes a LINE, CIRCLE or ARC. A wire is additionally
    written as one LWPOLYLINE and a face as one 3DFACE. Compounds are
    walked member by member.
    """
    count = 0
    stack = [shape]
    while stack:
        current = stack.pop()
        kind = kernel.shape_kind(current)
        if kind is ShapeKind.COMPOUND:
            stack.extend(reversed(kernel.sub_shapes(current)))
            continue
        if kind is ShapeKind.VERTEX:
            logger.debug("Omitting vertex")
            continue
        for edge in kernel.edges(current):
            count += emit_edge(out, edge, kernel)
        if kind is ShapeKind.WIRE:
            count += emit_lwpolyline(out, current, kernel)
        elif kind is ShapeKind.FACE:
            count += emit_3dface(out, current, kernel)
    return count


# ─── Main Conversion ─────────────────────────────────────────────────────


def write_dxf(
    shapes: Iterable[Any],
    kernel: GeometryKernel | None = None,
    options: WriterOptions | None = None,
) -> str:
    """Serialize shapes as DXF text.

    Entities follow input shape order, then kernel iteration order. Every
    entity is on layer "0".
    """
    kernel = kernel or SimpleKernel()
    options = options or WriterOptions()

    out: list[str] = []
    emit_header(out, options)
    emit_tables(out)

    _tag(out, 0, "SECTION")
    _tag(out, 2, "ENTITIES")
    count = 0
    for shape in shapes:
        count += emit_shape(out, shape, kernel)
    _tag(out, 0, "ENDSEC")
    _tag(out, 0, "EOF")

    logger.debug("Wrote %d DXF entities", count)
    return "\n".join(out) + "\n"


def save_dxf(
    shapes: Iterable[Any],
    dxf_path: str | Path,
    kernel: GeometryKernel | None = None,
    options: WriterOptions | None = None,
) -> Path:
    """Write shapes to a DXF file (UTF-8)."""
    path = Path(dxf_path)
    path.write_text(write_dxf(shapes, kernel, options), encoding="utf-8")
    logger.info("Written: %s", path)
    return path
