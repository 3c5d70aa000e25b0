"""Read DXF text and build geometric shapes from its entities.

Tokens are grouped into entity records, and each record of a modelled type
(LINE, CIRCLE, ARC, POLYLINE, LWPOLYLINE, 3DFACE) is turned into a kernel
shape. Entities with missing or unusable fields are skipped, never fatal;
only a malformed group code aborts an import.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ezdxf.math import Vec3, Z_AXIS

from .assembler import assemble_entities
from .errors import GeometryError, IncompleteEntityFields, UnsupportedEntityType
from .geometry import TWO_PI, CircleCurve, CurveKind, GeometryKernel, ShapeKind, SimpleKernel
from .models import DxfDrawing, DxfInventory, EntityRecord, ShapeNode, SkippedEntity
from .polyline import BULGE_EPSILON, PolylineVertex, bulge_to_arc, scan_vertices
from .tokenizer import decode_dxf, iter_tokens

logger = logging.getLogger(__name__)

# DXF $INSUNITS codes → unit names
_INSUNITS_MAP: dict[int, str | None] = {
    0: None,  # unitless
    1: "in",
    2: "ft",
    3: "mi",
    4: "mm",
    5: "cm",
    6: "m",
    7: "km",
    8: "μin",
    9: "mil",
    10: "yd",
    11: "Å",
    12: "nm",
    13: "μm",
    14: "dm",
}

# Records that only delimit sections, tables or vertex sequences
_STRUCTURAL_TYPES = frozenset({
    "SECTION", "ENDSEC", "EOF", "TABLE", "ENDTAB", "BLOCK", "ENDBLK", "VERTEX", "SEQEND",
})

# Sections whose records are drawing entities
_ENTITY_SECTIONS = frozenset({"ENTITIES", "BLOCKS"})

POLYLINE_CLOSED = 1
POLYLINE_3D = 8

_REPEAT_TOLERANCE = 1e-9


def parse_dxf(data: bytes | str, kernel: GeometryKernel | None = None) -> DxfDrawing:
    """Parse DXF text into entity records and shapes.

    Args:
        data: Raw DXF bytes or already decoded text.
        kernel: Geometry kernel used to build shapes (default SimpleKernel).

    Returns:
        DxfDrawing with the records, built shapes in record order, skipped
        entities, unsupported entity counts and header variables.

    Raises:
        MalformedGroupCode: A code line is not an integer.
    """
    kernel = kernel or SimpleKernel()
    records = assemble_entities(iter_tokens(decode_dxf(data)))
    drawing = DxfDrawing(records=records, header=header_variables(records))
    unsupported: dict[str, int] = defaultdict(int)

    for record, vertices, section in _entity_groups(records):
        try:
            shape = build_entity(record, kernel, vertices)
        except UnsupportedEntityType:
            if record.type not in _STRUCTURAL_TYPES and section in _ENTITY_SECTIONS | {None}:
                unsupported[record.type] += 1
            continue
        except (IncompleteEntityFields, GeometryError) as exc:
            logger.debug("Skipping %s on line %d: %s", record.type, record.line, exc)
            drawing.skipped.append(
                SkippedEntity(type=record.type, reason=str(exc), line=record.line, layer=record.layer)
            )
            continue
        drawing.shapes.append(shape)

    drawing.unsupported = dict(unsupported)
    logger.debug(
        "Parsed %d records: %d shapes, %d skipped, %d unsupported",
        len(records), len(drawing.shapes), len(drawing.skipped), sum(unsupported.values()),
    )
    return drawing


def import_dxf(data: bytes | str, kernel: GeometryKernel | None = None) -> ShapeNode:
    """Import DXF text as a single scene node.

    The node's shape is a compound of every recognized entity (possibly
    empty) and its name carries the entity count.
    """
    kernel = kernel or SimpleKernel()
    drawing = parse_dxf(data, kernel)
    return ShapeNode(
        name=f"DXF Import ({drawing.entity_count} entities)",
        shape=kernel.make_compound(drawing.shapes),
    )


def read_dxf(dxf_path: str | Path, kernel: GeometryKernel | None = None) -> ShapeNode:
    """Read a DXF file and import it as a scene node."""
    return import_dxf(Path(dxf_path).read_bytes(), kernel)


def inspect_dxf(dxf_path: str | Path, kernel: GeometryKernel | None = None) -> DxfInventory:
    """Read a DXF file and return an inventory of its contents.

    Args:
        dxf_path: Path to the DXF file.
        kernel: Geometry kernel used to build shapes for the bounding box.

    Returns:
        DxfInventory with file metadata, layer counts, entity counts, and bounding box.
    """
    kernel = kernel or SimpleKernel()
    drawing = parse_dxf(Path(dxf_path).read_bytes(), kernel)

    layer_counts: dict[str, int] = defaultdict(int)
    entity_counts: dict[str, int] = defaultdict(int)
    section: str | None = None
    for record in drawing.records:
        section = _next_section(record, section)
        if record.type in _STRUCTURAL_TYPES or section not in ("ENTITIES", None):
            continue
        layer_counts[record.layer] += 1
        entity_counts[record.type] += 1

    all_x: list[float] = []
    all_y: list[float] = []
    for shape in drawing.shapes:
        _collect_shape_coords(shape, kernel, all_x, all_y)

    bbox = None
    if all_x and all_y:
        bbox = ((min(all_x), min(all_y)), (max(all_x), max(all_y)))

    return DxfInventory(
        filepath=str(dxf_path),
        dxf_version=drawing.header.get("$ACADVER", ""),
        units=_detect_units(drawing.header),
        layers=dict(layer_counts),
        entity_counts=dict(entity_counts),
        bounding_box=bbox,
        recognized=drawing.entity_count,
        skipped=drawing.skipped,
    )


def header_variables(records: list[EntityRecord]) -> dict[str, str]:
    """Collect ``$NAME -> value`` pairs from the HEADER section.

    Header variables carrying several values (points) keep the first one.
    """
    variables: dict[str, str] = {}
    for record in records:
        if record.type != "SECTION" or record.get(2) != "HEADER":
            continue
        name: str | None = None
        for code, value in record.tags:
            if code == 9:
                name = value
            elif name is not None and name not in variables:
                variables[name] = value
    return variables


def build_shape(record: EntityRecord, kernel: GeometryKernel | None = None) -> Any | None:
    """Build the shape for one record, or None if it is unmodelled or unusable."""
    try:
        return build_entity(record, kernel or SimpleKernel())
    except (UnsupportedEntityType, IncompleteEntityFields, GeometryError) as exc:
        logger.debug("No shape for %s on line %d: %s", record.type, record.line, exc)
        return None


def build_entity(
    record: EntityRecord,
    kernel: GeometryKernel,
    vertices: list[EntityRecord] | None = None,
) -> Any:
    """Build the shape for one record.

    Args:
        record: The entity record.
        kernel: Geometry kernel.
        vertices: VERTEX records following a POLYLINE record, if any.

    Raises:
        UnsupportedEntityType: The record type is not modelled.
        IncompleteEntityFields: A required group code is missing or unusable.
        GeometryError: The entity is geometrically degenerate.
    """
    if record.type in ("POLYLINE", "LWPOLYLINE"):
        return _build_polyline(record, kernel, vertices)
    builder = _BUILDERS.get(record.type)
    if builder is None:
        msg = f"Unsupported entity type: {record.type}"
        raise UnsupportedEntityType(msg)
    return builder(record, kernel)


def _next_section(record: EntityRecord, section: str | None) -> str | None:
    if record.type == "SECTION":
        return record.get(2)
    if record.type == "ENDSEC":
        return None
    return section


def _entity_groups(records: list[EntityRecord]):
    """Yield (record, vertex_records, section) for each record.

    VERTEX records following a POLYLINE (up to SEQEND) are attached to it
    and not yielded on their own.
    """
    section: str | None = None
    i = 0
    while i < len(records):
        record = records[i]
        section = _next_section(record, section)
        i += 1
        if record.type != "POLYLINE":
            yield record, None, section
            continue
        vertices: list[EntityRecord] = []
        while i < len(records) and records[i].type == "VERTEX":
            vertices.append(records[i])
            i += 1
        if i < len(records) and records[i].type == "SEQEND" and vertices:
            i += 1
        yield record, vertices or None, section


def _detect_units(header: dict[str, str]) -> str | None:
    """Detect the unit system from the DXF header."""
    try:
        insunits = int(header.get("$INSUNITS", "0"))
    except ValueError:
        return None
    return _INSUNITS_MAP.get(insunits)


# --- Field access ---


def _number(record: EntityRecord, code: int) -> float:
    value = record.get(code)
    if value is None:
        msg = f"{record.type} on line {record.line} is missing group code {code}"
        raise IncompleteEntityFields(msg)
    try:
        number = float(value)
    except ValueError:
        msg = f"{record.type} on line {record.line}: group code {code} is not a number: {value!r}"
        raise IncompleteEntityFields(msg) from None
    if not math.isfinite(number):
        msg = f"{record.type} on line {record.line}: group code {code} is not finite"
        raise IncompleteEntityFields(msg)
    return number


def _flags(record: EntityRecord) -> int:
    value = record.get(70, "0")
    try:
        return int(value)
    except ValueError:
        msg = f"{record.type} on line {record.line}: bad flags {value!r}"
        raise IncompleteEntityFields(msg) from None


# --- Builders ---


def _build_line(record: EntityRecord, kernel: GeometryKernel) -> Any:
    p1 = Vec3(_number(record, 10), _number(record, 20), 0.0)
    p2 = Vec3(_number(record, 11), _number(record, 21), 0.0)
    return kernel.make_edge_from_line(p1, p2)


def _build_circle(record: EntityRecord, kernel: GeometryKernel) -> Any:
    center = Vec3(_number(record, 10), _number(record, 20), 0.0)
    radius = _number(record, 40)
    return kernel.make_edge_from_circle(center, Z_AXIS, radius, 0.0, TWO_PI)


def _build_arc(record: EntityRecord, kernel: GeometryKernel) -> Any:
    center = Vec3(_number(record, 10), _number(record, 20), 0.0)
    radius = _number(record, 40)
    start = _number(record, 50) * math.pi / 180.0
    end = _number(record, 51) * math.pi / 180.0
    # DXF arcs run counter-clockwise from start to end
    if end <= start:
        end += TWO_PI
    return kernel.make_edge_from_circle(center, Z_AXIS, radius, start, end)


def _build_polyline(
    record: EntityRecord,
    kernel: GeometryKernel,
    vertex_records: list[EntityRecord] | None = None,
) -> Any:
    flags = _flags(record)
    is_3d = record.type == "POLYLINE" and bool(flags & POLYLINE_3D)

    try:
        if vertex_records:
            vertices = [
                v for vertex in vertex_records for v in scan_vertices(vertex.tags, use_z=is_3d)
            ]
        else:
            vertices = scan_vertices(record.tags, use_z=is_3d)
    except ValueError:
        msg = f"{record.type} on line {record.line} has a non-numeric vertex"
        raise IncompleteEntityFields(msg) from None

    if record.type == "LWPOLYLINE" and record.has(38):
        elevation = _number(record, 38)
        for v in vertices:
            v.z = elevation

    # Two bulged vertices close into a circle-like loop
    is_closed = (
        record.type == "LWPOLYLINE"
        and bool(flags & POLYLINE_CLOSED)
        and (
            len(vertices) > 2
            or (len(vertices) == 2 and any(abs(v.bulge) >= BULGE_EPSILON for v in vertices))
        )
    )
    vertices = _collapse_repeats(vertices)
    if is_closed and len(vertices) > 1 and vertices[-1].point.isclose(
        vertices[0].point, abs_tol=_REPEAT_TOLERANCE
    ):
        vertices.pop()
    if len(vertices) < 2:
        msg = f"{record.type} on line {record.line} has fewer than 2 distinct vertices"
        raise IncompleteEntityFields(msg)

    segment_count = len(vertices) if is_closed else len(vertices) - 1
    if all(abs(vertices[i].bulge) < BULGE_EPSILON for i in range(segment_count)):
        return kernel.make_wire_from_points([v.point for v in vertices], is_closed)

    edges = []
    for i in range(segment_count):
        v1 = vertices[i]
        v2 = vertices[(i + 1) % len(vertices)]
        edges.append(_polyline_segment(kernel, v1, v2))
    return kernel.make_wire_from_edges(edges)


def _polyline_segment(kernel: GeometryKernel, v1: PolylineVertex, v2: PolylineVertex) -> Any:
    p1, p2 = v1.point, v2.point
    if abs(v1.bulge) >= BULGE_EPSILON:
        arc = bulge_to_arc(p1, p2, v1.bulge)
        if arc is not None:
            return kernel.make_edge_from_circle(arc.center, arc.normal, arc.radius, arc.start, arc.end)
    return kernel.make_edge_from_line(p1, p2)


def _collapse_repeats(vertices: list[PolylineVertex]) -> list[PolylineVertex]:
    """Drop vertices equal to their predecessor, keeping the later bulge."""
    result: list[PolylineVertex] = []
    for v in vertices:
        if result and result[-1].point.isclose(v.point, abs_tol=_REPEAT_TOLERANCE):
            result[-1].bulge = v.bulge
            continue
        result.append(v)
    return result


def _build_3dface(record: EntityRecord, kernel: GeometryKernel) -> Any:
    points: list[Vec3] = []
    for i in range(4):
        if record.has(10 + i, 20 + i, 30 + i):
            points.append(Vec3(
                _number(record, 10 + i),
                _number(record, 20 + i),
                _number(record, 30 + i),
            ))

    # A triangle is conventionally stored with its third corner repeated
    if len(points) == 4 and points[3].isclose(points[2], abs_tol=_REPEAT_TOLERANCE):
        points.pop()
    if len(points) < 3:
        msg = f"3DFACE on line {record.line} has fewer than 3 corners"
        raise IncompleteEntityFields(msg)
    return kernel.make_face_from_polygon(points)


_BUILDERS: dict[str, Callable[[EntityRecord, GeometryKernel], Any]] = {
    "LINE": _build_line,
    "CIRCLE": _build_circle,
    "ARC": _build_arc,
    "3DFACE": _build_3dface,
}


# --- Bounding box ---


def _collect_shape_coords(shape: Any, kernel: GeometryKernel, xs: list[float], ys: list[float]) -> None:
    """Extend xs/ys with the XY extremes of every edge of a shape."""
    if kernel.shape_kind(shape) is ShapeKind.VERTEX:
        return
    for edge in kernel.edges(shape):
        kind = kernel.curve_kind(edge)
        if kind is CurveKind.LINE:
            p1, p2 = kernel.line_points(edge)
            xs.extend([p1.x, p2.x])
            ys.extend([p1.y, p2.y])
        elif kind in (CurveKind.CIRCLE, CurveKind.TRIMMED_CIRCLE):
            _arc_bbox_extend(edge, kernel, xs, ys)


def _arc_bbox_extend(edge: Any, kernel: GeometryKernel, xs: list[float], ys: list[float]) -> None:
    """Extend xs/ys with the end points and axis-aligned extremes of an arc."""
    center, radius, normal, first, last = kernel.circle_params(edge)
    circle = CircleCurve(center, radius, normal)
    samples = [first, last]
    # Check each quarter-turn parameter inside the sweep
    for k in range(4):
        angle = k * math.pi / 2.0
        if _angle_in_arc(angle, first, last):
            samples.append(angle)
    for t in samples:
        p = circle.value(t)
        xs.append(p.x)
        ys.append(p.y)


def _angle_in_arc(angle: float, first: float, last: float) -> bool:
    """Check if an angle lies within the sweep from first to last (CCW)."""
    if last - first >= TWO_PI:
        return True
    return (angle - first) % TWO_PI <= last - first
