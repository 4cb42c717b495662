"""Stateless polygon, segment and transform predicates.

Every function takes plain ``(x, y)`` tuples (or sequences of them) and returns
plain values. Nothing here raises on degenerate input: zero-length edges and
axes are skipped or fall back to the segment start.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..logging_utils import apply_debug_logging
from .transform import AffineTransform, Point

logger = logging.getLogger(__name__)

Segment = Tuple[Point, Point]

_AXIS_EPS = 1e-12
_BOUNDARY_EPS = 1e-9


def _vec2(a: Point, b: Point) -> Point:
    return b[0] - a[0], b[1] - a[1]


def _dot2(a: Point, b: Point) -> float:
    return a[0] * b[0] + a[1] * b[1]


def _cross2(a: Point, b: Point) -> float:
    return a[0] * b[1] - a[1] * b[0]


def _norm2(v: Point) -> float:
    return math.hypot(v[0], v[1])


def _unit2(v: Point) -> Optional[Point]:
    length = _norm2(v)
    if length <= _AXIS_EPS:
        return None
    return v[0] / length, v[1] / length


def transform_vertices(vertices: Sequence[Point], transform: AffineTransform) -> List[Point]:
    return transform.apply_many(vertices)


def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def points_equal(p1: Point, p2: Point, tolerance: float) -> bool:
    return distance(p1, p2) <= tolerance


def point_on_segment(point: Point, seg_start: Point, seg_end: Point, tolerance: float) -> bool:
    """Collinearity by cross product, then bounds by dot product.

    The cross product is normalised by the segment length so ``tolerance`` is a
    perpendicular distance.
    """

    seg = _vec2(seg_start, seg_end)
    rel = _vec2(seg_start, point)
    length_sq = _dot2(seg, seg)
    if length_sq <= _AXIS_EPS:
        return points_equal(point, seg_start, tolerance)
    if abs(_cross2(seg, rel)) / math.sqrt(length_sq) > tolerance:
        return False
    dot = _dot2(rel, seg)
    slack = tolerance * math.sqrt(length_sq)
    return -slack <= dot <= length_sq + slack


def _on_boundary(point: Point, vertices: Sequence[Point]) -> bool:
    n = len(vertices)
    for i in range(n):
        if point_on_segment(point, vertices[i], vertices[(i + 1) % n], _BOUNDARY_EPS):
            return True
    return False


def polygon_contains_point(point: Point, vertices: Sequence[Point]) -> bool:
    """Ray casting; points on a vertex or edge are not inside."""

    n = len(vertices)
    if n < 3 or _on_boundary(point, vertices):
        return False
    x, y = point
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def polygon_area(vertices: Sequence[Point]) -> float:
    """Unsigned shoelace area."""

    if len(vertices) < 3:
        return 0.0
    arr = np.asarray(vertices, dtype=float)
    xs = arr[:, 0]
    ys = arr[:, 1]
    return float(abs(np.dot(xs, np.roll(ys, -1)) - np.dot(ys, np.roll(xs, -1))) * 0.5)


def centroid(vertices: Sequence[Point]) -> Point:
    """Vertex average; adequate for the convex catalog shapes."""

    if not vertices:
        return (0.0, 0.0)
    arr = np.asarray(vertices, dtype=float)
    cx, cy = arr.mean(axis=0)
    return (float(cx), float(cy))


def bounding_box(vertices: Sequence[Point]) -> Tuple[float, float, float, float]:
    """``(min_x, min_y, max_x, max_y)``."""

    if not vertices:
        return (0.0, 0.0, 0.0, 0.0)
    arr = np.asarray(vertices, dtype=float)
    min_x, min_y = arr.min(axis=0)
    max_x, max_y = arr.max(axis=0)
    return (float(min_x), float(min_y), float(max_x), float(max_y))


def _project(vertices: Sequence[Point], axis: Point) -> Tuple[float, float]:
    values = [_dot2(v, axis) for v in vertices]
    return min(values), max(values)


def separation_gap(vertices_a: Sequence[Point], vertices_b: Sequence[Point]) -> float:
    """Largest projection gap over all edge normals of both polygons.

    Positive means separated, zero means touching, negative is the shallowest
    penetration depth.
    """

    best = -math.inf
    for polygon in (vertices_a, vertices_b):
        n = len(polygon)
        for i in range(n):
            edge = _vec2(polygon[i], polygon[(i + 1) % n])
            axis = _unit2((-edge[1], edge[0]))
            if axis is None:
                continue
            min_a, max_a = _project(vertices_a, axis)
            min_b, max_b = _project(vertices_b, axis)
            gap = max(min_a - max_b, min_b - max_a)
            if gap > best:
                best = gap
    return best


def polygons_overlap(vertices_a: Sequence[Point], vertices_b: Sequence[Point], tolerance: float) -> bool:
    """Separating Axis Theorem test for convex polygons.

    Projections may interpenetrate by up to ``tolerance`` before the pair
    counts as overlapping, so shared edges and vertices are contacts.
    """

    if len(vertices_a) < 3 or len(vertices_b) < 3:
        return False
    gap = separation_gap(vertices_a, vertices_b)
    if gap == -math.inf:
        return False
    return gap <= -tolerance


def edges_parallel(edge1: Segment, edge2: Segment, tolerance: float) -> bool:
    """Direction vectors parallel in either orientation; ``tolerance`` bounds ``1 - |dot|``."""

    u1 = _unit2(_vec2(*edge1))
    u2 = _unit2(_vec2(*edge2))
    if u1 is None or u2 is None:
        return False
    return abs(abs(_dot2(u1, u2)) - 1.0) < tolerance


def edges_parallel_and_touching(
    edge1: Segment, edge2: Segment, tolerance: float, *, parallel_tolerance: float = 0.01
) -> bool:
    if not edges_parallel(edge1, edge2, parallel_tolerance):
        return False
    (a1, a2), (b1, b2) = edge1, edge2
    return (
        point_on_segment(a1, b1, b2, tolerance)
        or point_on_segment(a2, b1, b2, tolerance)
        or point_on_segment(b1, a1, a2, tolerance)
        or point_on_segment(b2, a1, a2, tolerance)
    )


def edges_coincide(edge1: Segment, edge2: Segment, tolerance: float) -> bool:
    """Same segment, either direction."""

    (a1, a2), (b1, b2) = edge1, edge2
    return (points_equal(a1, b1, tolerance) and points_equal(a2, b2, tolerance)) or (
        points_equal(a1, b2, tolerance) and points_equal(a2, b1, tolerance)
    )


def edge_overlap_length(edge1: Segment, edge2: Segment, tolerance: float) -> float:
    """Length of the collinear overlap between two segments, ``0.0`` if not collinear."""

    a1, a2 = edge1
    b1, b2 = edge2
    direction = _unit2(_vec2(a1, a2))
    if direction is None or _unit2(_vec2(b1, b2)) is None:
        return 0.0
    for point in (b1, b2):
        if abs(_cross2(direction, _vec2(a1, point))) > tolerance:
            return 0.0
    length_a = distance(a1, a2)
    t1 = _dot2(_vec2(a1, b1), direction)
    t2 = _dot2(_vec2(a1, b2), direction)
    low = max(0.0, min(t1, t2))
    high = min(length_a, max(t1, t2))
    return max(0.0, high - low)


def edge_partially_coincides(edge1: Segment, edge2: Segment, tolerance: float) -> bool:
    """Collinear with an overlap longer than ``tolerance``; endpoint-only touching does not count."""

    return edge_overlap_length(edge1, edge2, tolerance) > tolerance


def project_point_onto_segment(point: Point, seg_start: Point, seg_end: Point) -> Point:
    seg = np.asarray(_vec2(seg_start, seg_end), dtype=float)
    denom = float(np.dot(seg, seg))
    if denom <= _AXIS_EPS:
        return seg_start
    rel = np.asarray(_vec2(seg_start, point), dtype=float)
    t = min(max(float(np.dot(rel, seg)) / denom, 0.0), 1.0)
    return (seg_start[0] + seg[0] * t, seg_start[1] + seg[1] * t)


def distance_from_point_to_line(point: Point, seg_start: Point, seg_end: Point) -> float:
    """Distance to the closest point of the segment ``seg_start``-``seg_end``."""

    return distance(point, project_point_onto_segment(point, seg_start, seg_end))


def distance_from_point_to_infinite_line(point: Point, anchor: Point, through: Point) -> float:
    direction = _unit2(_vec2(anchor, through))
    if direction is None:
        return distance(point, anchor)
    return abs(_cross2(direction, _vec2(anchor, point)))


def line_segment_intersection(p1: Point, p2: Point, p3: Point, p4: Point) -> Optional[Point]:
    d1 = _vec2(p1, p2)
    d2 = _vec2(p3, p4)
    denom = _cross2(d1, d2)
    if abs(denom) <= _AXIS_EPS:
        return None
    rel = _vec2(p1, p3)
    t = _cross2(rel, d2) / denom
    u = _cross2(rel, d1) / denom
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return (p1[0] + t * d1[0], p1[1] + t * d1[1])
    return None


def side_of_line(point: Point, anchor: Point, through: Point) -> float:
    """Signed area test: positive left of ``anchor -> through``, negative right."""

    return _cross2(_vec2(anchor, through), _vec2(anchor, point))


def angle_at(p1: Point, vertex: Point, p2: Point) -> float:
    """Interior angle at ``vertex`` in degrees."""

    u = _unit2(_vec2(vertex, p1))
    v = _unit2(_vec2(vertex, p2))
    if u is None or v is None:
        return 0.0
    return math.degrees(math.acos(max(-1.0, min(1.0, _dot2(u, v)))))


def edge_angle(seg_start: Point, seg_end: Point) -> float:
    """Direction of a segment in degrees, in ``[0, 360)``."""

    dx, dy = _vec2(seg_start, seg_end)
    return math.degrees(math.atan2(dy, dx)) % 360.0


def normalize_angle(degrees: float) -> float:
    return degrees % 360.0


def angles_equal(a: float, b: float, tolerance: float = 1e-6) -> bool:
    diff = abs(normalize_angle(a) - normalize_angle(b))
    return min(diff, 360.0 - diff) <= tolerance


def shared_vertices(
    vertices_a: Sequence[Point], vertices_b: Sequence[Point], tolerance: float
) -> List[Tuple[int, int]]:
    return [
        (i, j)
        for i, va in enumerate(vertices_a)
        for j, vb in enumerate(vertices_b)
        if points_equal(va, vb, tolerance)
    ]


def _polygon_edges(vertices: Sequence[Point]) -> List[Segment]:
    n = len(vertices)
    return [(vertices[i], vertices[(i + 1) % n]) for i in range(n)]


def shared_edges(
    vertices_a: Sequence[Point], vertices_b: Sequence[Point], tolerance: float
) -> List[Tuple[int, int]]:
    """Index pairs of edges that coincide exactly or partially."""

    edges_a = _polygon_edges(vertices_a)
    edges_b = _polygon_edges(vertices_b)
    return [
        (i, j)
        for i, ea in enumerate(edges_a)
        for j, eb in enumerate(edges_b)
        if edges_coincide(ea, eb, tolerance) or edge_partially_coincides(ea, eb, tolerance)
    ]


__all__ = [
    "Segment",
    "transform_vertices",
    "distance",
    "points_equal",
    "point_on_segment",
    "polygon_contains_point",
    "polygon_area",
    "centroid",
    "bounding_box",
    "separation_gap",
    "polygons_overlap",
    "edges_parallel",
    "edges_parallel_and_touching",
    "edges_coincide",
    "edge_overlap_length",
    "edge_partially_coincides",
    "project_point_onto_segment",
    "distance_from_point_to_line",
    "distance_from_point_to_infinite_line",
    "line_segment_intersection",
    "side_of_line",
    "angle_at",
    "edge_angle",
    "normalize_angle",
    "angles_equal",
    "shared_vertices",
    "shared_edges",
]


apply_debug_logging(globals(), logger=logger)
