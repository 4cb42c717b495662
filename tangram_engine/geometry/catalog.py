"""Static geometry for the seven canonical tangram pieces.

Local coordinates use the small-triangle leg as the unit. Every polygon is
listed counter-clockwise with the right or reference angle at vertex 0, and
edge ``i`` runs from vertex ``i`` to vertex ``(i + 1) % n``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from .kernel import angle_at, bounding_box, centroid, distance, polygon_area
from .transform import Point

_SQRT2 = math.sqrt(2.0)

TOTAL_AREA = 8.0


class PieceType(str, Enum):
    SMALL_TRIANGLE_1 = "smallTriangle1"
    SMALL_TRIANGLE_2 = "smallTriangle2"
    SQUARE = "square"
    MEDIUM_TRIANGLE = "mediumTriangle"
    LARGE_TRIANGLE_1 = "largeTriangle1"
    LARGE_TRIANGLE_2 = "largeTriangle2"
    PARALLELOGRAM = "parallelogram"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def is_mirror_symmetric(self) -> bool:
        return self is not PieceType.PARALLELOGRAM


_DISPLAY_NAMES: Dict[PieceType, str] = {
    PieceType.SMALL_TRIANGLE_1: "Small Triangle",
    PieceType.SMALL_TRIANGLE_2: "Small Triangle",
    PieceType.SQUARE: "Square",
    PieceType.MEDIUM_TRIANGLE: "Medium Triangle",
    PieceType.LARGE_TRIANGLE_1: "Large Triangle",
    PieceType.LARGE_TRIANGLE_2: "Large Triangle",
    PieceType.PARALLELOGRAM: "Parallelogram",
}

_SMALL_TRIANGLE: Tuple[Point, ...] = ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0))
_MEDIUM_TRIANGLE: Tuple[Point, ...] = ((0.0, 0.0), (_SQRT2, 0.0), (0.0, _SQRT2))
_LARGE_TRIANGLE: Tuple[Point, ...] = ((0.0, 0.0), (2.0, 0.0), (0.0, 2.0))
_SQUARE: Tuple[Point, ...] = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))
_PARALLELOGRAM: Tuple[Point, ...] = (
    (0.0, 0.0),
    (_SQRT2, 0.0),
    (_SQRT2 / 2.0, _SQRT2 / 2.0),
    (-_SQRT2 / 2.0, _SQRT2 / 2.0),
)

_VERTICES: Dict[PieceType, Tuple[Point, ...]] = {
    PieceType.SMALL_TRIANGLE_1: _SMALL_TRIANGLE,
    PieceType.SMALL_TRIANGLE_2: _SMALL_TRIANGLE,
    PieceType.SQUARE: _SQUARE,
    PieceType.MEDIUM_TRIANGLE: _MEDIUM_TRIANGLE,
    PieceType.LARGE_TRIANGLE_1: _LARGE_TRIANGLE,
    PieceType.LARGE_TRIANGLE_2: _LARGE_TRIANGLE,
    PieceType.PARALLELOGRAM: _PARALLELOGRAM,
}


@dataclass(frozen=True)
class EdgeDef:
    index: int
    start: int
    end: int
    length: float


@dataclass(frozen=True)
class PieceGeometry:
    piece_type: PieceType
    vertices: Tuple[Point, ...]
    edges: Tuple[EdgeDef, ...]
    area: float
    vertex_angles: Tuple[float, ...]
    centroid: Point
    bounding_box: Tuple[float, float, float, float]

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def has_vertex(self, index: int) -> bool:
        return 0 <= index < len(self.vertices)

    def has_edge(self, index: int) -> bool:
        return 0 <= index < len(self.edges)

    def edge_points(self, index: int) -> Tuple[Point, Point]:
        edge = self.edges[index]
        return self.vertices[edge.start], self.vertices[edge.end]

    def edge_midpoint(self, index: int) -> Point:
        start, end = self.edge_points(index)
        return ((start[0] + end[0]) * 0.5, (start[1] + end[1]) * 0.5)


def _build(piece_type: PieceType) -> PieceGeometry:
    vertices = _VERTICES[piece_type]
    n = len(vertices)
    edges = tuple(
        EdgeDef(index=i, start=i, end=(i + 1) % n, length=distance(vertices[i], vertices[(i + 1) % n]))
        for i in range(n)
    )
    angles = tuple(
        round(angle_at(vertices[(i - 1) % n], vertices[i], vertices[(i + 1) % n]), 9) for i in range(n)
    )
    return PieceGeometry(
        piece_type=piece_type,
        vertices=vertices,
        edges=edges,
        area=polygon_area(vertices),
        vertex_angles=angles,
        centroid=centroid(vertices),
        bounding_box=bounding_box(vertices),
    )


_CATALOG: Dict[PieceType, PieceGeometry] = {piece_type: _build(piece_type) for piece_type in PieceType}


def geometry_for(piece_type: PieceType) -> PieceGeometry:
    return _CATALOG[PieceType(piece_type)]


def vertices_for(piece_type: PieceType) -> List[Point]:
    return list(geometry_for(piece_type).vertices)


def edges_for(piece_type: PieceType) -> List[EdgeDef]:
    return list(geometry_for(piece_type).edges)


def area_for(piece_type: PieceType) -> float:
    return geometry_for(piece_type).area


def unique_piece_types() -> List[PieceType]:
    """One representative per distinct shape."""

    return [
        PieceType.SMALL_TRIANGLE_1,
        PieceType.SQUARE,
        PieceType.MEDIUM_TRIANGLE,
        PieceType.LARGE_TRIANGLE_1,
        PieceType.PARALLELOGRAM,
    ]


def total_area() -> float:
    return sum(area_for(piece_type) for piece_type in PieceType)


def verify_total_area(tolerance: float = 1e-9) -> bool:
    return abs(total_area() - TOTAL_AREA) <= tolerance


__all__ = [
    "TOTAL_AREA",
    "PieceType",
    "EdgeDef",
    "PieceGeometry",
    "geometry_for",
    "vertices_for",
    "edges_for",
    "area_for",
    "unique_piece_types",
    "total_area",
    "verify_total_area",
]
