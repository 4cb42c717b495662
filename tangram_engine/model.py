"""Placed pieces, connection descriptors, constraints and the assembly store."""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple, Union

from .geometry import (
    AffineTransform,
    PieceGeometry,
    PieceType,
    Point,
    bounding_box,
    centroid,
    distance,
    distance_from_point_to_line,
    geometry_for,
    transform_vertices,
)

logger = logging.getLogger(__name__)

MAX_PIECES = 7
FULLY_CONSTRAINED_WIDTH = 0.001


class UnknownPieceError(KeyError):
    """Raised when a piece id is not present in the assembly or graph."""

    def __init__(self, piece_id: str):
        super().__init__(piece_id)
        self.piece_id = piece_id

    def __str__(self) -> str:
        return f"unknown piece id {self.piece_id!r}"


def new_id() -> str:
    return uuid.uuid4().hex


class FeatureKind(str, Enum):
    VERTEX = "vertex"
    EDGE = "edge"


@dataclass(frozen=True)
class ConnectionPoint:
    """A vertex or edge of a placed piece offered as a connection anchor.

    Edge points sit at the edge midpoint. ``position`` is in world space for
    canvas pieces and in local space for a piece that is not yet placed.
    """

    kind: FeatureKind
    index: int
    position: Point
    piece_id: Optional[str] = None


@dataclass
class PlacedPiece:
    type: PieceType
    transform: AffineTransform = field(default_factory=AffineTransform.identity)
    id: str = field(default_factory=new_id)
    is_locked: bool = False
    z_index: int = 0
    connection_ids: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.type = PieceType(self.type)

    @property
    def geometry(self) -> PieceGeometry:
        return geometry_for(self.type)

    @property
    def world_vertices(self) -> List[Point]:
        return transform_vertices(self.geometry.vertices, self.transform)

    def vertex(self, index: int) -> Point:
        return self.transform.apply(self.geometry.vertices[index])

    def edge_segment(self, index: int) -> Tuple[Point, Point]:
        start, end = self.geometry.edge_points(index)
        return self.transform.apply(start), self.transform.apply(end)

    def edge_midpoint(self, index: int) -> Point:
        return self.transform.apply(self.geometry.edge_midpoint(index))

    @property
    def centroid(self) -> Point:
        return centroid(self.world_vertices)

    @property
    def bounding_box(self) -> Tuple[float, float, float, float]:
        return bounding_box(self.world_vertices)

    def nearest_vertex(self, point: Point) -> Tuple[int, float]:
        """Index of the closest world vertex and its distance."""

        distances = [distance(point, vertex) for vertex in self.world_vertices]
        index = min(range(len(distances)), key=distances.__getitem__)
        return index, distances[index]

    def nearest_edge(self, point: Point) -> Tuple[int, float]:
        best_index = 0
        best_distance = float("inf")
        for index in range(self.geometry.edge_count):
            start, end = self.edge_segment(index)
            d = distance_from_point_to_line(point, start, end)
            if d < best_distance:
                best_index, best_distance = index, d
        return best_index, best_distance

    def connection_points(self) -> List[ConnectionPoint]:
        points = [
            ConnectionPoint(FeatureKind.VERTEX, index, vertex, self.id)
            for index, vertex in enumerate(self.world_vertices)
        ]
        points.extend(
            ConnectionPoint(FeatureKind.EDGE, index, self.edge_midpoint(index), self.id)
            for index in range(self.geometry.edge_count)
        )
        return points

    def log_summary(self) -> str:
        return f"{self.type.value}#{self.id[:8]}"


# Connection descriptors ---------------------------------------------------


@dataclass(frozen=True)
class VertexToVertex:
    tag: ClassVar[str] = "vertexToVertex"

    piece_a: str
    vertex_a: int
    piece_b: str
    vertex_b: int

    @property
    def pieces(self) -> Tuple[str, str]:
        return (self.piece_a, self.piece_b)

    def involves(self, piece_id: str) -> bool:
        return piece_id in self.pieces

    def describe(self) -> str:
        return f"vertex {self.vertex_a} of {self.piece_a} to vertex {self.vertex_b} of {self.piece_b}"


@dataclass(frozen=True)
class EdgeToEdge:
    tag: ClassVar[str] = "edgeToEdge"

    piece_a: str
    edge_a: int
    piece_b: str
    edge_b: int

    @property
    def pieces(self) -> Tuple[str, str]:
        return (self.piece_a, self.piece_b)

    def involves(self, piece_id: str) -> bool:
        return piece_id in self.pieces

    def describe(self) -> str:
        return f"edge {self.edge_a} of {self.piece_a} to edge {self.edge_b} of {self.piece_b}"


@dataclass(frozen=True)
class VertexToEdge:
    """Placement-layer only: a vertex of ``piece_a`` resting on an edge of ``piece_b``."""

    tag: ClassVar[str] = "vertexToEdge"

    piece_a: str
    vertex_a: int
    piece_b: str
    edge_b: int

    @property
    def pieces(self) -> Tuple[str, str]:
        return (self.piece_a, self.piece_b)

    def involves(self, piece_id: str) -> bool:
        return piece_id in self.pieces

    def describe(self) -> str:
        return f"vertex {self.vertex_a} of {self.piece_a} on edge {self.edge_b} of {self.piece_b}"


ConnectionType = Union[VertexToVertex, EdgeToEdge, VertexToEdge]
PersistedConnectionType = Union[VertexToVertex, EdgeToEdge]


# Constraints ----------------------------------------------------------------


def _range_width(bounds: Tuple[float, float]) -> float:
    return bounds[1] - bounds[0]


@dataclass(frozen=True)
class Fixed:
    tag: ClassVar[str] = "fixed"

    affected_piece_id: str

    @property
    def is_fully_constrained(self) -> bool:
        return True


@dataclass(frozen=True)
class Rotation:
    """Rotation about ``center``; ``angle_range`` is in degrees."""

    tag: ClassVar[str] = "rotation"

    affected_piece_id: str
    center: Point
    angle_range: Tuple[float, float] = (0.0, 360.0)

    @property
    def is_fully_constrained(self) -> bool:
        return _range_width(self.angle_range) < FULLY_CONSTRAINED_WIDTH


@dataclass(frozen=True)
class Translation:
    """Slide along the unit vector ``direction`` by an offset within ``offset_range``."""

    tag: ClassVar[str] = "translation"

    affected_piece_id: str
    direction: Point
    offset_range: Tuple[float, float] = (0.0, 0.0)

    @property
    def is_fully_constrained(self) -> bool:
        return _range_width(self.offset_range) < FULLY_CONSTRAINED_WIDTH


Constraint = Union[Fixed, Rotation, Translation]


@dataclass
class Connection:
    type: PersistedConnectionType
    constraint: Constraint
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def piece_a(self) -> str:
        return self.type.piece_a

    @property
    def piece_b(self) -> str:
        return self.type.piece_b

    def involves(self, piece_id: str) -> bool:
        return self.type.involves(piece_id)

    def joins(self, piece_a: str, piece_b: str) -> bool:
        return {self.piece_a, self.piece_b} == {piece_a, piece_b}

    def other_piece(self, piece_id: str) -> Optional[str]:
        if piece_id == self.piece_a:
            return self.piece_b
        if piece_id == self.piece_b:
            return self.piece_a
        return None

    def describe(self) -> str:
        return f"{self.type.tag}: {self.type.describe()} ({self.constraint.tag})"


# Assembly -------------------------------------------------------------------


def compute_checksum(pieces: List[PlacedPiece]) -> str:
    """16 hex digits over each piece's id, type and transform, ordered by id."""

    digest = hashlib.sha256()
    for piece in sorted(pieces, key=lambda p: p.id):
        components = ",".join(repr(float(value)) for value in piece.transform.components())
        digest.update(f"{piece.id}|{piece.type.value}|{components}|".encode("utf-8"))
    return digest.hexdigest()[:16]


@dataclass
class Assembly:
    """Ordered pieces plus the connections declared between them."""

    name: str = "Untitled"
    id: str = field(default_factory=new_id)
    pieces: List[PlacedPiece] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    checksum: str = ""

    def __post_init__(self) -> None:
        self.refresh_checksum()

    def refresh_checksum(self) -> str:
        self.checksum = compute_checksum(self.pieces)
        return self.checksum

    @property
    def piece_ids(self) -> List[str]:
        return [piece.id for piece in self.pieces]

    def find_piece(self, piece_id: str) -> Optional[PlacedPiece]:
        for piece in self.pieces:
            if piece.id == piece_id:
                return piece
        return None

    def piece(self, piece_id: str) -> PlacedPiece:
        found = self.find_piece(piece_id)
        if found is None:
            raise UnknownPieceError(piece_id)
        return found

    def add_piece(self, piece: PlacedPiece) -> PlacedPiece:
        if self.find_piece(piece.id) is not None:
            raise ValueError(f"piece id {piece.id!r} is already in the assembly")
        self.pieces.append(piece)
        self.refresh_checksum()
        logger.info("Added %s to assembly %s (%d piece(s))", piece.type.value, self.name, len(self.pieces))
        return piece

    def remove_piece(self, piece_id: str) -> List[Connection]:
        """Remove a piece and every connection that references it."""

        piece = self.piece(piece_id)
        removed = [conn for conn in self.connections if conn.involves(piece_id)]
        for conn in removed:
            self.remove_connection(conn.id)
        self.pieces.remove(piece)
        self.refresh_checksum()
        logger.info("Removed piece %s and %d connection(s)", piece_id, len(removed))
        return removed

    def update_transform(self, piece_id: str, transform: AffineTransform) -> None:
        self.piece(piece_id).transform = transform
        self.refresh_checksum()

    def _check_indices(self, conn_type: PersistedConnectionType) -> None:
        geom_a = self.piece(conn_type.piece_a).geometry
        geom_b = self.piece(conn_type.piece_b).geometry
        if isinstance(conn_type, VertexToVertex):
            valid = geom_a.has_vertex(conn_type.vertex_a) and geom_b.has_vertex(conn_type.vertex_b)
        elif isinstance(conn_type, EdgeToEdge):
            valid = geom_a.has_edge(conn_type.edge_a) and geom_b.has_edge(conn_type.edge_b)
        else:
            raise ValueError("vertex-to-edge connections must be normalized before they are stored")
        if not valid:
            raise ValueError(f"feature index out of range in {conn_type.describe()}")

    def add_connection(self, connection: Connection) -> Connection:
        self._check_indices(connection.type)
        if connection.piece_a == connection.piece_b:
            raise ValueError("a connection must join two different pieces")
        self.connections.append(connection)
        for piece_id in (connection.piece_a, connection.piece_b):
            self.piece(piece_id).connection_ids.append(connection.id)
        return connection

    def remove_connection(self, connection_id: str) -> Optional[Connection]:
        for conn in self.connections:
            if conn.id == connection_id:
                self.connections.remove(conn)
                for piece_id in (conn.piece_a, conn.piece_b):
                    piece = self.find_piece(piece_id)
                    if piece is not None and connection_id in piece.connection_ids:
                        piece.connection_ids.remove(connection_id)
                return conn
        return None

    def connections_for(self, piece_id: str) -> List[Connection]:
        return [conn for conn in self.connections if conn.involves(piece_id)]

    def validate_composition(self) -> List[str]:
        """Catalog rules: a name, one to seven pieces, each shape used at most once."""

        errors: List[str] = []
        if not self.name.strip():
            errors.append("Assembly name is required")
        if not self.pieces:
            errors.append("Assembly must contain at least one piece")
        if len(self.pieces) > MAX_PIECES:
            errors.append(f"Assembly cannot contain more than {MAX_PIECES} pieces")
        counts: Dict[PieceType, int] = {}
        for piece in self.pieces:
            counts[piece.type] = counts.get(piece.type, 0) + 1
        for piece_type, count in counts.items():
            if count > 1:
                errors.append(f"Too many {piece_type.display_name} pieces ({piece_type.value} used {count} times)")
        return errors


__all__ = [
    "MAX_PIECES",
    "FULLY_CONSTRAINED_WIDTH",
    "UnknownPieceError",
    "new_id",
    "FeatureKind",
    "ConnectionPoint",
    "PlacedPiece",
    "VertexToVertex",
    "EdgeToEdge",
    "VertexToEdge",
    "ConnectionType",
    "PersistedConnectionType",
    "Fixed",
    "Rotation",
    "Translation",
    "Constraint",
    "Connection",
    "compute_checksum",
    "Assembly",
]
