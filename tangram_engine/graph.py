"""Live connection graph over the pieces of one assembly."""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from itertools import combinations
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .config import ToleranceConfig, get_tolerance_config
from .constraints import apply_constraint, derive_constraint, normalize_connection_type
from .geometry import (
    AffineTransform,
    edge_partially_coincides,
    edges_coincide,
    points_equal,
    polygons_overlap,
    shared_edges,
    shared_vertices,
)
from .model import (
    Assembly,
    Connection,
    ConnectionType,
    EdgeToEdge,
    PlacedPiece,
    UnknownPieceError,
    VertexToVertex,
)

logger = logging.getLogger(__name__)


class Relationship(str, Enum):
    AREA_OVERLAP = "areaOverlap"
    EDGE_CONTACT = "edgeContact"
    VERTEX_CONTACT = "vertexContact"
    NO_CONTACT = "noContact"

    @property
    def is_contact(self) -> bool:
        return self in (Relationship.EDGE_CONTACT, Relationship.VERTEX_CONTACT)


class ConnectionGraph:
    """Connection queries evaluated against the assembly's current transforms.

    The graph keeps no copy of piece geometry: every predicate reads the
    transforms stored on the assembly at call time, so moving a piece is
    immediately reflected in contact classification and connection checks.
    """

    def __init__(self, assembly: Optional[Assembly] = None, tolerances: Optional[ToleranceConfig] = None):
        self.assembly = assembly if assembly is not None else Assembly()
        self.tolerances = tolerances if tolerances is not None else get_tolerance_config()

    @classmethod
    def from_assembly(cls, assembly: Assembly, tolerances: Optional[ToleranceConfig] = None) -> "ConnectionGraph":
        return cls(assembly, tolerances)

    # Pieces ---------------------------------------------------------------

    @property
    def pieces(self) -> List[PlacedPiece]:
        return self.assembly.pieces

    def piece(self, piece_id: str) -> PlacedPiece:
        return self.assembly.piece(piece_id)

    def add_piece(self, piece: PlacedPiece) -> PlacedPiece:
        return self.assembly.add_piece(piece)

    def remove_piece(self, piece_id: str) -> List[Connection]:
        return self.assembly.remove_piece(piece_id)

    def update_transform(self, piece_id: str, transform: AffineTransform) -> None:
        self.assembly.update_transform(piece_id, transform)

    # Connections ----------------------------------------------------------

    def create_connection(self, conn_type: ConnectionType) -> Optional[Connection]:
        """Derive the constraint for ``conn_type`` and record the connection.

        Returns ``None`` when the join is not realised by the current geometry.
        """

        piece_a = self.piece(conn_type.piece_a)
        piece_b = self.piece(conn_type.piece_b)
        if piece_a.id == piece_b.id:
            logger.warning("Rejected connection of piece %s to itself", piece_a.id)
            return None
        tolerance = self.tolerances.vertex_to_vertex
        normalized = normalize_connection_type(conn_type, piece_a, piece_b, tolerance)
        if normalized is None:
            logger.warning("Rejected connection %s: no persisted form", conn_type.describe())
            return None
        constraint = derive_constraint(normalized, piece_a, piece_b, tolerance)
        if constraint is None:
            logger.warning("Rejected connection %s: features do not coincide", normalized.describe())
            return None
        connection = self.assembly.add_connection(Connection(type=normalized, constraint=constraint))
        logger.info("Created connection %s", connection.describe())
        return connection

    def add_connection(self, connection: Connection) -> Connection:
        return self.assembly.add_connection(connection)

    def remove_connection(self, connection_id: str) -> Optional[Connection]:
        removed = self.assembly.remove_connection(connection_id)
        if removed is not None:
            logger.info("Removed connection %s", removed.describe())
        return removed

    @property
    def connections(self) -> List[Connection]:
        return list(self.assembly.connections)

    def all_connections(self) -> List[Connection]:
        return self.connections

    def connections_for(self, piece_id: str) -> List[Connection]:
        return self.assembly.connections_for(piece_id)

    def connections_between(self, piece_a: str, piece_b: str) -> List[Connection]:
        return [conn for conn in self.assembly.connections if conn.joins(piece_a, piece_b)]

    def connection_between(self, piece_a: str, piece_b: str) -> Optional[Connection]:
        between = self.connections_between(piece_a, piece_b)
        return between[0] if between else None

    def are_connected(self, piece_a: str, piece_b: str) -> bool:
        return self.connection_between(piece_a, piece_b) is not None

    # Geometry -------------------------------------------------------------

    def classify(self, piece_a: str, piece_b: str) -> Relationship:
        """Overlap dominates edge contact, which dominates vertex contact."""

        verts_a = self.piece(piece_a).world_vertices
        verts_b = self.piece(piece_b).world_vertices
        tol = self.tolerances
        if polygons_overlap(verts_a, verts_b, tol.overlap):
            return Relationship.AREA_OVERLAP
        if shared_edges(verts_a, verts_b, tol.point_equality):
            return Relationship.EDGE_CONTACT
        if shared_vertices(verts_a, verts_b, tol.point_equality):
            return Relationship.VERTEX_CONTACT
        return Relationship.NO_CONTACT

    def connection_holds(self, connection: Connection) -> bool:
        """Re-evaluate a declared connection against current transforms."""

        conn_type = connection.type
        try:
            piece_a = self.piece(conn_type.piece_a)
            piece_b = self.piece(conn_type.piece_b)
        except UnknownPieceError:
            return False
        if isinstance(conn_type, VertexToVertex):
            if not (piece_a.geometry.has_vertex(conn_type.vertex_a) and piece_b.geometry.has_vertex(conn_type.vertex_b)):
                return False
            return points_equal(
                piece_a.vertex(conn_type.vertex_a),
                piece_b.vertex(conn_type.vertex_b),
                self.tolerances.vertex_to_vertex,
            )
        if isinstance(conn_type, EdgeToEdge):
            if not (piece_a.geometry.has_edge(conn_type.edge_a) and piece_b.geometry.has_edge(conn_type.edge_b)):
                return False
            edge_a = piece_a.edge_segment(conn_type.edge_a)
            edge_b = piece_b.edge_segment(conn_type.edge_b)
            tolerance = self.tolerances.edge_to_edge
            return edges_coincide(edge_a, edge_b, tolerance) or edge_partially_coincides(edge_a, edge_b, tolerance)
        return False

    def is_contact_explained(self, piece_a: str, piece_b: str) -> bool:
        if self.classify(piece_a, piece_b) is Relationship.NO_CONTACT:
            return True
        return any(self.connection_holds(conn) for conn in self.connections_between(piece_a, piece_b))

    def _pairs(self) -> Iterator[Tuple[str, str]]:
        return combinations(self.assembly.piece_ids, 2)

    def overlapping_pairs(self) -> List[Tuple[str, str]]:
        return [(a, b) for a, b in self._pairs() if self.classify(a, b) is Relationship.AREA_OVERLAP]

    def unexplained_contacts(self) -> List[Tuple[str, str]]:
        unexplained = []
        for a, b in self._pairs():
            if self.classify(a, b).is_contact and not self.is_contact_explained(a, b):
                unexplained.append((a, b))
        return unexplained

    def has_invalid_area_overlaps(self) -> bool:
        return any(self.classify(a, b) is Relationship.AREA_OVERLAP for a, b in self._pairs())

    def has_unexplained_contacts(self) -> bool:
        return bool(self.unexplained_contacts())

    def _adjacency(self) -> Dict[str, Set[str]]:
        adjacency: Dict[str, Set[str]] = {piece_id: set() for piece_id in self.assembly.piece_ids}
        for conn in self.assembly.connections:
            if conn.piece_a in adjacency and conn.piece_b in adjacency:
                adjacency[conn.piece_a].add(conn.piece_b)
                adjacency[conn.piece_b].add(conn.piece_a)
        return adjacency

    def is_connected(self) -> bool:
        """Breadth-first reachability over declared connections."""

        adjacency = self._adjacency()
        if len(adjacency) <= 1:
            return True
        start = next(iter(adjacency))
        visited = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for neighbour in adjacency[current]:
                if neighbour not in visited:
                    visited.add(neighbour)
                    queue.append(neighbour)
        return len(visited) == len(adjacency)

    def is_valid_assembly(self) -> bool:
        return not self.has_invalid_area_overlaps() and not self.has_unexplained_contacts() and self.is_connected()

    # Constraints ----------------------------------------------------------

    def apply_constraints(self, piece_id: str, parameter: float) -> AffineTransform:
        """Apply every constraint affecting ``piece_id`` in connection order and store the result."""

        transform = self.piece(piece_id).transform
        for conn in self.connections_for(piece_id):
            if conn.constraint.affected_piece_id == piece_id:
                transform = apply_constraint(conn.constraint, transform, parameter)
        self.update_transform(piece_id, transform)
        return transform

    def is_fully_constrained(self, piece_id: str) -> bool:
        connections = self.connections_for(piece_id)
        if len(connections) >= 2:
            return True
        return any(conn.constraint.is_fully_constrained for conn in connections)


__all__ = ["Relationship", "ConnectionGraph"]
