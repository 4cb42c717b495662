"""Placement and whole-assembly validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .config import CanvasConfig, ToleranceConfig, get_canvas_config, get_tolerance_config
from .geometry import (
    distance,
    edges_parallel_and_touching,
    point_on_segment,
    polygons_overlap,
)
from .graph import ConnectionGraph
from .model import (
    Assembly,
    ConnectionType,
    EdgeToEdge,
    PlacedPiece,
    VertexToEdge,
    VertexToVertex,
)

logger = logging.getLogger(__name__)


class ViolationKind(str, Enum):
    INVALID_TRANSFORM = "invalidTransform"
    CONNECTION_BROKEN = "connectionBroken"
    OVERLAP = "overlap"
    OUT_OF_BOUNDS = "outOfBounds"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str
    piece_id: Optional[str] = None
    other_piece_id: Optional[str] = None
    connection_kind: Optional[str] = None
    blocking: bool = True

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


@dataclass
class ValidationResult:
    violations: List[Violation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(violation.blocking for violation in self.violations)

    @property
    def warnings(self) -> List[Violation]:
        return [violation for violation in self.violations if not violation.blocking]

    def kinds(self) -> List[ViolationKind]:
        return [violation.kind for violation in self.violations]


@dataclass
class ValidationContext:
    """What a candidate placement is checked against.

    ``connections`` lists the joins the placement is meant to satisfy; pieces
    named by them are excluded from the overlap check. Bounds are only checked
    when ``canvas_size`` is set, and are advisory while ``allow_out_of_bounds``
    is true.
    """

    other_pieces: Sequence[PlacedPiece] = ()
    connections: Sequence[ConnectionType] = ()
    canvas_size: Optional[Tuple[float, float]] = None
    allow_out_of_bounds: bool = True


@dataclass
class AssemblyReport:
    errors: List[str] = field(default_factory=list)
    overlapping_pairs: List[Tuple[str, str]] = field(default_factory=list)
    unexplained_contacts: List[Tuple[str, str]] = field(default_factory=list)
    broken_connections: List[str] = field(default_factory=list)
    is_connected: bool = True

    @property
    def is_valid(self) -> bool:
        return not self.errors


class ValidationService:
    def __init__(
        self,
        tolerances: Optional[ToleranceConfig] = None,
        canvas: Optional[CanvasConfig] = None,
    ):
        self.tolerances = tolerances if tolerances is not None else get_tolerance_config()
        self.canvas = canvas if canvas is not None else get_canvas_config()

    # Single placement -----------------------------------------------------

    def _transform_violation(self, piece: PlacedPiece) -> Optional[Violation]:
        transform = piece.transform
        if not transform.is_finite():
            return Violation(ViolationKind.INVALID_TRANSFORM, "Transform has non-finite components", piece.id)
        if abs(transform.determinant) < self.tolerances.degenerate_determinant:
            return Violation(
                ViolationKind.INVALID_TRANSFORM,
                f"Transform is degenerate (determinant {transform.determinant:.3g})",
                piece.id,
            )
        return None

    def _connection_violation(
        self, piece: PlacedPiece, conn_type: ConnectionType, others: Dict[str, PlacedPiece]
    ) -> Optional[Violation]:
        if not conn_type.involves(piece.id):
            return Violation(
                ViolationKind.CONNECTION_BROKEN,
                f"Connection {conn_type.describe()} does not involve the placed piece",
                piece.id,
                connection_kind=conn_type.tag,
            )
        lookup = dict(others)
        lookup[piece.id] = piece
        piece_a = lookup.get(conn_type.piece_a)
        piece_b = lookup.get(conn_type.piece_b)
        other_id = conn_type.piece_b if conn_type.piece_a == piece.id else conn_type.piece_a
        if piece_a is None or piece_b is None:
            return Violation(
                ViolationKind.CONNECTION_BROKEN,
                f"Connected piece {other_id} is not on the canvas",
                piece.id,
                other_id,
                connection_kind=conn_type.tag,
            )

        tol = self.tolerances
        if isinstance(conn_type, VertexToVertex):
            if not (piece_a.geometry.has_vertex(conn_type.vertex_a) and piece_b.geometry.has_vertex(conn_type.vertex_b)):
                holds = False
            else:
                gap = distance(piece_a.vertex(conn_type.vertex_a), piece_b.vertex(conn_type.vertex_b))
                holds = gap <= tol.vertex_to_vertex
        elif isinstance(conn_type, EdgeToEdge):
            if not (piece_a.geometry.has_edge(conn_type.edge_a) and piece_b.geometry.has_edge(conn_type.edge_b)):
                holds = False
            else:
                holds = edges_parallel_and_touching(
                    piece_a.edge_segment(conn_type.edge_a),
                    piece_b.edge_segment(conn_type.edge_b),
                    tol.edge_to_edge,
                    parallel_tolerance=tol.parallel,
                )
        elif isinstance(conn_type, VertexToEdge):
            if not (piece_a.geometry.has_vertex(conn_type.vertex_a) and piece_b.geometry.has_edge(conn_type.edge_b)):
                holds = False
            else:
                start, end = piece_b.edge_segment(conn_type.edge_b)
                holds = point_on_segment(piece_a.vertex(conn_type.vertex_a), start, end, tol.vertex_to_edge)
        else:
            raise TypeError(f"unsupported connection type {type(conn_type).__name__}")

        if holds:
            return None
        return Violation(
            ViolationKind.CONNECTION_BROKEN,
            f"Connection {conn_type.describe()} no longer holds",
            piece.id,
            other_id,
            connection_kind=conn_type.tag,
        )

    def _bounds_violation(self, piece: PlacedPiece, context: ValidationContext) -> Optional[Violation]:
        if context.canvas_size is None:
            return None
        width, height = context.canvas_size
        margin = self.canvas.margin
        for x, y in piece.world_vertices:
            if x < -margin or y < -margin or x > width + margin or y > height + margin:
                return Violation(
                    ViolationKind.OUT_OF_BOUNDS,
                    f"Vertex ({x:.3f}, {y:.3f}) lies outside the canvas",
                    piece.id,
                    blocking=not context.allow_out_of_bounds,
                )
        return None

    def validate_placement(self, piece: PlacedPiece, context: Optional[ValidationContext] = None) -> ValidationResult:
        """Check ``piece`` in order: transform, connections, overlap, bounds.

        Each stage runs only when the previous ones found nothing blocking.
        """

        context = context if context is not None else ValidationContext()
        others = {other.id: other for other in context.other_pieces if other.id != piece.id}

        invalid = self._transform_violation(piece)
        if invalid is not None:
            return ValidationResult([invalid])

        broken = [
            violation
            for violation in (self._connection_violation(piece, conn, others) for conn in context.connections)
            if violation is not None
        ]
        if broken:
            return ValidationResult(broken)

        joined = {pid for conn in context.connections for pid in conn.pieces}
        vertices = piece.world_vertices
        overlaps = [
            Violation(
                ViolationKind.OVERLAP,
                f"{piece.type.display_name} overlaps {other.type.display_name}",
                piece.id,
                other.id,
            )
            for other_id, other in others.items()
            if other_id not in joined and polygons_overlap(vertices, other.world_vertices, self.tolerances.overlap)
        ]
        if overlaps:
            return ValidationResult(overlaps)

        out_of_bounds = self._bounds_violation(piece, context)
        result = ValidationResult([out_of_bounds] if out_of_bounds is not None else [])
        logger.debug("Placement of %s valid=%s", piece.id, result.is_valid)
        return result

    def validate_multiple_connections(
        self,
        piece: PlacedPiece,
        connections: Sequence[ConnectionType],
        other_pieces: Sequence[PlacedPiece],
    ) -> ValidationResult:
        others = {other.id: other for other in other_pieces if other.id != piece.id}
        violations = [
            violation
            for violation in (self._connection_violation(piece, conn, others) for conn in connections)
            if violation is not None
        ]
        return ValidationResult(violations)

    # Whole assembly ---------------------------------------------------------

    def validate_assembly(self, assembly: Assembly) -> AssemblyReport:
        graph = ConnectionGraph(assembly, self.tolerances)
        report = AssemblyReport(errors=assembly.validate_composition())

        for piece in assembly.pieces:
            invalid = self._transform_violation(piece)
            if invalid is not None:
                report.errors.append(f"{piece.type.display_name}: {invalid.message}")

        report.broken_connections = [conn.id for conn in assembly.connections if not graph.connection_holds(conn)]
        if report.broken_connections:
            report.errors.append(f"{len(report.broken_connections)} connection(s) no longer hold")

        report.overlapping_pairs = graph.overlapping_pairs()
        if report.overlapping_pairs:
            report.errors.append("Pieces have area overlap")

        report.unexplained_contacts = graph.unexplained_contacts()
        if report.unexplained_contacts:
            report.errors.append("Pieces touch without declared connection")

        report.is_connected = graph.is_connected()
        if not report.is_connected:
            report.errors.append("All pieces must be connected")

        if report.is_valid:
            logger.info("Assembly %s is valid (%d piece(s))", assembly.name, len(assembly.pieces))
        else:
            logger.info("Assembly %s has %d error(s)", assembly.name, len(report.errors))
        return report


__all__ = [
    "ViolationKind",
    "Violation",
    "ValidationResult",
    "ValidationContext",
    "AssemblyReport",
    "ValidationService",
]
