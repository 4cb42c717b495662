"""Derivation and application of connection constraints."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

from .geometry import AffineTransform, distance, points_equal
from .model import (
    Constraint,
    ConnectionType,
    EdgeToEdge,
    Fixed,
    PersistedConnectionType,
    PlacedPiece,
    Rotation,
    Translation,
    VertexToEdge,
    VertexToVertex,
)

logger = logging.getLogger(__name__)

ROTATION_STEP_DEGREES = 15.0
TRANSLATION_STEP = 0.1
FULL_ROTATION = (0.0, 360.0)


def _check_pieces(conn_type: ConnectionType, piece_a: PlacedPiece, piece_b: PlacedPiece) -> None:
    if conn_type.piece_a != piece_a.id or conn_type.piece_b != piece_b.id:
        raise ValueError(
            f"pieces {piece_a.id!r}/{piece_b.id!r} do not match connection {conn_type.describe()}"
        )


def normalize_connection_type(
    conn_type: ConnectionType,
    piece_a: PlacedPiece,
    piece_b: PlacedPiece,
    tolerance: float,
) -> Optional[PersistedConnectionType]:
    """Rewrite a vertex-on-edge join as a storable descriptor.

    A vertex sitting on an endpoint of the edge becomes a vertex-to-vertex
    join with that endpoint; a vertex resting mid-edge has no persisted form
    and yields ``None``.
    """

    if not isinstance(conn_type, VertexToEdge):
        return conn_type
    _check_pieces(conn_type, piece_a, piece_b)
    geom_a = piece_a.geometry
    geom_b = piece_b.geometry
    if not (geom_a.has_vertex(conn_type.vertex_a) and geom_b.has_edge(conn_type.edge_b)):
        return None
    vertex = piece_a.vertex(conn_type.vertex_a)
    edge = geom_b.edges[conn_type.edge_b]
    for endpoint in (edge.start, edge.end):
        if points_equal(vertex, piece_b.vertex(endpoint), tolerance):
            return VertexToVertex(conn_type.piece_a, conn_type.vertex_a, conn_type.piece_b, endpoint)
    logger.debug("Vertex %d of %s rests mid-edge; no persisted form", conn_type.vertex_a, conn_type.piece_a)
    return None


def derive_constraint(
    conn_type: ConnectionType,
    piece_a: PlacedPiece,
    piece_b: PlacedPiece,
    tolerance: float,
) -> Optional[Constraint]:
    """Constraint implied by ``conn_type`` at the pieces' current transforms.

    Returns ``None`` when the join is not geometrically realised or refers to
    a feature index the piece does not have.
    """

    normalized = normalize_connection_type(conn_type, piece_a, piece_b, tolerance)
    if normalized is None:
        return None
    _check_pieces(normalized, piece_a, piece_b)

    if isinstance(normalized, VertexToVertex):
        if not (piece_a.geometry.has_vertex(normalized.vertex_a) and piece_b.geometry.has_vertex(normalized.vertex_b)):
            return None
        shared = piece_a.vertex(normalized.vertex_a)
        other = piece_b.vertex(normalized.vertex_b)
        if not points_equal(shared, other, tolerance):
            logger.debug("Vertices %s and %s are %.3g apart", shared, other, distance(shared, other))
            return None
        return Rotation(affected_piece_id=normalized.piece_b, center=shared, angle_range=FULL_ROTATION)

    if isinstance(normalized, EdgeToEdge):
        if not (piece_a.geometry.has_edge(normalized.edge_a) and piece_b.geometry.has_edge(normalized.edge_b)):
            return None
        start, end = piece_a.edge_segment(normalized.edge_a)
        length_a = distance(start, end)
        if length_a <= 0.0:
            return None
        direction = ((end[0] - start[0]) / length_a, (end[1] - start[1]) / length_a)
        length_b = piece_b.geometry.edges[normalized.edge_b].length
        slack = abs(length_a - length_b)
        return Translation(affected_piece_id=normalized.piece_b, direction=direction, offset_range=(0.0, slack))

    raise TypeError(f"unsupported connection type {type(normalized).__name__}")


def _clamp(value: float, bounds: tuple) -> float:
    low, high = bounds
    return min(max(value, low), high)


def apply_constraint(constraint: Constraint, transform: AffineTransform, parameter: float) -> AffineTransform:
    """Move ``transform`` by ``parameter`` within the constraint's range.

    Rotation parameters are degrees about the constraint centre, translation
    parameters are offsets along its unit direction.
    """

    if isinstance(constraint, Fixed):
        return transform
    if isinstance(constraint, Rotation):
        angle = _clamp(parameter, constraint.angle_range)
        cx, cy = constraint.center
        return (
            transform.concatenating(AffineTransform.translation(-cx, -cy))
            .concatenating(AffineTransform.rotation(angle))
            .concatenating(AffineTransform.translation(cx, cy))
        )
    if isinstance(constraint, Translation):
        offset = _clamp(parameter, constraint.offset_range)
        dx, dy = constraint.direction
        return transform.translated_by(offset * dx, offset * dy)
    raise TypeError(f"unsupported constraint {type(constraint).__name__}")


def _stride(low: float, high: float, step: float) -> List[float]:
    if high - low <= 0.0:
        return [low]
    count = int(math.floor((high - low) / step + 1e-9))
    values = [low + i * step for i in range(count + 1)]
    return values


def valid_parameters(constraint: Constraint) -> List[float]:
    """Candidate parameters: 15 degree steps, 0.1 unit steps, or ``[0.0]`` when fixed."""

    if isinstance(constraint, Rotation):
        return _stride(constraint.angle_range[0], constraint.angle_range[1], ROTATION_STEP_DEGREES)
    if isinstance(constraint, Translation):
        return _stride(constraint.offset_range[0], constraint.offset_range[1], TRANSLATION_STEP)
    return [0.0]


__all__ = [
    "ROTATION_STEP_DEGREES",
    "TRANSLATION_STEP",
    "FULL_ROTATION",
    "normalize_connection_type",
    "derive_constraint",
    "apply_constraint",
    "valid_parameters",
]
