"""Transforms for newly placed pieces.

A connected placement pairs connection points on canvas pieces with points on
the pending piece, aligns the piece to satisfy every pair, and for a lone
edge-to-edge pair slides the piece along the canvas edge until it no longer
overlaps anything else.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares

from .config import (
    CanvasConfig,
    SlideSearchConfig,
    ToleranceConfig,
    get_canvas_config,
    get_slide_search_config,
    get_tolerance_config,
)
from .geometry import (
    AffineTransform,
    PieceType,
    Point,
    centroid,
    distance,
    distance_from_point_to_infinite_line,
    edge_angle,
    geometry_for,
    polygons_overlap,
    side_of_line,
    transform_vertices,
)
from .model import ConnectionPoint, FeatureKind, PlacedPiece
from .validation import Violation

logger = logging.getLogger(__name__)

SNAP_STEP_DEGREES = 45.0
SNAP_WINDOW_DEGREES = 1.0


class PlacementError(str, Enum):
    INVALID_CONNECTIONS = "invalidConnections"
    ALIGNMENT_FAILED = "alignmentFailed"
    UNKNOWN_CANVAS_PIECE = "unknownCanvasPiece"
    ASSEMBLY_NOT_EMPTY = "assemblyNotEmpty"
    VALIDATION_FAILED = "validationFailed"
    CONNECTION_FAILED = "connectionFailed"
    ILLEGAL_TRANSITION = "illegalTransition"


@dataclass(frozen=True)
class PointPair:
    canvas: ConnectionPoint
    piece: ConnectionPoint

    @property
    def kind(self) -> FeatureKind:
        return self.canvas.kind


@dataclass
class SlideOutcome:
    found: bool
    percent: Optional[float]
    phase: str


@dataclass
class PlacementResult:
    piece: Optional[PlacedPiece] = None
    error: Optional[PlacementError] = None
    pairs: List[PointPair] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    slide: Optional[SlideOutcome] = None
    violations: List[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.piece is not None and self.error is None

    @property
    def transform(self) -> Optional[AffineTransform]:
        return self.piece.transform if self.piece is not None else None


def pair_connection_points(
    canvas_points: Sequence[ConnectionPoint], piece_points: Sequence[ConnectionPoint]
) -> Optional[List[PointPair]]:
    """Pair vertices with vertices and edges with edges, in selection order.

    Returns ``None`` when either side is empty or the per-kind counts differ.
    """

    canvas_vertices = [p for p in canvas_points if p.kind is FeatureKind.VERTEX]
    canvas_edges = [p for p in canvas_points if p.kind is FeatureKind.EDGE]
    piece_vertices = [p for p in piece_points if p.kind is FeatureKind.VERTEX]
    piece_edges = [p for p in piece_points if p.kind is FeatureKind.EDGE]
    if not canvas_points or len(canvas_vertices) != len(piece_vertices) or len(canvas_edges) != len(piece_edges):
        return None
    pairs = [PointPair(c, p) for c, p in zip(canvas_vertices, piece_vertices)]
    pairs.extend(PointPair(c, p) for c, p in zip(canvas_edges, piece_edges))
    return pairs


def local_connection_points(piece_type: PieceType) -> List[ConnectionPoint]:
    """Connection points of an unplaced piece in its local frame."""

    geometry = geometry_for(piece_type)
    points = [ConnectionPoint(FeatureKind.VERTEX, i, v) for i, v in enumerate(geometry.vertices)]
    points.extend(ConnectionPoint(FeatureKind.EDGE, i, geometry.edge_midpoint(i)) for i in range(geometry.edge_count))
    return points


class SlideSearch:
    """Coarse-then-fine sampling of positions along a canvas edge.

    Coarse samples cover ``0..1`` at ``coarse_step``; the first free one is
    refined within ``+-fine_window`` at ``fine_step``, keeping the first free
    refinement.
    """

    def __init__(self, config: Optional[SlideSearchConfig] = None):
        self.config = config if config is not None else get_slide_search_config()

    def coarse_samples(self) -> List[float]:
        count = self.config.coarse_sample_count
        return [min(1.0, i * self.config.coarse_step) for i in range(count)]

    def fine_samples(self, percent: float) -> List[float]:
        half = self.config.fine_half_steps
        samples = [percent + k * self.config.fine_step for k in range(-half, half + 1)]
        return [s for s in samples if -1e-12 <= s <= 1.0 + 1e-12]

    def search(self, is_free: Callable[[float], bool]) -> SlideOutcome:
        coarse_hit = None
        for percent in self.coarse_samples():
            if is_free(percent):
                coarse_hit = percent
                break
        if coarse_hit is None:
            return SlideOutcome(found=False, percent=None, phase="fallback")
        for percent in self.fine_samples(coarse_hit):
            if is_free(percent):
                return SlideOutcome(found=True, percent=min(max(percent, 0.0), 1.0), phase="fine")
        return SlideOutcome(found=True, percent=coarse_hit, phase="coarse")


def _snap_angle(degrees: float) -> float:
    nearest = round(degrees / SNAP_STEP_DEGREES) * SNAP_STEP_DEGREES
    if abs(degrees - nearest) <= SNAP_WINDOW_DEGREES:
        return nearest % 360.0
    return degrees % 360.0


def _moving(base: AffineTransform, degrees: float, local: Point, target: Point) -> AffineTransform:
    """``base``, then rotation by ``degrees``, then the translation taking ``local`` onto ``target``."""

    rotated = base.concatenating(AffineTransform.rotation(degrees))
    x, y = rotated.apply(local)
    return rotated.translated_by(target[0] - x, target[1] - y)


class PlacementResolver:
    def __init__(
        self,
        tolerances: Optional[ToleranceConfig] = None,
        slide: Optional[SlideSearchConfig] = None,
        canvas: Optional[CanvasConfig] = None,
    ):
        self.tolerances = tolerances if tolerances is not None else get_tolerance_config()
        self.slide_search = SlideSearch(slide)
        self.canvas = canvas if canvas is not None else get_canvas_config()

    @staticmethod
    def base_transform(piece_type: PieceType, flip: bool) -> AffineTransform:
        """Mirror across the local y axis; only the parallelogram has a distinct mirror image."""

        if flip and not PieceType(piece_type).is_mirror_symmetric:
            return AffineTransform.scale(-1.0, 1.0)
        return AffineTransform.identity()

    def place_first(
        self,
        piece_type: PieceType,
        rotation: float = 0.0,
        canvas_center: Optional[Point] = None,
        flip: bool = False,
    ) -> AffineTransform:
        """Rotate about the local origin, then move the centroid to the canvas centre."""

        center = canvas_center if canvas_center is not None else self.canvas.center
        geometry = geometry_for(piece_type)
        return _moving(self.base_transform(piece_type, flip), rotation, geometry.centroid, center)

    # Connected placement --------------------------------------------------

    @staticmethod
    def _local_position(piece_type: PieceType, point: ConnectionPoint) -> Optional[Point]:
        geometry = geometry_for(piece_type)
        if point.kind is FeatureKind.VERTEX and geometry.has_vertex(point.index):
            return geometry.vertices[point.index]
        if point.kind is FeatureKind.EDGE and geometry.has_edge(point.index):
            return geometry.edge_midpoint(point.index)
        return None

    @staticmethod
    def _world_position(piece: PlacedPiece, point: ConnectionPoint) -> Optional[Point]:
        geometry = piece.geometry
        if point.kind is FeatureKind.VERTEX and geometry.has_vertex(point.index):
            return piece.vertex(point.index)
        if point.kind is FeatureKind.EDGE and geometry.has_edge(point.index):
            return piece.edge_midpoint(point.index)
        return None

    def place_connected(
        self,
        piece_type: PieceType,
        rotation: float,
        flip: bool,
        canvas_points: Sequence[ConnectionPoint],
        piece_points: Sequence[ConnectionPoint],
        existing_pieces: Sequence[PlacedPiece],
    ) -> PlacementResult:
        piece_type = PieceType(piece_type)
        pairs = pair_connection_points(canvas_points, piece_points)
        if pairs is None:
            logger.warning(
                "Connection points do not pair up: %d canvas, %d piece", len(canvas_points), len(piece_points)
            )
            return PlacementResult(error=PlacementError.INVALID_CONNECTIONS)

        existing: Dict[str, PlacedPiece] = {piece.id: piece for piece in existing_pieces}
        base = self.base_transform(piece_type, flip)
        world: List[Point] = []
        local: List[Point] = []
        for pair in pairs:
            owner = existing.get(pair.canvas.piece_id) if pair.canvas.piece_id is not None else None
            if owner is None:
                return PlacementResult(error=PlacementError.UNKNOWN_CANVAS_PIECE, pairs=pairs)
            w = self._world_position(owner, pair.canvas)
            p = self._local_position(piece_type, pair.piece)
            if w is None or p is None:
                return PlacementResult(error=PlacementError.INVALID_CONNECTIONS, pairs=pairs)
            world.append(w)
            local.append(p)

        warnings: List[str] = []
        slide: Optional[SlideOutcome] = None
        kinds = [pair.kind for pair in pairs]

        if len(pairs) == 1 and kinds[0] is FeatureKind.VERTEX:
            transform = _moving(base, rotation, local[0], world[0])
        elif len(pairs) == 1:
            owner = existing[pairs[0].canvas.piece_id]
            transform = self._align_edge(piece_type, base, pairs[0], owner)
            transform, slide = self._slide(piece_type, transform, pairs[0], owner, existing_pieces)
            if not slide.found:
                warnings.append("No overlap-free slide position found; keeping midpoint alignment")
                logger.warning("No valid slide position found for %s", piece_type.value)
        elif len(pairs) == 2 and set(kinds) == {FeatureKind.VERTEX, FeatureKind.EDGE}:
            vertex_pair = pairs[0]
            edge_pair = pairs[1]
            aligned = self._align_vertex_and_edge(
                piece_type, base, vertex_pair, edge_pair, existing[edge_pair.canvas.piece_id], world[0], warnings
            )
            if aligned is None:
                return PlacementResult(error=PlacementError.ALIGNMENT_FAILED, pairs=pairs, warnings=warnings)
            transform = aligned
        else:
            fitted = self._fit_points(base, local, world, rotation, any(k is FeatureKind.EDGE for k in kinds), warnings)
            if fitted is None:
                return PlacementResult(error=PlacementError.ALIGNMENT_FAILED, pairs=pairs, warnings=warnings)
            transform = fitted

        piece = PlacedPiece(type=piece_type, transform=transform)
        logger.info(
            "Placed %s via %d pair(s): rotation=%.2f flipped=%s",
            piece_type.value,
            len(pairs),
            transform.rotation_degrees,
            transform.is_flipped,
        )
        return PlacementResult(piece=piece, pairs=pairs, warnings=warnings, slide=slide)

    # Alignment strategies -----------------------------------------------------

    def _edge_frame(
        self, piece_type: PieceType, base: AffineTransform, pair: PointPair, owner: PlacedPiece
    ) -> Tuple[Point, Point, Point, Point]:
        geometry = geometry_for(piece_type)
        start, end = geometry.edge_points(pair.piece.index)
        canvas_start, canvas_end = owner.edge_segment(pair.canvas.index)
        return base.apply(start), base.apply(end), canvas_start, canvas_end

    def _opposite_side(self, piece_type: PieceType, transform: AffineTransform, line: Tuple[Point, Point], owner: PlacedPiece) -> bool:
        piece_centroid = centroid(transform_vertices(geometry_for(piece_type).vertices, transform))
        piece_side = side_of_line(piece_centroid, *line)
        owner_side = side_of_line(owner.centroid, *line)
        return piece_side * owner_side < 0.0

    def _align_edge(
        self, piece_type: PieceType, base: AffineTransform, pair: PointPair, owner: PlacedPiece
    ) -> AffineTransform:
        """Lay the piece edge anti-parallel on the canvas edge, midpoint to midpoint.

        If that leaves the piece on the canvas owner's side of the edge it is
        turned half a revolution about the shared midpoint.
        """

        start, end, canvas_start, canvas_end = self._edge_frame(piece_type, base, pair, owner)
        local_mid = geometry_for(piece_type).edge_midpoint(pair.piece.index)
        canvas_mid = ((canvas_start[0] + canvas_end[0]) * 0.5, (canvas_start[1] + canvas_end[1]) * 0.5)
        degrees = _snap_angle(edge_angle(canvas_start, canvas_end) + 180.0 - edge_angle(start, end))
        transform = _moving(base, degrees, local_mid, canvas_mid)
        if not self._opposite_side(piece_type, transform, (canvas_start, canvas_end), owner):
            transform = _moving(base, degrees + 180.0, local_mid, canvas_mid)
        return transform

    def _slide(
        self,
        piece_type: PieceType,
        aligned: AffineTransform,
        pair: PointPair,
        owner: PlacedPiece,
        existing_pieces: Sequence[PlacedPiece],
    ) -> Tuple[AffineTransform, SlideOutcome]:
        geometry = geometry_for(piece_type)
        start, end = geometry.edge_points(pair.piece.index)
        local_mid = ((start[0] + end[0]) * 0.5, (start[1] + end[1]) * 0.5)
        canvas_start, canvas_end = owner.edge_segment(pair.canvas.index)
        others = [piece.world_vertices for piece in existing_pieces if piece.id != owner.id]
        vertices = geometry.vertices
        overlap_tolerance = self.tolerances.overlap

        def candidate(percent: float) -> AffineTransform:
            target = (
                canvas_start[0] + (canvas_end[0] - canvas_start[0]) * percent,
                canvas_start[1] + (canvas_end[1] - canvas_start[1]) * percent,
            )
            x, y = aligned.apply(local_mid)
            return aligned.translated_by(target[0] - x, target[1] - y)

        def is_free(percent: float) -> bool:
            moved = transform_vertices(vertices, candidate(percent))
            return not any(polygons_overlap(moved, other, overlap_tolerance) for other in others)

        outcome = self.slide_search.search(is_free)
        logger.debug("Slide search for %s: %s", piece_type.value, outcome)
        if not outcome.found or outcome.percent is None:
            return aligned, outcome
        return candidate(outcome.percent), outcome

    def _align_vertex_and_edge(
        self,
        piece_type: PieceType,
        base: AffineTransform,
        vertex_pair: PointPair,
        edge_pair: PointPair,
        edge_owner: PlacedPiece,
        pivot_target: Point,
        warnings: List[str],
    ) -> Optional[AffineTransform]:
        """Pivot on the paired vertex with the paired edges on one line."""

        start, end, canvas_start, canvas_end = self._edge_frame(piece_type, base, edge_pair, edge_owner)
        geometry = geometry_for(piece_type)
        pivot_local = geometry.vertices[vertex_pair.piece.index]
        degrees = _snap_angle(edge_angle(canvas_start, canvas_end) - edge_angle(start, end))
        edge_points = geometry.edge_points(edge_pair.piece.index)
        tolerance = self.tolerances.mixed

        on_line: List[AffineTransform] = []
        for candidate_degrees in (degrees, degrees + 180.0):
            transform = _moving(base, candidate_degrees, pivot_local, pivot_target)
            if not all(
                distance_from_point_to_infinite_line(transform.apply(point), canvas_start, canvas_end) <= tolerance
                for point in edge_points
            ):
                continue
            if self._opposite_side(piece_type, transform, (canvas_start, canvas_end), edge_owner):
                return transform
            on_line.append(transform)
        if on_line:
            warnings.append("Piece lies on the same side of the canvas edge as its owner")
            return on_line[0]
        logger.warning("Vertex and edge pairs of %s cannot be satisfied together", piece_type.value)
        return None

    def _fit_points(
        self,
        base: AffineTransform,
        local: Sequence[Point],
        world: Sequence[Point],
        rotation: float,
        has_edge_pair: bool,
        warnings: List[str],
    ) -> Optional[AffineTransform]:
        """Rigid rotation plus translation mapping ``local`` onto ``world``.

        Seeded from the first two pairs, then refined over all pairs with a
        least-squares fit.
        """

        local = [base.apply(point) for point in local]
        if len(local) >= 2 and distance(local[0], local[1]) > 1e-9 and distance(world[0], world[1]) > 1e-9:
            seed = edge_angle(world[0], world[1]) - edge_angle(local[0], local[1])
        else:
            seed = rotation
        seeded = _moving(AffineTransform.identity(), seed, local[0], world[0])

        local_arr = np.asarray(local, dtype=float)
        world_arr = np.asarray(world, dtype=float)

        def residuals(params: np.ndarray) -> np.ndarray:
            theta, tx, ty = params
            cos_t = math.cos(theta)
            sin_t = math.sin(theta)
            rot = np.array([[cos_t, -sin_t], [sin_t, cos_t]])
            return (local_arr @ rot.T + np.array([tx, ty]) - world_arr).ravel()

        initial = np.array([math.radians(seed), seeded.tx, seeded.ty], dtype=float)
        result = least_squares(residuals, initial, method="trf", xtol=1e-12, ftol=1e-12, gtol=1e-12)
        theta, tx, ty = result.x
        fitted = AffineTransform.rotation(math.degrees(theta)).translated_by(tx, ty)
        errors = [distance(fitted.apply(p), w) for p, w in zip(local, world)]
        worst = max(errors)
        transform = base.concatenating(fitted)
        if worst <= self.tolerances.vertex_to_vertex:
            return transform
        if has_edge_pair:
            warnings.append(f"Point pairs fit with residual {worst:.3f}")
            return transform
        logger.warning("Vertex pairs cannot be matched by a rigid motion (residual %.3g)", worst)
        return None


__all__ = [
    "SNAP_STEP_DEGREES",
    "SNAP_WINDOW_DEGREES",
    "PlacementError",
    "PointPair",
    "SlideOutcome",
    "PlacementResult",
    "pair_connection_points",
    "local_connection_points",
    "SlideSearch",
    "PlacementResolver",
]
