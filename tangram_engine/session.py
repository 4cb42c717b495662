"""One editing session: the assembly store plus the services that act on it."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import (
    CanvasConfig,
    SlideSearchConfig,
    ToleranceConfig,
    get_canvas_config,
    get_tolerance_config,
)
from .constraints import apply_constraint
from .geometry import AffineTransform, PieceType
from .graph import ConnectionGraph
from .model import (
    Assembly,
    Connection,
    ConnectionPoint,
    ConnectionType,
    EdgeToEdge,
    FeatureKind,
    PlacedPiece,
    VertexToVertex,
)
from .placement import PlacementError, PlacementResolver, PlacementResult, PointPair
from .validation import AssemblyReport, ValidationContext, ValidationResult, ValidationService
from .workflow import EditorState, EditorStateMachine, is_allowed

logger = logging.getLogger(__name__)


def connection_type_for_pair(pair: PointPair, new_piece_id: str) -> Optional[ConnectionType]:
    """Descriptor joining the canvas feature of ``pair`` to the new piece's feature.

    Pairs always match vertex with vertex or edge with edge.
    """

    canvas_id = pair.canvas.piece_id
    if canvas_id is None:
        return None
    if pair.canvas.kind is FeatureKind.VERTEX:
        return VertexToVertex(canvas_id, pair.canvas.index, new_piece_id, pair.piece.index)
    return EdgeToEdge(canvas_id, pair.canvas.index, new_piece_id, pair.piece.index)


class EditorSession:
    """Places, connects, moves and deletes pieces of a single assembly.

    The assembly is the only store of piece transforms and connections; the
    graph, resolver and validator all read it on demand.
    """

    def __init__(
        self,
        assembly: Optional[Assembly] = None,
        *,
        tolerances: Optional[ToleranceConfig] = None,
        slide: Optional[SlideSearchConfig] = None,
        canvas: Optional[CanvasConfig] = None,
    ):
        self.assembly = assembly if assembly is not None else Assembly()
        self.tolerances = tolerances if tolerances is not None else get_tolerance_config()
        self.canvas = canvas if canvas is not None else get_canvas_config()
        self.graph = ConnectionGraph(self.assembly, self.tolerances)
        self.resolver = PlacementResolver(self.tolerances, slide, self.canvas)
        self.validator = ValidationService(self.tolerances, self.canvas)
        self.workflow = EditorStateMachine()
        self.workflow.set_initial_state(len(self.assembly.pieces))

    # Workflow -------------------------------------------------------------

    def _enter(self, *path: EditorState) -> bool:
        """Walk ``path`` if every step is allowed; otherwise leave the state as it is."""

        piece_count = len(self.assembly.pieces)
        current = self.workflow.state
        for state in path:
            if state is not current and not is_allowed(current, state, piece_count):
                logger.warning("Refusing session action: %s -> %s is not allowed", current.value, state.value)
                return False
            current = state
        for state in path:
            if self.workflow.state is not state:
                self.workflow.transition(state, piece_count)
        return True

    # Placement ------------------------------------------------------------

    def place_first_piece(self, piece_type: PieceType, rotation: float = 0.0, flip: bool = False) -> PlacementResult:
        if self.assembly.pieces:
            return PlacementResult(error=PlacementError.ASSEMBLY_NOT_EMPTY)
        if not self._enter(EditorState.SELECTING_FIRST_PIECE, EditorState.MANIPULATING_FIRST_PIECE):
            return PlacementResult(error=PlacementError.ILLEGAL_TRANSITION)
        transform = self.resolver.place_first(piece_type, rotation, self.canvas.center, flip)
        piece = PlacedPiece(type=piece_type, transform=transform)
        validation = self.validator.validate_placement(
            piece, ValidationContext(canvas_size=self.canvas.size, allow_out_of_bounds=True)
        )
        if not validation.is_valid:
            return PlacementResult(piece=piece, error=PlacementError.VALIDATION_FAILED, violations=validation.violations)
        self.assembly.add_piece(piece)
        self._enter(EditorState.SELECTING_NEXT_PIECE)
        return PlacementResult(piece=piece, violations=validation.violations)

    def place_connected_piece(
        self,
        piece_type: PieceType,
        canvas_points: Sequence[ConnectionPoint],
        piece_points: Sequence[ConnectionPoint],
        rotation: float = 0.0,
        flip: bool = False,
    ) -> PlacementResult:
        """Resolve, validate and commit a piece joined to the canvas.

        Formal connections are created from the same point pairs the resolver
        used. If any of them cannot be created the piece is removed again and
        the result carries ``CONNECTION_FAILED``. Nothing happens when the
        workflow does not allow a placement from its current state.
        """

        if not self._enter(
            EditorState.SELECTING_CANVAS_CONNECTIONS,
            EditorState.SELECTING_PENDING_CONNECTIONS,
            EditorState.PREVIEWING_PLACEMENT,
        ):
            return PlacementResult(error=PlacementError.ILLEGAL_TRANSITION)
        result = self.resolver.place_connected(
            piece_type, rotation, flip, canvas_points, piece_points, self.assembly.pieces
        )
        if result.piece is None:
            self._enter(EditorState.SELECTING_NEXT_PIECE)
            return result

        piece = result.piece
        conn_types = [
            conn_type
            for conn_type in (connection_type_for_pair(pair, piece.id) for pair in result.pairs)
            if conn_type is not None
        ]
        validation = self.validator.validate_placement(
            piece,
            ValidationContext(
                other_pieces=list(self.assembly.pieces),
                connections=conn_types,
                canvas_size=self.canvas.size,
                allow_out_of_bounds=True,
            ),
        )
        result.violations = validation.violations
        if not validation.is_valid:
            result.error = PlacementError.VALIDATION_FAILED
            logger.info("Placement of %s rejected: %s", piece.type.value, "; ".join(map(str, validation.violations)))
            self._enter(EditorState.SELECTING_NEXT_PIECE)
            return result

        self.assembly.add_piece(piece)
        for conn_type in conn_types:
            if self.graph.create_connection(conn_type) is None:
                # removing the piece drops the connections already created for it
                self.assembly.remove_piece(piece.id)
                result.error = PlacementError.CONNECTION_FAILED
                result.warnings.append(f"Connection {conn_type.describe()} could not be created")
                logger.warning("Placement of %s rolled back: %s not realised", piece.type.value, conn_type.describe())
                self._enter(EditorState.SELECTING_NEXT_PIECE)
                return result
        self._enter(EditorState.SELECTING_NEXT_PIECE)
        return result

    # Editing --------------------------------------------------------------

    def move_piece(self, piece_id: str, transform: AffineTransform) -> ValidationResult:
        """Apply ``transform`` if the moved piece still satisfies its connections and overlaps nothing."""

        current = self.assembly.piece(piece_id)
        candidate = PlacedPiece(type=current.type, transform=transform, id=current.id)
        validation = self.validator.validate_placement(
            candidate,
            ValidationContext(
                other_pieces=list(self.assembly.pieces),
                connections=[conn.type for conn in self.assembly.connections_for(piece_id)],
                canvas_size=self.canvas.size,
                allow_out_of_bounds=True,
            ),
        )
        if validation.is_valid:
            self.assembly.update_transform(piece_id, transform)
        return validation

    def adjust_piece(self, piece_id: str, parameter: float) -> ValidationResult:
        """Move a piece within the freedom its constraints leave it."""

        transform = self.assembly.piece(piece_id).transform
        for conn in self.assembly.connections_for(piece_id):
            if conn.constraint.affected_piece_id == piece_id:
                transform = apply_constraint(conn.constraint, transform, parameter)
        return self.move_piece(piece_id, transform)

    def delete_piece(self, piece_id: str) -> List[Connection]:
        removed = self.graph.remove_piece(piece_id)
        if not self.assembly.pieces:
            self.workflow.set_initial_state(0)
        return removed

    # Queries --------------------------------------------------------------

    def connections_for(self, piece_id: str) -> List[Connection]:
        return self.graph.connections_for(piece_id)

    def validate(self) -> AssemblyReport:
        return self.validator.validate_assembly(self.assembly)

    def is_solved(self) -> bool:
        return self.validate().is_valid


__all__ = ["connection_type_for_pair", "EditorSession"]
