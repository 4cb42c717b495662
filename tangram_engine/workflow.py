"""Editor workflow states and the transitions allowed between them."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

logger = logging.getLogger(__name__)


class EditorState(str, Enum):
    IDLE = "idle"
    SELECTING_FIRST_PIECE = "selectingFirstPiece"
    MANIPULATING_FIRST_PIECE = "manipulatingFirstPiece"
    SELECTING_NEXT_PIECE = "selectingNextPiece"
    SELECTING_CANVAS_CONNECTIONS = "selectingCanvasConnections"
    SELECTING_PENDING_CONNECTIONS = "selectingPendingConnections"
    MANIPULATING_PENDING_PIECE = "manipulatingPendingPiece"
    PREVIEWING_PLACEMENT = "previewingPlacement"
    PIECE_SELECTED = "pieceSelected"
    MANIPULATING_EXISTING_PIECE = "manipulatingExistingPiece"
    ERROR = "error"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS: Dict[EditorState, str] = {
    EditorState.IDLE: "Ready",
    EditorState.SELECTING_FIRST_PIECE: "Select a piece to place",
    EditorState.MANIPULATING_FIRST_PIECE: "Position the first piece",
    EditorState.SELECTING_NEXT_PIECE: "Select the next piece",
    EditorState.SELECTING_CANVAS_CONNECTIONS: "Select connection points on the canvas",
    EditorState.SELECTING_PENDING_CONNECTIONS: "Select matching points on the new piece",
    EditorState.MANIPULATING_PENDING_PIECE: "Adjust the new piece",
    EditorState.PREVIEWING_PLACEMENT: "Review the placement",
    EditorState.PIECE_SELECTED: "Piece selected",
    EditorState.MANIPULATING_EXISTING_PIECE: "Adjust the selected piece",
    EditorState.ERROR: "Something went wrong",
}

S = EditorState

TRANSITIONS: Dict[EditorState, FrozenSet[EditorState]] = {
    S.SELECTING_FIRST_PIECE: frozenset({S.MANIPULATING_FIRST_PIECE}),
    S.MANIPULATING_FIRST_PIECE: frozenset(
        {S.MANIPULATING_FIRST_PIECE, S.SELECTING_NEXT_PIECE, S.SELECTING_FIRST_PIECE}
    ),
    S.SELECTING_NEXT_PIECE: frozenset({S.SELECTING_CANVAS_CONNECTIONS, S.PIECE_SELECTED}),
    S.SELECTING_CANVAS_CONNECTIONS: frozenset({S.SELECTING_PENDING_CONNECTIONS}),
    S.SELECTING_PENDING_CONNECTIONS: frozenset(
        {S.MANIPULATING_PENDING_PIECE, S.PREVIEWING_PLACEMENT, S.SELECTING_NEXT_PIECE}
    ),
    S.MANIPULATING_PENDING_PIECE: frozenset(
        {S.MANIPULATING_PENDING_PIECE, S.PREVIEWING_PLACEMENT, S.SELECTING_NEXT_PIECE}
    ),
    S.PREVIEWING_PLACEMENT: frozenset({S.SELECTING_NEXT_PIECE, S.IDLE}),
    S.PIECE_SELECTED: frozenset({S.MANIPULATING_EXISTING_PIECE, S.IDLE}),
    S.MANIPULATING_EXISTING_PIECE: frozenset({S.IDLE}),
    S.IDLE: frozenset({S.PIECE_SELECTED}),
    S.ERROR: frozenset(),
}


def is_allowed(current: EditorState, target: EditorState, piece_count: int) -> bool:
    """Table lookup first, then the conditional rules.

    ``idle`` opens the first-piece flow only on an empty assembly and the
    next-piece flow only on a non-empty one. Every state may enter ``error``,
    ``error`` may go anywhere, and every non-idle state may cancel to ``idle``.
    """

    if target in TRANSITIONS[current]:
        return True
    if current is S.IDLE and target is S.SELECTING_FIRST_PIECE:
        return piece_count == 0
    if current is S.IDLE and target is S.SELECTING_NEXT_PIECE:
        return piece_count > 0
    if target is S.ERROR or current is S.ERROR:
        return True
    return target is S.IDLE and current is not S.IDLE


class EditorStateMachine:
    def __init__(self, state: EditorState = EditorState.IDLE):
        self.state = EditorState(state)
        self.history: List[Tuple[EditorState, EditorState]] = []

    def can_transition(self, target: EditorState, piece_count: int = 0) -> bool:
        return is_allowed(self.state, EditorState(target), piece_count)

    def transition(self, target: EditorState, piece_count: int = 0) -> bool:
        """Move to ``target`` if allowed; an illegal request leaves the state unchanged."""

        target = EditorState(target)
        if not is_allowed(self.state, target, piece_count):
            logger.warning("Illegal transition %s -> %s", self.state.value, target.value)
            return False
        self.history.append((self.state, target))
        logger.debug("Transition %s -> %s", self.state.value, target.value)
        self.state = target
        return True

    def set_initial_state(self, piece_count: int) -> EditorState:
        self.state = S.SELECTING_FIRST_PIECE if piece_count == 0 else S.SELECTING_NEXT_PIECE
        return self.state

    def force_state(self, state: EditorState, reason: Optional[str] = None) -> None:
        """Jump to ``state`` without consulting the table; used for error recovery."""

        logger.info("Forcing state %s -> %s%s", self.state.value, EditorState(state).value, f" ({reason})" if reason else "")
        self.history.append((self.state, EditorState(state)))
        self.state = EditorState(state)

    @property
    def description(self) -> str:
        return self.state.description


__all__ = ["EditorState", "TRANSITIONS", "is_allowed", "EditorStateMachine"]
