from .config import (
    ToleranceKind,
    ToleranceConfig,
    SlideSearchConfig,
    CanvasConfig,
    get_tolerance_config,
    set_tolerance_config,
    get_slide_search_config,
    set_slide_search_config,
    get_canvas_config,
    set_canvas_config,
)
from .geometry import AffineTransform, PieceType, geometry_for, polygons_overlap
from .model import (
    Assembly,
    Connection,
    ConnectionPoint,
    EdgeToEdge,
    FeatureKind,
    Fixed,
    PlacedPiece,
    Rotation,
    Translation,
    UnknownPieceError,
    VertexToEdge,
    VertexToVertex,
)
from .constraints import apply_constraint, derive_constraint, normalize_connection_type, valid_parameters
from .graph import ConnectionGraph, Relationship
from .validation import (
    AssemblyReport,
    ValidationContext,
    ValidationResult,
    ValidationService,
    Violation,
    ViolationKind,
)
from .placement import (
    PlacementError,
    PlacementResolver,
    PlacementResult,
    SlideSearch,
    pair_connection_points,
)
from .workflow import EditorState, EditorStateMachine
from .persistence import DocumentError, dumps, load, loads, save
from .session import EditorSession

__all__ = [
    'ToleranceKind',
    'ToleranceConfig',
    'SlideSearchConfig',
    'CanvasConfig',
    'get_tolerance_config',
    'set_tolerance_config',
    'get_slide_search_config',
    'set_slide_search_config',
    'get_canvas_config',
    'set_canvas_config',
    'AffineTransform',
    'PieceType',
    'geometry_for',
    'polygons_overlap',
    'Assembly',
    'Connection',
    'ConnectionPoint',
    'EdgeToEdge',
    'FeatureKind',
    'Fixed',
    'PlacedPiece',
    'Rotation',
    'Translation',
    'UnknownPieceError',
    'VertexToEdge',
    'VertexToVertex',
    'apply_constraint',
    'derive_constraint',
    'normalize_connection_type',
    'valid_parameters',
    'ConnectionGraph',
    'Relationship',
    'AssemblyReport',
    'ValidationContext',
    'ValidationResult',
    'ValidationService',
    'Violation',
    'ViolationKind',
    'PlacementError',
    'PlacementResolver',
    'PlacementResult',
    'SlideSearch',
    'pair_connection_points',
    'EditorState',
    'EditorStateMachine',
    'DocumentError',
    'dumps',
    'load',
    'loads',
    'save',
    'EditorSession',
]
