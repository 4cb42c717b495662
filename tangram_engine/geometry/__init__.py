from .transform import AffineTransform, Point
from .kernel import (
    Segment,
    transform_vertices,
    distance,
    points_equal,
    point_on_segment,
    polygon_contains_point,
    polygon_area,
    centroid,
    bounding_box,
    separation_gap,
    polygons_overlap,
    edges_parallel,
    edges_parallel_and_touching,
    edges_coincide,
    edge_overlap_length,
    edge_partially_coincides,
    project_point_onto_segment,
    distance_from_point_to_line,
    distance_from_point_to_infinite_line,
    line_segment_intersection,
    side_of_line,
    angle_at,
    edge_angle,
    normalize_angle,
    angles_equal,
    shared_vertices,
    shared_edges,
)
from .catalog import (
    TOTAL_AREA,
    PieceType,
    EdgeDef,
    PieceGeometry,
    geometry_for,
    vertices_for,
    edges_for,
    area_for,
    unique_piece_types,
    total_area,
    verify_total_area,
)

__all__ = [
    'AffineTransform',
    'Point',
    'Segment',
    'transform_vertices',
    'distance',
    'points_equal',
    'point_on_segment',
    'polygon_contains_point',
    'polygon_area',
    'centroid',
    'bounding_box',
    'separation_gap',
    'polygons_overlap',
    'edges_parallel',
    'edges_parallel_and_touching',
    'edges_coincide',
    'edge_overlap_length',
    'edge_partially_coincides',
    'project_point_onto_segment',
    'distance_from_point_to_line',
    'distance_from_point_to_infinite_line',
    'line_segment_intersection',
    'side_of_line',
    'angle_at',
    'edge_angle',
    'normalize_angle',
    'angles_equal',
    'shared_vertices',
    'shared_edges',
    'TOTAL_AREA',
    'PieceType',
    'EdgeDef',
    'PieceGeometry',
    'geometry_for',
    'vertices_for',
    'edges_for',
    'area_for',
    'unique_piece_types',
    'total_area',
    'verify_total_area',
]
