import pytest

from tangram_engine import (
    AffineTransform,
    ConnectionPoint,
    FeatureKind,
    PieceType,
    PlacedPiece,
    PlacementError,
    PlacementResolver,
    SlideSearch,
    pair_connection_points,
    polygons_overlap,
)
from tangram_engine.geometry import point_on_segment
from tangram_engine.placement import local_connection_points

OVERLAP_TOL = 0.02


def _piece(piece_id, piece_type, transform=None):
    return PlacedPiece(type=piece_type, transform=transform or AffineTransform.identity(), id=piece_id)


def _vertex(index, owner=None):
    if owner is None:
        return ConnectionPoint(FeatureKind.VERTEX, index, (0.0, 0.0))
    return ConnectionPoint(FeatureKind.VERTEX, index, owner.vertex(index), owner.id)


def _edge(index, owner=None):
    if owner is None:
        return ConnectionPoint(FeatureKind.EDGE, index, (0.0, 0.0))
    return ConnectionPoint(FeatureKind.EDGE, index, owner.edge_midpoint(index), owner.id)


def test_pairing_orders_vertices_before_edges():
    canvas = [_edge(0, _piece("a", PieceType.SQUARE)), _vertex(1, _piece("a", PieceType.SQUARE))]
    pairs = pair_connection_points(canvas, [_vertex(0), _edge(2)])
    assert [pair.kind for pair in pairs] == [FeatureKind.VERTEX, FeatureKind.EDGE]
    assert pairs[0].piece.index == 0
    assert pairs[1].canvas.index == 0


def test_pairing_rejects_mismatched_selections():
    owner = _piece("a", PieceType.SQUARE)
    assert pair_connection_points([_vertex(0, owner)], [_edge(0)]) is None
    assert pair_connection_points([], []) is None
    assert pair_connection_points([_vertex(0, owner), _vertex(1, owner)], [_vertex(0)]) is None


def test_invalid_selection_and_unknown_owner():
    resolver = PlacementResolver()
    owner = _piece("a", PieceType.SQUARE)
    result = resolver.place_connected(PieceType.SQUARE, 0.0, False, [_vertex(0, owner)], [_edge(0)], [owner])
    assert result.error is PlacementError.INVALID_CONNECTIONS
    assert not result.ok

    ghost = ConnectionPoint(FeatureKind.VERTEX, 0, (0.0, 0.0), "ghost")
    result = resolver.place_connected(PieceType.SQUARE, 0.0, False, [ghost], [_vertex(0)], [owner])
    assert result.error is PlacementError.UNKNOWN_CANVAS_PIECE


def test_first_piece_is_centred_on_canvas():
    resolver = PlacementResolver()
    transform = resolver.place_first(PieceType.LARGE_TRIANGLE_1, 0.0, (8.0, 8.0))
    placed = _piece("lt", PieceType.LARGE_TRIANGLE_1, transform)
    assert placed.centroid == pytest.approx((8.0, 8.0))

    turned = resolver.place_first(PieceType.LARGE_TRIANGLE_1, 90.0, (8.0, 8.0))
    assert turned.rotation_degrees == pytest.approx(90.0)
    assert _piece("lt", PieceType.LARGE_TRIANGLE_1, turned).centroid == pytest.approx((8.0, 8.0))


def test_flip_only_applies_to_parallelogram():
    resolver = PlacementResolver()
    assert resolver.place_first(PieceType.PARALLELOGRAM, 0.0, (8.0, 8.0), flip=True).is_flipped
    assert not resolver.place_first(PieceType.SQUARE, 0.0, (8.0, 8.0), flip=True).is_flipped


def test_single_vertex_pair_keeps_requested_rotation():
    anchor = _piece("st1", PieceType.SMALL_TRIANGLE_1)
    result = PlacementResolver().place_connected(
        PieceType.SMALL_TRIANGLE_2, 0.0, False, [_vertex(1, anchor)], [_vertex(0)], [anchor]
    )
    assert result.ok
    assert result.piece.vertex(0) == pytest.approx((1.0, 0.0))
    assert result.transform.rotation_degrees == pytest.approx(0.0)
    assert result.slide is None


def test_single_edge_pair_lays_piece_on_far_side():
    square = _piece("sq", PieceType.SQUARE)
    result = PlacementResolver().place_connected(
        PieceType.SMALL_TRIANGLE_1, 0.0, False, [_edge(2, square)], [_edge(0)], [square]
    )
    assert result.ok
    start, end = result.piece.edge_segment(0)
    assert start[1] == pytest.approx(1.0) and end[1] == pytest.approx(1.0)
    assert result.piece.centroid[1] > 1.0
    assert result.slide.found
    assert result.slide.percent == pytest.approx(0.0)
    assert not polygons_overlap(result.piece.world_vertices, square.world_vertices, OVERLAP_TOL)


def test_edge_slide_refines_past_blocking_piece():
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    square = _piece("sq", PieceType.SQUARE, AffineTransform.translation(0.0, -1.0))
    result = PlacementResolver().place_connected(
        PieceType.SMALL_TRIANGLE_1, 0.0, False, [_edge(0, large)], [_edge(0)], [large, square]
    )
    assert result.ok
    assert result.slide.found
    assert result.slide.phase == "fine"
    assert result.slide.percent == pytest.approx(0.75)

    placed = result.piece
    start, end = placed.edge_segment(0)
    assert start[1] == pytest.approx(0.0) and end[1] == pytest.approx(0.0)
    assert placed.centroid[1] < 0.0
    assert not polygons_overlap(placed.world_vertices, square.world_vertices, OVERLAP_TOL)


def test_edge_slide_falls_back_to_midpoint_when_blocked():
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    left = _piece("sq", PieceType.SQUARE, AffineTransform.translation(-0.5, -1.0))
    right = _piece("lt2", PieceType.LARGE_TRIANGLE_2, AffineTransform.rotation(180.0).translated_by(2.5, 0.0))
    result = PlacementResolver().place_connected(
        PieceType.SMALL_TRIANGLE_1, 0.0, False, [_edge(0, large)], [_edge(0)], [large, left, right]
    )
    assert result.ok
    assert not result.slide.found
    assert result.warnings
    assert result.piece.edge_midpoint(0) == pytest.approx((1.0, 0.0))


def test_vertex_and_edge_pair_pivots_onto_edge_line():
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    result = PlacementResolver().place_connected(
        PieceType.SQUARE, 0.0, False, [_vertex(0, large), _edge(0, large)], [_vertex(3), _edge(2)], [large]
    )
    assert result.ok
    assert result.piece.vertex(3) == pytest.approx((0.0, 0.0))
    assert result.piece.bounding_box == pytest.approx((0.0, -1.0, 1.0, 0.0))
    for point in result.piece.edge_segment(2):
        assert point_on_segment(point, (0.0, 0.0), (2.0, 0.0), 0.04)


def test_two_vertex_pairs_are_fitted_rigidly():
    anchor = _piece("st1", PieceType.SMALL_TRIANGLE_1)
    result = PlacementResolver().place_connected(
        PieceType.SMALL_TRIANGLE_2,
        0.0,
        False,
        [_vertex(1, anchor), _vertex(2, anchor)],
        [_vertex(2), _vertex(1)],
        [anchor],
    )
    assert result.ok
    assert result.piece.vertex(0) == pytest.approx((1.0, 1.0), abs=1e-6)
    assert result.piece.vertex(1) == pytest.approx((0.0, 1.0), abs=1e-6)
    assert result.piece.vertex(2) == pytest.approx((1.0, 0.0), abs=1e-6)


def test_inconsistent_vertex_pairs_fail_alignment():
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    result = PlacementResolver().place_connected(
        PieceType.SMALL_TRIANGLE_1,
        0.0,
        False,
        [_vertex(0, large), _vertex(1, large)],
        [_vertex(0), _vertex(1)],
        [large],
    )
    assert result.error is PlacementError.ALIGNMENT_FAILED
    assert result.piece is None


def test_slide_samples():
    search = SlideSearch()
    assert search.coarse_samples() == pytest.approx([i / 10 for i in range(11)])
    assert len(search.fine_samples(0.5)) == 21
    assert search.fine_samples(0.5)[0] == pytest.approx(0.45)
    assert search.fine_samples(0.0) == pytest.approx([i * 0.005 for i in range(11)])


def test_slide_search_refines_first_coarse_hit():
    outcome = SlideSearch().search(lambda percent: percent >= 0.33)
    assert outcome.found
    assert outcome.phase == "fine"
    assert outcome.percent == pytest.approx(0.35)


def test_slide_search_reports_failure():
    outcome = SlideSearch().search(lambda percent: False)
    assert not outcome.found
    assert outcome.percent is None
    assert outcome.phase == "fallback"


def test_local_connection_points_list_vertices_then_edge_midpoints():
    points = local_connection_points(PieceType.SQUARE)
    assert [p.kind for p in points] == [FeatureKind.VERTEX] * 4 + [FeatureKind.EDGE] * 4
    assert points[4].position == pytest.approx((0.5, 0.0))
    assert all(p.piece_id is None for p in points)
