import pytest

from tangram_engine import (
    AffineTransform,
    EdgeToEdge,
    Fixed,
    PieceType,
    PlacedPiece,
    Rotation,
    Translation,
    VertexToEdge,
    VertexToVertex,
    apply_constraint,
    derive_constraint,
    normalize_connection_type,
    valid_parameters,
)

TIGHT = 1e-5


def _piece(piece_id, piece_type, dx=0.0, dy=0.0):
    return PlacedPiece(type=piece_type, transform=AffineTransform.translation(dx, dy), id=piece_id)


def test_shared_vertex_yields_full_rotation_about_it():
    first = _piece("st1", PieceType.SMALL_TRIANGLE_1)
    second = _piece("st2", PieceType.SMALL_TRIANGLE_2, 1.0)
    constraint = derive_constraint(VertexToVertex("st1", 1, "st2", 0), first, second, TIGHT)
    assert isinstance(constraint, Rotation)
    assert constraint.affected_piece_id == "st2"
    assert constraint.center == pytest.approx((1.0, 0.0))
    assert constraint.angle_range == (0.0, 360.0)
    assert not constraint.is_fully_constrained


def test_separated_vertices_are_rejected():
    first = _piece("st1", PieceType.SMALL_TRIANGLE_1)
    second = _piece("st2", PieceType.SMALL_TRIANGLE_2, 1.5)
    assert derive_constraint(VertexToVertex("st1", 1, "st2", 0), first, second, TIGHT) is None


def test_equal_edges_give_zero_range_translation():
    square = _piece("sq", PieceType.SQUARE)
    triangle = _piece("st", PieceType.SMALL_TRIANGLE_1, 0.0, 1.0)
    constraint = derive_constraint(EdgeToEdge("sq", 2, "st", 0), square, triangle, TIGHT)
    assert isinstance(constraint, Translation)
    assert constraint.direction == pytest.approx((-1.0, 0.0))
    assert constraint.offset_range == pytest.approx((0.0, 0.0))
    assert constraint.is_fully_constrained


def test_unequal_edges_allow_sliding():
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    small = _piece("st", PieceType.SMALL_TRIANGLE_1, 0.5, 0.0)
    constraint = derive_constraint(EdgeToEdge("lt", 0, "st", 0), large, small, TIGHT)
    assert isinstance(constraint, Translation)
    assert constraint.offset_range == pytest.approx((0.0, 1.0))


def test_out_of_range_index_is_rejected():
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    small = _piece("st", PieceType.SMALL_TRIANGLE_1)
    assert derive_constraint(EdgeToEdge("lt", 0, "st", 5), large, small, TIGHT) is None
    assert derive_constraint(VertexToVertex("lt", 3, "st", 0), large, small, TIGHT) is None


def test_vertex_on_edge_endpoint_normalizes_to_vertex_join():
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    small = _piece("st", PieceType.SMALL_TRIANGLE_1, 2.0, 0.0)
    normalized = normalize_connection_type(VertexToEdge("st", 0, "lt", 0), small, large, TIGHT)
    assert normalized == VertexToVertex("st", 0, "lt", 1)


def test_vertex_mid_edge_has_no_persisted_form():
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    small = _piece("st", PieceType.SMALL_TRIANGLE_1, 1.0, -1.0)
    # vertex 2 of the small triangle sits at (1, 0), the middle of edge 0
    assert normalize_connection_type(VertexToEdge("st", 2, "lt", 0), small, large, TIGHT) is None
    assert derive_constraint(VertexToEdge("st", 2, "lt", 0), small, large, TIGHT) is None


def test_rotation_turns_about_center_and_clamps():
    constraint = Rotation("p", (1.0, 0.0), (0.0, 360.0))
    turned = apply_constraint(constraint, AffineTransform.identity(), 90.0)
    assert turned.apply((0.0, 0.0)) == pytest.approx((1.0, -1.0))
    clamped = apply_constraint(constraint, AffineTransform.identity(), 400.0)
    assert clamped.is_close(AffineTransform.identity(), 1e-9)


def test_translation_clamps_offset():
    constraint = Translation("p", (1.0, 0.0), (0.0, 1.0))
    assert apply_constraint(constraint, AffineTransform.identity(), 2.5).translation_component == pytest.approx((1.0, 0.0))
    assert apply_constraint(constraint, AffineTransform.identity(), -1.0).translation_component == pytest.approx((0.0, 0.0))


def test_fixed_leaves_transform_alone():
    transform = AffineTransform.rotation(30).translated_by(1.0, 2.0)
    assert apply_constraint(Fixed("p"), transform, 5.0) is transform


def test_valid_parameters():
    full = valid_parameters(Rotation("p", (0.0, 0.0)))
    assert len(full) == 25
    assert full[0] == 0.0 and full[-1] == pytest.approx(360.0)
    assert valid_parameters(Translation("p", (1.0, 0.0), (0.0, 1.0))) == pytest.approx([i * 0.1 for i in range(11)])
    assert valid_parameters(Translation("p", (1.0, 0.0), (0.0, 0.0))) == [0.0]
    assert valid_parameters(Fixed("p")) == [0.0]
