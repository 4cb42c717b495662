import pytest

from tangram_engine import (
    AffineTransform,
    Assembly,
    ConnectionGraph,
    EdgeToEdge,
    PieceType,
    PlacedPiece,
    Relationship,
    Rotation,
    Translation,
    VertexToEdge,
    VertexToVertex,
)


def _graph(*pieces):
    graph = ConnectionGraph(Assembly(name="Test"))
    for piece_id, piece_type, transform in pieces:
        graph.add_piece(PlacedPiece(type=piece_type, transform=transform, id=piece_id))
    return graph


def _at(dx, dy):
    return AffineTransform.translation(dx, dy)


def test_vertex_contact_requires_declared_connection():
    graph = _graph(
        ("st1", PieceType.SMALL_TRIANGLE_1, _at(0.0, 0.0)),
        ("st2", PieceType.SMALL_TRIANGLE_2, _at(1.0, 0.0)),
    )
    assert graph.classify("st1", "st2") is Relationship.VERTEX_CONTACT
    assert graph.has_unexplained_contacts()
    assert not graph.is_valid_assembly()

    connection = graph.create_connection(VertexToVertex("st1", 1, "st2", 0))
    assert connection is not None
    assert isinstance(connection.constraint, Rotation)
    assert graph.is_valid_assembly()


def test_shared_edge_with_edge_connection_is_valid():
    graph = _graph(
        ("sq", PieceType.SQUARE, _at(0.0, 0.0)),
        ("st", PieceType.SMALL_TRIANGLE_1, _at(0.0, 1.0)),
    )
    assert graph.classify("sq", "st") is Relationship.EDGE_CONTACT

    connection = graph.create_connection(EdgeToEdge("sq", 2, "st", 0))
    assert isinstance(connection.constraint, Translation)
    assert connection.constraint.offset_range == pytest.approx((0.0, 0.0))
    assert graph.is_valid_assembly()
    assert graph.is_fully_constrained("st")


def test_area_overlap_is_never_explained_by_a_connection():
    graph = _graph(
        ("lt1", PieceType.LARGE_TRIANGLE_1, _at(0.0, 0.0)),
        ("lt2", PieceType.LARGE_TRIANGLE_2, _at(0.5, 0.5)),
    )
    assert graph.classify("lt1", "lt2") is Relationship.AREA_OVERLAP
    graph.create_connection(EdgeToEdge("lt1", 0, "lt2", 0))
    assert graph.has_invalid_area_overlaps()
    assert graph.overlapping_pairs() == [("lt1", "lt2")]
    assert not graph.is_valid_assembly()


def test_deleting_a_piece_cascades_to_its_connections():
    graph = _graph(
        ("st1", PieceType.SMALL_TRIANGLE_1, _at(0.0, 0.0)),
        ("st2", PieceType.SMALL_TRIANGLE_2, _at(1.0, 0.0)),
        ("sq", PieceType.SQUARE, _at(0.0, -1.0)),
    )
    first = graph.create_connection(VertexToVertex("st1", 1, "st2", 0))
    second = graph.create_connection(EdgeToEdge("sq", 2, "st1", 0))
    assert first is not None and second is not None

    removed = graph.remove_piece("st1")

    assert {conn.id for conn in removed} == {first.id, second.id}
    assert graph.connections_for("st1") == []
    assert graph.connections == []
    assert graph.piece("st2").connection_ids == []
    assert graph.piece("sq").connection_ids == []


def test_connection_lookup_is_symmetric():
    graph = _graph(
        ("st1", PieceType.SMALL_TRIANGLE_1, _at(0.0, 0.0)),
        ("st2", PieceType.SMALL_TRIANGLE_2, _at(1.0, 0.0)),
    )
    connection = graph.create_connection(VertexToVertex("st1", 1, "st2", 0))
    assert graph.are_connected("st1", "st2") and graph.are_connected("st2", "st1")
    assert graph.connection_between("st1", "st2") is connection
    assert graph.connection_between("st2", "st1") is connection
    assert connection.other_piece("st2") == "st1"


def test_rejected_connections_are_not_stored():
    graph = _graph(
        ("lt", PieceType.LARGE_TRIANGLE_1, _at(0.0, 0.0)),
        ("st", PieceType.SMALL_TRIANGLE_1, _at(1.0, -1.0)),
    )
    assert graph.create_connection(VertexToVertex("lt", 0, "st", 0)) is None
    # vertex 2 of the small triangle rests mid-edge on the large triangle
    assert graph.create_connection(VertexToEdge("st", 2, "lt", 0)) is None
    assert graph.connections == []


def test_near_coincident_vertices_join_within_vertex_tolerance():
    graph = _graph(
        ("st1", PieceType.SMALL_TRIANGLE_1, _at(0.0, 0.0)),
        ("st2", PieceType.SMALL_TRIANGLE_2, _at(1.01, 0.0)),
    )
    connection = graph.create_connection(VertexToVertex("st1", 1, "st2", 0))
    assert connection is not None
    assert connection.constraint.center == pytest.approx((1.0, 0.0))
    assert graph.connection_holds(connection)

    assert graph.create_connection(VertexToVertex("st1", 2, "st2", 2)) is None


def test_moving_a_piece_off_its_connection_leaves_contact_unexplained():
    graph = _graph(
        ("st1", PieceType.SMALL_TRIANGLE_1, _at(0.0, 0.0)),
        ("st2", PieceType.SMALL_TRIANGLE_2, _at(1.0, 0.0)),
    )
    connection = graph.create_connection(VertexToVertex("st1", 1, "st2", 0))
    graph.update_transform("st2", _at(0.0, -1.0))

    assert graph.classify("st1", "st2") is Relationship.VERTEX_CONTACT
    assert not graph.connection_holds(connection)
    assert not graph.is_contact_explained("st1", "st2")
    assert graph.unexplained_contacts() == [("st1", "st2")]


def test_connectivity():
    assert ConnectionGraph(Assembly()).is_connected()
    single = _graph(("sq", PieceType.SQUARE, _at(0.0, 0.0)))
    assert single.is_connected()
    apart = _graph(
        ("sq", PieceType.SQUARE, _at(0.0, 0.0)),
        ("st", PieceType.SMALL_TRIANGLE_1, _at(5.0, 5.0)),
    )
    assert apart.classify("sq", "st") is Relationship.NO_CONTACT
    assert not apart.is_connected()
    assert not apart.is_valid_assembly()


def test_apply_constraints_rotates_about_shared_vertex():
    graph = _graph(
        ("st1", PieceType.SMALL_TRIANGLE_1, _at(0.0, 0.0)),
        ("st2", PieceType.SMALL_TRIANGLE_2, _at(1.0, 0.0)),
    )
    graph.create_connection(VertexToVertex("st1", 1, "st2", 0))
    assert not graph.is_fully_constrained("st2")

    graph.apply_constraints("st2", 90.0)

    moved = graph.piece("st2")
    assert moved.vertex(0) == pytest.approx((1.0, 0.0))
    assert moved.vertex(1) == pytest.approx((1.0, 1.0))
