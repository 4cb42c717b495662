import math

from tangram_engine import (
    AffineTransform,
    Assembly,
    EdgeToEdge,
    PieceType,
    PlacedPiece,
    ValidationContext,
    ValidationService,
    VertexToVertex,
    ViolationKind,
)
from tangram_engine.graph import ConnectionGraph


def _piece(piece_id, piece_type, dx=0.0, dy=0.0):
    return PlacedPiece(type=piece_type, transform=AffineTransform.translation(dx, dy), id=piece_id)


def test_degenerate_and_non_finite_transforms_are_rejected_first():
    service = ValidationService()
    flat = PlacedPiece(type=PieceType.SQUARE, transform=AffineTransform(0.0, 0.0, 0.0, 0.0, 1.0, 1.0), id="sq")
    broken = PlacedPiece(type=PieceType.SQUARE, transform=AffineTransform(1.0, 0.0, 0.0, 1.0, math.nan, 0.0), id="sq")
    assert service.validate_placement(flat).kinds == [ViolationKind.INVALID_TRANSFORM]
    assert service.validate_placement(broken).kinds == [ViolationKind.INVALID_TRANSFORM]


def test_broken_connection_short_circuits_overlap_check():
    service = ValidationService()
    anchor = _piece("st1", PieceType.SMALL_TRIANGLE_1)
    blocker = _piece("sq", PieceType.SQUARE, 1.5, 0.0)
    moved = _piece("st2", PieceType.SMALL_TRIANGLE_2, 1.5, 0.0)
    result = service.validate_placement(
        moved,
        ValidationContext(other_pieces=[anchor, blocker], connections=[VertexToVertex("st1", 1, "st2", 0)]),
    )
    assert not result.is_valid
    assert result.kinds == [ViolationKind.CONNECTION_BROKEN]
    assert result.violations[0].other_piece_id == "st1"
    assert result.violations[0].connection_kind == "vertexToVertex"


def test_overlap_with_joined_piece_is_ignored():
    service = ValidationService()
    large = _piece("lt", PieceType.LARGE_TRIANGLE_1)
    small = _piece("st", PieceType.SMALL_TRIANGLE_1)
    result = service.validate_placement(
        small,
        ValidationContext(other_pieces=[large], connections=[VertexToVertex("lt", 0, "st", 0)]),
    )
    assert result.is_valid
    assert result.violations == []


def test_overlap_with_unjoined_piece_is_reported():
    service = ValidationService()
    anchor = _piece("st1", PieceType.SMALL_TRIANGLE_1)
    blocker = _piece("sq", PieceType.SQUARE, 1.0, 0.0)
    moved = _piece("st2", PieceType.SMALL_TRIANGLE_2, 1.0, 0.0)
    result = service.validate_placement(
        moved,
        ValidationContext(other_pieces=[anchor, blocker], connections=[VertexToVertex("st1", 1, "st2", 0)]),
    )
    assert result.kinds == [ViolationKind.OVERLAP]
    assert result.violations[0].other_piece_id == "sq"


def test_out_of_bounds_is_advisory_unless_disallowed():
    service = ValidationService()
    far = _piece("sq", PieceType.SQUARE, 20.0, 20.0)

    lenient = service.validate_placement(far, ValidationContext(canvas_size=(16.0, 16.0)))
    assert lenient.is_valid
    assert [w.kind for w in lenient.warnings] == [ViolationKind.OUT_OF_BOUNDS]

    strict = service.validate_placement(far, ValidationContext(canvas_size=(16.0, 16.0), allow_out_of_bounds=False))
    assert not strict.is_valid

    assert service.validate_placement(far).violations == []


def test_validation_is_idempotent():
    service = ValidationService()
    anchor = _piece("st1", PieceType.SMALL_TRIANGLE_1)
    moved = _piece("st2", PieceType.SMALL_TRIANGLE_2, 1.0, 0.0)
    context = ValidationContext(other_pieces=[anchor], connections=[VertexToVertex("st1", 1, "st2", 0)])
    assert service.validate_placement(moved, context) == service.validate_placement(moved, context)


def test_validate_multiple_connections_reports_each_broken_one():
    service = ValidationService()
    square = _piece("sq", PieceType.SQUARE)
    triangle = _piece("st", PieceType.SMALL_TRIANGLE_1, 0.0, 1.0)
    result = service.validate_multiple_connections(
        triangle,
        [EdgeToEdge("sq", 2, "st", 0), VertexToVertex("sq", 0, "st", 1)],
        [square],
    )
    assert result.kinds == [ViolationKind.CONNECTION_BROKEN]


def test_validate_assembly_reports_unexplained_contact_until_connected():
    assembly = Assembly(name="Pair")
    assembly.add_piece(_piece("st1", PieceType.SMALL_TRIANGLE_1))
    assembly.add_piece(_piece("st2", PieceType.SMALL_TRIANGLE_2, 1.0, 0.0))
    service = ValidationService()

    report = service.validate_assembly(assembly)
    assert "Pieces touch without declared connection" in report.errors
    assert "All pieces must be connected" in report.errors
    assert not report.is_connected

    ConnectionGraph(assembly).create_connection(VertexToVertex("st1", 1, "st2", 0))
    report = service.validate_assembly(assembly)
    assert report.is_valid, report.errors


def test_validate_assembly_checks_composition():
    service = ValidationService()
    assert "Assembly must contain at least one piece" in service.validate_assembly(Assembly()).errors

    doubled = Assembly(name="Doubled")
    doubled.add_piece(_piece("a", PieceType.SQUARE))
    doubled.add_piece(_piece("b", PieceType.SQUARE, 3.0, 0.0))
    errors = service.validate_assembly(doubled).errors
    assert any(error.startswith("Too many Square pieces") for error in errors)

    unnamed = Assembly(name="  ")
    unnamed.add_piece(_piece("a", PieceType.SQUARE))
    assert "Assembly name is required" in service.validate_assembly(unnamed).errors


def test_validate_assembly_flags_overlapping_pieces():
    assembly = Assembly(name="Overlap")
    assembly.add_piece(_piece("lt1", PieceType.LARGE_TRIANGLE_1))
    assembly.add_piece(_piece("lt2", PieceType.LARGE_TRIANGLE_2, 0.5, 0.5))
    report = ValidationService().validate_assembly(assembly)
    assert report.overlapping_pairs == [("lt1", "lt2")]
    assert "Pieces have area overlap" in report.errors
