"""Example: slide a small triangle along a large triangle's base past a square."""

from tangram_engine import AffineTransform, ConnectionPoint, FeatureKind, PieceType, PlacedPiece, PlacementResolver
from tangram_engine.placement import local_connection_points


def main() -> None:
    large = PlacedPiece(type=PieceType.LARGE_TRIANGLE_1, id="large")
    piece_edge = next(p for p in local_connection_points(PieceType.SMALL_TRIANGLE_1) if p.kind is FeatureKind.EDGE)
    square = PlacedPiece(type=PieceType.SQUARE, transform=AffineTransform.translation(0.0, -1.0), id="square")

    result = PlacementResolver().place_connected(
        PieceType.SMALL_TRIANGLE_1,
        rotation=0.0,
        flip=False,
        canvas_points=[ConnectionPoint(FeatureKind.EDGE, 0, large.edge_midpoint(0), large.id)],
        piece_points=[piece_edge],
        existing_pieces=[large, square],
    )
    print("Error:", result.error)
    print("Slide:", result.slide)
    for index, (x, y) in enumerate(result.piece.world_vertices):
        print(f"v{index}: ({x:.4f}, {y:.4f})")


if __name__ == "__main__":
    main()
