"""Example: build a three-piece assembly, adjust a piece and save it as JSON."""

import sys

from tangram_engine import ConnectionPoint, EditorSession, FeatureKind, PieceType, dumps


def main() -> None:
    session = EditorSession()
    session.assembly.name = "Corner"
    base = session.place_first_piece(PieceType.LARGE_TRIANGLE_1).piece

    corner = session.place_connected_piece(
        PieceType.SMALL_TRIANGLE_1,
        [ConnectionPoint(FeatureKind.VERTEX, 2, base.vertex(2), base.id)],
        [ConnectionPoint(FeatureKind.VERTEX, 0, (0.0, 0.0))],
    ).piece
    session.place_connected_piece(
        PieceType.SQUARE,
        [
            ConnectionPoint(FeatureKind.VERTEX, 0, base.vertex(0), base.id),
            ConnectionPoint(FeatureKind.EDGE, 0, base.edge_midpoint(0), base.id),
        ],
        [
            ConnectionPoint(FeatureKind.VERTEX, 3, (0.0, 1.0)),
            ConnectionPoint(FeatureKind.EDGE, 2, (0.5, 1.0)),
        ],
    )

    adjusted = session.adjust_piece(corner.id, 90.0)
    print("Rotate corner triangle:", "ok" if adjusted.is_valid else adjusted.violations)
    report = session.validate()
    print("Valid:", report.is_valid, report.errors)
    sys.stdout.write(dumps(session.assembly) + "\n")


if __name__ == "__main__":
    main()
