import argparse
import logging
import sys
from typing import Optional, Sequence

from tangram_engine import (
    AssemblyReport,
    ConnectionPoint,
    DocumentError,
    EditorSession,
    FeatureKind,
    PieceType,
    ValidationService,
    load,
    save,
)

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _print_report(report: AssemblyReport) -> None:
    print(f"Valid: {report.is_valid}")
    print(f"Connected: {report.is_connected}")
    print("Errors:")
    if report.errors:
        for error in report.errors:
            print(f"  - {error}")
    else:
        print("  (none)")
    for a, b in report.overlapping_pairs:
        print(f"  overlap: {a} / {b}")
    for a, b in report.unexplained_contacts:
        print(f"  unexplained contact: {a} / {b}")


def _print_pieces(session: EditorSession) -> None:
    print("Pieces:")
    for piece in session.assembly.pieces:
        tx, ty = piece.transform.translation_component
        print(
            f"  {piece.id[:8]} {piece.type.value:<16} rot={piece.transform.rotation_degrees:7.2f} "
            f"t=({tx:.4f}, {ty:.4f}) connections={len(piece.connection_ids)}"
        )


def _run_validate(path: str) -> int:
    logger.info("Loading assembly from %s", path)
    try:
        assembly = load(path)
    except (DocumentError, OSError) as exc:
        logger.error("Cannot read %s: %s", path, exc)
        return 1
    print(f"Assembly: {assembly.name} ({len(assembly.pieces)} piece(s), {len(assembly.connections)} connection(s))")
    print(f"Checksum: {assembly.checksum}")
    report = ValidationService().validate_assembly(assembly)
    _print_report(report)
    return 0 if report.is_valid else 1


def build_demo_session() -> EditorSession:
    """Large triangle, a small triangle on its corner and a square slid along its base."""

    session = EditorSession()
    session.assembly.name = "Demo"
    first = session.place_first_piece(PieceType.LARGE_TRIANGLE_1)
    base = first.piece

    session.place_connected_piece(
        PieceType.SMALL_TRIANGLE_1,
        [ConnectionPoint(FeatureKind.VERTEX, 2, base.vertex(2), base.id)],
        [ConnectionPoint(FeatureKind.VERTEX, 0, (0.0, 0.0))],
        rotation=0.0,
    )
    session.place_connected_piece(
        PieceType.SQUARE,
        [ConnectionPoint(FeatureKind.EDGE, 0, base.edge_midpoint(0), base.id)],
        [ConnectionPoint(FeatureKind.EDGE, 0, (0.5, 0.0))],
    )
    return session


def _run_demo(output: Optional[str]) -> int:
    session = build_demo_session()
    _print_pieces(session)
    report = session.validate()
    _print_report(report)
    if output:
        path = save(session.assembly, output)
        print(f"Assembly written to {path}")
    return 0 if report.is_valid else 1


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Validate and build tangram assemblies")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    validate_cmd = commands.add_parser("validate", help="Validate an assembly JSON document")
    validate_cmd.add_argument("path", help="Path to the assembly document")

    demo_cmd = commands.add_parser("demo", help="Build and validate a small demo assembly")
    demo_cmd.add_argument("--output", help="Write the demo assembly document to this path")

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    if args.command == "validate":
        status = _run_validate(args.path)
    else:
        status = _run_demo(args.output)
    if status:
        raise SystemExit(status)


if __name__ == "__main__":
    main(sys.argv[1:])
