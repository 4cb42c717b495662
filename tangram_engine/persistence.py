"""JSON documents for assemblies."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Union

from .geometry import AffineTransform, PieceType
from .model import (
    Assembly,
    Connection,
    Constraint,
    EdgeToEdge,
    Fixed,
    PersistedConnectionType,
    PlacedPiece,
    Rotation,
    Translation,
    UnknownPieceError,
    VertexToVertex,
)

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_TRANSFORM_KEYS = ("a", "b", "c", "d", "tx", "ty")


class DocumentError(ValueError):
    """Raised when a persisted assembly document is malformed."""


def _require(payload: Dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(payload, dict):
        raise DocumentError(f"{where}: expected an object")
    if key not in payload:
        raise DocumentError(f"{where}: missing field {key!r}")
    return payload[key]


def _number(payload: Dict[str, Any], key: str, where: str) -> float:
    value = _require(payload, key, where)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise DocumentError(f"{where}: field {key!r} must be a number, got {value!r}") from exc


def _integer(payload: Dict[str, Any], key: str, where: str, default: Any = None) -> int:
    value = payload.get(key, default) if default is not None else _require(payload, key, where)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise DocumentError(f"{where}: field {key!r} must be an integer, got {value!r}")
    try:
        return int(value)
    except (OverflowError, ValueError) as exc:
        raise DocumentError(f"{where}: field {key!r} must be an integer, got {value!r}") from exc


def _entries(payload: Dict[str, Any], key: str) -> List[Any]:
    entries = payload.get(key, [])
    if not isinstance(entries, list):
        raise DocumentError(f"field {key!r} must be a list")
    return entries


def transform_to_dict(transform: AffineTransform) -> Dict[str, float]:
    return dict(zip(_TRANSFORM_KEYS, transform.components()))


def transform_from_dict(payload: Dict[str, Any], where: str = "transform") -> AffineTransform:
    if not isinstance(payload, dict):
        raise DocumentError(f"{where}: expected an object")
    values = [_require(payload, key, where) for key in _TRANSFORM_KEYS]
    try:
        return AffineTransform(*(float(value) for value in values))
    except (TypeError, ValueError) as exc:
        raise DocumentError(f"{where}: transform components must be numbers") from exc


def connection_type_to_dict(conn_type: PersistedConnectionType) -> Dict[str, Any]:
    if isinstance(conn_type, VertexToVertex):
        index_a, index_b = conn_type.vertex_a, conn_type.vertex_b
    elif isinstance(conn_type, EdgeToEdge):
        index_a, index_b = conn_type.edge_a, conn_type.edge_b
    else:
        raise DocumentError(f"connection type {conn_type.tag!r} cannot be persisted")
    return {
        "type": conn_type.tag,
        "pieceA": conn_type.piece_a,
        "indexA": index_a,
        "pieceB": conn_type.piece_b,
        "indexB": index_b,
    }


def connection_type_from_dict(payload: Dict[str, Any], where: str) -> PersistedConnectionType:
    tag = _require(payload, "type", where)
    args = (
        str(_require(payload, "pieceA", where)),
        _integer(payload, "indexA", where),
        str(_require(payload, "pieceB", where)),
        _integer(payload, "indexB", where),
    )
    if tag == VertexToVertex.tag:
        return VertexToVertex(*args)
    if tag == EdgeToEdge.tag:
        return EdgeToEdge(*args)
    raise DocumentError(f"{where}: unknown connection type {tag!r}")


def constraint_to_dict(constraint: Constraint) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"type": constraint.tag, "affectedPieceId": constraint.affected_piece_id}
    if isinstance(constraint, Rotation):
        payload.update(
            centerX=constraint.center[0],
            centerY=constraint.center[1],
            rangeLower=constraint.angle_range[0],
            rangeUpper=constraint.angle_range[1],
        )
    elif isinstance(constraint, Translation):
        payload.update(
            vectorDx=constraint.direction[0],
            vectorDy=constraint.direction[1],
            rangeLower=constraint.offset_range[0],
            rangeUpper=constraint.offset_range[1],
        )
    return payload


def constraint_from_dict(payload: Dict[str, Any], where: str) -> Constraint:
    tag = _require(payload, "type", where)
    affected = str(_require(payload, "affectedPieceId", where))
    if tag == Fixed.tag:
        return Fixed(affected)
    bounds = (_number(payload, "rangeLower", where), _number(payload, "rangeUpper", where))
    if tag == Rotation.tag:
        center = (_number(payload, "centerX", where), _number(payload, "centerY", where))
        return Rotation(affected, center, bounds)
    if tag == Translation.tag:
        direction = (_number(payload, "vectorDx", where), _number(payload, "vectorDy", where))
        return Translation(affected, direction, bounds)
    raise DocumentError(f"{where}: unknown constraint type {tag!r}")


def assembly_to_dict(assembly: Assembly) -> Dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "id": assembly.id,
        "name": assembly.name,
        "pieces": [
            {
                "id": piece.id,
                "type": piece.type.value,
                "transform": transform_to_dict(piece.transform),
                "isLocked": piece.is_locked,
                "zIndex": piece.z_index,
            }
            for piece in assembly.pieces
        ],
        "connections": [
            {
                "id": conn.id,
                **connection_type_to_dict(conn.type),
                "createdAt": conn.created_at.isoformat(),
                "constraint": constraint_to_dict(conn.constraint),
            }
            for conn in assembly.connections
        ],
        "checksum": assembly.refresh_checksum(),
    }


def _piece_from_dict(payload: Dict[str, Any], where: str) -> PlacedPiece:
    raw_type = _require(payload, "type", where)
    try:
        piece_type = PieceType(raw_type)
    except ValueError as exc:
        raise DocumentError(f"{where}: unknown piece type {raw_type!r}") from exc
    return PlacedPiece(
        type=piece_type,
        transform=transform_from_dict(_require(payload, "transform", where), f"{where}.transform"),
        id=str(_require(payload, "id", where)),
        is_locked=bool(payload.get("isLocked", False)),
        z_index=_integer(payload, "zIndex", where, default=0),
    )


def _parse_timestamp(value: Any, where: str) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise DocumentError(f"{where}: invalid createdAt {value!r}") from exc


def assembly_from_dict(payload: Dict[str, Any]) -> Assembly:
    """Rebuild an assembly; piece connection lists are derived from the connections."""

    if not isinstance(payload, dict):
        raise DocumentError("document must be a JSON object")
    version = payload.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise DocumentError(f"unsupported document version {version!r}")

    pieces: List[PlacedPiece] = [
        _piece_from_dict(entry, f"pieces[{idx}]") for idx, entry in enumerate(_entries(payload, "pieces"))
    ]
    assembly = Assembly(name=str(payload.get("name", "Untitled")), pieces=pieces)
    if "id" in payload:
        assembly.id = str(payload["id"])
    if len({piece.id for piece in pieces}) != len(pieces):
        raise DocumentError("duplicate piece ids")

    for idx, entry in enumerate(_entries(payload, "connections")):
        where = f"connections[{idx}]"
        connection = Connection(
            type=connection_type_from_dict(entry, where),
            constraint=constraint_from_dict(_require(entry, "constraint", where), f"{where}.constraint"),
            id=str(_require(entry, "id", where)),
            created_at=_parse_timestamp(entry.get("createdAt"), where),
        )
        try:
            assembly.add_connection(connection)
        except UnknownPieceError as exc:
            raise DocumentError(f"{where}: references missing piece {exc.piece_id!r}") from exc
        except ValueError as exc:
            raise DocumentError(f"{where}: {exc}") from exc

    stored = payload.get("checksum")
    if stored is not None and stored != assembly.checksum:
        logger.warning("Checksum mismatch for %s: stored %s, computed %s", assembly.name, stored, assembly.checksum)
    return assembly


def dumps(assembly: Assembly, *, indent: int = 2) -> str:
    return json.dumps(assembly_to_dict(assembly), indent=indent)


def loads(text: str) -> Assembly:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentError(f"invalid JSON: {exc}") from exc
    return assembly_from_dict(payload)


def save(assembly: Assembly, path: Union[str, Path]) -> Path:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(dumps(assembly), encoding="utf-8")
    logger.info("Wrote assembly %s to %s", assembly.name, output_path)
    return output_path


def load(path: Union[str, Path]) -> Assembly:
    return loads(Path(path).read_text(encoding="utf-8"))


__all__ = [
    "FORMAT_VERSION",
    "DocumentError",
    "transform_to_dict",
    "transform_from_dict",
    "connection_type_to_dict",
    "connection_type_from_dict",
    "constraint_to_dict",
    "constraint_from_dict",
    "assembly_to_dict",
    "assembly_from_dict",
    "dumps",
    "loads",
    "save",
    "load",
]
