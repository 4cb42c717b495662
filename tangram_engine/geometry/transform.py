"""2x3 affine transforms for placing pieces in canvas space."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import numpy as np

Point = Tuple[float, float]


@dataclass(frozen=True)
class AffineTransform:
    """Affine map ``(x, y) -> (a*x + c*y + tx, b*x + d*y + ty)``."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls()

    @classmethod
    def translation(cls, dx: float, dy: float) -> "AffineTransform":
        return cls(tx=float(dx), ty=float(dy))

    @classmethod
    def rotation(cls, degrees: float) -> "AffineTransform":
        radians = math.radians(degrees)
        cos_t = math.cos(radians)
        sin_t = math.sin(radians)
        return cls(a=cos_t, b=sin_t, c=-sin_t, d=cos_t)

    @classmethod
    def scale(cls, sx: float, sy: float) -> "AffineTransform":
        return cls(a=float(sx), d=float(sy))

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "AffineTransform":
        m = np.asarray(matrix, dtype=float)
        if m.shape not in {(2, 3), (3, 3)}:
            raise ValueError(f"expected a 2x3 or 3x3 matrix, got shape {m.shape}")
        return cls(
            a=float(m[0, 0]),
            b=float(m[1, 0]),
            c=float(m[0, 1]),
            d=float(m[1, 1]),
            tx=float(m[0, 2]),
            ty=float(m[1, 2]),
        )

    @classmethod
    def from_components(cls, components: Dict[str, float]) -> "AffineTransform":
        return cls(**{key: float(components[key]) for key in ("a", "b", "c", "d", "tx", "ty")})

    def matrix(self) -> np.ndarray:
        """Homogeneous 3x3 matrix acting on column vectors."""

        return np.array(
            [
                [self.a, self.c, self.tx],
                [self.b, self.d, self.ty],
                [0.0, 0.0, 1.0],
            ],
            dtype=float,
        )

    def concatenating(self, other: "AffineTransform") -> "AffineTransform":
        """Return the transform that applies ``self`` first, then ``other``."""

        return AffineTransform.from_matrix(other.matrix() @ self.matrix())

    def translated_by(self, dx: float, dy: float) -> "AffineTransform":
        return AffineTransform(self.a, self.b, self.c, self.d, self.tx + dx, self.ty + dy)

    def apply(self, point: Point) -> Point:
        x, y = point
        return (self.a * x + self.c * y + self.tx, self.b * x + self.d * y + self.ty)

    def apply_many(self, points: Iterable[Point]) -> List[Point]:
        arr = np.asarray(list(points), dtype=float)
        if arr.size == 0:
            return []
        moved = arr @ self.matrix()[:2, :2].T + np.array([self.tx, self.ty])
        return [(float(x), float(y)) for x, y in moved]

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    @property
    def is_flipped(self) -> bool:
        return self.determinant < 0.0

    @property
    def rotation_degrees(self) -> float:
        """Rotation angle of the linear part in degrees, in ``[0, 360)``.

        For a mirrored transform this is the rotation applied after the flip.
        """

        if self.is_flipped:
            angle = math.degrees(math.atan2(-self.b, -self.a))
        else:
            angle = math.degrees(math.atan2(self.b, self.a))
        return angle % 360.0

    @property
    def translation_component(self) -> Point:
        return (self.tx, self.ty)

    def is_finite(self) -> bool:
        return all(math.isfinite(value) for value in self.components())

    def components(self) -> Tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.tx, self.ty)

    def is_close(self, other: "AffineTransform", tolerance: float = 1e-9) -> bool:
        return all(abs(x - y) <= tolerance for x, y in zip(self.components(), other.components()))

    def log_summary(self) -> str:
        return (
            f"T(rot={self.rotation_degrees:.2f}, flip={self.is_flipped}, "
            f"t=({self.tx:.4f}, {self.ty:.4f}))"
        )


__all__ = ["AffineTransform", "Point"]
