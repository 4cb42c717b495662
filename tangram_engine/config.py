"""Tolerance, sliding-search and canvas configuration."""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Tuple

# Screen-space editor tolerances were tuned at 50 display units per catalog unit.
DISPLAY_SCALE = 50.0


class ToleranceKind(str, Enum):
    VERTEX_TO_VERTEX = "vertexToVertex"
    EDGE_TO_EDGE = "edgeToEdge"
    VERTEX_TO_EDGE = "vertexToEdge"
    MIXED = "mixed"
    OVERLAP = "overlap"


@dataclass
class ToleranceConfig:
    """Named tolerances, one per geometric relationship kind.

    ``overlap`` is applied as a negative bias to SAT gaps so touching polygons
    are not reported as overlapping. ``point_equality`` is the tight value used
    when classifying contacts; declared joins are checked with the per-kind
    values.
    """

    vertex_to_vertex: float = 1.5 / DISPLAY_SCALE
    edge_to_edge: float = 2.0 / DISPLAY_SCALE
    vertex_to_edge: float = 2.0 / DISPLAY_SCALE
    mixed: float = 2.0 / DISPLAY_SCALE
    overlap: float = 1.0 / DISPLAY_SCALE
    point_equality: float = 1e-5
    parallel: float = 0.01
    degenerate_determinant: float = 1e-4

    def __post_init__(self) -> None:
        for field in fields(self):
            value = getattr(self, field.name)
            if not math.isfinite(value) or value < 0.0:
                raise ValueError(f"tolerance {field.name} must be a finite non-negative number, got {value!r}")

    def for_kind(self, kind: ToleranceKind) -> float:
        if kind is ToleranceKind.VERTEX_TO_VERTEX:
            return self.vertex_to_vertex
        if kind is ToleranceKind.EDGE_TO_EDGE:
            return self.edge_to_edge
        if kind is ToleranceKind.VERTEX_TO_EDGE:
            return self.vertex_to_edge
        if kind is ToleranceKind.MIXED:
            return self.mixed
        return self.overlap

    def scaled(self, factor: float) -> "ToleranceConfig":
        """Return a copy with every distance tolerance multiplied by ``factor``.

        The parallel and determinant thresholds are unit-free and stay as is.
        """

        if factor <= 0.0:
            raise ValueError("scale factor must be positive")
        return replace(
            self,
            vertex_to_vertex=self.vertex_to_vertex * factor,
            edge_to_edge=self.edge_to_edge * factor,
            vertex_to_edge=self.vertex_to_edge * factor,
            mixed=self.mixed * factor,
            overlap=self.overlap * factor,
            point_equality=self.point_equality * factor,
        )


@dataclass
class SlideSearchConfig:
    coarse_step: float = 0.10
    fine_window: float = 0.05
    fine_step: float = 0.005

    def __post_init__(self) -> None:
        if self.coarse_step <= 0.0 or self.fine_step <= 0.0:
            raise ValueError("slide search steps must be positive")
        if self.fine_window < 0.0:
            raise ValueError("fine_window must be non-negative")

    @property
    def coarse_sample_count(self) -> int:
        return int(round(1.0 / self.coarse_step)) + 1

    @property
    def fine_half_steps(self) -> int:
        return int(round(self.fine_window / self.fine_step))


@dataclass
class CanvasConfig:
    width: float = 16.0
    height: float = 16.0
    margin: float = 1.0

    @property
    def size(self) -> Tuple[float, float]:
        return (self.width, self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.width * 0.5, self.height * 0.5)


_TOLERANCE_CONFIG = ToleranceConfig()
_SLIDE_SEARCH_CONFIG = SlideSearchConfig()
_CANVAS_CONFIG = CanvasConfig()


def get_tolerance_config() -> ToleranceConfig:
    return copy.deepcopy(_TOLERANCE_CONFIG)


def set_tolerance_config(config: ToleranceConfig) -> None:
    global _TOLERANCE_CONFIG
    _TOLERANCE_CONFIG = copy.deepcopy(config)


def get_slide_search_config() -> SlideSearchConfig:
    return copy.deepcopy(_SLIDE_SEARCH_CONFIG)


def set_slide_search_config(config: SlideSearchConfig) -> None:
    global _SLIDE_SEARCH_CONFIG
    _SLIDE_SEARCH_CONFIG = copy.deepcopy(config)


def get_canvas_config() -> CanvasConfig:
    return copy.deepcopy(_CANVAS_CONFIG)


def set_canvas_config(config: CanvasConfig) -> None:
    global _CANVAS_CONFIG
    _CANVAS_CONFIG = copy.deepcopy(config)


__all__ = [
    "DISPLAY_SCALE",
    "ToleranceKind",
    "ToleranceConfig",
    "SlideSearchConfig",
    "CanvasConfig",
    "get_tolerance_config",
    "set_tolerance_config",
    "get_slide_search_config",
    "set_slide_search_config",
    "get_canvas_config",
    "set_canvas_config",
]
