import logging
import math

import numpy as np
import pytest

from tangram_engine import config
from tangram_engine.config import CanvasConfig, SlideSearchConfig, ToleranceConfig, ToleranceKind
from tangram_engine.geometry import AffineTransform, kernel
from tangram_engine.logging_utils import debug_log_call, summarize


def test_default_tolerances_are_screen_values_in_catalog_units():
    tol = ToleranceConfig()
    assert tol.vertex_to_vertex == pytest.approx(0.03)
    assert tol.edge_to_edge == pytest.approx(0.04)
    assert tol.for_kind(ToleranceKind.MIXED) == pytest.approx(0.04)
    assert tol.for_kind(ToleranceKind.OVERLAP) == pytest.approx(0.02)


def test_scaled_keeps_unit_free_thresholds():
    scaled = ToleranceConfig().scaled(50.0)
    assert scaled.vertex_to_vertex == pytest.approx(1.5)
    assert scaled.parallel == pytest.approx(0.01)
    with pytest.raises(ValueError):
        ToleranceConfig().scaled(0.0)


@pytest.mark.parametrize("value", [-0.1, math.inf, math.nan])
def test_invalid_tolerances_are_rejected(value):
    with pytest.raises(ValueError):
        ToleranceConfig(overlap=value)


def test_slide_search_counts():
    slide = SlideSearchConfig()
    assert slide.coarse_sample_count == 11
    assert slide.fine_half_steps == 10
    with pytest.raises(ValueError):
        SlideSearchConfig(fine_step=0.0)


def test_canvas_geometry():
    canvas = CanvasConfig()
    assert canvas.size == (16.0, 16.0)
    assert canvas.center == (8.0, 8.0)


def test_global_config_is_copied(monkeypatch):
    monkeypatch.setattr(config, "_TOLERANCE_CONFIG", ToleranceConfig())
    custom = ToleranceConfig(overlap=0.5)
    config.set_tolerance_config(custom)
    custom.overlap = 0.9
    fetched = config.get_tolerance_config()
    assert fetched.overlap == pytest.approx(0.5)
    fetched.overlap = 0.1
    assert config.get_tolerance_config().overlap == pytest.approx(0.5)


def test_summarize_formats_geometry_values():
    assert summarize((1.0, 2.0)) == "(1.0000, 2.0000)"
    assert summarize(np.zeros((2, 2))).startswith("ndarray(shape=(2, 2))")
    assert summarize(AffineTransform.translation(1.0, 2.0)) == "T(rot=0.00, flip=False, t=(1.0000, 2.0000))"
    assert summarize(list(range(10))).endswith("...+4]")


def test_debug_log_call_traces_when_enabled(caplog):
    logger = logging.getLogger("tangram_engine.tests.trace")

    @debug_log_call(logger)
    def double(value):
        return value * 2

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        assert double(3) == 6
    assert "-> " in caplog.text and "<- " in caplog.text


def test_kernel_functions_are_traced():
    assert getattr(kernel.polygon_area, "_debug_logging_wrapped", False)
