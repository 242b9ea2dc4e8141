"""
Tests for numeric sampling and figure building.
"""

import pytest

from expression import ExpressionError
from plotting import PLOT_CONFIG, build_figure, figure_payload
from sampler import sample_expression


def test_default_domain_has_301_points():
    samples = sample_expression("2x+3")
    assert len(samples.xs) == 301
    assert len(samples.ys) == 301
    assert samples.xs[0] == -10
    assert samples.xs[-1] == 10
    assert samples.ys[150] == pytest.approx(3.0)


def test_failed_points_become_gaps():
    samples = sample_expression("sqrt(x)")
    assert len(samples.xs) == 301
    assert len(samples.ys) == 301
    assert all(y is None for x, y in zip(samples.xs, samples.ys) if x < 0)
    assert all(y is not None for x, y in zip(samples.xs, samples.ys) if x >= 0)


def test_division_by_zero_is_a_gap():
    samples = sample_expression("1/x", x_min=-1, x_max=1, intervals=2)
    assert samples.xs == [-1.0, 0.0, 1.0]
    assert samples.ys == [-1.0, None, 1.0]


def test_overflow_is_a_gap():
    samples = sample_expression("exp(x)", x_min=0, x_max=1000, intervals=1)
    assert samples.ys[0] == 1.0
    assert samples.ys[1] is None


def test_every_point_failing_still_fills_all_slots():
    samples = sample_expression("sqrt(x - 100)")
    assert len(samples.ys) == 301
    assert samples.ys == [None] * 301


def test_invalid_expression_aborts():
    with pytest.raises(ExpressionError):
        sample_expression("2x +* 3")


@pytest.mark.parametrize("kwargs", [
    {"x_min": 5, "x_max": 5},
    {"x_min": 5, "x_max": -5},
    {"x_min": -1e308, "x_max": 1e308},
    {"x_min": float("-inf"), "x_max": 0},
    {"intervals": 0},
])
def test_bad_domain(kwargs):
    with pytest.raises(ValueError):
        sample_expression("x", **kwargs)


def test_figure_theme():
    fig = build_figure(sample_expression("x^2"))
    trace = fig.data[0]
    assert len(fig.data) == 1
    assert trace.mode == "lines"
    assert trace.line.color == "#ffffff"
    assert trace.connectgaps is False
    assert len(trace.x) == 301
    assert fig.layout.paper_bgcolor == "rgba(0,0,0,0)"
    assert fig.layout.plot_bgcolor == "rgba(0,0,0,0)"
    assert fig.layout.xaxis.gridcolor == "rgba(255,255,255,0.15)"


def test_figure_payload_is_json_ready():
    payload = figure_payload(sample_expression("1/x", x_min=-1, x_max=1, intervals=2))
    assert set(payload) == {"data", "layout", "config"}
    assert payload["config"] == PLOT_CONFIG
    assert payload["data"][0]["y"] == [-1.0, None, 1.0]
