"""Tests for plot layout generation and geodesic measurement helpers."""

from __future__ import annotations

from collections import Counter

import numpy as np
import pytest
from shapely.geometry import Polygon, box
from shapely.ops import unary_union

from plotdesigner.core.boundary import FieldBoundary
from plotdesigner.core.geometry import (
    auto_number,
    bounding_box,
    format_plot_number,
    generate_grid_plots,
    generate_strip_plots,
    measure_area,
    measure_distance,
    randomize_treatments,
)
from plotdesigner.core.plots import Plot


def _boundary(ring) -> FieldBoundary:
    return FieldBoundary(Polygon(ring))


def _plots(count: int) -> list[Plot]:
    return [
        Plot(id=f"p{i}", name=f"Plot {i}", footprint=box(i, 0, i + 1, 1))
        for i in range(1, count + 1)
    ]


def test_bounding_box_uses_per_axis_extrema() -> None:
    bbox = bounding_box([(10.0, 50.0), (12.0, 49.0), (11.0, 51.5)])
    assert bbox.min_lat == 49.0
    assert bbox.max_lat == 51.5
    assert bbox.min_lng == 10.0
    assert bbox.max_lng == 12.0


def test_bounding_box_rejects_empty_ring() -> None:
    with pytest.raises(ValueError):
        bounding_box([])


@pytest.mark.parametrize("rows, columns", [(1, 1), (2, 3), (5, 4)])
def test_grid_tiles_bounding_box_exactly(square_ring, rows, columns) -> None:
    plots = generate_grid_plots(_boundary(square_ring), rows, columns)
    assert len(plots) == rows * columns

    bbox = bounding_box(square_ring)
    union = unary_union([plot.footprint for plot in plots])
    expected = box(bbox.min_lng, bbox.min_lat, bbox.max_lng, bbox.max_lat)
    assert union.bounds == pytest.approx(expected.bounds)
    assert union.area == pytest.approx(expected.area, rel=1e-9)
    assert sum(plot.footprint.area for plot in plots) == pytest.approx(expected.area, rel=1e-9)


def test_grid_is_row_major_and_numbered(square_ring) -> None:
    plots = generate_grid_plots(_boundary(square_ring), 2, 2)

    assert [plot.plot_number for plot in plots] == ["P1", "P2", "P3", "P4"]
    assert [plot.name for plot in plots] == ["Plot 1", "Plot 2", "Plot 3", "Plot 4"]
    assert [plot.id for plot in plots] == ["plot-1", "plot-2", "plot-3", "plot-4"]
    # P1 and P2 share the southern row, P2 east of P1
    assert plots[0].footprint.bounds[1] == plots[1].footprint.bounds[1]
    assert plots[1].footprint.bounds[0] > plots[0].footprint.bounds[0]
    assert plots[2].footprint.bounds[1] > plots[0].footprint.bounds[1]
    assert all(plot.treatment is None and plot.repetition_label is None for plot in plots)


def test_grid_cells_are_closed_rectangles(square_ring) -> None:
    plots = generate_grid_plots(_boundary(square_ring), 3, 3)
    for plot in plots:
        assert len(plot.ring) == 5
        assert plot.ring[0] == plot.ring[-1]


@pytest.mark.parametrize("rows, columns", [(0, 2), (2, 0), (-1, 1)])
def test_grid_rejects_non_positive_counts(square_ring, rows, columns) -> None:
    with pytest.raises(ValueError):
        generate_grid_plots(_boundary(square_ring), rows, columns)


@pytest.mark.parametrize("strips", [1, 4, 7])
def test_strips_span_full_latitude(square_ring, strips) -> None:
    plots = generate_strip_plots(_boundary(square_ring), strips)
    bbox = bounding_box(square_ring)

    assert len(plots) == strips
    for plot in plots:
        _, min_lat, _, max_lat = plot.footprint.bounds
        assert min_lat == bbox.min_lat
        assert max_lat == bbox.max_lat
    assert plots[-1].footprint.bounds[2] == bbox.max_lng
    assert plots[0].plot_number == "S1"
    assert plots[0].name == "Strip 1"


def test_strips_reject_zero() -> None:
    ring = [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]
    with pytest.raises(ValueError):
        generate_strip_plots(_boundary(ring), 0)


def test_format_plot_number_pads() -> None:
    assert format_plot_number(7) == "P07"
    assert format_plot_number(12, "S", 3) == "S012"


def test_auto_number_is_sequential_and_idempotent() -> None:
    plots = _plots(3)
    numbered = auto_number(plots)
    assert [plot.plot_number for plot in numbered] == ["P01", "P02", "P03"]
    assert auto_number(numbered) == numbered
    assert [plot.id for plot in numbered] == [plot.id for plot in plots]
    assert [plot.footprint for plot in numbered] == [plot.footprint for plot in plots]


def test_randomize_is_bijection_when_counts_match() -> None:
    treatment_ids = ["1", "2", "3", "4", "5"]
    assigned = randomize_treatments(_plots(5), treatment_ids, np.random.default_rng(7))
    assert sorted(plot.treatment for plot in assigned) == treatment_ids


def test_randomize_cycles_with_floor_coverage() -> None:
    assigned = randomize_treatments(_plots(7), ["a", "b", "c"], np.random.default_rng(3))
    counts = Counter(plot.treatment for plot in assigned)
    assert set(counts) == {"a", "b", "c"}
    assert all(count >= 7 // 3 for count in counts.values())
    # Cyclic assignment: plot i and plot i + k share the treatment
    assert assigned[0].treatment == assigned[3].treatment == assigned[6].treatment


def test_randomize_edge_cases() -> None:
    assert randomize_treatments([], ["1"]) == []
    with pytest.raises(ValueError):
        randomize_treatments(_plots(2), [])


def test_distance_of_one_degree_at_equator() -> None:
    assert measure_distance([(0.0, 0.0), (1.0, 0.0)]) == pytest.approx(111_320, rel=0.01)


def test_distance_degenerate_inputs() -> None:
    assert measure_distance([]) == 0.0
    assert measure_distance([(139.0, 35.0)]) == 0.0


def test_area_of_one_degree_square_at_equator() -> None:
    open_ring = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
    closed_ring = open_ring + [open_ring[0]]
    assert measure_area(open_ring) == pytest.approx(1.24e10, rel=0.02)
    assert measure_area(closed_ring) == pytest.approx(measure_area(open_ring))


def test_area_degenerate_inputs() -> None:
    assert measure_area([(0.0, 0.0), (1.0, 0.0)]) == 0.0
    assert measure_area([(0.0, 0.0), (1.0, 0.0), (0.0, 0.0)]) == 0.0
