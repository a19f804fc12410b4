"""
Plot layout generation and geodesic measurement helpers.

Layouts are tessellated in raw lng/lat space by linear interpolation of the
boundary bounding box. Cells are therefore not equal-area on the ground; for
field-sized extents the error is negligible.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, NamedTuple, Sequence

import numpy as np
from shapely.geometry import Polygon

from plotdesigner.core.plots import Plot

if TYPE_CHECKING:
    from plotdesigner.core.boundary import FieldBoundary

EARTH_RADIUS_M = 6378137.0

GRID_NUMBER_PREFIX = "P"
STRIP_NUMBER_PREFIX = "S"


class BoundingBox(NamedTuple):
    """Lat/lng extrema of a ring."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


def bounding_box(ring: Sequence[Sequence[float]]) -> BoundingBox:
    """Compute lat/lng extrema of a ring of ``(lng, lat)`` points.

    Parameters
    ----------
    ring : Sequence[Sequence[float]]
        Points as ``(lng, lat)`` pairs, at least one.

    Returns
    -------
    BoundingBox
        Extrema computed independently per axis.

    Examples
    --------
    >>> bounding_box([(1.0, 2.0), (3.0, -1.0)])
    BoundingBox(min_lat=-1.0, max_lat=2.0, min_lng=1.0, max_lng=3.0)
    """
    ring_array = np.asarray(ring, dtype=np.float64)
    if ring_array.size == 0:
        raise ValueError("ring is empty")
    if ring_array.ndim != 2 or ring_array.shape[1] < 2:
        raise ValueError("ring must have shape (N, 2)")
    lngs = ring_array[:, 0]
    lats = ring_array[:, 1]
    return BoundingBox(
        float(lats.min()), float(lats.max()), float(lngs.min()), float(lngs.max())
    )


def _rectangle(min_lng: float, min_lat: float, max_lng: float, max_lat: float) -> Polygon:
    """Build the closed 5-point rectangle for one cell."""
    return Polygon(
        [
            (min_lng, min_lat),
            (max_lng, min_lat),
            (max_lng, max_lat),
            (min_lng, max_lat),
            (min_lng, min_lat),
        ]
    )


def _axis_edges(start: float, stop: float, count: int) -> np.ndarray:
    """Return ``count + 1`` cell edges with exact end points."""
    return np.linspace(start, stop, count + 1, dtype=np.float64)


def generate_grid_plots(boundary: FieldBoundary, rows: int, columns: int) -> list[Plot]:
    """Divide the boundary bounding box into ``rows x columns`` plots.

    Parameters
    ----------
    boundary : FieldBoundary
        Field boundary whose bounding box is tessellated.
    rows : int
        Number of latitude divisions, ``>= 1``.
    columns : int
        Number of longitude divisions, ``>= 1``.

    Returns
    -------
    list[Plot]
        Plots in row-major order (south row first, west to east), numbered
        ``P1..Pn``. Treatment and repetition are left unset.
    """
    if rows < 1 or columns < 1:
        raise ValueError(f"rows and columns must be >= 1, got {rows}x{columns}")
    bbox = bounding_box(boundary.ring)
    lat_edges = _axis_edges(bbox.min_lat, bbox.max_lat, rows)
    lng_edges = _axis_edges(bbox.min_lng, bbox.max_lng, columns)
    plots: list[Plot] = []
    for row_index in range(rows):
        for col_index in range(columns):
            plot_num = len(plots) + 1
            footprint = _rectangle(
                lng_edges[col_index],
                lat_edges[row_index],
                lng_edges[col_index + 1],
                lat_edges[row_index + 1],
            )
            plots.append(
                Plot(
                    id=f"plot-{plot_num}",
                    name=f"Plot {plot_num}",
                    footprint=footprint,
                    plot_number=f"{GRID_NUMBER_PREFIX}{plot_num}",
                )
            )
    return plots


def generate_strip_plots(boundary: FieldBoundary, strips: int) -> list[Plot]:
    """Divide the boundary bounding box into vertical longitude bands.

    Parameters
    ----------
    boundary : FieldBoundary
        Field boundary whose bounding box is divided.
    strips : int
        Number of bands, ``>= 1``.

    Returns
    -------
    list[Plot]
        West-to-east strips spanning the full latitude extent, numbered
        ``S1..Sn``.
    """
    if strips < 1:
        raise ValueError(f"strips must be >= 1, got {strips}")
    bbox = bounding_box(boundary.ring)
    lng_edges = _axis_edges(bbox.min_lng, bbox.max_lng, strips)
    plots: list[Plot] = []
    for strip_index in range(strips):
        plot_num = strip_index + 1
        footprint = _rectangle(
            lng_edges[strip_index], bbox.min_lat, lng_edges[strip_index + 1], bbox.max_lat
        )
        plots.append(
            Plot(
                id=f"plot-{plot_num}",
                name=f"Strip {plot_num}",
                footprint=footprint,
                plot_number=f"{STRIP_NUMBER_PREFIX}{plot_num}",
            )
        )
    return plots


def format_plot_number(index: int, prefix: str = GRID_NUMBER_PREFIX, width: int = 2) -> str:
    """Format a 1-based plot index as a zero-padded label, e.g. ``P07``."""
    return f"{prefix}{index:0{width}d}"


def auto_number(plots: Sequence[Plot], prefix: str = GRID_NUMBER_PREFIX, width: int = 2) -> list[Plot]:
    """Relabel plot numbers sequentially in the given order.

    Returns new plot objects; only ``plot_number`` differs from the input.
    """
    return [
        replace(plot, plot_number=format_plot_number(index, prefix, width))
        for index, plot in enumerate(plots, start=1)
    ]


def randomize_treatments(
    plots: Sequence[Plot],
    treatment_ids: Sequence[str],
    rng: np.random.Generator | None = None,
) -> list[Plot]:
    """Assign a uniformly shuffled treatment sequence to plots.

    Parameters
    ----------
    plots : Sequence[Plot]
        Plots in assignment order.
    treatment_ids : Sequence[str]
        Treatment ids to shuffle.
    rng : numpy.random.Generator, optional
        Random source; a fresh default generator when omitted.

    Returns
    -------
    list[Plot]
        Copies of ``plots`` where plot ``i`` receives
        ``shuffled[i % len(shuffled)]``, so treatments cycle when there are
        more plots than treatments.
    """
    if not plots:
        return []
    if not treatment_ids:
        raise ValueError("treatment_ids must not be empty")
    generator = rng if rng is not None else np.random.default_rng()
    order = generator.permutation(len(treatment_ids))
    shuffled = [treatment_ids[int(i)] for i in order]
    return [
        replace(plot, treatment=shuffled[index % len(shuffled)])
        for index, plot in enumerate(plots)
    ]


def measure_distance(points: Sequence[Sequence[float]]) -> float:
    """Sum haversine distances between consecutive ``(lng, lat)`` points.

    Returns
    -------
    float
        Path length in meters, ``0.0`` for fewer than two points.
    """
    point_array = np.asarray(points, dtype=np.float64)
    if point_array.ndim != 2 or point_array.shape[0] < 2:
        return 0.0
    lng = np.radians(point_array[:, 0])
    lat = np.radians(point_array[:, 1])
    d_lat = np.diff(lat)
    d_lng = np.diff(lng)
    hav = (
        np.sin(d_lat / 2.0) ** 2
        + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(d_lng / 2.0) ** 2
    )
    central_angle = 2.0 * np.arctan2(np.sqrt(hav), np.sqrt(np.clip(1.0 - hav, 0.0, None)))
    return float(np.sum(EARTH_RADIUS_M * central_angle))


def measure_area(ring: Sequence[Sequence[float]]) -> float:
    """Compute the spherical area enclosed by a ``(lng, lat)`` ring.

    The closing point may be given or omitted; it is never counted twice.

    Returns
    -------
    float
        Area in square meters, ``0.0`` for fewer than three distinct points.
    """
    ring_array = np.asarray(ring, dtype=np.float64)
    if ring_array.ndim != 2 or ring_array.shape[0] < 3:
        return 0.0
    if np.array_equal(ring_array[0], ring_array[-1]):
        ring_array = ring_array[:-1]
    if len(np.unique(ring_array[:, :2], axis=0)) < 3:
        return 0.0
    lng = np.radians(ring_array[:, 0])
    lat = np.radians(ring_array[:, 1])
    lng_next = np.roll(lng, -1)
    lat_next = np.roll(lat, -1)
    total = np.sum((lng_next - lng) * (2.0 + np.sin(lat) + np.sin(lat_next)))
    return float(abs(total) * EARTH_RADIUS_M**2 / 2.0)
