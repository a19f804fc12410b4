"""Point accumulator for on-map distance and area measurement."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import geopandas as gpd
from shapely.geometry import LineString, Polygon

from plotdesigner.core.geometry import measure_area, measure_distance
from plotdesigner.core.plots import WGS84

AREA_PREVIEW_MIN_POINTS = 3


class MeasurementKind(str, Enum):
    """Measured quantity."""

    DISTANCE = "distance"
    AREA = "area"


@dataclass(frozen=True)
class MeasurementResult:
    """Transient measurement output.

    Parameters
    ----------
    kind : MeasurementKind
        ``distance`` (meters) or ``area`` (square meters).
    value : float
        Measured value in SI units.
    """

    kind: MeasurementKind
    value: float

    def format(self) -> str:
        """Return a display string in km or ha.

        Examples
        --------
        >>> MeasurementResult(MeasurementKind.AREA, 12345.0).format()
        'Area: 1.23 ha'
        """
        if self.kind == MeasurementKind.AREA:
            return f"Area: {self.value / 10000:.2f} ha"
        return f"Distance: {self.value / 1000:.2f} km"


class MeasurementTool:
    """Collect clicked map points and compute the finished measurement.

    The tool only accumulates points; subscription to map events and
    preview-layer rendering belong to the interaction controller.
    """

    def __init__(self) -> None:
        self._points: list[tuple[float, float]] = []

    @property
    def points(self) -> list[tuple[float, float]]:
        return list(self._points)

    def reset(self) -> None:
        self._points = []

    def add_point(self, lng: float, lat: float) -> None:
        self._points.append((float(lng), float(lat)))

    def has_area_preview(self) -> bool:
        """Return True once enough points exist for a polygon preview."""
        return len(self._points) >= AREA_PREVIEW_MIN_POINTS

    def line_preview(self) -> gpd.GeoDataFrame | None:
        """Return the polyline through collected points, if drawable."""
        if len(self._points) < 2:
            return None
        return gpd.GeoDataFrame(
            {"kind": ["line"]}, geometry=[LineString(self._points)], crs=WGS84
        )

    def polygon_preview(self) -> gpd.GeoDataFrame | None:
        """Return the polygon through collected points once it has 3 points."""
        if not self.has_area_preview():
            return None
        return gpd.GeoDataFrame(
            {"kind": ["area"]}, geometry=[Polygon(self._points)], crs=WGS84
        )

    def finish(self) -> MeasurementResult:
        """Compute the result for the collected points.

        Three or more points measure the enclosed area; otherwise the path
        length is reported, which is ``0.0`` for degenerate input.
        """
        if self.has_area_preview():
            return MeasurementResult(MeasurementKind.AREA, measure_area(self._points))
        return MeasurementResult(MeasurementKind.DISTANCE, measure_distance(self._points))
