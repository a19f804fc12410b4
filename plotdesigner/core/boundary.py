"""Field boundary holder with import/export helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import geopandas as gpd
from loguru import logger
from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon, Polygon, mapping, shape

from plotdesigner.core.errors import InvalidFormatError
from plotdesigner.core.plots import WGS84

MIN_RING_POINTS = 4


@dataclass(frozen=True)
class FieldBoundary:
    """Single outer field boundary in lng/lat degrees."""

    polygon: Polygon

    @property
    def ring(self) -> list[tuple[float, float]]:
        """Return the closed exterior ring as ``(lng, lat)`` tuples."""
        return [(float(x), float(y)) for x, y in self.polygon.exterior.coords]

    def is_valid(self) -> bool:
        """Return True when the ring is closed with at least four points."""
        ring = self.ring
        return len(ring) >= MIN_RING_POINTS and ring[0] == ring[-1]


def _single_polygon(geom: Any) -> Polygon:
    """Reduce a parsed geometry to the single polygon it must contain."""
    if isinstance(geom, MultiPolygon):
        if len(geom.geoms) != 1:
            raise InvalidFormatError(
                f"Boundary must contain exactly one polygon, got {len(geom.geoms)}"
            )
        geom = geom.geoms[0]
    if not isinstance(geom, Polygon):
        raise InvalidFormatError(
            f"Boundary geometry must be polygon-like, got {getattr(geom, 'geom_type', type(geom).__name__)}"
        )
    if geom.is_empty:
        raise InvalidFormatError("boundary contains empty geometry")
    if len(geom.exterior.coords) < MIN_RING_POINTS:
        raise InvalidFormatError("boundary ring needs at least 4 points")
    return Polygon(geom.exterior.coords)


def _check_raw_ring(geometry: Mapping[str, Any]) -> None:
    """Reject short rings before shapely sees them.

    Shapely refuses to build rings with fewer than four coordinates, so the
    raw coordinates are checked first to report a format error instead.
    """
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if geom_type == "Polygon":
        rings = [coordinates[0]] if coordinates else []
    elif geom_type == "MultiPolygon":
        rings = [part[0] for part in coordinates or [] if part]
    else:
        raise InvalidFormatError(f"Boundary geometry must be polygon-like, got {geom_type}")
    if not rings or any(len(ring) < MIN_RING_POINTS for ring in rings):
        raise InvalidFormatError("boundary ring needs at least 4 points")


def _geometry_from_mapping(document: Mapping[str, Any]) -> Mapping[str, Any]:
    """Extract the geometry mapping from a GeoJSON document."""
    doc_type = document.get("type")
    if doc_type == "FeatureCollection":
        features = document.get("features") or []
        if len(features) != 1:
            raise InvalidFormatError(
                f"Boundary must contain exactly one feature, got {len(features)}"
            )
        return _geometry_from_mapping(features[0])
    if doc_type == "Feature":
        geometry = document.get("geometry")
        if not isinstance(geometry, Mapping):
            raise InvalidFormatError("Feature has no geometry")
        return geometry
    if doc_type in {"Polygon", "MultiPolygon"}:
        return document
    raise InvalidFormatError(f"Unsupported GeoJSON type: {doc_type}")


def parse_boundary_document(document: Any) -> Polygon:
    """Parse an external boundary document into one WGS84 polygon.

    Parameters
    ----------
    document : str | pathlib.Path | Mapping
        GeoJSON text, GeoJSON mapping (Feature, single-feature
        FeatureCollection or bare geometry), or path to any vector file
        readable by ``geopandas.read_file``.

    Returns
    -------
    shapely.geometry.Polygon
        Boundary polygon.

    Raises
    ------
    InvalidFormatError
        Raised when the document is unparseable, has no polygon geometry,
        or its ring has fewer than four points.
    """
    if isinstance(document, Path) or (
        isinstance(document, str) and not document.lstrip().startswith("{")
    ):
        return _parse_boundary_file(Path(document))
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as exc:
            raise InvalidFormatError(f"Invalid GeoJSON: {exc}") from exc
    if not isinstance(document, Mapping):
        raise InvalidFormatError(f"Unsupported boundary document: {type(document).__name__}")
    try:
        geometry = _geometry_from_mapping(document)
        _check_raw_ring(geometry)
        return _single_polygon(shape(geometry))
    except InvalidFormatError:
        raise
    except (KeyError, IndexError, TypeError, ValueError, ShapelyError) as exc:
        raise InvalidFormatError(f"Invalid boundary geometry: {exc}") from exc


def _parse_boundary_file(path: Path) -> Polygon:
    """Read a boundary vector file and reproject it to WGS84."""
    if not path.exists():
        raise InvalidFormatError(f"File not found: {path}")
    try:
        boundary_gdf = gpd.read_file(path)
    except Exception as exc:
        raise InvalidFormatError(f"Failed to read boundary file: {exc}") from exc
    if len(boundary_gdf) != 1:
        raise InvalidFormatError(
            f"Boundary must contain exactly one polygon, got {len(boundary_gdf)}"
        )
    if boundary_gdf.crs is not None and boundary_gdf.crs != WGS84:
        boundary_gdf = boundary_gdf.to_crs(WGS84)
    return _single_polygon(boundary_gdf.geometry.iloc[0])


class BoundaryManager:
    """Hold the single active field boundary of a design session.

    Replacing the boundary never touches plots; callers decide whether a
    boundary change should also clear the plot layout.
    """

    def __init__(self) -> None:
        self._boundary: FieldBoundary | None = None

    def get(self) -> FieldBoundary | None:
        return self._boundary

    def has_valid_boundary(self) -> bool:
        """Return True when a boundary usable for plot generation is set."""
        return self._boundary is not None and self._boundary.is_valid()

    def set_from_draw(self, geometry: Polygon | list[tuple[float, float]]) -> FieldBoundary:
        """Set the boundary from a drawn polygon or ring.

        Parameters
        ----------
        geometry : shapely.geometry.Polygon | list[tuple[float, float]]
            Drawn polygon, or its vertex ring (closing point optional).

        Returns
        -------
        FieldBoundary
            The stored boundary.
        """
        polygon = geometry if isinstance(geometry, Polygon) else Polygon(geometry)
        self._boundary = FieldBoundary(_single_polygon(polygon))
        logger.info(f"Boundary set from drawing ({len(self._boundary.ring)} points)")
        return self._boundary

    def set_from_import(self, document: Any) -> FieldBoundary:
        """Replace the boundary with a parsed external document.

        The current boundary is kept when parsing fails.

        Raises
        ------
        InvalidFormatError
            Raised for malformed documents.
        """
        polygon = parse_boundary_document(document)
        self._boundary = FieldBoundary(polygon)
        logger.info(f"Boundary imported ({len(self._boundary.ring)} points)")
        return self._boundary

    def clear(self) -> None:
        self._boundary = None
        logger.info("Boundary cleared")

    def export(self) -> dict[str, Any] | None:
        """Export the boundary as a GeoJSON Feature mapping."""
        if self._boundary is None:
            return None
        geometry = json.loads(json.dumps(mapping(self._boundary.polygon)))
        return {"type": "Feature", "geometry": geometry, "properties": {}}

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        """Return the boundary as a one-row WGS84 GeoDataFrame (empty if unset)."""
        geometry = [] if self._boundary is None else [self._boundary.polygon]
        return gpd.GeoDataFrame(
            {"name": ["boundary"] * len(geometry)}, geometry=geometry, crs=WGS84
        )
