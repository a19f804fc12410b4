"""Plot entities, treatment catalog and the in-memory plot registry."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Iterable

import geopandas as gpd
from loguru import logger
from shapely.geometry import Polygon

WGS84 = "EPSG:4326"


@dataclass(frozen=True)
class Treatment:
    """Reference treatment entry.

    Parameters
    ----------
    id : str
        Stable treatment id stored on plots.
    name : str
        Display name.
    display_color : str
        Hex color used to paint plots carrying this treatment.
    """

    id: str
    name: str
    display_color: str


TREATMENT_CATALOG: tuple[Treatment, ...] = (
    Treatment("1", "Control", "#6b7280"),
    Treatment("2", "Fertilizer A", "#10b981"),
    Treatment("3", "Fertilizer B", "#3b82f6"),
    Treatment("4", "Irrigation A", "#f59e0b"),
    Treatment("5", "Irrigation B", "#8b5cf6"),
)


def treatment_by_id(treatment_id: str | None) -> Treatment | None:
    """Look up one catalog treatment, ``None`` when unknown."""
    for treatment in TREATMENT_CATALOG:
        if treatment.id == treatment_id:
            return treatment
    return None


@dataclass
class Plot:
    """Experimental plot entity.

    Parameters
    ----------
    id : str
        Unique id within the registry, stable for the session.
    name : str
        Display name, e.g. ``Plot 3``.
    footprint : shapely.geometry.Polygon
        Closed lng/lat ring of the plot.
    treatment : str | None
        Assigned treatment id.
    repetition_label : str | None
        Replication label entered by the user.
    plot_number : str | None
        Field label such as ``P01``.
    """

    id: str
    name: str
    footprint: Polygon
    treatment: str | None = None
    repetition_label: str | None = None
    plot_number: str | None = None

    @property
    def ring(self) -> list[tuple[float, float]]:
        """Return the footprint exterior as ``(lng, lat)`` tuples."""
        return [(float(x), float(y)) for x, y in self.footprint.exterior.coords]


_PATCHABLE_FIELDS = frozenset(f.name for f in fields(Plot)) - {"id"}


class RegistryStatus(str, Enum):
    """Outcome of registry mutations addressed by id."""

    OK = "ok"
    NOT_FOUND = "not_found"


class PlotRegistry:
    """In-memory plot collection for the current design session.

    Insertion order is preserved; it is the order used by numbering and
    treatment assignment.

    Examples
    --------
    >>> registry = PlotRegistry()
    >>> registry.delete("missing")
    <RegistryStatus.NOT_FOUND: 'not_found'>
    """

    def __init__(self) -> None:
        self._plots: dict[str, Plot] = {}

    def __len__(self) -> int:
        return len(self._plots)

    def __contains__(self, plot_id: object) -> bool:
        return plot_id in self._plots

    def create(self, plot: Plot) -> None:
        """Register one plot.

        Raises
        ------
        ValueError
            Raised when a plot with the same id is already registered.
        """
        if plot.id in self._plots:
            raise ValueError(f"Plot id already registered: {plot.id}")
        self._plots[plot.id] = plot
        logger.debug(f"Plot created: {plot.id}")

    def replace_all(self, plots: Iterable[Plot]) -> None:
        """Discard every registered plot and store ``plots`` instead."""
        new_plots: dict[str, Plot] = {}
        for plot in plots:
            if plot.id in new_plots:
                raise ValueError(f"Duplicate plot id in layout: {plot.id}")
            new_plots[plot.id] = plot
        self._plots = new_plots
        logger.debug(f"Plot registry replaced with {len(new_plots)} plots")

    def update(self, plot_id: str, **patch) -> RegistryStatus:
        """Patch fields of one plot.

        Parameters
        ----------
        plot_id : str
            Target plot id.
        **patch
            Field values to replace, e.g. ``footprint=polygon``.

        Returns
        -------
        RegistryStatus
            ``NOT_FOUND`` when the id is not registered.
        """
        unknown = set(patch) - _PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported plot fields: {sorted(unknown)}")
        plot = self._plots.get(plot_id)
        if plot is None:
            logger.debug(f"Update ignored, plot not found: {plot_id}")
            return RegistryStatus.NOT_FOUND
        self._plots[plot_id] = replace(plot, **patch)
        return RegistryStatus.OK

    def delete(self, plot_id: str) -> RegistryStatus:
        """Delete one plot by id."""
        if self._plots.pop(plot_id, None) is None:
            logger.debug(f"Delete ignored, plot not found: {plot_id}")
            return RegistryStatus.NOT_FOUND
        logger.debug(f"Plot deleted: {plot_id}")
        return RegistryStatus.OK

    def delete_many(self, plot_ids: Iterable[str]) -> dict[str, RegistryStatus]:
        """Delete several plots, returning the status per id."""
        return {plot_id: self.delete(plot_id) for plot_id in plot_ids}

    def list(self) -> list[Plot]:
        """Return plots in registry order."""
        return list(self._plots.values())

    def get(self, plot_id: str) -> Plot | None:
        return self._plots.get(plot_id)

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        """Convert plots to a WGS84 GeoDataFrame in registry order.

        Returns
        -------
        geopandas.GeoDataFrame
            Table with columns ``id, name, treatment, repetition_label,
            plot_number, geometry``.
        """
        columns = ["id", "name", "treatment", "repetition_label", "plot_number"]
        plots = self.list()
        data = {col: [getattr(plot, col) for plot in plots] for col in columns}
        return gpd.GeoDataFrame(
            data, geometry=[plot.footprint for plot in plots], crs=WGS84
        )
