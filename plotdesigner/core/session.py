"""
Design session composition root.

Owns the boundary manager, plot registry, measurement tool and the drawing
interaction controller, and exposes the commands invoked by the UI layer.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Sequence

import geopandas as gpd
import numpy as np
from loguru import logger
from PySide6.QtCore import QObject, Signal
from shapely.geometry import mapping

from plotdesigner.core.boundary import BoundaryManager
from plotdesigner.core.errors import InvalidFormatError, NoBoundaryError
from plotdesigner.core.geometry import (
    GRID_NUMBER_PREFIX,
    auto_number,
    generate_grid_plots,
    generate_strip_plots,
    randomize_treatments,
)
from plotdesigner.core.interaction import DrawingInteractionController, DrawTarget
from plotdesigner.core.measurement import MeasurementResult, MeasurementTool
from plotdesigner.core.plots import TREATMENT_CATALOG, Plot, PlotRegistry

DEFAULT_TRIAL_ID = "standalone"
BOUNDARY_EXPORT_FILENAME = "field-boundary.geojson"
EXPORT_COLUMNS = {"repetition_label": "repetitionLabel", "plot_number": "plotNumber"}


class LayoutKind(str, Enum):
    """Automatic plot layout types."""

    GRID = "grid"
    STRIP = "strip"


def _json_geometry(plot: Plot) -> dict[str, Any]:
    return json.loads(json.dumps(mapping(plot.footprint)))


def _write_geojson(gdf: gpd.GeoDataFrame, output_path: str | Path) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    gdf.to_file(path, driver="GeoJSON")
    return path


class DesignSession(QObject):
    """Single field design session.

    Parameters
    ----------
    map_canvas : Any
        Drawing surface, see ``DrawingInteractionController``.
    on_save : Callable[[dict], None], optional
        Receives the design export on every save.
    on_import_error : Callable[[str], None], optional
        Receives the reason of a failed boundary import.
    plot_number_width : int
        Zero padding used by ``auto_number_all``.
    rng : numpy.random.Generator, optional
        Random source for treatment randomization.

    Signals
    -------
    sigDesignSaved : Signal(object)
        Emitted with the design export dict on save.
    sigImportError : Signal(str)
        Emitted with a readable reason when boundary import fails.
    """

    sigDesignSaved = Signal(object)
    sigImportError = Signal(str)

    def __init__(
        self,
        map_canvas: Any,
        on_save: Callable[[dict], None] | None = None,
        on_import_error: Callable[[str], None] | None = None,
        plot_number_width: int = 2,
        rng: np.random.Generator | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.boundary_manager = BoundaryManager()
        self.plot_registry = PlotRegistry()
        self.measurement_tool = MeasurementTool()
        self.controller = DrawingInteractionController(
            map_canvas,
            self.boundary_manager,
            self.plot_registry,
            self.measurement_tool,
            parent=self,
        )
        self.plot_number_width = plot_number_width
        self._rng = rng if rng is not None else np.random.default_rng()
        self._last_measurement: MeasurementResult | None = None

        if on_save is not None:
            self.sigDesignSaved.connect(on_save)
        if on_import_error is not None:
            self.sigImportError.connect(on_import_error)
        self.controller.sigMeasurementFinished.connect(self._on_measurement_finished)
        self.controller.sigBoundaryChanged.connect(self._on_boundary_changed)

    # -- layout commands ----------------------------------------------------

    def generate_layout(
        self,
        kind: LayoutKind | str,
        rows: int = 1,
        columns: int = 1,
        strips: int = 1,
    ) -> list[Plot]:
        """Replace the registry with an automatic layout.

        Parameters
        ----------
        kind : LayoutKind | str
            ``"grid"`` or ``"strip"``.
        rows, columns : int
            Grid divisions, used when ``kind`` is grid.
        strips : int
            Strip count, used when ``kind`` is strip.

        Returns
        -------
        list[Plot]
            The generated plots in registry order.

        Raises
        ------
        NoBoundaryError
            Raised when no valid boundary is set.
        ValueError
            Raised for an unknown kind or counts below one.
        """
        layout_kind = LayoutKind(kind)
        boundary = self.boundary_manager.get()
        if boundary is None or not self.boundary_manager.has_valid_boundary():
            raise NoBoundaryError()
        if layout_kind == LayoutKind.GRID:
            plots = generate_grid_plots(boundary, rows, columns)
        else:
            plots = generate_strip_plots(boundary, strips)
        self.plot_registry.replace_all(plots)
        self.controller.refresh_plot_layer()
        logger.info(f"{len(plots)} plots generated ({layout_kind.value})")
        self.controller.sigPlotsChanged.emit()
        return plots

    def auto_number_all(self, prefix: str = GRID_NUMBER_PREFIX) -> list[Plot]:
        """Renumber every plot sequentially in registry order."""
        plots = auto_number(self.plot_registry.list(), prefix, self.plot_number_width)
        self.plot_registry.replace_all(plots)
        logger.info(f"Auto-numbered {len(plots)} plots")
        self.controller.sigPlotsChanged.emit()
        return plots

    def randomize_all_treatments(
        self, treatment_ids: Sequence[str] | None = None
    ) -> list[Plot]:
        """Shuffle treatments over every plot, defaulting to the full catalog."""
        if treatment_ids is None:
            treatment_ids = [treatment.id for treatment in TREATMENT_CATALOG]
        plots = randomize_treatments(self.plot_registry.list(), treatment_ids, self._rng)
        self.plot_registry.replace_all(plots)
        self.controller.refresh_plot_layer()
        logger.info(f"Randomized treatments over {len(plots)} plots")
        self.controller.sigPlotsChanged.emit()
        return plots

    def plot_count_summary(self) -> str:
        count = len(self.plot_registry)
        return f"{count} plot{'s' if count != 1 else ''} generated"

    # -- export -------------------------------------------------------------

    def export_design(self, trial_id: str | None = None) -> dict[str, Any]:
        """Build the design export as a GeoJSON FeatureCollection.

        Parameters
        ----------
        trial_id : str, optional
            Trial the design belongs to, ``"standalone"`` when omitted.

        Returns
        -------
        dict
            One Feature per plot with properties ``id, name, treatment,
            repetitionLabel, plotNumber, trialId``.
        """
        trial = trial_id or DEFAULT_TRIAL_ID
        features = [
            {
                "type": "Feature",
                "geometry": _json_geometry(plot),
                "properties": {
                    "id": plot.id,
                    "name": plot.name,
                    "treatment": plot.treatment,
                    "repetitionLabel": plot.repetition_label,
                    "plotNumber": plot.plot_number,
                    "trialId": trial,
                },
            }
            for plot in self.plot_registry.list()
        ]
        return {"type": "FeatureCollection", "features": features}

    def design_geodataframe(self, trial_id: str | None = None) -> gpd.GeoDataFrame:
        """Return the design export as a WGS84 GeoDataFrame.

        Columns follow the export properties: ``id, name, treatment,
        repetitionLabel, plotNumber, trialId, geometry``.
        """
        gdf = self.plot_registry.to_geodataframe().rename(columns=EXPORT_COLUMNS)
        gdf.insert(len(gdf.columns) - 1, "trialId", trial_id or DEFAULT_TRIAL_ID)
        return gdf

    def save_design(
        self, trial_id: str | None = None, output_path: str | Path | None = None
    ) -> dict[str, Any]:
        """Export the design, notify listeners and optionally write it to disk."""
        design = self.export_design(trial_id)
        if output_path is not None:
            path = _write_geojson(self.design_geodataframe(trial_id), output_path)
            logger.info(f"Design saved to {path}")
        logger.info(f"Design saved with {len(design['features'])} plots")
        self.sigDesignSaved.emit(design)
        return design

    # -- boundary commands --------------------------------------------------

    def import_boundary(self, document: Any) -> bool:
        """Import a boundary document.

        Returns
        -------
        bool
            False when the document was rejected; ``sigImportError`` carries
            the reason and the previous boundary is kept.
        """
        try:
            self.boundary_manager.set_from_import(document)
        except InvalidFormatError as exc:
            logger.warning(f"Boundary import rejected: {exc}")
            self.sigImportError.emit(str(exc))
            return False
        self.controller.sync_boundary()
        return True

    def export_boundary(self, output_path: str | Path | None = None) -> dict[str, Any] | None:
        """Return the boundary Feature, writing it as GeoJSON when a path is given.

        A directory path receives ``field-boundary.geojson``.
        """
        feature = self.boundary_manager.export()
        if feature is None or output_path is None:
            return feature
        path = Path(output_path)
        if path.is_dir():
            path = path / BOUNDARY_EXPORT_FILENAME
        _write_geojson(self.boundary_manager.to_geodataframe(), path)
        logger.info(f"Boundary exported to {path}")
        return feature

    def clear_boundary(self, clear_plots: bool = False) -> None:
        """Remove the boundary, and the plot layout when ``clear_plots`` is set."""
        self.boundary_manager.clear()
        self.controller.sync_boundary()
        if clear_plots:
            self.plot_registry.replace_all([])
            self.controller.refresh_plot_layer()
            self.controller.sigPlotsChanged.emit()

    # -- measurement --------------------------------------------------------

    @property
    def last_measurement(self) -> MeasurementResult | None:
        return self._last_measurement

    def start_measuring(self) -> None:
        self._last_measurement = None
        self.controller.start_measuring()

    def stop_measuring(self) -> None:
        self.controller.stop_measuring()

    def _on_measurement_finished(self, result: MeasurementResult) -> None:
        self._last_measurement = result

    def _on_boundary_changed(self) -> None:
        # Measurements do not outlive the boundary they were taken on
        if self.boundary_manager.get() is None:
            self._last_measurement = None

    # -- drawing ------------------------------------------------------------

    def set_draw_target(self, target: DrawTarget | str) -> None:
        self.controller.set_draw_target(target)

    def confirm_pending_plot(
        self,
        name: str | None = None,
        treatment: str | None = None,
        repetition_label: str | None = None,
        plot_number: str | None = None,
    ) -> Plot | None:
        return self.controller.confirm_pending_plot(
            name=name,
            treatment=treatment,
            repetition_label=repetition_label,
            plot_number=plot_number,
        )

    def cancel_pending_plot(self) -> bool:
        return self.controller.cancel_pending_plot()

    def shutdown(self) -> None:
        """Disconnect every toolkit subscription and drop transient layers."""
        self.controller.shutdown()
        logger.debug("Design session shut down")
