"""Drawing interaction controller over a map drawing surface.

Translates drawing-toolkit events (shape created / edited / deleted) and raw
map clicks into plot registry, boundary and measurement updates. Each
interaction context is an explicit state machine with a declared transition
table.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Hashable, Sequence

from loguru import logger
from PySide6.QtCore import QObject, Signal
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from plotdesigner.core.boundary import BoundaryManager
from plotdesigner.core.geometry import format_plot_number
from plotdesigner.core.measurement import MeasurementTool
from plotdesigner.core.plots import Plot, PlotRegistry, RegistryStatus, treatment_by_id

# -- Layer name and color constants -----------------------------------------
BOUNDARY_LAYER_ID = "field_boundary"
MEASURE_LINE_LAYER = "measure_line"
MEASURE_AREA_LAYER = "measure_area"

BOUNDARY_COLOR = "#10b981"
PLOT_COLOR = "#6366f1"
MEASURE_LINE_COLOR = "#3b82f6"
MEASURE_AREA_COLOR = "#f59e0b"
SELECTED_COLOR = "#3b82f6"


class ShapeType(str, Enum):
    """Shape types raised by the drawing toolkit."""

    POLYGON = "polygon"
    RECTANGLE = "rectangle"


class DrawTarget(str, Enum):
    """Context receiving newly drawn shapes."""

    PLOT = "plot"
    BOUNDARY = "boundary"


@dataclass(frozen=True)
class DrawnShape:
    """One vector layer committed by the drawing toolkit.

    Parameters
    ----------
    layer_id : str
        Opaque layer id, stable while the shape exists on the surface.
    shape_type : str
        Toolkit shape type, see ``ShapeType``.
    geometry : shapely.geometry.base.BaseGeometry
        Committed geometry in lng/lat degrees.
    """

    layer_id: str
    shape_type: str
    geometry: BaseGeometry


class PlotDrawState(str, Enum):
    IDLE = "idle"
    AWAITING_METADATA = "awaiting_metadata"


class BoundaryDrawState(str, Enum):
    IDLE = "idle"
    HAS_BOUNDARY = "has_boundary"


class MeasureState(str, Enum):
    INACTIVE = "inactive"
    COLLECTING = "collecting"


PLOT_TRANSITIONS = {
    (PlotDrawState.IDLE, "created"): PlotDrawState.AWAITING_METADATA,
    (PlotDrawState.AWAITING_METADATA, "confirm"): PlotDrawState.IDLE,
    (PlotDrawState.AWAITING_METADATA, "cancel"): PlotDrawState.IDLE,
}

BOUNDARY_TRANSITIONS = {
    (BoundaryDrawState.IDLE, "set"): BoundaryDrawState.HAS_BOUNDARY,
    (BoundaryDrawState.HAS_BOUNDARY, "set"): BoundaryDrawState.HAS_BOUNDARY,
    (BoundaryDrawState.HAS_BOUNDARY, "cleared"): BoundaryDrawState.IDLE,
    (BoundaryDrawState.IDLE, "cleared"): BoundaryDrawState.IDLE,
}

MEASURE_TRANSITIONS = {
    (MeasureState.INACTIVE, "start"): MeasureState.COLLECTING,
    (MeasureState.COLLECTING, "start"): MeasureState.COLLECTING,
    (MeasureState.COLLECTING, "point"): MeasureState.COLLECTING,
    (MeasureState.COLLECTING, "finish"): MeasureState.INACTIVE,
    (MeasureState.COLLECTING, "stop"): MeasureState.INACTIVE,
    (MeasureState.INACTIVE, "stop"): MeasureState.INACTIVE,
}


class InteractionContext:
    """Transition-table driven state holder for one interaction context.

    Parameters
    ----------
    name : str
        Context name used in log messages.
    initial : Enum
        Initial state.
    transitions : dict
        Mapping ``(state, event) -> next_state``.
    """

    def __init__(self, name: str, initial: Enum, transitions: dict[tuple[Enum, str], Enum]) -> None:
        self.name = name
        self._initial = initial
        self._state = initial
        self._transitions = transitions

    @property
    def state(self) -> Enum:
        return self._state

    def can_fire(self, event: str) -> bool:
        return (self._state, event) in self._transitions

    def fire(self, event: str) -> bool:
        """Apply ``event``; unknown transitions are logged and ignored."""
        next_state = self._transitions.get((self._state, event))
        if next_state is None:
            logger.warning(
                f"[{self.name}] event '{event}' not allowed in state '{self._state.value}'"
            )
            return False
        if next_state != self._state:
            logger.debug(f"[{self.name}] {self._state.value} -> {next_state.value}")
        self._state = next_state
        return True

    def reset(self) -> None:
        self._state = self._initial


def _plot_color(plot: Plot) -> str:
    treatment = treatment_by_id(plot.treatment)
    return treatment.display_color if treatment is not None else PLOT_COLOR


def _as_polygon(geometry: Any) -> Polygon | None:
    """Return a clean single polygon for a committed geometry, else None."""
    if not isinstance(geometry, Polygon) or geometry.is_empty:
        return None
    if len(geometry.exterior.coords) < 4:
        return None
    return Polygon(geometry.exterior.coords)


class DrawingInteractionController(QObject):
    """Route drawing-surface events into the design session state.

    Uses only the drawing surface public API:
    - ``sigShapeCreated(object, str)``, ``sigShapesEdited(object)``,
      ``sigShapesDeleted(object)``, ``sigShapeClicked(str)``
    - ``add_editable_shape()`` / ``remove_editable_shape()`` /
      ``remove_drawn_shape()`` / ``set_shape_color()``
    - ``add_vector_layer()`` / ``remove_layer()``
    - ``register_click_handler()`` / ``unregister_click_handler()``
    - ``register_double_click_handler()`` / ``unregister_double_click_handler()``

    Parameters
    ----------
    map_canvas : Any
        Drawing surface instance.
    boundary_manager : BoundaryManager
        Session boundary holder.
    plot_registry : PlotRegistry
        Session plot registry.
    measurement_tool : MeasurementTool
        Session measurement point accumulator.

    Signals
    -------
    sigMetadataRequested : Signal(object)
        Emitted with the provisional ``Plot`` awaiting user metadata.
    sigPlotsChanged : Signal()
        Emitted after any plot registry mutation.
    sigBoundaryChanged : Signal()
        Emitted after the boundary is set, edited or cleared.
    sigMeasurementFinished : Signal(object)
        Emitted with the ``MeasurementResult`` of a finished measurement.
    sigSelectionChanged : Signal(object)
        Emitted with the selected ``Plot``, or None when the selection clears.
    """

    sigMetadataRequested = Signal(object)
    sigPlotsChanged = Signal()
    sigBoundaryChanged = Signal()
    sigMeasurementFinished = Signal(object)
    sigSelectionChanged = Signal(object)

    def __init__(
        self,
        map_canvas: Any,
        boundary_manager: BoundaryManager,
        plot_registry: PlotRegistry,
        measurement_tool: MeasurementTool,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._canvas = map_canvas
        self._boundary = boundary_manager
        self._registry = plot_registry
        self._measurement = measurement_tool

        self.plot_context = InteractionContext("plot", PlotDrawState.IDLE, PLOT_TRANSITIONS)
        self.boundary_context = InteractionContext(
            "boundary", BoundaryDrawState.IDLE, BOUNDARY_TRANSITIONS
        )
        self.measure_context = InteractionContext(
            "measure", MeasureState.INACTIVE, MEASURE_TRANSITIONS
        )

        self._draw_target = DrawTarget.PLOT
        self._pending_plot: Plot | None = None
        # layer id -> plot id for plot shapes rendered on the surface
        self._plot_layers: dict[str, str] = {}
        self._selected_plot_id: str | None = None
        self._toolkit_connected = False
        self._measure_handlers_registered = False

        self.connect_toolkit()

    # -- public API ---------------------------------------------------------

    @property
    def draw_target(self) -> DrawTarget:
        return self._draw_target

    def set_draw_target(self, target: DrawTarget | str) -> None:
        """Select which context receives newly drawn shapes."""
        self._draw_target = DrawTarget(target)
        logger.debug(f"Draw target: {self._draw_target.value}")

    @property
    def pending_plot(self) -> Plot | None:
        return self._pending_plot

    def connect_toolkit(self) -> None:
        """Subscribe to drawing toolkit signals once."""
        if self._toolkit_connected:
            return
        self._canvas.sigShapeCreated.connect(self._on_shape_created)
        self._canvas.sigShapesEdited.connect(self._on_shapes_edited)
        self._canvas.sigShapesDeleted.connect(self._on_shapes_deleted)
        self._canvas.sigShapeClicked.connect(self._on_shape_clicked)
        self._toolkit_connected = True

    def disconnect_toolkit(self) -> None:
        """Revoke drawing toolkit subscriptions."""
        if not self._toolkit_connected:
            return
        self._canvas.sigShapeCreated.disconnect(self._on_shape_created)
        self._canvas.sigShapesEdited.disconnect(self._on_shapes_edited)
        self._canvas.sigShapesDeleted.disconnect(self._on_shapes_deleted)
        self._canvas.sigShapeClicked.disconnect(self._on_shape_clicked)
        self._toolkit_connected = False

    def shutdown(self) -> None:
        """Release every subscription and transient layer."""
        self.stop_measuring()
        if self._pending_plot is not None:
            self.cancel_pending_plot()
        self.disconnect_toolkit()

    # -- plot drawing context ----------------------------------------------

    def confirm_pending_plot(
        self,
        name: str | None = None,
        treatment: str | None = None,
        repetition_label: str | None = None,
        plot_number: str | None = None,
    ) -> Plot | None:
        """Register the provisional plot with user-entered metadata.

        Empty values keep the suggested name and number, and leave treatment
        and repetition unset.

        Returns
        -------
        Plot | None
            The registered plot, or ``None`` when nothing was pending.
        """
        if self._pending_plot is None or not self.plot_context.can_fire("confirm"):
            logger.warning("No pending plot to confirm")
            return None
        plot = replace(
            self._pending_plot,
            name=name or self._pending_plot.name,
            treatment=treatment or None,
            repetition_label=repetition_label or None,
            plot_number=plot_number or self._pending_plot.plot_number,
        )
        self._registry.create(plot)
        self._pending_plot = None
        self.plot_context.fire("confirm")
        self._add_plot_shape(plot)
        logger.info(f"Plot registered: {plot.name} ({plot.id})")
        self.sigPlotsChanged.emit()
        return plot

    def cancel_pending_plot(self) -> bool:
        """Discard the provisional plot without touching the registry."""
        if self._pending_plot is None or not self.plot_context.can_fire("cancel"):
            return False
        logger.debug(f"Pending plot discarded: {self._pending_plot.id}")
        self._pending_plot = None
        self.plot_context.fire("cancel")
        return True

    def refresh_plot_layer(self) -> None:
        """Re-render every registered plot as an editable shape."""
        self._clear_selection()
        for layer_id in list(self._plot_layers):
            self._canvas.remove_editable_shape(layer_id)
        self._plot_layers.clear()
        for plot in self._registry.list():
            self._add_plot_shape(plot)

    # -- plot selection ----------------------------------------------------

    @property
    def selected_plot_id(self) -> str | None:
        return self._selected_plot_id

    @property
    def selected_plot(self) -> Plot | None:
        if self._selected_plot_id is None:
            return None
        return self._registry.get(self._selected_plot_id)

    def select_plot(self, plot_id: str | None) -> bool:
        """Highlight one registered plot, or clear the selection with None.

        Returns
        -------
        bool
            False when ``plot_id`` is not a registered plot.
        """
        if plot_id is not None and plot_id not in self._registry:
            logger.warning(f"Selection ignored, unknown plot id: {plot_id}")
            return False
        if plot_id == self._selected_plot_id:
            return True
        previous = self.selected_plot
        self._selected_plot_id = plot_id
        if previous is not None:
            self._canvas.set_shape_color(previous.id, _plot_color(previous))
        if plot_id is not None:
            self._canvas.set_shape_color(plot_id, SELECTED_COLOR)
        logger.debug(f"Selected plot: {plot_id}")
        self.sigSelectionChanged.emit(self.selected_plot)
        return True

    def _clear_selection(self) -> None:
        if self._selected_plot_id is None:
            return
        self._selected_plot_id = None
        self.sigSelectionChanged.emit(None)

    # -- boundary drawing context ------------------------------------------

    def sync_boundary(self) -> None:
        """Align boundary state and rendering with the boundary manager.

        Called after the boundary changed outside the toolkit, e.g. by import.
        """
        self.boundary_context.fire("set" if self._boundary.get() is not None else "cleared")
        self._render_boundary()
        self.sigBoundaryChanged.emit()

    # -- measurement context -----------------------------------------------

    def start_measuring(self) -> None:
        """Enter measurement mode, restarting any measurement in progress."""
        self._remove_measure_layers()
        self._measurement.reset()
        self._register_measure_handlers()
        self.measure_context.fire("start")

    def stop_measuring(self) -> None:
        """Leave measurement mode and erase transient preview layers."""
        self._teardown_measurement()
        self.measure_context.fire("stop")

    # -- toolkit event handlers --------------------------------------------

    def _on_shape_created(self, shape: DrawnShape, shape_type: str) -> None:
        if self._draw_target == DrawTarget.BOUNDARY:
            self._boundary_shape_created(shape, shape_type)
            return
        self._plot_shape_created(shape)

    def _plot_shape_created(self, shape: DrawnShape) -> None:
        # The raw drawn shape is replaced by the registry rendering on confirm.
        self._canvas.remove_drawn_shape(shape.layer_id)
        if not self.plot_context.can_fire("created"):
            logger.warning(f"Shape {shape.layer_id} ignored, plot metadata still pending")
            return
        footprint = _as_polygon(shape.geometry)
        if footprint is None:
            logger.warning(f"Shape {shape.layer_id} ignored, plot footprint must be a polygon")
            return
        next_index = len(self._registry) + 1
        self._pending_plot = Plot(
            id=uuid.uuid4().hex,
            name=f"Plot {next_index}",
            footprint=footprint,
            plot_number=format_plot_number(next_index),
        )
        self.plot_context.fire("created")
        self.sigMetadataRequested.emit(self._pending_plot)

    def _boundary_shape_created(self, shape: DrawnShape, shape_type: str) -> None:
        self._canvas.remove_drawn_shape(shape.layer_id)
        polygon = _as_polygon(shape.geometry)
        if shape_type != ShapeType.POLYGON or polygon is None:
            logger.warning(f"Boundary requires a polygon shape, got '{shape_type}'")
            return
        self._boundary.set_from_draw(polygon)
        self.sync_boundary()

    def _on_shapes_edited(self, shapes: Sequence[DrawnShape]) -> None:
        updates: list[tuple[str, Polygon]] = []
        for shape in shapes:
            polygon = _as_polygon(shape.geometry)
            if polygon is None:
                logger.warning(f"Edit event ignored, invalid geometry on layer {shape.layer_id}")
                return
            updates.append((shape.layer_id, polygon))

        plots_changed = False
        for layer_id, polygon in updates:
            if layer_id == BOUNDARY_LAYER_ID:
                self._boundary.set_from_draw(polygon)
                self.sigBoundaryChanged.emit()
                continue
            plot_id = self._plot_layers.get(layer_id)
            if plot_id is None:
                logger.warning(f"Edit ignored, unknown layer id: {layer_id}")
                continue
            status = self._registry.update(plot_id, footprint=polygon)
            plots_changed |= status == RegistryStatus.OK
        if plots_changed:
            self.sigPlotsChanged.emit()

    def _on_shapes_deleted(self, shapes: Sequence[DrawnShape]) -> None:
        plot_ids: list[str] = []
        for shape in shapes:
            if shape.layer_id == BOUNDARY_LAYER_ID:
                self._boundary.clear()
                self.boundary_context.fire("cleared")
                self.sigBoundaryChanged.emit()
                continue
            plot_id = self._plot_layers.pop(shape.layer_id, None)
            if plot_id is None:
                logger.warning(f"Delete ignored, unknown layer id: {shape.layer_id}")
                continue
            plot_ids.append(plot_id)
        if not plot_ids:
            return
        if self._selected_plot_id in plot_ids:
            self._clear_selection()
        statuses = self._registry.delete_many(plot_ids)
        missing = [pid for pid, status in statuses.items() if status == RegistryStatus.NOT_FOUND]
        if missing:
            logger.debug(f"Deleted layers without registered plots: {missing}")
        self.sigPlotsChanged.emit()

    def _on_shape_clicked(self, layer_id: str) -> None:
        plot_id = self._plot_layers.get(layer_id)
        if plot_id is None:
            return
        self.select_plot(None if plot_id == self._selected_plot_id else plot_id)

    # -- measurement handlers ----------------------------------------------

    def _on_measure_click(self, lng: float, lat: float) -> bool:
        if self.measure_context.state != MeasureState.COLLECTING:
            return False
        self._measurement.add_point(lng, lat)
        self.measure_context.fire("point")
        self._render_measure_layers()
        return True

    def _on_measure_double_click(self, _lng: float, _lat: float) -> bool:
        if self.measure_context.state != MeasureState.COLLECTING:
            return False
        result = self._measurement.finish()
        self._teardown_measurement()
        self.measure_context.fire("finish")
        logger.info(result.format())
        self.sigMeasurementFinished.emit(result)
        return True

    def _register_measure_handlers(self) -> None:
        if self._measure_handlers_registered:
            return
        self._canvas.register_click_handler(self._on_measure_click)
        self._canvas.register_double_click_handler(self._on_measure_double_click)
        self._measure_handlers_registered = True

    def _unregister_measure_handlers(self) -> None:
        if not self._measure_handlers_registered:
            return
        self._canvas.unregister_click_handler(self._on_measure_click)
        self._canvas.unregister_double_click_handler(self._on_measure_double_click)
        self._measure_handlers_registered = False

    def _teardown_measurement(self) -> None:
        self._unregister_measure_handlers()
        self._remove_measure_layers()
        self._measurement.reset()

    # -- rendering ----------------------------------------------------------

    def _add_plot_shape(self, plot: Plot) -> None:
        color = SELECTED_COLOR if plot.id == self._selected_plot_id else _plot_color(plot)
        self._canvas.add_editable_shape(plot.id, plot.footprint, color=color)
        self._plot_layers[plot.id] = plot.id

    def _render_boundary(self) -> None:
        self._canvas.remove_editable_shape(BOUNDARY_LAYER_ID)
        boundary = self._boundary.get()
        if boundary is None:
            return
        self._canvas.add_editable_shape(BOUNDARY_LAYER_ID, boundary.polygon, color=BOUNDARY_COLOR)

    def _render_measure_layers(self) -> None:
        self._remove_measure_layers()
        line_gdf = self._measurement.line_preview()
        if line_gdf is not None:
            self._canvas.add_vector_layer(
                line_gdf, MEASURE_LINE_LAYER, color=MEASURE_LINE_COLOR, width=3
            )
        area_gdf = self._measurement.polygon_preview()
        if area_gdf is not None:
            self._canvas.add_vector_layer(
                area_gdf, MEASURE_AREA_LAYER, color=MEASURE_AREA_COLOR, width=2
            )

    def _remove_measure_layers(self) -> None:
        layer_names = set(self._canvas.get_layer_names())
        for layer_name in (MEASURE_LINE_LAYER, MEASURE_AREA_LAYER):
            if layer_name in layer_names:
                self._canvas.remove_layer(layer_name)
