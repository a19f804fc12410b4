"""
Map Canvas component for FieldPlotDesigner GUI.

This module provides a lng/lat map surface based on PyQtGraph with support for:
- GeoTiff basemaps with lazy loading via rasterio
- Vector layers from GeoDataFrames
- Polygon and rectangle drawing with editable shapes
- Raw click / double-click handler registries

The canvas implements the drawing surface used by
``plotdesigner.core.interaction.DrawingInteractionController``.
"""

from typing import Optional, Dict, List, Any, Callable
from pathlib import Path

import numpy as np
import pyqtgraph as pg

pg.setConfigOptions(
    antialias=True,
    background='w',
    foreground='k'
)

import geopandas as gpd
import rasterio
import rasterio.coords
import rasterio.enums
import rasterio.errors
from PySide6.QtWidgets import QWidget, QVBoxLayout
from PySide6.QtCore import Qt, Signal, QTimer, QRectF, QPointF
from loguru import logger
from shapely.geometry import Polygon

from plotdesigner.core.interaction import DrawnShape, ShapeType

ClickHandler = Callable[[float, float], bool]

BASEMAP_NAMES = ("Satellite", "Streets", "Terrain")
BASEMAP_LAYER_PREFIX = "basemap:"
SKETCH_COLOR = "#f97316"
DRAWN_SHAPE_COLOR = "#6366f1"


class CustomViewBox(pg.ViewBox):
    """
    Custom ViewBox with enhanced mouse handling.

    Left drags always pan; clicks are forwarded to the canvas, which decides
    whether they feed handlers or the drawing toolkit.

    Signals
    -------
    sigClicked : Signal(object)
        Emitted on left clicks, including double clicks.
    sigCoordinateHover : Signal(float, float)
        Emitted when mouse moves over the canvas.
    """

    sigClicked = Signal(object)
    sigCoordinateHover = Signal(float, float)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.setMouseMode(pg.ViewBox.PanMode)

    def mouseDragEvent(self, ev) -> None:
        """Handle mouse drag events."""
        if ev.button() != Qt.MouseButton.LeftButton:
            super().mouseDragEvent(ev)
            return
        ev.accept()
        p_now = self.mapToView(ev.pos())
        p_last = self.mapToView(ev.lastPos())
        delta = p_now - p_last

        if delta.x() == 0 and delta.y() == 0:
            return

        current_rect = self.viewRect()
        current_rect.moveCenter(current_rect.center() - delta)
        self.setRange(current_rect, padding=0)

    def mouseClickEvent(self, ev) -> None:
        """Handle mouse click events."""
        if ev.button() == Qt.MouseButton.LeftButton:
            self.sigClicked.emit(ev)
            ev.accept()
        else:
            super().mouseClickEvent(ev)

    def mouseMoveEvent(self, ev) -> None:
        """Handle mouse move events for coordinate tracking."""
        pos = self.mapToView(ev.pos())
        self.sigCoordinateHover.emit(pos.x(), pos.y())
        super().mouseMoveEvent(ev)


class MapCanvas(QWidget):
    """
    Map widget with PyQtGraph backend and a built-in drawing toolkit.

    Coordinates are longitude (x) and latitude (y) in degrees.

    Signals
    -------
    sigCoordinateChanged : Signal(float, float)
        Emitted when cursor moves, providing lng/lat.
    sigZoomChanged : Signal(float)
        Emitted when zoom level changes.
    sigShapeCreated : Signal(object, str)
        Emitted with ``DrawnShape`` and shape type when a drawing is committed.
    sigShapesEdited : Signal(object)
        Emitted with a list of ``DrawnShape`` after handles were moved.
    sigShapesDeleted : Signal(object)
        Emitted with a list of ``DrawnShape`` removed from the context menu.
    sigShapeClicked : Signal(str)
        Emitted with the layer id of a shape clicked while no draw mode or
        click handler claims the click.

    Examples
    --------
    >>> canvas = MapCanvas()
    >>> canvas.set_draw_mode("polygon")
    >>> canvas.sigShapeCreated.connect(lambda shape, kind: print(shape.layer_id))
    """

    sigCoordinateChanged = Signal(float, float)
    sigZoomChanged = Signal(float)

    sigShapeCreated = Signal(object, str)
    sigShapesEdited = Signal(object)
    sigShapesDeleted = Signal(object)
    sigShapeClicked = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """
        Initialize the Map Canvas.

        Parameters
        ----------
        parent : QWidget, optional
            Parent widget.
        """
        super().__init__(parent)

        # Layer registry: {name: {'item': GraphicsItem, 'dataset': rasterio dataset}}
        self._layers: Dict[str, Dict[str, Any]] = {}
        self._layer_order: List[str] = []

        # Editable shapes: {layer_id: {'roi': PolyLineROI, 'shape_type': str}}
        self._shapes: Dict[str, Dict[str, Any]] = {}
        self._shape_counter = 0

        # Drawing toolkit state
        self._draw_mode: Optional[str] = None
        self._sketch_points: List[tuple] = []
        self._sketch_item: Optional[pg.PlotCurveItem] = None

        # Raw click handlers, most recent first
        self._click_handlers: List[ClickHandler] = []
        self._double_click_handlers: List[ClickHandler] = []

        # Basemap catalog: {name: GeoTiff path}
        self._basemaps: Dict[str, str] = {}
        self._active_basemap: Optional[str] = None

        # Debounce timer for view updates
        self._update_timer = QTimer()
        self._update_timer.setSingleShot(True)
        self._update_timer.setInterval(150)
        self._update_timer.timeout.connect(self._update_visible_tiles)

        self._init_ui()

        logger.debug("MapCanvas initialized")

    def _init_ui(self) -> None:
        """Initialize the UI components."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self._view_box = CustomViewBox()
        self._view_box.sigClicked.connect(self._on_canvas_clicked)
        self._view_box.sigCoordinateHover.connect(self.sigCoordinateChanged.emit)

        self._plot_widget = pg.PlotWidget(viewBox=self._view_box)
        self._plot_widget.setBackground('w')
        self._plot_widget.setAspectLocked(True)

        # Hide axes for map-like view
        plot_item = self._plot_widget.getPlotItem()
        plot_item.hideAxis('left')
        plot_item.hideAxis('bottom')
        plot_item.hideButtons()

        self._plot_widget.sigRangeChanged.connect(self._on_view_changed)

        layout.addWidget(self._plot_widget)

        # All map content lives in one group so item coordinates are lng/lat
        self._item_group = pg.ItemGroup()
        self._view_box.addItem(self._item_group)

    # ------------------------------------------------------------------
    # Raster layers and basemaps
    # ------------------------------------------------------------------

    def add_raster_layer(self, filepath: str, layer_name: Optional[str] = None) -> bool:
        """
        Load a GeoTiff file as a layer.

        Parameters
        ----------
        filepath : str
            Path to the GeoTiff file, expected in EPSG:4326.
        layer_name : str, optional
            Name for the layer. If None, uses filename.

        Returns
        -------
        bool
            True if loading was successful, False otherwise.
        """
        filepath = Path(filepath)
        if not filepath.exists():
            logger.error(f"File not found: {filepath}")
            return False

        if layer_name is None:
            layer_name = filepath.stem

        if layer_name in self._layers:
            self.remove_layer(layer_name)

        try:
            # Keeps the file handle open for lazy loading
            dataset = rasterio.open(filepath)
        except rasterio.errors.RasterioIOError as e:
            logger.error(f"Failed to load GeoTiff: {e}")
            return False

        logger.info(f"Loading GeoTiff: {filepath}")
        logger.debug(f"  Size: {dataset.width} x {dataset.height}")
        logger.debug(f"  Bounds: {dataset.bounds}")
        if dataset.crs is not None and dataset.crs.to_epsg() != 4326:
            logger.warning(f"Raster CRS {dataset.crs} is not EPSG:4326, overlay may not align")

        image_item = pg.ImageItem()
        image_item.setZValue(-100)  # Raster at bottom

        self._layers[layer_name] = {
            'item': image_item,
            'dataset': dataset,
            'filepath': str(filepath),
            'visible': True,
            'bounds': dataset.bounds,
        }
        self._layer_order.append(layer_name)
        self._item_group.addItem(image_item)

        bounds = dataset.bounds
        self._view_box.setRange(
            QRectF(bounds.left, bounds.bottom, bounds.right - bounds.left, bounds.top - bounds.bottom)
        )
        self._update_visible_tiles()
        return True

    def register_basemap(self, name: str, filepath: str) -> None:
        """Associate a basemap name with a GeoTiff file."""
        self._basemaps[name] = str(filepath)
        logger.debug(f"Basemap registered: {name} -> {filepath}")

    def get_basemap_names(self) -> List[str]:
        """Get the names shown in the basemap switcher."""
        names = list(BASEMAP_NAMES)
        names.extend(name for name in self._basemaps if name not in names)
        return names

    def set_basemap(self, name: str) -> bool:
        """
        Switch the basemap by name.

        Parameters
        ----------
        name : str
            Registered basemap name.

        Returns
        -------
        bool
            False when no GeoTiff is registered under ``name``.
        """
        filepath = self._basemaps.get(name)
        if filepath is None:
            logger.warning(f"No basemap source registered for: {name}")
            return False

        if self._active_basemap is not None:
            self.remove_layer(BASEMAP_LAYER_PREFIX + self._active_basemap)
            self._active_basemap = None

        if not self.add_raster_layer(filepath, BASEMAP_LAYER_PREFIX + name):
            return False
        self._active_basemap = name
        logger.info(f"Basemap switched to: {name}")
        return True

    @property
    def active_basemap(self) -> Optional[str]:
        return self._active_basemap

    # ------------------------------------------------------------------
    # Vector layers
    # ------------------------------------------------------------------

    def add_vector_layer(
        self,
        data: Any,
        layer_name: str,
        color: str = 'g',
        width: int = 2
    ) -> bool:
        """
        Add a vector layer (GeoDataFrame or vector file path).

        Parameters
        ----------
        data : Any
            gpd.GeoDataFrame or path to a vector file.
        layer_name : str
            Name for the layer.
        color : str
            Color char (e.g. 'r', 'g', 'b', 'k') or hex.
        width : int
            Line width.

        Returns
        -------
        bool
            Success status.
        """
        gdf = gpd.read_file(data) if isinstance(data, (str, Path)) else data
        if not isinstance(gdf, gpd.GeoDataFrame):
            logger.error(f"Invalid data type for vector layer: {type(gdf)}")
            return False

        # Combine all geometries into NaN separated line segments
        all_x: List[float] = []
        all_y: List[float] = []

        def _append_coords(coords) -> None:
            x, y = coords.xy
            all_x.extend(x)
            all_y.extend(y)
            all_x.append(np.nan)
            all_y.append(np.nan)

        for geom in gdf.geometry:
            if geom is None or geom.is_empty:
                continue
            if geom.geom_type == 'Polygon':
                _append_coords(geom.exterior.coords)
                for interior in geom.interiors:
                    _append_coords(interior.coords)
            elif geom.geom_type == 'MultiPolygon':
                for poly in geom.geoms:
                    _append_coords(poly.exterior.coords)
            elif geom.geom_type == 'LineString':
                _append_coords(geom.coords)
            elif geom.geom_type == 'MultiLineString':
                for line in geom.geoms:
                    _append_coords(line.coords)
            else:
                logger.warning(f"Unsupported geometry type skipped: {geom.geom_type}")

        if not all_x:
            return False

        curve = pg.PlotCurveItem(
            x=np.array(all_x),
            y=np.array(all_y),
            pen=pg.mkPen(color=color, width=width),
            connect="finite"  # breaks on nan
        )
        curve.setZValue(100)  # Vectors on top

        min_x, min_y, max_x, max_y = gdf.total_bounds
        bounds = rasterio.coords.BoundingBox(min_x, min_y, max_x, max_y)

        if layer_name in self._layers:
            self.remove_layer(layer_name)

        self._layers[layer_name] = {
            'item': curve,
            'data': gdf,
            'visible': True,
            'bounds': bounds
        }
        self._layer_order.append(layer_name)
        self._item_group.addItem(curve)

        logger.debug(f"Loaded vector layer: {layer_name}")
        return True

    def remove_layer(self, layer_name: str) -> bool:
        """
        Remove a layer from the canvas.

        Parameters
        ----------
        layer_name : str
            Name of the layer to remove.

        Returns
        -------
        bool
            True if layer was removed, False if not found.
        """
        if layer_name not in self._layers:
            return False

        layer_info = self._layers.pop(layer_name)
        self._detach_item(layer_info['item'])

        if layer_info.get('dataset') is not None:
            layer_info['dataset'].close()

        if layer_name in self._layer_order:
            self._layer_order.remove(layer_name)

        logger.debug(f"Layer removed: {layer_name}")
        return True

    def get_layer_names(self) -> List[str]:
        """Get list of layer names."""
        return list(self._layer_order)

    def zoom_to_geometry(self, geometry: Any) -> None:
        """Zoom to the bounds of a shapely geometry."""
        min_x, min_y, max_x, max_y = geometry.bounds
        self._view_box.setRange(QRectF(min_x, min_y, max_x - min_x, max_y - min_y))

    # ------------------------------------------------------------------
    # Editable shapes
    # ------------------------------------------------------------------

    def add_editable_shape(
        self,
        layer_id: str,
        geometry: Polygon,
        color: str = DRAWN_SHAPE_COLOR,
        shape_type: str = ShapeType.POLYGON.value,
    ) -> None:
        """
        Render a polygon as an editable shape.

        Moving its handles emits ``sigShapesEdited``; removing it from the
        context menu emits ``sigShapesDeleted``; clicking it emits
        ``sigShapeClicked``.

        Parameters
        ----------
        layer_id : str
            Id reported in toolkit events for this shape.
        geometry : shapely.geometry.Polygon
            Shape outline in lng/lat.
        color : str
            Outline color.
        shape_type : str
            Toolkit shape type reported in events.
        """
        if layer_id in self._shapes:
            self.remove_editable_shape(layer_id)

        # PolyLineROI closes the ring itself
        points = [(float(x), float(y)) for x, y in geometry.exterior.coords[:-1]]
        roi = pg.PolyLineROI(
            points,
            closed=True,
            pen=pg.mkPen(color=color, width=2),
            removable=True,
        )
        roi.setZValue(200)
        roi.setAcceptedMouseButtons(Qt.MouseButton.LeftButton)
        roi.sigClicked.connect(lambda _roi, ev, lid=layer_id: self._on_shape_clicked(lid, ev))
        roi.sigRegionChangeFinished.connect(lambda _roi, lid=layer_id: self._on_shape_changed(lid))
        roi.sigRemoveRequested.connect(lambda _roi, lid=layer_id: self._on_shape_remove_requested(lid))

        self._shapes[layer_id] = {'roi': roi, 'shape_type': shape_type}
        self._item_group.addItem(roi)
        logger.debug(f"Editable shape added: {layer_id}")

    def set_shape_color(self, layer_id: str, color: str) -> bool:
        """Change the outline color of an editable shape."""
        shape_info = self._shapes.get(layer_id)
        if shape_info is None:
            return False
        shape_info["roi"].setPen(pg.mkPen(color=color, width=2))
        return True

    def remove_editable_shape(self, layer_id: str) -> bool:
        """Remove an editable shape without raising toolkit events."""
        shape_info = self._shapes.pop(layer_id, None)
        if shape_info is None:
            return False
        self._detach_item(shape_info['roi'])
        logger.debug(f"Editable shape removed: {layer_id}")
        return True

    def remove_drawn_shape(self, layer_id: str) -> bool:
        """Remove a shape committed by the drawing toolkit from the drawing layer."""
        return self.remove_editable_shape(layer_id)

    def get_shape_ids(self) -> List[str]:
        """Get ids of editable shapes on the canvas."""
        return list(self._shapes)

    def get_shape_geometry(self, layer_id: str) -> Optional[Polygon]:
        """Get the current polygon of an editable shape."""
        shape_info = self._shapes.get(layer_id)
        if shape_info is None:
            return None
        roi = shape_info['roi']
        points = []
        for _name, local_pos in roi.getLocalHandlePositions():
            pos = roi.mapToParent(local_pos)
            points.append((pos.x(), pos.y()))
        if len(points) < 3:
            return None
        return Polygon(points)

    def _drawn_shape(self, layer_id: str) -> Optional[DrawnShape]:
        geometry = self.get_shape_geometry(layer_id)
        if geometry is None:
            return None
        return DrawnShape(layer_id, self._shapes[layer_id]['shape_type'], geometry)

    def _on_shape_changed(self, layer_id: str) -> None:
        shape = self._drawn_shape(layer_id)
        if shape is None:
            return
        self.sigShapesEdited.emit([shape])

    def _on_shape_clicked(self, layer_id: str, ev) -> None:
        # Shapes swallow clicks before the view box sees them
        if ev is not None and (
            self._draw_mode is not None or self._click_handlers or self._double_click_handlers
        ):
            pos = self._item_group.mapFromScene(ev.scenePos())
            self.process_click(pos.x(), pos.y(), double=ev.double())
            return
        self.sigShapeClicked.emit(layer_id)

    def _on_shape_remove_requested(self, layer_id: str) -> None:
        shape = self._drawn_shape(layer_id)
        if shape is None:
            return
        self.remove_editable_shape(layer_id)
        self.sigShapesDeleted.emit([shape])

    # ------------------------------------------------------------------
    # Drawing toolkit
    # ------------------------------------------------------------------

    def set_draw_mode(self, mode: Optional[str]) -> None:
        """
        Start or stop drawing.

        Parameters
        ----------
        mode : str, optional
            ``"polygon"`` (click vertices, double-click to finish),
            ``"rectangle"`` (click two opposite corners) or None to stop.
        """
        self.cancel_sketch()
        self._draw_mode = ShapeType(mode).value if mode else None
        if self._draw_mode is None:
            self._plot_widget.setCursor(Qt.CursorShape.OpenHandCursor)
        else:
            self._plot_widget.setCursor(Qt.CursorShape.CrossCursor)
        logger.debug(f"Draw mode: {self._draw_mode}")

    @property
    def draw_mode(self) -> Optional[str]:
        return self._draw_mode

    def cancel_sketch(self) -> None:
        """Drop the in-progress drawing."""
        self._sketch_points = []
        if self._sketch_item is not None:
            self._detach_item(self._sketch_item)
            self._sketch_item = None

    def _update_sketch(self) -> None:
        if self._sketch_item is None:
            self._sketch_item = pg.PlotCurveItem(
                pen=pg.mkPen(color=SKETCH_COLOR, width=2, style=Qt.PenStyle.DashLine)
            )
            self._sketch_item.setZValue(300)
            self._item_group.addItem(self._sketch_item)
        xs = [p[0] for p in self._sketch_points]
        ys = [p[1] for p in self._sketch_points]
        self._sketch_item.setData(x=np.array(xs), y=np.array(ys))

    def _sketch_click(self, lng: float, lat: float) -> None:
        self._sketch_points.append((lng, lat))
        if self._draw_mode == ShapeType.RECTANGLE.value and len(self._sketch_points) == 2:
            (x0, y0), (x1, y1) = self._sketch_points
            self._commit_sketch(
                [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
            )
            return
        self._update_sketch()

    def _sketch_double_click(self) -> None:
        if self._draw_mode != ShapeType.POLYGON.value:
            return
        # The first click of a double click already added its vertex
        vertices: List[tuple] = []
        for point in self._sketch_points:
            if not vertices or vertices[-1] != point:
                vertices.append(point)
        if len(vertices) < 3:
            logger.debug("Polygon needs at least 3 vertices, keep drawing")
            return
        self._commit_sketch(vertices)

    def _commit_sketch(self, vertices: List[tuple]) -> None:
        shape_type = self._draw_mode
        self.cancel_sketch()
        polygon = Polygon(vertices)
        if polygon.area == 0:
            logger.warning("Degenerate shape discarded")
            return

        self._shape_counter += 1
        layer_id = f"drawn-{self._shape_counter}"
        self.add_editable_shape(layer_id, polygon, shape_type=shape_type)
        logger.debug(f"Shape created: {layer_id} ({shape_type})")
        self.sigShapeCreated.emit(DrawnShape(layer_id, shape_type, polygon), shape_type)

    # ------------------------------------------------------------------
    # Click handler registries
    # ------------------------------------------------------------------

    def register_click_handler(self, handler: ClickHandler) -> None:
        """Register a ``(lng, lat) -> consumed`` handler for single clicks."""
        if handler not in self._click_handlers:
            self._click_handlers.insert(0, handler)

    def unregister_click_handler(self, handler: ClickHandler) -> None:
        if handler in self._click_handlers:
            self._click_handlers.remove(handler)

    def register_double_click_handler(self, handler: ClickHandler) -> None:
        """Register a ``(lng, lat) -> consumed`` handler for double clicks."""
        if handler not in self._double_click_handlers:
            self._double_click_handlers.insert(0, handler)

    def unregister_double_click_handler(self, handler: ClickHandler) -> None:
        if handler in self._double_click_handlers:
            self._double_click_handlers.remove(handler)

    def process_click(self, lng: float, lat: float, double: bool = False) -> bool:
        """
        Dispatch a map click.

        Registered handlers see the click first; unconsumed clicks feed the
        drawing toolkit when a draw mode is active.

        Returns
        -------
        bool
            True when a handler or the drawing toolkit used the click.
        """
        handlers = self._double_click_handlers if double else self._click_handlers
        for handler in list(handlers):
            if handler(lng, lat):
                return True

        if self._draw_mode is None:
            return False
        if double:
            self._sketch_double_click()
        else:
            self._sketch_click(lng, lat)
        return True

    def _on_canvas_clicked(self, ev) -> None:
        """Handle canvas click events."""
        pos = self._view_box.mapToView(ev.pos())
        item_pos = self._item_group.mapFromParent(pos)
        self.process_click(item_pos.x(), item_pos.y(), double=ev.double())

    # ------------------------------------------------------------------
    # View updates
    # ------------------------------------------------------------------

    def _on_view_changed(self) -> None:
        """Handle view range change (pan/zoom)."""
        self._update_timer.start()

        view_rect = self._view_box.viewRect()
        for layer in self._layers.values():
            b = layer.get('bounds')
            if b is None or view_rect.width() <= 0:
                continue
            self.sigZoomChanged.emit((b.right - b.left) / view_rect.width() * 100)
            break

    def _update_visible_tiles(self) -> None:
        """Update the visible tiles based on current view."""
        view_rect = self._view_box.viewRect()
        for layer_info in self._layers.values():
            if not layer_info['visible'] or layer_info.get('dataset') is None:
                continue
            self._load_visible_region(layer_info, view_rect)

    def _load_visible_region(self, layer_info: Dict, view_rect: QRectF) -> None:
        """
        Load the visible region of a raster layer.

        Parameters
        ----------
        layer_info : Dict
            Layer information dictionary.
        view_rect : QRectF
            Current visible rectangle in lng/lat.
        """
        dataset = layer_info['dataset']
        image_item = layer_info['item']

        # Use min/max regardless of axis direction
        r_left = min(view_rect.left(), view_rect.right())
        r_right = max(view_rect.left(), view_rect.right())
        r_bottom = min(view_rect.top(), view_rect.bottom())
        r_top = max(view_rect.top(), view_rect.bottom())

        try:
            window = dataset.window(r_left, r_bottom, r_right, r_top)
        except rasterio.errors.WindowError:
            # View is outside image bounds
            image_item.clear()
            return

        # Match screen pixels
        view_px_width = int(self._view_box.width())
        view_px_height = int(self._view_box.height())
        if view_px_width <= 0 or view_px_height <= 0:
            return

        data = dataset.read(
            window=window,
            out_shape=(dataset.count, view_px_height, view_px_width),
            resampling=rasterio.enums.Resampling.nearest,
            boundless=True
        )

        # (B, H, W) -> (W, H, B) for pyqtgraph, flipped since rasterio is top-down
        data = np.flip(data.transpose((2, 1, 0)), axis=1)
        if data.shape[2] == 1:
            data = data[:, :, 0]
        elif data.shape[2] > 4:
            data = data[:, :, :3]

        if data.dtype != np.uint8:
            peak = data.max()
            data = (data / peak * 255).astype(np.uint8) if peak > 0 else data.astype(np.uint8)

        image_item.clear()
        image_item.setImage(data)
        image_item.setRect(QRectF(r_left, r_bottom, r_right - r_left, r_top - r_bottom))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _detach_item(self, item) -> None:
        item.setParentItem(None)
        if item.scene():
            item.scene().removeItem(item)

    def cleanup(self) -> None:
        """Clean up resources (close file handles, drop shapes and handlers)."""
        self.cancel_sketch()
        for layer_id in list(self._shapes):
            self.remove_editable_shape(layer_id)
        for name in list(self._layers):
            self.remove_layer(name)
        self._click_handlers.clear()
        self._double_click_handlers.clear()
        logger.debug("MapCanvas cleanup complete")
