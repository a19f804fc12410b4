"""Tests for the map canvas drawing toolkit and layer APIs."""

from __future__ import annotations

import geopandas as gpd
import numpy as np
import pytest
import rasterio
from PySide6.QtCore import QPointF
from rasterio.transform import from_origin
from shapely.geometry import LineString

from plotdesigner.gui.components.map_canvas import BASEMAP_LAYER_PREFIX, MapCanvas


@pytest.fixture
def canvas(qtbot) -> MapCanvas:
    map_canvas = MapCanvas()
    qtbot.addWidget(map_canvas)
    yield map_canvas
    map_canvas.cleanup()


def test_polygon_is_committed_on_double_click(canvas, qtbot) -> None:
    canvas.set_draw_mode("polygon")
    for lng, lat in [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]:
        assert canvas.process_click(lng, lat)

    with qtbot.waitSignal(canvas.sigShapeCreated) as blocker:
        # The first half of a double click repeats the last vertex
        canvas.process_click(1.0, 1.0)
        canvas.process_click(1.0, 1.0, double=True)

    shape, shape_type = blocker.args
    assert shape_type == "polygon"
    assert shape.layer_id == "drawn-1"
    assert len(shape.geometry.exterior.coords) == 4
    assert canvas.get_shape_ids() == ["drawn-1"]


def test_polygon_needs_three_vertices(canvas, qtbot) -> None:
    canvas.set_draw_mode("polygon")
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 0.0)

    with qtbot.assertNotEmitted(canvas.sigShapeCreated):
        canvas.process_click(1.0, 0.0, double=True)
    assert canvas.get_shape_ids() == []


def test_rectangle_from_two_corners(canvas, qtbot) -> None:
    canvas.set_draw_mode("rectangle")
    canvas.process_click(2.0, 1.0)

    with qtbot.waitSignal(canvas.sigShapeCreated) as blocker:
        canvas.process_click(0.0, 3.0)

    shape, shape_type = blocker.args
    assert shape_type == "rectangle"
    assert shape.geometry.bounds == (0.0, 1.0, 2.0, 3.0)


def test_clicks_without_draw_mode_are_unused(canvas) -> None:
    assert not canvas.process_click(0.0, 0.0)
    assert not canvas.process_click(0.0, 0.0, double=True)


def test_handler_consumes_click_before_toolkit(canvas) -> None:
    seen: list[tuple[float, float]] = []

    def handler(lng: float, lat: float) -> bool:
        seen.append((lng, lat))
        return True

    canvas.set_draw_mode("rectangle")
    canvas.register_click_handler(handler)
    canvas.register_click_handler(handler)
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 1.0)

    assert seen == [(0.0, 0.0), (1.0, 1.0)]
    assert canvas.get_shape_ids() == []

    canvas.unregister_click_handler(handler)
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 1.0)
    assert canvas.get_shape_ids() == ["drawn-1"]


def test_moving_shape_emits_edit(canvas, qtbot) -> None:
    canvas.set_draw_mode("rectangle")
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 1.0)
    roi = canvas._shapes["drawn-1"]["roi"]

    with qtbot.waitSignal(canvas.sigShapesEdited) as blocker:
        roi.setPos((5.0, 5.0))

    (shape,) = blocker.args[0]
    assert shape.layer_id == "drawn-1"
    assert shape.shape_type == "rectangle"
    assert shape.geometry.bounds == pytest.approx((5.0, 5.0, 6.0, 6.0))


def test_remove_request_emits_delete(canvas, qtbot) -> None:
    canvas.set_draw_mode("rectangle")
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 1.0)
    roi = canvas._shapes["drawn-1"]["roi"]

    with qtbot.waitSignal(canvas.sigShapesDeleted) as blocker:
        roi.sigRemoveRequested.emit(roi)

    assert [shape.layer_id for shape in blocker.args[0]] == ["drawn-1"]
    assert canvas.get_shape_ids() == []


class _ShapeClick:
    """Stand-in for a pyqtgraph mouse click event on a shape."""

    def __init__(self, canvas, lng: float, lat: float, double: bool = False) -> None:
        self._scene_pos = canvas._item_group.mapToScene(QPointF(lng, lat))
        self._double = double

    def scenePos(self):
        return self._scene_pos

    def double(self) -> bool:
        return self._double


def _rectangle(canvas, corner, opposite) -> None:
    canvas.set_draw_mode("rectangle")
    canvas.process_click(*corner)
    canvas.process_click(*opposite)


def test_shape_click_without_draw_mode_emits_layer_id(canvas, qtbot) -> None:
    _rectangle(canvas, (0.0, 0.0), (1.0, 1.0))
    canvas.set_draw_mode(None)
    roi = canvas._shapes["drawn-1"]["roi"]

    with qtbot.waitSignal(canvas.sigShapeClicked) as blocker:
        roi.sigClicked.emit(roi, _ShapeClick(canvas, 0.5, 0.5))

    assert blocker.args == ["drawn-1"]


def test_shape_click_while_drawing_feeds_toolkit(canvas, qtbot, monkeypatch) -> None:
    _rectangle(canvas, (0.0, 0.0), (1.0, 1.0))
    roi = canvas._shapes["drawn-1"]["roi"]
    forwarded: list[bool] = []
    monkeypatch.setattr(
        canvas, "process_click", lambda lng, lat, double=False: forwarded.append(double)
    )

    with qtbot.assertNotEmitted(canvas.sigShapeClicked):
        roi.sigClicked.emit(roi, _ShapeClick(canvas, 2.0, 2.0))
        roi.sigClicked.emit(roi, _ShapeClick(canvas, 2.0, 2.0, double=True))

    assert forwarded == [False, True]


def test_set_shape_color(canvas) -> None:
    _rectangle(canvas, (0.0, 0.0), (1.0, 1.0))

    assert canvas.set_shape_color("drawn-1", "#3b82f6")
    assert canvas._shapes["drawn-1"]["roi"].pen.color().name() == "#3b82f6"
    assert not canvas.set_shape_color("missing", "#3b82f6")


def test_remove_drawn_shape_is_silent(canvas, qtbot) -> None:
    canvas.set_draw_mode("rectangle")
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 1.0)

    with qtbot.assertNotEmitted(canvas.sigShapesDeleted):
        assert canvas.remove_drawn_shape("drawn-1")
    assert not canvas.remove_drawn_shape("drawn-1")


def test_line_vector_layer(canvas) -> None:
    gdf = gpd.GeoDataFrame(geometry=[LineString([(0, 0), (1, 1), (2, 0)])], crs="EPSG:4326")

    assert canvas.add_vector_layer(gdf, "measure_line", color="#3b82f6", width=3)
    assert canvas.get_layer_names() == ["measure_line"]
    assert canvas.remove_layer("measure_line")
    assert not canvas.remove_layer("measure_line")


def test_empty_vector_layer_is_rejected(canvas) -> None:
    gdf = gpd.GeoDataFrame(geometry=[], crs="EPSG:4326")
    assert not canvas.add_vector_layer(gdf, "empty")
    assert canvas.get_layer_names() == []


def test_unknown_basemap_is_refused(canvas) -> None:
    assert "Satellite" in canvas.get_basemap_names()
    assert not canvas.set_basemap("Satellite")
    assert canvas.active_basemap is None


def test_registered_basemap_replaces_previous(canvas, tmp_path) -> None:
    path = tmp_path / "satellite.tif"
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        width=8,
        height=8,
        count=3,
        dtype="uint8",
        crs="EPSG:4326",
        transform=from_origin(139.54, 35.713, 0.0005, 0.0005),
    ) as dst:
        dst.write(np.full((3, 8, 8), 120, dtype=np.uint8))

    canvas.register_basemap("Satellite", path)
    canvas.register_basemap("Drone", path)

    assert canvas.set_basemap("Satellite")
    assert canvas.get_layer_names() == [BASEMAP_LAYER_PREFIX + "Satellite"]

    assert canvas.set_basemap("Drone")
    assert canvas.active_basemap == "Drone"
    assert canvas.get_layer_names() == [BASEMAP_LAYER_PREFIX + "Drone"]
    assert "Drone" in canvas.get_basemap_names()
