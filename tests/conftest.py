"""Pytest bootstrap helpers shared by all test domains."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def _append_repo_root() -> None:
    """Ensure repository root is present in import path."""
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_text = str(repo_root)
    if repo_root_text in sys.path:
        return
    sys.path.insert(0, repo_root_text)


_append_repo_root()

# Run Qt headless when no display platform is configured.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QObject, Signal  # noqa: E402
from shapely.geometry import Polygon  # noqa: E402

from plotdesigner.core.interaction import DrawnShape  # noqa: E402


class FakeDrawingSurface(QObject):
    """Minimal drawing-surface double recording layer and shape churn."""

    sigShapeCreated = Signal(object, str)
    sigShapesEdited = Signal(object)
    sigShapesDeleted = Signal(object)
    sigShapeClicked = Signal(str)

    def __init__(self) -> None:
        super().__init__()
        self.shapes: dict[str, dict] = {}
        self.layers: dict[str, object] = {}
        self.click_handlers: list = []
        self.double_click_handlers: list = []
        self.removed_drawn: list[str] = []
        self._counter = 0

    # --- surface API ---

    def add_editable_shape(self, layer_id: str, geometry, color: str = "#000000") -> None:
        self.shapes[layer_id] = {"geometry": geometry, "color": color}

    def set_shape_color(self, layer_id: str, color: str) -> bool:
        if layer_id not in self.shapes:
            return False
        self.shapes[layer_id]["color"] = color
        return True

    def remove_editable_shape(self, layer_id: str) -> bool:
        return self.shapes.pop(layer_id, None) is not None

    def remove_drawn_shape(self, layer_id: str) -> bool:
        self.removed_drawn.append(layer_id)
        return self.remove_editable_shape(layer_id)

    def add_vector_layer(self, gdf, layer_name: str, color: str = "g", width: int = 2) -> bool:
        self.layers[layer_name] = gdf
        return True

    def remove_layer(self, layer_name: str) -> bool:
        return self.layers.pop(layer_name, None) is not None

    def get_layer_names(self) -> list[str]:
        return list(self.layers)

    def register_click_handler(self, handler) -> None:
        self.click_handlers.append(handler)

    def unregister_click_handler(self, handler) -> None:
        self.click_handlers.remove(handler)

    def register_double_click_handler(self, handler) -> None:
        self.double_click_handlers.append(handler)

    def unregister_double_click_handler(self, handler) -> None:
        self.double_click_handlers.remove(handler)

    # --- test helpers ---

    def draw(self, ring, shape_type: str = "polygon") -> DrawnShape:
        """Commit a shape as the toolkit would and emit the created event."""
        self._counter += 1
        layer_id = f"drawn-{self._counter}"
        shape = DrawnShape(layer_id, shape_type, Polygon(ring))
        self.shapes[layer_id] = {"geometry": shape.geometry, "color": "#000000"}
        self.sigShapeCreated.emit(shape, shape_type)
        return shape

    def edit(self, layer_id: str, geometry, shape_type: str = "polygon") -> None:
        self.sigShapesEdited.emit([DrawnShape(layer_id, shape_type, geometry)])

    def delete(self, *layer_ids: str) -> None:
        shapes = []
        for layer_id in layer_ids:
            info = self.shapes.pop(layer_id, {"geometry": Polygon()})
            shapes.append(DrawnShape(layer_id, "polygon", info["geometry"]))
        self.sigShapesDeleted.emit(shapes)

    def click_shape(self, layer_id: str) -> None:
        self.sigShapeClicked.emit(layer_id)

    def click(self, lng: float, lat: float, double: bool = False) -> bool:
        handlers = self.double_click_handlers if double else self.click_handlers
        return any(handler(lng, lat) for handler in list(handlers))


@pytest.fixture
def fake_surface(qtbot) -> FakeDrawingSurface:
    """Fresh fake drawing surface bound to a running QApplication."""
    return FakeDrawingSurface()


@pytest.fixture
def square_ring() -> list[tuple[float, float]]:
    """Closed 4-corner field ring near Tokyo, lng/lat degrees."""
    return [
        (139.5400, 35.7100),
        (139.5440, 35.7100),
        (139.5440, 35.7130),
        (139.5400, 35.7130),
        (139.5400, 35.7100),
    ]
