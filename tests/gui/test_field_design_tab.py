"""Tests for field design page wiring between controls and the design session."""

from __future__ import annotations

import pytest

from plotdesigner.core.interaction import BOUNDARY_LAYER_ID, DrawTarget
from plotdesigner.gui.tabs import field_design
from plotdesigner.gui.tabs.field_design import FieldDesignTab


class _InfoBarRecorder:
    """Collect InfoBar calls instead of showing toasts."""

    calls: list[tuple[str, str]] = []

    @classmethod
    def _record(cls, level: str, **kwargs) -> None:
        cls.calls.append((level, kwargs.get("content", "")))

    @classmethod
    def success(cls, **kwargs) -> None:
        cls._record("success", **kwargs)

    @classmethod
    def info(cls, **kwargs) -> None:
        cls._record("info", **kwargs)

    @classmethod
    def warning(cls, **kwargs) -> None:
        cls._record("warning", **kwargs)

    @classmethod
    def error(cls, **kwargs) -> None:
        cls._record("error", **kwargs)


class _FakeDialog:
    def __init__(self, accepted: bool, values: dict) -> None:
        self._accepted = accepted
        self._values = values

    def exec(self) -> bool:
        return self._accepted

    def values(self) -> dict:
        return self._values


@pytest.fixture
def info_bar(monkeypatch) -> type[_InfoBarRecorder]:
    _InfoBarRecorder.calls = []
    monkeypatch.setattr(field_design, "InfoBar", _InfoBarRecorder)
    return _InfoBarRecorder


@pytest.fixture
def tab(qtbot, info_bar) -> FieldDesignTab:
    design_tab = FieldDesignTab()
    qtbot.addWidget(design_tab)
    yield design_tab
    design_tab.cleanup()


def _draw_polygon(canvas, ring) -> None:
    for lng, lat in ring[:-1]:
        canvas.process_click(lng, lat)
    lng, lat = ring[-2]
    canvas.process_click(lng, lat, double=True)


def _draw_boundary(tab, ring) -> None:
    tab.btn_draw_boundary.setChecked(True)
    _draw_polygon(tab.map_canvas, ring)


def test_drawn_boundary_releases_draw_toggle(tab, square_ring) -> None:
    _draw_boundary(tab, square_ring)

    assert tab.session.boundary_manager.has_valid_boundary()
    assert not tab.btn_draw_boundary.isChecked()
    assert tab.map_canvas.draw_mode is None
    assert BOUNDARY_LAYER_ID in tab.map_canvas.get_shape_ids()


def test_generate_without_boundary_warns(tab, info_bar) -> None:
    tab._on_generate()

    assert info_bar.calls[-1][0] == "warning"
    assert len(tab.session.plot_registry) == 0


def test_generate_grid_updates_status_bar(tab, info_bar, square_ring) -> None:
    _draw_boundary(tab, square_ring)
    tab.spin_rows.setValue(2)
    tab.spin_cols.setValue(3)

    tab._on_generate()

    assert info_bar.calls[-1] == ("success", "6 plots generated")
    assert tab.status_bar.plot_count_label.text() == "6 plots generated"


def test_layout_kind_toggles_count_inputs(tab) -> None:
    tab.combo_layout.setCurrentIndex(1)
    assert tab._current_layout_kind().value == "strip"
    assert tab.spin_strips.isVisibleTo(tab)
    assert not tab.spin_rows.isVisibleTo(tab)


def test_drawn_plot_is_confirmed_from_dialog(tab, monkeypatch) -> None:
    monkeypatch.setattr(
        tab,
        "_create_metadata_dialog",
        lambda plot: _FakeDialog(True, {"name": "Edge", "treatment": "1", "plot_number": ""}),
    )
    tab.combo_plot_shape.setCurrentIndex(1)
    tab.btn_draw_plot.setChecked(True)
    assert tab.session.controller.draw_target == DrawTarget.PLOT

    canvas = tab.map_canvas
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 1.0)

    (plot,) = tab.session.plot_registry.list()
    assert plot.name == "Edge"
    assert plot.plot_number == "P01"
    assert plot.treatment == "1"
    assert tab.status_bar.plot_count_label.text() == "1 plot generated"
    assert canvas.get_shape_ids() == [plot.id]


def test_cancelled_dialog_discards_plot(tab, monkeypatch) -> None:
    monkeypatch.setattr(tab, "_create_metadata_dialog", lambda plot: _FakeDialog(False, {}))
    tab.combo_plot_shape.setCurrentIndex(1)
    tab.btn_draw_plot.setChecked(True)

    canvas = tab.map_canvas
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 1.0)

    assert len(tab.session.plot_registry) == 0
    assert canvas.get_shape_ids() == []


def test_draw_toggles_are_exclusive(tab) -> None:
    tab.btn_draw_plot.setChecked(True)
    tab.btn_draw_boundary.setChecked(True)

    assert not tab.btn_draw_plot.isChecked()
    assert tab.session.controller.draw_target == DrawTarget.BOUNDARY
    assert tab.map_canvas.draw_mode == "polygon"

    tab.btn_draw_boundary.setChecked(False)
    assert tab.map_canvas.draw_mode is None


def test_measurement_toggle_reports_result(tab, info_bar) -> None:
    tab.btn_measure.setChecked(True)
    canvas = tab.map_canvas
    canvas.process_click(0.0, 0.0)
    canvas.process_click(1.0, 0.0)
    canvas.process_click(1.0, 0.0, double=True)

    assert not tab.btn_measure.isChecked()
    assert tab.status_bar.measurement_label.text().startswith("Distance:")
    assert info_bar.calls[-1][0] == "info"
    assert tab.session.last_measurement is not None
    assert "measure_line" not in canvas.get_layer_names()


def test_clear_boundary_keeps_plots_when_declined(tab, monkeypatch, square_ring) -> None:
    _draw_boundary(tab, square_ring)
    tab.spin_rows.setValue(2)
    tab.spin_cols.setValue(2)
    tab._on_generate()
    monkeypatch.setattr(tab, "_ask_clear_plots", lambda: False)

    tab._on_clear_boundary()

    assert tab.session.boundary_manager.get() is None
    assert len(tab.session.plot_registry) == 4


def test_clear_boundary_with_plots_when_confirmed(tab, monkeypatch, square_ring) -> None:
    _draw_boundary(tab, square_ring)
    tab.spin_rows.setValue(1)
    tab.spin_cols.setValue(2)
    tab._on_generate()
    monkeypatch.setattr(tab, "_ask_clear_plots", lambda: True)

    tab._on_clear_boundary()

    assert len(tab.session.plot_registry) == 0
    assert tab.map_canvas.get_shape_ids() == []


def test_randomize_without_plots_warns(tab, info_bar) -> None:
    tab._on_randomize()
    assert info_bar.calls[-1][0] == "warning"


def test_unknown_basemap_warns(tab, info_bar) -> None:
    tab._on_basemap_changed("Streets")
    assert info_bar.calls[-1][0] == "warning"


def test_clicked_plot_is_shown_as_selection(tab, square_ring) -> None:
    _draw_boundary(tab, square_ring)
    tab.combo_layout.setCurrentIndex(1)
    tab.spin_strips.setValue(2)
    tab._on_generate()
    first = tab.session.plot_registry.list()[0]
    roi = tab.map_canvas._shapes[first.id]["roi"]

    roi.sigClicked.emit(roi, None)

    assert tab.session.controller.selected_plot_id == first.id
    assert "Strip 1" in tab.status_bar.selection_label.text()

    tab._on_generate()
    assert tab.status_bar.selection_label.text() == ""
