"""
Field design page: boundary, plot layout, treatments and measurement.
"""

from typing import Any, Optional
from pathlib import Path

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtWidgets import QWidget, QFileDialog, QSplitter
from qfluentwidgets import (
    PushButton,
    PrimaryPushButton,
    ToggleButton,
    ComboBox,
    SpinBox,
    LineEdit,
    BodyLabel,
    SubtitleLabel,
    InfoBar,
    MessageBox,
    MessageBoxBase,
)
from loguru import logger

from plotdesigner.core.errors import NoBoundaryError
from plotdesigner.core.interaction import DrawTarget, ShapeType
from plotdesigner.core.measurement import MeasurementResult
from plotdesigner.core.plots import TREATMENT_CATALOG, Plot
from plotdesigner.core.session import BOUNDARY_EXPORT_FILENAME, DesignSession, LayoutKind
from plotdesigner.gui.components.base_interface import BaseInterface, PageGroup
from plotdesigner.gui.components.map_canvas import MapCanvas
from plotdesigner.gui.components.status_bar import StatusBar
from plotdesigner.gui.config import cfg, tr


class PlotMetadataDialog(MessageBoxBase):
    """Ask name, treatment, repetition and number for a drawn plot.

    Parameters
    ----------
    plot : Plot
        Provisional plot carrying the suggested name and number.
    parent : QWidget, optional
        Dialog parent, usually the top-level window.
    """

    def __init__(self, plot: Plot, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.title_label = SubtitleLabel(tr("page.design.dialog.plot_title"))

        self.name_edit = LineEdit()
        self.name_edit.setText(plot.name)

        self.treatment_combo = ComboBox()
        self.treatment_combo.addItem(tr("page.design.dialog.no_treatment"), userData="")
        for treatment in TREATMENT_CATALOG:
            self.treatment_combo.addItem(treatment.name, userData=treatment.id)

        self.repetition_edit = LineEdit()
        self.repetition_edit.setPlaceholderText(tr("page.design.dialog.repetition_hint"))

        self.number_edit = LineEdit()
        self.number_edit.setText(plot.plot_number or "")

        self.viewLayout.addWidget(self.title_label)
        for label_key, field in (
            ("page.design.dialog.name", self.name_edit),
            ("page.design.dialog.treatment", self.treatment_combo),
            ("page.design.dialog.repetition", self.repetition_edit),
            ("page.design.dialog.plot_number", self.number_edit),
        ):
            self.viewLayout.addWidget(BodyLabel(tr(label_key)))
            self.viewLayout.addWidget(field)

        self.yesButton.setText(tr("page.design.dialog.save_plot"))
        self.cancelButton.setText(tr("cancel"))
        self.widget.setMinimumWidth(360)

    def values(self) -> dict[str, Any]:
        """Return the entered metadata as keyword arguments for confirmation."""
        return {
            "name": self.name_edit.text().strip(),
            "treatment": self.treatment_combo.currentData() or None,
            "repetition_label": self.repetition_edit.text().strip(),
            "plot_number": self.number_edit.text().strip(),
        }


class FieldDesignTab(BaseInterface):
    """
    Interface content for field trial design.

    Layout:
    [ Toolbar ]
    [ MapCanvas ]
    [ StatusBar ]
    """

    sigDesignSaved = Signal(object)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._init_map_area()
        self.session = DesignSession(
            self.map_canvas,
            on_save=self._on_design_saved,
            on_import_error=self._on_import_error,
            plot_number_width=cfg.get(cfg.plotNumberWidth),
            parent=self,
        )
        self._init_ui()
        self._connect_session()

    def _init_map_area(self) -> None:
        self.v_splitter = QSplitter(Qt.Orientation.Vertical)
        self.v_splitter.setHandleWidth(1)

        self.map_canvas = MapCanvas()
        self.v_splitter.addWidget(self.map_canvas)

        self.status_bar = StatusBar()
        self.v_splitter.addWidget(self.status_bar)

        self._content_layout.addWidget(self.v_splitter, 1)

        self.map_canvas.sigCoordinateChanged.connect(self.status_bar.update_coordinates)
        self.map_canvas.sigZoomChanged.connect(self.status_bar.update_zoom)

    def _init_ui(self) -> None:
        """Initialize the tool bar groups."""
        # --- Boundary Group ---
        boundary_group = PageGroup(tr("page.design.group.boundary"))

        self.btn_draw_boundary = ToggleButton(tr("page.design.btn.draw_boundary"))
        self.btn_draw_boundary.toggled.connect(self._on_draw_boundary_toggled)
        boundary_group.add_widget(self.btn_draw_boundary)

        self.btn_import_boundary = PushButton(tr("page.design.btn.import_boundary"))
        self.btn_import_boundary.clicked.connect(self._on_import_boundary)
        boundary_group.add_widget(self.btn_import_boundary)

        self.btn_export_boundary = PushButton(tr("page.design.btn.export_boundary"))
        self.btn_export_boundary.clicked.connect(self._on_export_boundary)
        boundary_group.add_widget(self.btn_export_boundary)

        self.btn_clear_boundary = PushButton(tr("page.design.btn.clear_boundary"))
        self.btn_clear_boundary.clicked.connect(self._on_clear_boundary)
        boundary_group.add_widget(self.btn_clear_boundary)

        self.add_group(boundary_group)

        # --- Layout Group ---
        layout_group = PageGroup(tr("page.design.group.layout"))

        self.combo_layout = ComboBox()
        self.combo_layout.addItem(tr("page.design.layout.grid"), userData=LayoutKind.GRID.value)
        self.combo_layout.addItem(tr("page.design.layout.strip"), userData=LayoutKind.STRIP.value)
        self.combo_layout.currentIndexChanged.connect(self._on_layout_kind_changed)
        layout_group.add_widget(self.combo_layout)

        self.spin_rows = self._make_count_spin(cfg.get(cfg.defaultRows), "page.design.label.rows")
        self.spin_cols = self._make_count_spin(cfg.get(cfg.defaultColumns), "page.design.label.columns")
        self.spin_strips = self._make_count_spin(cfg.get(cfg.defaultStrips), "page.design.label.strips")
        for spin in (self.spin_rows, self.spin_cols, self.spin_strips):
            layout_group.add_widget(spin)

        self.btn_generate = PrimaryPushButton(tr("page.design.btn.generate"))
        self.btn_generate.clicked.connect(self._on_generate)
        layout_group.add_widget(self.btn_generate)

        self.add_group(layout_group)

        # --- Plots Group ---
        plots_group = PageGroup(tr("page.design.group.plots"))

        self.combo_plot_shape = ComboBox()
        self.combo_plot_shape.addItem(tr("page.design.shape.polygon"), userData=ShapeType.POLYGON.value)
        self.combo_plot_shape.addItem(tr("page.design.shape.rectangle"), userData=ShapeType.RECTANGLE.value)
        self.combo_plot_shape.currentIndexChanged.connect(self._on_plot_shape_changed)
        plots_group.add_widget(self.combo_plot_shape)

        self.btn_draw_plot = ToggleButton(tr("page.design.btn.draw_plot"))
        self.btn_draw_plot.toggled.connect(self._on_draw_plot_toggled)
        plots_group.add_widget(self.btn_draw_plot)

        self.btn_auto_number = PushButton(tr("page.design.btn.auto_number"))
        self.btn_auto_number.clicked.connect(self._on_auto_number)
        plots_group.add_widget(self.btn_auto_number)

        self.btn_randomize = PushButton(tr("page.design.btn.randomize"))
        self.btn_randomize.clicked.connect(self._on_randomize)
        plots_group.add_widget(self.btn_randomize)

        self.add_group(plots_group)

        # --- Map Group ---
        map_group = PageGroup(tr("page.design.group.map"))

        self.combo_basemap = ComboBox()
        self.combo_basemap.addItems(self.map_canvas.get_basemap_names())
        self.combo_basemap.currentTextChanged.connect(self._on_basemap_changed)
        map_group.add_widget(self.combo_basemap)

        self.btn_load_basemap = PushButton(tr("page.design.btn.load_basemap"))
        self.btn_load_basemap.clicked.connect(self._on_load_basemap)
        map_group.add_widget(self.btn_load_basemap)

        self.btn_measure = ToggleButton(tr("page.design.btn.measure"))
        self.btn_measure.toggled.connect(self._on_measure_toggled)
        map_group.add_widget(self.btn_measure)

        self.add_group(map_group)

        # --- Design Group ---
        design_group = PageGroup(tr("page.design.group.design"))

        self.btn_save_design = PrimaryPushButton(tr("page.design.btn.save_design"))
        self.btn_save_design.clicked.connect(self._on_save_design)
        design_group.add_widget(self.btn_save_design)

        self.add_group(design_group)
        self.add_stretch()

        self._on_layout_kind_changed(self.combo_layout.currentIndex())

    def _make_count_spin(self, value: int, tooltip_key: str) -> SpinBox:
        spin = SpinBox()
        spin.setRange(1, 20)
        spin.setValue(value)
        spin.setToolTip(tr(tooltip_key))
        return spin

    def _connect_session(self) -> None:
        controller = self.session.controller
        controller.sigMetadataRequested.connect(self._on_metadata_requested)
        controller.sigPlotsChanged.connect(self._on_plots_changed)
        controller.sigBoundaryChanged.connect(self._on_boundary_changed)
        controller.sigMeasurementFinished.connect(self._on_measurement_finished)
        controller.sigSelectionChanged.connect(self._on_selection_changed)

    # --- Drawing ---

    def _current_layout_kind(self) -> LayoutKind:
        return LayoutKind(self.combo_layout.currentData())

    @Slot(int)
    def _on_layout_kind_changed(self, _index: int) -> None:
        is_grid = self._current_layout_kind() == LayoutKind.GRID
        self.spin_rows.setVisible(is_grid)
        self.spin_cols.setVisible(is_grid)
        self.spin_strips.setVisible(not is_grid)

    @Slot(bool)
    def _on_draw_boundary_toggled(self, checked: bool) -> None:
        if checked:
            self._uncheck(self.btn_draw_plot, self.btn_measure)
            self.session.set_draw_target(DrawTarget.BOUNDARY)
            self.map_canvas.set_draw_mode(ShapeType.POLYGON.value)
        elif not self.btn_draw_plot.isChecked():
            self.map_canvas.set_draw_mode(None)

    @Slot(bool)
    def _on_draw_plot_toggled(self, checked: bool) -> None:
        if checked:
            self._uncheck(self.btn_draw_boundary, self.btn_measure)
            self.session.set_draw_target(DrawTarget.PLOT)
            self.map_canvas.set_draw_mode(self.combo_plot_shape.currentData())
        elif not self.btn_draw_boundary.isChecked():
            self.map_canvas.set_draw_mode(None)

    @Slot(int)
    def _on_plot_shape_changed(self, _index: int) -> None:
        if self.btn_draw_plot.isChecked():
            self.map_canvas.set_draw_mode(self.combo_plot_shape.currentData())

    def _uncheck(self, *buttons) -> None:
        for button in buttons:
            if button.isChecked():
                button.setChecked(False)

    def _create_metadata_dialog(self, plot: Plot) -> PlotMetadataDialog:
        return PlotMetadataDialog(plot, self.window())

    @Slot(object)
    def _on_metadata_requested(self, plot: Plot) -> None:
        dialog = self._create_metadata_dialog(plot)
        if dialog.exec():
            self.session.confirm_pending_plot(**dialog.values())
        else:
            self.session.cancel_pending_plot()

    # --- Boundary ---

    @Slot()
    def _on_import_boundary(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            tr("page.design.dialog.import_boundary"),
            "",
            "GeoJSON (*.geojson *.json);;Shapefile (*.shp);;All Files (*)",
        )
        if not file_path:
            return
        if self.session.import_boundary(Path(file_path)):
            InfoBar.success(
                title=tr("success"),
                content=f"Boundary loaded: {Path(file_path).name}",
                parent=self,
                duration=2000,
            )
            boundary = self.session.boundary_manager.get()
            self.map_canvas.zoom_to_geometry(boundary.polygon)

    def _on_import_error(self, reason: str) -> None:
        InfoBar.error(
            title=tr("error"),
            content=f"{tr('page.design.msg.import_failed')}: {reason}",
            parent=self,
            duration=4000,
        )

    @Slot()
    def _on_export_boundary(self) -> None:
        if self.session.boundary_manager.get() is None:
            InfoBar.warning(
                title=tr("warning"),
                content=tr("page.design.msg.no_boundary"),
                parent=self,
                duration=2500,
            )
            return
        file_path, _ = QFileDialog.getSaveFileName(
            self, tr("page.design.dialog.export_boundary"), BOUNDARY_EXPORT_FILENAME, "GeoJSON (*.geojson)"
        )
        if not file_path:
            return
        try:
            self.session.export_boundary(file_path)
        except OSError as exc:
            logger.error(f"Boundary export failed: {exc}")
            InfoBar.error(
                title=tr("error"),
                content=f"Failed to export boundary: {exc}",
                parent=self,
                duration=4000,
            )
            return
        InfoBar.success(
            title=tr("success"),
            content=f"Boundary exported: {Path(file_path).name}",
            parent=self,
            duration=2000,
        )

    def _ask_clear_plots(self) -> bool:
        """Ask user whether the plot layout should go with the boundary."""
        msg_box = MessageBox(
            tr("page.design.msg.clear_plots_title"),
            tr("page.design.msg.clear_plots_content"),
            self.window(),
        )
        msg_box.yesButton.setText(tr("page.design.btn.clear_plots"))
        msg_box.cancelButton.setText(tr("page.design.btn.keep_plots"))
        return bool(msg_box.exec())

    @Slot()
    def _on_clear_boundary(self) -> None:
        clear_plots = len(self.session.plot_registry) > 0 and self._ask_clear_plots()
        self.session.clear_boundary(clear_plots=clear_plots)
        self.status_bar.update_measurement("")

    def _on_boundary_changed(self) -> None:
        self._uncheck(self.btn_draw_boundary)

    # --- Layout ---

    @Slot()
    def _on_generate(self) -> None:
        try:
            self.session.generate_layout(
                self._current_layout_kind(),
                rows=self.spin_rows.value(),
                columns=self.spin_cols.value(),
                strips=self.spin_strips.value(),
            )
        except NoBoundaryError as exc:
            InfoBar.warning(
                title=tr("warning"),
                content=str(exc),
                parent=self,
                duration=2500,
            )
            return
        except ValueError as exc:
            InfoBar.error(
                title=tr("error"),
                content=f"Generation failed: {exc}",
                parent=self,
                duration=4000,
            )
            return
        InfoBar.success(
            title=tr("success"),
            content=self.session.plot_count_summary(),
            parent=self,
            duration=2000,
        )

    @Slot()
    def _on_auto_number(self) -> None:
        self.session.auto_number_all()

    @Slot()
    def _on_randomize(self) -> None:
        if len(self.session.plot_registry) == 0:
            InfoBar.warning(
                title=tr("warning"),
                content=tr("page.design.msg.no_plots"),
                parent=self,
                duration=2500,
            )
            return
        self.session.randomize_all_treatments()

    def _on_plots_changed(self) -> None:
        self.status_bar.update_plot_count(self.session.plot_count_summary())

    @Slot(object)
    def _on_selection_changed(self, plot: Optional[Plot]) -> None:
        self.status_bar.update_selection(plot.name if plot is not None else "")

    # --- Map ---

    @Slot(str)
    def _on_basemap_changed(self, name: str) -> None:
        if not name:
            return
        if not self.map_canvas.set_basemap(name):
            InfoBar.warning(
                title=tr("warning"),
                content=tr("page.design.msg.no_basemap").format(name=name),
                parent=self,
                duration=2500,
            )

    @Slot()
    def _on_load_basemap(self) -> None:
        name = self.combo_basemap.currentText() or self.map_canvas.get_basemap_names()[0]
        file_path, _ = QFileDialog.getOpenFileName(
            self, tr("page.design.dialog.load_basemap"), "", "GeoTiff (*.tif *.tiff);;All Files (*)"
        )
        if not file_path:
            return
        canvas = self.map_canvas
        canvas.register_basemap(name, file_path)
        if canvas.set_basemap(name):
            InfoBar.success(
                title=tr("success"),
                content=f"Loaded: {Path(file_path).name}",
                parent=self,
                duration=2000,
            )
        else:
            InfoBar.error(
                title=tr("error"),
                content=f"Failed to load image: {file_path}",
                parent=self,
                duration=4000,
            )

    @Slot(bool)
    def _on_measure_toggled(self, checked: bool) -> None:
        if checked:
            self._uncheck(self.btn_draw_boundary, self.btn_draw_plot)
            self.status_bar.update_measurement("")
            self.session.start_measuring()
        else:
            self.session.stop_measuring()

    def _on_measurement_finished(self, result: MeasurementResult) -> None:
        text = result.format()
        self.status_bar.update_measurement(text)
        self.btn_measure.blockSignals(True)
        self.btn_measure.setChecked(False)
        self.btn_measure.blockSignals(False)
        InfoBar.info(
            title=tr("page.design.msg.measurement"),
            content=text,
            parent=self,
            duration=4000,
        )

    # --- Design ---

    @Slot()
    def _on_save_design(self) -> None:
        if len(self.session.plot_registry) == 0:
            InfoBar.warning(
                title=tr("warning"),
                content=tr("page.design.msg.no_plots"),
                parent=self,
                duration=2500,
            )
            return
        file_path, _ = QFileDialog.getSaveFileName(
            self, tr("page.design.dialog.save_design"), "field-design.geojson", "GeoJSON (*.geojson)"
        )
        if not file_path:
            return
        try:
            self.session.save_design(trial_id=cfg.get(cfg.trialId), output_path=file_path)
        except OSError as exc:
            logger.error(f"Design save failed: {exc}")
            InfoBar.error(
                title=tr("error"),
                content=f"Failed to save design: {exc}",
                parent=self,
                duration=4000,
            )

    def _on_design_saved(self, design: dict) -> None:
        InfoBar.success(
            title=tr("success"),
            content=tr("page.design.msg.saved").format(count=len(design["features"])),
            parent=self,
            duration=2000,
        )
        self.sigDesignSaved.emit(design)

    def cleanup(self) -> None:
        """Release session subscriptions and map resources."""
        self.session.shutdown()
        self.map_canvas.cleanup()
