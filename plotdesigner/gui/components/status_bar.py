from PySide6.QtWidgets import QFrame, QHBoxLayout, QWidget
from PySide6.QtCore import Qt
from qfluentwidgets import BodyLabel

from plotdesigner.gui.config import tr

class StatusBar(QFrame):
    """
    Status bar with cursor coordinates, zoom level, plot count, the selected
    plot and the last measurement.
    """

    def __init__(self, parent: QWidget = None):
        super().__init__(parent)
        self._init_ui()

    def _init_ui(self):
        self.setObjectName('statusBar')
        self.setFixedHeight(40)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.coord_label = BodyLabel(tr("status.coord").format(x=0.0, y=0.0))
        self.zoom_label = BodyLabel(tr("status.zoom").format(zoom=100.0))
        self.plot_count_label = BodyLabel(tr("status.no_plots"))
        self.selection_label = BodyLabel("")
        self.measurement_label = BodyLabel("")

        sections = [
            self.coord_label,
            self.zoom_label,
            self.plot_count_label,
            self.selection_label,
            self.measurement_label,
        ]
        for index, label in enumerate(sections):
            if index:
                layout.addWidget(self._create_separator())
            container = QWidget()
            container_layout = QHBoxLayout(container)
            container_layout.setContentsMargins(16, 0, 16, 0)
            container_layout.addWidget(label, alignment=Qt.AlignmentFlag.AlignCenter)
            layout.addWidget(container, 1)

    def _create_separator(self) -> QFrame:
        line = QFrame()
        line.setFrameShape(QFrame.Shape.VLine)
        line.setFrameShadow(QFrame.Shadow.Sunken)
        line.setLineWidth(1)
        line.setMidLineWidth(0)
        line.setStyleSheet("QFrame { border: none; background-color: #E5E5E5; max-width: 1px; }")
        line.setFixedHeight(24)
        return line

    def update_coordinates(self, x: float, y: float) -> None:
        self.coord_label.setText(tr("status.coord").format(x=x, y=y))

    def update_zoom(self, zoom_level: float) -> None:
        self.zoom_label.setText(tr("status.zoom").format(zoom=zoom_level))

    def update_plot_count(self, summary: str) -> None:
        self.plot_count_label.setText(summary)

    def update_selection(self, name: str) -> None:
        self.selection_label.setText(tr("status.selected").format(name=name) if name else "")

    def update_measurement(self, text: str) -> None:
        self.measurement_label.setText(text)
