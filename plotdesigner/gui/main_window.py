from PySide6.QtWidgets import QApplication
from PySide6.QtGui import QIcon

from loguru import logger

from qfluentwidgets import (
    FluentWindow,
    NavigationItemPosition,
    FluentIcon as FIF,
    setTheme,
)

from plotdesigner.gui.config import cfg, tr
from plotdesigner.gui.tabs.field_design import FieldDesignTab
from plotdesigner.gui.tabs.settings import SettingsTab

class MainWindow(FluentWindow):
    """
    Main Window using Fluent Design.
    """

    def __init__(self):
        super().__init__()

        self.design_tab = FieldDesignTab(self)
        self.settings_tab = SettingsTab(self)

        # Object names for FluentWindow navigation
        self.design_tab.setObjectName("design_tab")
        self.settings_tab.setObjectName("settings_tab")

        self.init_navigation()
        self.init_window()

        logger.info("MainWindow initialized successfully")

    def init_navigation(self):
        self.addSubInterface(self.design_tab, FIF.TILES, tr("nav.design"))

        self.navigationInterface.addSeparator()

        self.addSubInterface(
            self.settings_tab,
            FIF.SETTING,
            tr("nav.settings"),
            NavigationItemPosition.BOTTOM
        )

    def init_window(self):
        self.resize(1200, 800)

        self.setWindowIcon(QIcon(":/qfluentwidgets/images/logo.png"))
        self.setWindowTitle(tr("app.title"))

        setTheme(cfg.get(cfg.themeMode))

        # Center window
        desktop = QApplication.primaryScreen().availableGeometry()
        w, h = desktop.width(), desktop.height()
        self.move(w//2 - self.width()//2, h//2 - self.height()//2)

        self.navigationInterface.setMinimumExpandWidth(600)
        self.navigationInterface.setExpandWidth(200)

    def closeEvent(self, event):
        logger.info("MainWindow closing")
        self.design_tab.cleanup()
        super().closeEvent(event)
