#!/usr/bin/env python
"""
FieldPlotDesigner - field trial plot layout GUI.

Main entry point for the application.

Usage
-----
    uv run python main.py

or:
    python main.py
"""

import sys


def main() -> int:
    """
    Main entry point for FieldPlotDesigner application.

    Returns
    -------
    int
        Exit code (0 for success, non-zero for error).
    """
    from loguru import logger
    from PySide6.QtWidgets import QApplication
    import pyqtgraph as pg

    from plotdesigner import __version__

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
               "<level>{message}</level>",
        level="DEBUG"
    )

    logger.info("Starting FieldPlotDesigner...")

    # Configure PyQtGraph
    # MapCanvas feeds images in column-major (x, y, c) order
    pg.setConfigOptions(
        imageAxisOrder='col-major',
        antialias=True,
    )

    app = QApplication(sys.argv)
    app.setApplicationName("FieldPlotDesigner")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("UTokyo-FieldPhenomics-Lab")

    app.setStyle("Fusion")

    # Import after QApplication so qfluentwidgets config can load
    from plotdesigner.gui.main_window import MainWindow

    window = MainWindow()
    window.show()

    logger.info("Application started successfully")

    exit_code = app.exec()

    logger.info(f"Application exited with code: {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
