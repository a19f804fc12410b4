# FieldPlotDesigner GUI
"""
PySide6 / qfluentwidgets user interface for FieldPlotDesigner.
"""
