# FieldPlotDesigner - Source Package
"""
FieldPlotDesigner: field trial plot layout designer.

This package provides a PySide6-based GUI for:
- Drawing or importing a field boundary
- Grid and strip plot layout generation
- Treatment randomization and plot numbering
- Distance and area measurement on the map
"""

__version__ = "0.1.0"
