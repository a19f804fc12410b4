# FieldPlotDesigner Tab Modules
"""
Tab modules for FieldPlotDesigner navigation.

Tabs:
- FieldDesign: Boundary, plot layout, treatments and measurement
- Settings: Theme, language and design defaults
"""
