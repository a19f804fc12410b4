# FieldPlotDesigner GUI Components
"""
Reusable GUI components for FieldPlotDesigner.

Components:
- MapCanvas: lng/lat map with GeoTiff basemaps and a drawing toolkit
- StatusBar: coordinates, zoom, plot count, selected plot and measurement display
"""
