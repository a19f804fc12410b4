# FieldPlotDesigner Core Module
"""
Core business logic module for FieldPlotDesigner.

Contains:
- Plot geometry generation and geodesic measurement
- Plot registry and treatment catalog
- Field boundary management
- Drawing interaction state machines
- Design session composition root
"""
