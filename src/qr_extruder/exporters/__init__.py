"""
Export modules for 3D printing formats.

Supported formats:
- STL (.stl), binary or ASCII - Universal slicer input
"""

from .stl_exporter import STLExporter

__all__ = ["STLExporter"]
