"""
QR Extruder
===========

Turns a two-color QR code image into a watertight 3D solid for printing.

The image is point-sampled into a boolean occupancy grid (one cell per QR
module), and every raised cell is extruded into a box. Walls between two
raised cells are culled, so the result is a single closed surface with
consistent outward normals, written out as STL.

Key Features:
- Dominant two-color detection with human-readable color names
- Cell-center sampling at any module size
- Neighbor-aware face culling with Numba JIT compilation
- Bit-identical shared corners (no cracks between cells)
- Binary and ASCII STL export

Example Usage:
    from qr_extruder import QRExtruder

    extruder = QRExtruder(height=0.1)
    extruder.load_image("qrcode.png")
    extruder.choose_raised_color("black")
    extruder.sample(cell_size=10)
    extruder.export_stl("qrcode.stl")
"""

__version__ = "1.0.0"
__author__ = "QR Extruder Team"

from .generator import QRExtruder
from .sampler import OccupancyGrid, sample_grid
from .mesher import CellMesher, MeshData, Triangle, FaceDirection
from .color import ColorChoice, dominant_colors, color_name
from .exceptions import (
    QRExtruderError,
    InvalidCellSizeError,
    EmptyGridError,
    JaggedGridError,
    ColorDetectionError,
    InvalidColorError,
)

__all__ = [
    "QRExtruder",
    "OccupancyGrid",
    "sample_grid",
    "CellMesher",
    "MeshData",
    "Triangle",
    "FaceDirection",
    "ColorChoice",
    "dominant_colors",
    "color_name",
    "QRExtruderError",
    "InvalidCellSizeError",
    "EmptyGridError",
    "JaggedGridError",
    "ColorDetectionError",
    "InvalidColorError",
]
