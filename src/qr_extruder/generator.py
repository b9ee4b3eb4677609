"""
Main QRExtruder Class

This is the primary interface for the QR-to-STL pipeline.
It orchestrates:
1. Image loading and grayscale reduction
2. Dominant color detection
3. Grid sampling
4. Mesh generation
5. STL export

Example Usage:
    extruder = QRExtruder()
    extruder.load_image("qrcode.png")
    extruder.choose_raised_color("black")
    extruder.sample(cell_size=10)
    extruder.export_stl("qrcode.stl")
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union
import numpy as np

from .ingestion import ImageLoader
from .color import ColorChoice, RGB
from .sampler import OccupancyGrid, sample_grid
from .mesher import CellMesher, MeshData, mesh_stats, unmatched_edges
from .exporters import STLExporter

logger = logging.getLogger(__name__)


class QRExtruder:
    """
    High-level interface for turning a QR code image into a printable solid.

    Attributes:
        height: Z of the raised face (the flat face sits at z=0)
        scale: Footprint size of the model in X and Y
        grayscale: Reduce the image to grayscale before color detection
    """

    def __init__(
        self,
        height: float = 1.0,
        scale: float = 1.0,
        grayscale: bool = True
    ):
        """
        Initialize the QRExtruder.

        Args:
            height: Extrusion height of raised cells
            scale: Footprint size; the model spans [-scale/2, scale/2]
            grayscale: Convert input images to grayscale first
        """
        self.height = height
        self.scale = scale
        self.grayscale = grayscale

        self._image_loader: Optional[ImageLoader] = None
        self._colors: Optional[ColorChoice] = None
        self._flat_color: Optional[RGB] = None
        self._grid: Optional[OccupancyGrid] = None
        self._mesh: Optional[MeshData] = None

    def _reset(self):
        self._colors = None
        self._flat_color = None
        self._grid = None
        self._mesh = None

    def load_image(self, image_path: Union[str, Path]) -> "QRExtruder":
        """
        Load a QR code image.

        Args:
            image_path: Path to the image

        Returns:
            self for method chaining
        """
        self._image_loader = ImageLoader(self.grayscale).load(image_path)
        self._reset()
        return self

    def load_array(self, array: np.ndarray) -> "QRExtruder":
        """
        Load image data from a numpy array.

        Args:
            array: Image array of shape (H, W), (H, W, 3) or (H, W, 4)

        Returns:
            self for method chaining
        """
        self._image_loader = ImageLoader(self.grayscale).load_from_array(array)
        self._reset()
        return self

    def detect_colors(self) -> "QRExtruder":
        """
        Detect the two dominant colors of the loaded image.

        Returns:
            self for method chaining
        """
        if self._image_loader is None:
            raise RuntimeError("No image loaded. Call load_image() first.")

        self._colors = ColorChoice.detect(self._image_loader.rgb_image)
        return self

    def choose_raised_color(self, choice: Union[str, Sequence[int]]) -> "QRExtruder":
        """
        Choose which detected color gets raised geometry.

        Args:
            choice: Color name as reported by colors.names, '#rrggbb',
                or an RGB tuple

        Returns:
            self for method chaining
        """
        if self._colors is None:
            self.detect_colors()

        self._flat_color = self._colors.flat_color(choice)
        self._grid = None
        self._mesh = None
        return self

    def set_flat_color(self, flat_color: Sequence[int]) -> "QRExtruder":
        """
        Set the flat color directly, skipping color detection.

        Args:
            flat_color: RGB color that stays flat

        Returns:
            self for method chaining
        """
        self._flat_color = tuple(int(c) for c in flat_color[:3])
        self._grid = None
        self._mesh = None
        return self

    def sample(self, cell_size: int) -> "QRExtruder":
        """
        Sample the image into an occupancy grid.

        Args:
            cell_size: Size of a single grid cell in pixels

        Returns:
            self for method chaining
        """
        if self._image_loader is None:
            raise RuntimeError("No image loaded. Call load_image() first.")
        if self._flat_color is None:
            raise RuntimeError("No raised color chosen. Call choose_raised_color() first.")

        self._grid = None
        self._mesh = None
        self._grid = sample_grid(self._image_loader, cell_size, self._flat_color)
        return self

    def load_grid(self, grid: Union[OccupancyGrid, np.ndarray]) -> "QRExtruder":
        """
        Use an existing occupancy grid instead of sampling an image.

        Args:
            grid: OccupancyGrid or 2D bool array indexed [col, row]

        Returns:
            self for method chaining
        """
        if not isinstance(grid, OccupancyGrid):
            grid = OccupancyGrid(grid)
        self._grid = grid
        self._mesh = None
        return self

    def generate_mesh(self) -> "QRExtruder":
        """
        Generate the closed mesh from the occupancy grid.

        Returns:
            self for method chaining
        """
        if self._grid is None:
            raise RuntimeError("No occupancy grid. Call sample() first.")

        mesher = CellMesher(height=self.height, scale=self.scale)
        self._mesh = mesher.mesh(self._grid)
        return self

    def export_stl(
        self,
        output_path: Union[str, Path],
        binary: bool = True,
        overwrite: bool = False
    ) -> Path:
        """
        Export to STL.

        Args:
            output_path: Output file path
            binary: Binary (True) or ASCII (False) STL
            overwrite: Replace an existing file

        Returns:
            Path of the written file
        """
        if self._mesh is None:
            self.generate_mesh()

        exporter = STLExporter(binary=binary, overwrite=overwrite)
        return exporter.export(self._mesh, output_path)

    @property
    def image_size(self) -> Optional[Tuple[int, int]]:
        """Get the loaded image size as (width, height)."""
        if self._image_loader is None:
            return None
        return self._image_loader.size

    @property
    def colors(self) -> Optional[ColorChoice]:
        """Get the detected colors."""
        return self._colors

    @property
    def flat_color(self) -> Optional[RGB]:
        return self._flat_color

    @property
    def grid(self) -> Optional[OccupancyGrid]:
        """Get the current occupancy grid."""
        return self._grid

    @property
    def mesh(self) -> Optional[MeshData]:
        """Get the current mesh data."""
        return self._mesh

    @property
    def triangle_count(self) -> int:
        """Get the number of mesh triangles."""
        if self._mesh is None:
            return 0
        return self._mesh.triangle_count

    def get_mesh_stats(self) -> dict:
        """
        Get mesh statistics.

        Returns:
            Dictionary with mesh statistics
        """
        if self._grid is None:
            return {"error": "No occupancy grid"}

        if self._mesh is None:
            self.generate_mesh()

        stats = mesh_stats(self._mesh, self._grid)
        stats["unmatched_edges"] = unmatched_edges(self._mesh)
        return stats

    def preview(self) -> dict:
        """
        Get a preview of the current state.

        Returns:
            Dictionary with current state information
        """
        info = {
            "image_loaded": self._image_loader is not None,
            "colors_detected": self._colors is not None,
            "sampled": self._grid is not None,
            "meshed": self._mesh is not None,
        }

        if self._image_loader:
            info["image_size"] = self._image_loader.size

        if self._colors:
            info["colors"] = self._colors.names

        if self._grid:
            info["grid_size"] = self._grid.shape
            info["raised_cells"] = self._grid.count_raised()

        if self._mesh:
            info["triangle_count"] = self._mesh.triangle_count

        return info


def detect_color_names(array: np.ndarray, grayscale: bool = True) -> Tuple[str, str]:
    """
    Name the two dominant colors of an image array.

    Args:
        array: Image array of shape (H, W), (H, W, 3) or (H, W, 4)
        grayscale: Convert to grayscale first

    Returns:
        (primary_name, secondary_name)
    """
    loader = ImageLoader(grayscale).load_from_array(array)
    return ColorChoice.detect(loader.rgb_image).names


def process_upload(
    array: np.ndarray,
    raised_color: str,
    cell_size: int,
    height: float = 1.0,
    scale: float = 1.0,
    binary: bool = True,
    output_dir: Optional[Union[str, Path]] = None
) -> Tuple[Path, dict]:
    """
    Run the whole pipeline on an in-memory image and write an STL.

    Args:
        array: Image array of shape (H, W), (H, W, 3) or (H, W, 4)
        raised_color: Name of the color to raise
        cell_size: Size of a single grid cell in pixels
        height: Extrusion height
        scale: Footprint size
        binary: Binary (True) or ASCII (False) STL
        output_dir: Directory for the STL (a fresh temp dir if None)

    Returns:
        (stl_path, stats)
    """
    if output_dir is None:
        output_dir = tempfile.mkdtemp(prefix="qr_extruder_")
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    extruder = QRExtruder(height=height, scale=scale)
    extruder.load_array(array)
    extruder.choose_raised_color(raised_color)
    extruder.sample(cell_size)
    extruder.generate_mesh()

    stats = extruder.get_mesh_stats()
    stats["image_size"] = extruder.image_size

    stl_path = extruder.export_stl(output_dir / "qrcode.stl", binary=binary, overwrite=True)
    return stl_path, stats
