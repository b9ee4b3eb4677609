"""
Occupancy Grid and Grid Sampler

This module provides:
- OccupancyGrid: Immutable 2D boolean grid, one cell per QR module
- sample_grid: Point-samples an image at each cell center

Each cell is sampled at a single pixel, half a cell in from the cell's
top-left corner, so samples never land on the boundary between modules.
"""

import logging
from numbers import Integral
from typing import List, Sequence, Tuple, Union
import numpy as np

from .exceptions import EmptyGridError, InvalidCellSizeError, JaggedGridError

logger = logging.getLogger(__name__)


def _as_cell_array(cells) -> np.ndarray:
    """Validate and copy cells into a read-only (width, height) bool array."""
    if isinstance(cells, np.ndarray):
        arr = cells
    else:
        try:
            arr = np.array(cells, dtype=bool)
        except ValueError as exc:
            raise JaggedGridError("Occupancy grid columns have unequal lengths") from exc

    if arr.size == 0:
        raise EmptyGridError(f"Occupancy grid is empty (shape {arr.shape})")
    if arr.ndim != 2:
        raise ValueError(f"Occupancy grid must be 2-dimensional, got shape {arr.shape}")

    arr = np.array(arr, dtype=bool, order="C", copy=True)
    arr.setflags(write=False)
    return arr


class OccupancyGrid:
    """
    Rectangular boolean grid of raised (True) and flat (False) cells.

    Cells are stored column-major with shape (width, height) and indexed
    [col, row]; row 0 is the top of the source image. The array is
    read-only once the grid is built.
    """

    def __init__(self, cells):
        """
        Args:
            cells: 2D boolean array-like indexed [col, row]
        """
        self._cells = _as_cell_array(cells)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[bool]]) -> "OccupancyGrid":
        """
        Build a grid from row-major nested sequences (rows[row][col]).

        Raises:
            EmptyGridError: No rows, or rows with no cells
            JaggedGridError: Rows of unequal length
        """
        rows = [list(row) for row in rows]
        if not rows:
            raise EmptyGridError("Occupancy grid has no rows")

        lengths = {len(row) for row in rows}
        if len(lengths) > 1:
            raise JaggedGridError(
                f"Occupancy grid rows have unequal lengths: {sorted(lengths)}"
            )
        if 0 in lengths:
            raise EmptyGridError("Occupancy grid rows have no cells")

        return cls(np.array(rows, dtype=bool).T)

    @property
    def cells(self) -> np.ndarray:
        """Get the read-only (width, height) bool array."""
        return self._cells

    @property
    def shape(self) -> Tuple[int, int]:
        """Get grid dimensions (width, height)."""
        return self._cells.shape

    @property
    def width(self) -> int:
        return self._cells.shape[0]

    @property
    def height(self) -> int:
        return self._cells.shape[1]

    def is_raised(self, col: int, row: int) -> bool:
        """Check a cell; anything outside the grid counts as flat."""
        if col < 0 or col >= self.width or row < 0 or row >= self.height:
            return False
        return bool(self._cells[col, row])

    def count_raised(self) -> int:
        """Count raised cells."""
        return int(np.count_nonzero(self._cells))

    def to_rows(self) -> List[List[bool]]:
        """Get the grid as row-major nested lists (rows[row][col])."""
        return self._cells.T.tolist()

    def __eq__(self, other) -> bool:
        if not isinstance(other, OccupancyGrid):
            return NotImplemented
        return np.array_equal(self._cells, other._cells)

    def __repr__(self) -> str:
        return (
            f"OccupancyGrid(width={self.width}, height={self.height}, "
            f"raised={self.count_raised()})"
        )


def _check_cell_size(cell_size) -> int:
    if isinstance(cell_size, bool) or not isinstance(cell_size, Integral):
        raise InvalidCellSizeError(cell_size)
    if cell_size < 1:
        raise InvalidCellSizeError(cell_size)
    return int(cell_size)


def sample_points(length: int, cell_size: int) -> np.ndarray:
    """
    Get sample coordinates along one image axis.

    Starts half a cell in and steps one cell at a time while inside the
    image.

    Args:
        length: Image width or height in pixels
        cell_size: Pixels per cell edge (>= 1)

    Returns:
        int array of pixel coordinates
    """
    cell_size = _check_cell_size(cell_size)
    return np.arange(cell_size // 2, length, cell_size, dtype=np.intp)


def _sample_accessor(image, xs: np.ndarray, ys: np.ndarray, flat: Tuple[int, int, int]) -> np.ndarray:
    """Sample an object exposing get_pixel(x, y) one point at a time."""
    raised = np.zeros((len(xs), len(ys)), dtype=bool)
    for col, x in enumerate(xs):
        for row, y in enumerate(ys):
            pixel = tuple(int(c) for c in image.get_pixel(int(x), int(y))[:3])
            raised[col, row] = pixel != flat
    return raised


def sample_grid(
    image: Union[np.ndarray, object],
    cell_size: int,
    flat_color: Sequence[int]
) -> OccupancyGrid:
    """
    Reduce a two-color image to an occupancy grid.

    Args:
        image: RGB(A) array of shape (H, W, 3/4), an ImageLoader, or any
            object with width, height and get_pixel(x, y) -> (r, g, b)
        cell_size: Pixels per grid cell edge, must be >= 1
        flat_color: RGB color that maps to flat (False); every other
            color is raised (True)

    Returns:
        OccupancyGrid of shape (columns, rows)

    Raises:
        InvalidCellSizeError: cell_size is not a whole number >= 1
        EmptyGridError: No sample point falls inside the image
        ValueError: flat_color is not an RGB triple in 0-255
    """
    cell_size = _check_cell_size(cell_size)
    flat = tuple(int(c) for c in flat_color[:3])
    if len(flat) != 3 or any(c < 0 or c > 255 for c in flat):
        raise ValueError(f"Flat color must be three components in 0-255, got {flat}")

    rgb = getattr(image, "rgb_image", image)

    if isinstance(rgb, np.ndarray):
        if rgb.ndim != 3 or rgb.shape[2] < 3:
            raise ValueError("Image array must have shape (H, W, 3) or (H, W, 4)")
        img_h, img_w = rgb.shape[:2]
        xs = sample_points(img_w, cell_size)
        ys = sample_points(img_h, cell_size)
        samples = rgb[np.ix_(ys, xs)][:, :, :3]
        raised = np.any(samples != np.array(flat, dtype=samples.dtype), axis=-1).T
    else:
        xs = sample_points(image.width, cell_size)
        ys = sample_points(image.height, cell_size)
        raised = _sample_accessor(image, xs, ys, flat)

    if len(xs) == 0 or len(ys) == 0:
        raise EmptyGridError(
            f"Cell size {cell_size}px leaves no sample points inside the image"
        )

    grid = OccupancyGrid(raised)
    logger.debug(
        "Sampled %dx%d grid at %dpx cells (%d raised)",
        grid.width, grid.height, cell_size, grid.count_raised(),
    )
    return grid
