"""
Image Ingestion Module

This module handles:
- Loading QR code images from disk or from numpy arrays
- Optional grayscale reduction (scanned/photographed codes are rarely pure)
- Normalizing every input to a dense (H, W, 3) uint8 RGB array
- Per-pixel access for the grid sampler
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class ImageLoader:
    """
    QR code image loader.

    Key features:
    - Grayscale conversion before color analysis (on by default)
    - Alpha channel is discarded; only RGB takes part in sampling
    - Pixel access by (x, y) with x = column, y = row
    """

    def __init__(self, grayscale: bool = True):
        """
        Initialize the image loader.

        Args:
            grayscale: Convert the image to grayscale before use
        """
        self.grayscale = grayscale
        self._rgb_image: Optional[np.ndarray] = None
        self._source: Optional[Path] = None

    def load(self, image_path: Union[str, Path]) -> "ImageLoader":
        """
        Load a QR code image.

        Args:
            image_path: Path to the image (any format Pillow can decode)

        Returns:
            self for method chaining
        """
        image_path = Path(image_path)
        if not image_path.exists():
            raise FileNotFoundError(f"Could not find an image at the path \"{image_path}\"")

        with Image.open(image_path) as img:
            if self.grayscale and img.mode != "L":
                img = img.convert("L")
            if img.mode != "RGB":
                img = img.convert("RGB")
            self._rgb_image = np.array(img, dtype=np.uint8)

        self._source = image_path
        logger.info("Loaded %s (%dpx by %dpx)", image_path, self.width, self.height)
        return self

    def load_from_array(self, array: np.ndarray) -> "ImageLoader":
        """
        Load from a numpy array instead of a file.

        Args:
            array: Image array of shape (H, W), (H, W, 3) or (H, W, 4)

        Returns:
            self for method chaining
        """
        array = np.asarray(array)

        if array.ndim == 2:
            rgb = np.stack([array, array, array], axis=-1)
        elif array.ndim == 3 and array.shape[2] in (3, 4):
            rgb = array[:, :, :3]
        else:
            raise ValueError("Image array must have shape (H, W), (H, W, 3) or (H, W, 4)")

        rgb = rgb.astype(np.uint8)

        if self.grayscale:
            # Reduce through Pillow so arrays and files get the same luma
            gray = Image.fromarray(np.ascontiguousarray(rgb)).convert("L")
            rgb = np.array(gray.convert("RGB"), dtype=np.uint8)

        self._rgb_image = np.ascontiguousarray(rgb)
        self._source = None
        return self

    @property
    def rgb_image(self) -> np.ndarray:
        """Get the (H, W, 3) RGB image array."""
        if self._rgb_image is None:
            raise RuntimeError("No image loaded")
        return self._rgb_image

    @property
    def size(self) -> Tuple[int, int]:
        """Get image size as (width, height)."""
        h, w = self.rgb_image.shape[:2]
        return (w, h)

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    @property
    def source(self) -> Optional[Path]:
        """Path the image was loaded from, if any."""
        return self._source

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        """
        Get the RGB color of a single pixel.

        Args:
            x: Column (0 = left)
            y: Row (0 = top)

        Returns:
            (r, g, b) tuple
        """
        r, g, b = self.rgb_image[y, x]
        return (int(r), int(g), int(b))
