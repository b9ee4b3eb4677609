"""
Color Classification Module

Handles:
- Dominant color detection (the two most frequent pixel colors)
- Human-readable names for detected colors (nearest named color)
- Mapping the user's "raised" color choice to the flat color the
  grid sampler needs

Background:
A QR code is a two-color image, but anti-aliasing, scaling and JPEG noise
leave stray intermediate shades. Taking the two most frequent colors
ignores those; any pixel that is not exactly the flat color is raised.
"""

import logging
import re
from dataclasses import dataclass
from typing import Tuple, Union
import numpy as np

from .exceptions import ColorDetectionError, InvalidColorError

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

# Subset of the CSS named colors, enough to name any grayscale or
# saturated print color sensibly.
NAMED_COLORS = [
    ("black", (0, 0, 0)),
    ("white", (255, 255, 255)),
    ("gray", (128, 128, 128)),
    ("dimgray", (105, 105, 105)),
    ("darkgray", (169, 169, 169)),
    ("silver", (192, 192, 192)),
    ("lightgray", (211, 211, 211)),
    ("gainsboro", (220, 220, 220)),
    ("whitesmoke", (245, 245, 245)),
    ("red", (255, 0, 0)),
    ("darkred", (139, 0, 0)),
    ("maroon", (128, 0, 0)),
    ("crimson", (220, 20, 60)),
    ("salmon", (250, 128, 114)),
    ("coral", (255, 127, 80)),
    ("orange", (255, 165, 0)),
    ("gold", (255, 215, 0)),
    ("yellow", (255, 255, 0)),
    ("khaki", (240, 230, 140)),
    ("beige", (245, 245, 220)),
    ("ivory", (255, 255, 240)),
    ("tan", (210, 180, 140)),
    ("brown", (165, 42, 42)),
    ("chocolate", (210, 105, 30)),
    ("olive", (128, 128, 0)),
    ("lime", (0, 255, 0)),
    ("green", (0, 128, 0)),
    ("darkgreen", (0, 100, 0)),
    ("teal", (0, 128, 128)),
    ("turquoise", (64, 224, 208)),
    ("cyan", (0, 255, 255)),
    ("skyblue", (135, 206, 235)),
    ("blue", (0, 0, 255)),
    ("navy", (0, 0, 128)),
    ("indigo", (75, 0, 130)),
    ("purple", (128, 0, 128)),
    ("violet", (238, 130, 238)),
    ("orchid", (218, 112, 214)),
    ("magenta", (255, 0, 255)),
    ("pink", (255, 192, 203)),
]

_NAMES = [name for name, _ in NAMED_COLORS]
_NAMED_RGB = np.array([rgb for _, rgb in NAMED_COLORS], dtype=np.int32)

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6})$")


def color_name(color) -> str:
    """
    Get the lower-case name of the nearest named color.

    Args:
        color: RGB or RGBA color

    Returns:
        Color name, e.g. "black"
    """
    rgb = np.asarray(color, dtype=np.int32)[:3]
    dists = np.sum((_NAMED_RGB - rgb) ** 2, axis=1)
    return _NAMES[int(np.argmin(dists))]


def luminance(color) -> float:
    """Relative brightness of an sRGB color, 0-255."""
    r, g, b = color[:3]
    return 0.299 * r + 0.587 * g + 0.114 * b


def parse_hex(text: str) -> RGB:
    """
    Parse a '#rrggbb' (or 'rrggbb') string.

    Raises:
        ValueError: If the text is not a 6-digit hex color
    """
    match = _HEX_PATTERN.match(text.strip())
    if match is None:
        raise ValueError(f"Not a hex color: {text!r}")
    value = match.group(1)
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def dominant_colors(rgb_image: np.ndarray) -> Tuple[RGB, RGB]:
    """
    Find the two most frequent colors in an image.

    Pixels are scanned column by column; colors with equal counts are
    ordered by first appearance in that scan.

    Args:
        rgb_image: Array of shape (H, W, 3) or (H, W, 4)

    Returns:
        (primary, secondary) where primary is the most frequent color
    """
    if rgb_image.ndim != 3 or rgb_image.shape[2] < 3:
        raise ValueError("Image array must have shape (H, W, 3) or (H, W, 4)")

    pixels = np.transpose(rgb_image[:, :, :3], (1, 0, 2)).reshape(-1, 3)

    unique, first_index, counts = np.unique(
        pixels, axis=0, return_index=True, return_counts=True
    )

    if len(unique) < 2:
        raise ColorDetectionError(
            f"Expected a two-color image, found {len(unique)} distinct color(s)"
        )

    # Most frequent first, then earliest seen
    order = np.lexsort((first_index, -counts))
    primary = tuple(int(c) for c in unique[order[0]])
    secondary = tuple(int(c) for c in unique[order[1]])

    if len(unique) > 2:
        logger.debug(
            "Ignoring %d minor colors (%d of %d pixels)",
            len(unique) - 2,
            int(len(pixels) - counts[order[0]] - counts[order[1]]),
            len(pixels),
        )

    return primary, secondary


@dataclass(frozen=True)
class ColorChoice:
    """
    The two detected colors of a QR code and their display names.

    One of them is chosen as the raised color; the other becomes the
    flat color handed to the grid sampler.
    """

    primary: RGB
    secondary: RGB
    primary_name: str
    secondary_name: str

    @classmethod
    def detect(cls, rgb_image: np.ndarray) -> "ColorChoice":
        """
        Detect the two dominant colors of an image and name them.

        If both colors map to the same name, they are told apart with a
        "(light)" / "(dark)" suffix.
        """
        primary, secondary = dominant_colors(rgb_image)
        primary_name = color_name(primary)
        secondary_name = color_name(secondary)

        if primary_name == secondary_name:
            if luminance(primary) >= luminance(secondary):
                primary_name += " (light)"
                secondary_name += " (dark)"
            else:
                primary_name += " (dark)"
                secondary_name += " (light)"

        logger.info("The two colors used are %s and %s", primary_name, secondary_name)
        return cls(primary, secondary, primary_name, secondary_name)

    @property
    def names(self) -> Tuple[str, str]:
        return (self.primary_name, self.secondary_name)

    def raised_color(self, choice: Union[str, RGB]) -> RGB:
        """
        Resolve a user choice to the color that gets raised geometry.

        Args:
            choice: Color name (case-insensitive), '#rrggbb' string,
                or an RGB tuple equal to one of the detected colors

        Returns:
            The chosen detected color
        """
        if isinstance(choice, str):
            text = choice.strip().lower()
            if text == self.primary_name:
                return self.primary
            if text == self.secondary_name:
                return self.secondary
            try:
                choice = parse_hex(text)
            except ValueError:
                raise InvalidColorError(choice, self.names) from None

        rgb = tuple(int(c) for c in choice[:3])
        if rgb == self.primary:
            return self.primary
        if rgb == self.secondary:
            return self.secondary
        raise InvalidColorError(str(choice), self.names)

    def flat_color(self, choice: Union[str, RGB]) -> RGB:
        """
        Resolve a user's raised color choice to the flat color.

        Args:
            choice: The color that should be raised

        Returns:
            The other detected color
        """
        raised = self.raised_color(choice)
        return self.secondary if raised == self.primary else self.primary
