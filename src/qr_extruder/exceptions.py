"""
Exception types raised by the QR extrusion pipeline.

All of them are precondition failures detected at a component boundary.
They subclass ValueError so callers that already catch bad-argument errors
keep working.
"""


class QRExtruderError(ValueError):
    """Base class for all pipeline errors."""


class InvalidCellSizeError(QRExtruderError):
    """Cell size is not a positive whole number of pixels."""

    def __init__(self, cell_size):
        super().__init__(
            f"Cell size must be a whole number >= 1, got {cell_size!r}"
        )
        self.cell_size = cell_size


class EmptyGridError(QRExtruderError):
    """Occupancy grid has zero columns or zero rows."""


class JaggedGridError(QRExtruderError):
    """Occupancy grid rows have unequal lengths."""


class ColorDetectionError(QRExtruderError):
    """Image does not contain two distinct colors."""


class InvalidColorError(QRExtruderError):
    """Requested color is not one of the detected colors."""

    def __init__(self, choice: str, options):
        options = list(options)
        super().__init__(
            f"The color \"{choice}\" is not a valid color option! "
            f"Choose one of: {', '.join(options)}"
        )
        self.choice = choice
        self.options = options
