"""
Unit tests for the web interface handlers.
"""

import importlib.util
import sys
from pathlib import Path
import numpy as np
import unittest

# Add src and the project root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

HAS_GRADIO = importlib.util.find_spec("gradio") is not None


@unittest.skipUnless(HAS_GRADIO, "gradio not installed")
class TestProcessImage(unittest.TestCase):
    """Input guards in process_image."""

    def setUp(self):
        import app
        self.app = app
        self.image = np.zeros((8, 8, 3), dtype=np.uint8)

    def test_missing_cell_size(self):
        """Test a cleared cell size field reports an error."""
        preview, text, download = self.app.process_image(
            self.image, "black", None, 0.1, 1.0, False
        )
        assert preview is None
        assert download is None
        assert text.startswith("**Error:**")

    def test_missing_image(self):
        """Test no upload reports a message."""
        preview, text, download = self.app.process_image(
            None, "black", 4, 0.1, 1.0, False
        )
        assert preview is None
        assert "upload" in text


if __name__ == "__main__":
    unittest.main(verbosity=2)
