"""
Unit tests for the QR Extruder.
"""

import io
import sys
import tempfile
from contextlib import redirect_stdout
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from PIL import Image
from stl import mesh as stl_mesh

from qr_extruder import QRExtruder
from qr_extruder.cli import main, parse_cell_size
from qr_extruder.color import ColorChoice, color_name, dominant_colors, parse_hex
from qr_extruder.exceptions import (
    ColorDetectionError,
    EmptyGridError,
    InvalidCellSizeError,
    InvalidColorError,
    JaggedGridError,
)
from qr_extruder.exporters import STLExporter
from qr_extruder.generator import detect_color_names, process_upload
from qr_extruder.ingestion import ImageLoader
from qr_extruder.mesher import CellMesher, MeshData
from qr_extruder.sampler import OccupancyGrid, sample_grid, sample_points

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


def modules_to_image(modules: np.ndarray, module_px: int) -> np.ndarray:
    """Render a row-major bool module array (True = black) to RGB."""
    pixels = np.kron(modules, np.ones((module_px, module_px), dtype=bool))
    rgb = np.full(pixels.shape + (3,), 255, dtype=np.uint8)
    rgb[pixels] = BLACK
    return rgb


def make_qr_image(module_px: int = 4) -> np.ndarray:
    """A 5x3 module pattern, mostly white."""
    modules = np.array([
        [1, 0, 0, 0, 1],
        [0, 1, 0, 0, 0],
        [1, 1, 0, 0, 0],
    ], dtype=bool)
    return modules_to_image(modules, module_px)


class PixelSource:
    """Minimal image object exposing width, height and get_pixel."""

    def __init__(self, rgb: np.ndarray):
        self._rgb = rgb
        self.height, self.width = rgb.shape[:2]

    def get_pixel(self, x, y):
        return tuple(self._rgb[y, x])


class TestOccupancyGrid(unittest.TestCase):
    """Tests for OccupancyGrid class."""

    def test_from_rows(self):
        """Test building from row-major lists."""
        grid = OccupancyGrid.from_rows([[True, False, True], [False, False, True]])
        assert grid.shape == (3, 2)
        assert grid.is_raised(2, 0)
        assert grid.is_raised(2, 1)
        assert not grid.is_raised(0, 1)
        assert grid.count_raised() == 3
        assert grid.to_rows() == [[True, False, True], [False, False, True]]

    def test_out_of_bounds_is_flat(self):
        """Test out-of-bounds access."""
        grid = OccupancyGrid.from_rows([[True]])
        assert not grid.is_raised(-1, 0)
        assert not grid.is_raised(0, 1)

    def test_jagged_rows(self):
        """Test rejection of rows with unequal lengths."""
        with self.assertRaises(JaggedGridError):
            OccupancyGrid.from_rows([[True, False], [True]])

    def test_empty(self):
        """Test rejection of empty grids."""
        with self.assertRaises(EmptyGridError):
            OccupancyGrid.from_rows([])
        with self.assertRaises(EmptyGridError):
            OccupancyGrid.from_rows([[], []])

    def test_read_only(self):
        """Test that cells cannot be modified after creation."""
        source = np.zeros((2, 2), dtype=bool)
        grid = OccupancyGrid(source)
        source[0, 0] = True

        assert not grid.is_raised(0, 0)
        with self.assertRaises(ValueError):
            grid.cells[0, 0] = True


class TestSampler(unittest.TestCase):
    """Tests for grid sampling."""

    def test_sample_points(self):
        """Test sample positions start half a cell in."""
        assert sample_points(25, 5).tolist() == [2, 7, 12, 17, 22]
        assert sample_points(10, 4).tolist() == [2, 6]
        assert sample_points(3, 1).tolist() == [0, 1, 2]

    def test_grid_dimensions(self):
        """Test grid size follows the image size."""
        rgb = np.full((10, 25, 3), 255, dtype=np.uint8)
        grid = sample_grid(rgb, 5, WHITE)
        assert grid.shape == (5, 2)
        assert grid.count_raised() == 0

    def test_sample_modules(self):
        """Test each module is classified once."""
        grid = sample_grid(make_qr_image(4), 4, WHITE)
        assert grid.shape == (5, 3)
        assert grid.to_rows() == [
            [True, False, False, False, True],
            [False, True, False, False, False],
            [True, True, False, False, False],
        ]

    def test_cell_centers_ignore_edges(self):
        """Test noise on module borders does not change the grid."""
        rgb = make_qr_image(4)
        rgb[0, :] = 128
        rgb[:, 3] = 128
        grid = sample_grid(rgb, 4, WHITE)
        assert grid == sample_grid(make_qr_image(4), 4, WHITE)

    def test_other_colors_are_raised(self):
        """Test any color but the flat one is raised."""
        rgb = np.full((1, 3, 3), 255, dtype=np.uint8)
        rgb[0, 1] = (128, 128, 128)
        grid = sample_grid(rgb, 1, WHITE)
        assert grid.to_rows() == [[False, True, False]]

    def test_flat_color_selects_state(self):
        """Test choosing the other flat color inverts the grid."""
        rgb = make_qr_image(4)
        white_flat = sample_grid(rgb, 4, WHITE)
        black_flat = sample_grid(rgb, 4, BLACK)
        assert np.array_equal(white_flat.cells, ~black_flat.cells)

    def test_pure(self):
        """Test sampling twice gives identical grids."""
        rgb = make_qr_image(3)
        assert sample_grid(rgb, 3, WHITE) == sample_grid(rgb, 3, WHITE)

    def test_pixel_accessor(self):
        """Test objects with get_pixel are sampled like arrays."""
        rgb = make_qr_image(4)
        assert sample_grid(PixelSource(rgb), 4, WHITE) == sample_grid(rgb, 4, WHITE)

    def test_image_loader(self):
        """Test an ImageLoader can be sampled directly."""
        loader = ImageLoader().load_from_array(make_qr_image(4))
        assert sample_grid(loader, 4, WHITE).count_raised() == 5

    def test_invalid_cell_size(self):
        """Test zero, negative and fractional cell sizes."""
        rgb = make_qr_image(4)
        for cell_size in (0, -1, 2.5, True, "4"):
            with self.assertRaises(InvalidCellSizeError):
                sample_grid(rgb, cell_size, WHITE)

    def test_cell_larger_than_image(self):
        """Test a cell size with no sample point inside the image."""
        rgb = np.zeros((10, 10, 3), dtype=np.uint8)
        with self.assertRaises(EmptyGridError):
            sample_grid(rgb, 100, WHITE)

    def test_flat_color_out_of_range(self):
        """Test flat color components outside 0-255 are rejected."""
        rgb = np.zeros((4, 4, 3), dtype=np.uint8)
        for flat in ((0, 0, 300), (-1, 0, 0), (0, 0)):
            with self.assertRaises(ValueError):
                sample_grid(rgb, 2, flat)


class TestColor(unittest.TestCase):
    """Tests for color detection and naming."""

    def test_dominant_colors(self):
        """Test the most frequent color comes first."""
        primary, secondary = dominant_colors(make_qr_image(4))
        assert primary == WHITE
        assert secondary == BLACK

    def test_minor_colors_ignored(self):
        """Test stray shades do not displace the two main colors."""
        rgb = make_qr_image(4)
        rgb[0, 0] = (128, 128, 128)
        rgb[5, 5] = (200, 0, 0)
        assert set(dominant_colors(rgb)) == {WHITE, BLACK}

    def test_single_color(self):
        """Test an image with one color is rejected."""
        with self.assertRaises(ColorDetectionError):
            dominant_colors(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_color_names(self):
        """Test nearest color naming."""
        assert color_name(BLACK) == "black"
        assert color_name((10, 10, 10)) == "black"
        assert color_name((254, 254, 254)) == "white"
        assert color_name((250, 5, 5, 255)) == "red"

    def test_parse_hex(self):
        """Test hex parsing."""
        assert parse_hex("#ff8000") == (255, 128, 0)
        assert parse_hex("000000") == BLACK
        with self.assertRaises(ValueError):
            parse_hex("#fff")

    def test_choice(self):
        """Test choosing the raised color resolves the flat color."""
        colors = ColorChoice.detect(make_qr_image(4))
        assert colors.names == ("white", "black")
        assert colors.flat_color("black") == WHITE
        assert colors.flat_color(" WHITE ") == BLACK
        assert colors.flat_color("#000000") == WHITE
        assert colors.flat_color(BLACK) == WHITE

    def test_invalid_choice(self):
        """Test colors that were not detected are rejected."""
        colors = ColorChoice.detect(make_qr_image(4))
        with self.assertRaises(InvalidColorError):
            colors.flat_color("red")
        with self.assertRaises(InvalidColorError):
            colors.flat_color("#ff0000")

    def test_same_name_disambiguated(self):
        """Test two shades with the same name get light/dark suffixes."""
        rgb = np.zeros((4, 4, 3), dtype=np.uint8)
        rgb[:, :1] = 20
        colors = ColorChoice.detect(rgb)
        assert colors.names == ("black (dark)", "black (light)")
        assert colors.flat_color("black (light)") == BLACK


class TestImageLoader(unittest.TestCase):
    """Tests for image loading."""

    def test_load_file(self):
        """Test loading a PNG from disk."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "code.png"
            Image.fromarray(make_qr_image(4)).save(path)

            loader = ImageLoader().load(path)
            assert loader.size == (20, 12)
            assert loader.get_pixel(0, 0) == BLACK
            assert loader.get_pixel(4, 0) == WHITE
            assert loader.source == path

    def test_missing_file(self):
        """Test a missing file is reported."""
        with self.assertRaises(FileNotFoundError):
            ImageLoader().load("does/not/exist.png")

    def test_not_loaded(self):
        """Test access before loading."""
        with self.assertRaises(RuntimeError):
            ImageLoader().rgb_image

    def test_grayscale(self):
        """Test colors are reduced to gray by default."""
        rgb = np.zeros((2, 2, 3), dtype=np.uint8)
        rgb[:, :] = (255, 0, 0)

        gray = ImageLoader().load_from_array(rgb)
        r, g, b = gray.get_pixel(1, 1)
        assert r == g == b

        color = ImageLoader(grayscale=False).load_from_array(rgb)
        assert color.get_pixel(1, 1) == (255, 0, 0)

    def test_array_shapes(self):
        """Test 2D, RGB and RGBA arrays are accepted."""
        gray = np.full((3, 5), 255, dtype=np.uint8)
        rgba = np.full((3, 5, 4), 255, dtype=np.uint8)

        assert ImageLoader().load_from_array(gray).rgb_image.shape == (3, 5, 3)
        assert ImageLoader().load_from_array(rgba).rgb_image.shape == (3, 5, 3)
        with self.assertRaises(ValueError):
            ImageLoader().load_from_array(np.zeros((2, 2, 2)))


class TestSTLExporter(unittest.TestCase):
    """Tests for STL export."""

    def setUp(self):
        self.mesh = CellMesher().mesh(OccupancyGrid.from_rows([[True, True], [False, True]]))
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_binary(self):
        """Test binary STL size and contents."""
        path = STLExporter().export(self.mesh, self.tmp / "out.stl")

        n = self.mesh.triangle_count
        assert path.stat().st_size == 80 + 4 + 50 * n

        loaded = stl_mesh.Mesh.from_file(str(path), calculate_normals=False)
        assert np.array_equal(loaded.vectors, self.mesh.vectors)
        assert np.array_equal(loaded.normals, self.mesh.normals)

    def test_ascii(self):
        """Test ASCII STL output."""
        path = STLExporter(binary=False).export(self.mesh, self.tmp / "out.stl")
        text = path.read_text()
        assert text.startswith("solid")
        assert text.count("facet normal") == self.mesh.triangle_count

    def test_normals_untouched(self):
        """Test the exporter keeps unit normals instead of recomputing them."""
        converted = STLExporter.to_stl_mesh(self.mesh)
        assert np.array_equal(converted.normals, self.mesh.normals)

    def test_no_overwrite(self):
        """Test existing files are kept unless overwrite is set."""
        path = self.tmp / "out.stl"
        STLExporter().export(self.mesh, path)

        with self.assertRaises(FileExistsError):
            STLExporter().export(self.mesh, path)

        STLExporter(overwrite=True).export(self.mesh, path)

    def test_empty_mesh(self):
        """Test empty meshes are rejected."""
        with self.assertRaises(ValueError):
            STLExporter().export(MeshData.empty(), self.tmp / "empty.stl")
        assert not (self.tmp / "empty.stl").exists()


class TestQRExtruder(unittest.TestCase):
    """Integration tests for QRExtruder."""

    def test_basic_pipeline(self):
        """Test the full pipeline on an in-memory image."""
        with tempfile.TemporaryDirectory() as tmp:
            extruder = QRExtruder(height=0.5)
            extruder.load_array(make_qr_image(4))
            extruder.choose_raised_color("black")
            extruder.sample(4)
            extruder.generate_mesh()

            assert extruder.grid.count_raised() == 5
            assert extruder.triangle_count > 0

            stats = extruder.get_mesh_stats()
            assert stats["unmatched_edges"] == 0
            assert stats["cap_triangles"] == 4 * 5

            path = extruder.export_stl(Path(tmp) / "qrcode.stl")
            assert path.exists()

    def test_raise_other_color(self):
        """Test raising white inverts the grid."""
        extruder = QRExtruder()
        extruder.load_array(make_qr_image(4)).choose_raised_color("white").sample(4)
        assert extruder.grid.count_raised() == 15 - 5

    def test_preconditions(self):
        """Test steps called out of order."""
        extruder = QRExtruder()
        with self.assertRaises(RuntimeError):
            extruder.detect_colors()
        with self.assertRaises(RuntimeError):
            extruder.generate_mesh()

        extruder.load_array(make_qr_image(4))
        with self.assertRaises(RuntimeError):
            extruder.sample(4)

    def test_failed_sample_keeps_no_mesh(self):
        """Test a rejected cell size leaves no grid or mesh behind."""
        extruder = QRExtruder()
        extruder.load_array(make_qr_image(4)).choose_raised_color("black")
        extruder.sample(4).generate_mesh()
        assert extruder.triangle_count > 0

        with self.assertRaises(InvalidCellSizeError):
            extruder.sample(0)
        assert extruder.grid is None
        assert extruder.mesh is None

    def test_load_grid(self):
        """Test meshing an explicit grid."""
        extruder = QRExtruder().load_grid(np.ones((1, 1), dtype=bool)).generate_mesh()
        assert extruder.triangle_count == 12

    def test_preview(self):
        """Test state preview."""
        extruder = QRExtruder().load_array(make_qr_image(4)).detect_colors()
        info = extruder.preview()
        assert info["image_loaded"]
        assert info["colors"] == ("white", "black")
        assert not info["sampled"]

    def test_process_upload(self):
        """Test the web front end's processing function."""
        assert detect_color_names(make_qr_image(4)) == ("white", "black")

        with tempfile.TemporaryDirectory() as tmp:
            path, stats = process_upload(make_qr_image(4), "black", 4, output_dir=tmp)
            assert path.exists()
            assert stats["image_size"] == (20, 12)
            assert stats["raised_cells"] == 5

            # Re-running replaces the previous file
            process_upload(make_qr_image(4), "white", 4, output_dir=tmp)


class TestCLI(unittest.TestCase):
    """Tests for the command-line interface."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.image = self.tmp / "code.png"
        Image.fromarray(make_qr_image(4)).save(self.image)
        self.output = self.tmp / "qrcode.stl"

    def tearDown(self):
        self._tmp.cleanup()

    def run_cli(self, argv, answers=()):
        answers = iter(answers)
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(argv, input_fn=lambda: next(answers))
        return code, out.getvalue()

    def test_parse_cell_size(self):
        """Test cell size parsing."""
        assert parse_cell_size(" 12\n") == 12
        for text in ("0", "-3", "abc", "1.5"):
            with self.assertRaises(InvalidCellSizeError):
                parse_cell_size(text)

    def test_arguments(self):
        """Test a run with every value given on the command line."""
        code, out = self.run_cli([str(self.image), "black", "4", "-o", str(self.output)])
        assert code == 0
        assert self.output.exists()
        assert "The two colors used are white and black" in out
        assert "STL successfully created" in out

    def test_prompts(self):
        """Test invalid interactive answers are asked again."""
        answers = ["purple", "Black", "abc", "0", "4"]
        code, out = self.run_cli([str(self.image), "-o", str(self.output)], answers)
        assert code == 0
        assert out.count("That is not a valid color option!") == 1
        assert out.count("That is not a valid whole number!") == 2
        assert self.output.exists()

    def test_invalid_arguments(self):
        """Test invalid arguments fail instead of prompting."""
        code, _ = self.run_cli([str(self.image), "purple", "4", "-o", str(self.output)])
        assert code == 1

        code, _ = self.run_cli([str(self.image), "black", "x", "-o", str(self.output)])
        assert code == 1
        assert not self.output.exists()

    def test_missing_input(self):
        """Test missing image arguments and files."""
        assert self.run_cli([])[0] == 1
        assert self.run_cli([str(self.tmp / "missing.png"), "black", "4"])[0] == 1

    def test_existing_output(self):
        """Test an existing output needs --force."""
        self.output.write_bytes(b"")
        argv = [str(self.image), "black", "4", "-o", str(self.output)]

        assert self.run_cli(argv)[0] == 1
        assert self.output.stat().st_size == 0

        assert self.run_cli(argv + ["--force", "--ascii"])[0] == 0
        assert self.output.read_text().startswith("solid")


if __name__ == "__main__":
    unittest.main(verbosity=2)
