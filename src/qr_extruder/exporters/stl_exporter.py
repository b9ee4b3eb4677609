"""
STL Format Exporter

STL is the de facto input format for slicers. A file is a flat list of
triangles, each with a facet normal and three vertices; there is no shared
vertex table, no color and no units.

Two encodings:
- Binary: 80-byte header, uint32 count, 50 bytes per triangle
- ASCII: "solid name ... facet normal ... endsolid name"

The mesher already emits unit normals wound with the right-hand rule, so
this exporter copies triangles through unchanged.
"""

import logging
from pathlib import Path
from typing import Union
import numpy as np
import stl
from stl import mesh

from ..mesher import MeshData

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "qrcode.stl"


class STLExporter:
    """
    Export mesh data to STL (binary or ASCII).

    Supports:
    - Binary and ASCII encodings
    - Refusing to overwrite an existing file
    """

    def __init__(self, binary: bool = True, overwrite: bool = False):
        """
        Initialize the exporter.

        Args:
            binary: If True, write binary STL (smaller files)
            overwrite: If False, fail when the output file already exists
        """
        self.binary = binary
        self.overwrite = overwrite

    @staticmethod
    def to_stl_mesh(mesh_data: MeshData) -> mesh.Mesh:
        """
        Copy triangles into a numpy-stl Mesh without touching normals.

        Args:
            mesh_data: MeshData from CellMesher

        Returns:
            stl.mesh.Mesh with the same triangles, in the same order
        """
        data = np.zeros(mesh_data.triangle_count, dtype=mesh.Mesh.dtype)
        data["normals"] = mesh_data.normals
        data["vectors"] = mesh_data.vectors
        return mesh.Mesh(data, calculate_normals=False)

    def export(
        self,
        mesh_data: MeshData,
        output_path: Union[str, Path] = DEFAULT_OUTPUT,
        name: str = "qrcode"
    ) -> Path:
        """
        Export mesh to an STL file.

        Args:
            mesh_data: MeshData from CellMesher
            output_path: Output file path (.stl)
            name: Solid name stored in the file header

        Returns:
            Path of the written file
        """
        output_path = Path(output_path)

        if mesh_data.triangle_count == 0:
            raise ValueError("Cannot export empty mesh")

        if output_path.exists() and not self.overwrite:
            raise FileExistsError(f"Output file already exists: {output_path}")

        stl_mesh = self.to_stl_mesh(mesh_data)
        stl_mesh.name = name
        mode = stl.Mode.BINARY if self.binary else stl.Mode.ASCII

        # Keep the unit normals from the mesher
        stl_mesh.save(str(output_path), mode=mode, update_normals=False)

        logger.info(
            "Wrote %d triangles to %s (%s)",
            mesh_data.triangle_count,
            output_path,
            "binary" if self.binary else "ascii",
        )
        return output_path
