"""
Mesh Module

Turns a RasterGrid into a vertex-coloured triangle mesh for 3D display,
and writes the same mesh as OBJ-style text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np

from .raster import RasterGrid
from .validation import (
    InvalidInputError,
    ResourceError,
    validate_finite,
    validate_output_path,
)

logger = logging.getLogger(__name__)

NODATA_COLOR = (0.5, 0.5, 0.5)


@dataclass
class Mesh:
    """
    Render mesh derived from a DTM.

    Arrays are flattened: vertices/normals/colors hold x, y, z (r, g, b)
    triples, indices hold counter-clockwise triangle triples.
    Y is up; X/Z are centred on the raster.
    """
    vertices: np.ndarray
    normals: np.ndarray
    colors: np.ndarray
    indices: np.ndarray
    width: int
    height: int
    min_elevation: float
    max_elevation: float

    @property
    def vertex_count(self) -> int:
        return len(self.vertices) // 3

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    def to_dict(self) -> dict:
        return {
            "vertices": self.vertices.tolist(),
            "normals": self.normals.tolist(),
            "colors": self.colors.tolist(),
            "indices": self.indices.tolist(),
            "width": self.width,
            "height": self.height,
            "min_elevation": self.min_elevation,
            "max_elevation": self.max_elevation,
        }


def elevation_color(elevation, min_elev: float, max_elev: float) -> np.ndarray:
    """
    Colour ramp blue -> cyan -> green -> yellow -> red.

    Works on scalars or arrays; returns (..., 3) RGB in [0, 1].
    A flat range maps everything to grey.
    """
    elevation = np.asarray(elevation, dtype=np.float64)
    rgb = np.empty(elevation.shape + (3,), dtype=np.float64)

    elev_range = max_elev - min_elev
    if elev_range <= 0:
        rgb[...] = NODATA_COLOR
        return rgb

    t = (elevation - min_elev) / elev_range

    bands = [t < 0.25, (t >= 0.25) & (t < 0.5), (t >= 0.5) & (t < 0.75), t >= 0.75]
    zeros = np.zeros_like(t)
    ones = np.ones_like(t)

    r = np.select(bands, [zeros, zeros, 4.0 * (t - 0.5), ones])
    g = np.select(bands, [4.0 * t, ones, ones, 1.0 - 4.0 * (t - 0.75)])
    b = np.select(bands, [ones, 1.0 - 4.0 * (t - 0.25), zeros, zeros])

    rgb[..., 0] = r
    rgb[..., 1] = g
    rgb[..., 2] = b
    return rgb


class MeshBuilder:
    """Builds meshes (and OBJ exports) from raster grids."""

    def __init__(self, vertical_scale: float = 1.0):
        self.vertical_scale = validate_finite(vertical_scale, "vertical scale")

    def _geometry(self, grid: RasterGrid, vertical_scale: float):
        if grid is None or grid.is_empty:
            raise InvalidInputError("DTM data is empty or invalid")

        min_elev, max_elev = grid.scan_min_max()

        rows, cols = grid.shape
        pw = abs(grid.pixel_width)
        ph = abs(grid.pixel_height)

        elev = grid.data.astype(np.float64)
        valid = grid.valid_mask

        cc, rr = np.meshgrid(np.arange(cols, dtype=np.float64), np.arange(rows, dtype=np.float64))
        x = cc * pw - cols * pw / 2.0
        z = rr * ph - rows * ph / 2.0
        y = np.where(valid, elev, min_elev) * vertical_scale

        positions = np.column_stack([x.ravel(), y.ravel(), z.ravel()])

        colors = elevation_color(elev, min_elev, max_elev)
        colors[~valid] = NODATA_COLOR
        colors = colors.reshape(-1, 3)

        return positions, colors, self._triangles(rows, cols), min_elev, max_elev

    @staticmethod
    def _triangles(rows: int, cols: int) -> np.ndarray:
        """Two CCW triangles per 2x2 cell block, as an (T, 3) array."""
        if rows < 2 or cols < 2:
            return np.empty((0, 3), dtype=np.uint32)

        r, c = np.meshgrid(np.arange(rows - 1), np.arange(cols - 1), indexing="ij")
        tl = (r * cols + c).ravel()
        tr = tl + 1
        bl = tl + cols
        br = bl + 1

        tris = np.empty((len(tl) * 2, 3), dtype=np.uint32)
        tris[0::2] = np.column_stack([tl, bl, tr])
        tris[1::2] = np.column_stack([tr, bl, br])
        return tris

    @staticmethod
    def _normals(positions: np.ndarray, triangles: np.ndarray) -> np.ndarray:
        """Area-weighted vertex normals; vertices with no face keep zero."""
        normals = np.zeros_like(positions)
        if len(triangles) == 0:
            return normals

        idx = triangles.astype(np.intp)
        v0 = positions[idx[:, 0]]
        face = np.cross(positions[idx[:, 1]] - v0, positions[idx[:, 2]] - v0)

        for k in range(3):
            np.add.at(normals, idx[:, k], face)

        length = np.linalg.norm(normals, axis=1, keepdims=True)
        np.divide(normals, length, out=normals, where=length > 0)
        return normals

    def build(self, grid: RasterGrid, vertical_scale: float = None) -> Mesh:
        """
        Build a render mesh.

        Args:
            grid: Source raster
            vertical_scale: Elevation exaggeration (defaults to the builder's)

        Raises:
            InvalidInputError: If the grid is missing or empty
            AllNodataError: If no cell holds an elevation
        """
        if vertical_scale is None:
            vertical_scale = self.vertical_scale
        vertical_scale = validate_finite(vertical_scale, "vertical scale")

        positions, colors, triangles, min_elev, max_elev = self._geometry(grid, vertical_scale)
        normals = self._normals(positions, triangles)

        mesh = Mesh(
            vertices=positions.astype(np.float32).ravel(),
            normals=normals.astype(np.float32).ravel(),
            colors=colors.astype(np.float32).ravel(),
            indices=triangles.ravel(),
            width=grid.width,
            height=grid.height,
            min_elevation=min_elev,
            max_elevation=max_elev,
        )

        logger.debug(
            "Generated mesh: %d vertices, %d triangles",
            mesh.vertex_count, mesh.triangle_count,
        )
        return mesh

    def export_obj(
        self,
        grid: RasterGrid,
        filepath: Union[str, Path],
        vertical_scale: float = 1.5,
    ) -> Path:
        """
        Write the raster mesh as OBJ text with per-vertex colours.

        Vertex lines are "v x y z r g b" at 3 decimals with z negated;
        faces are 1-based.

        Raises:
            FilePermissionError: If the output location is not writable
            ResourceError: If writing fails
        """
        vertical_scale = validate_finite(vertical_scale, "vertical scale")
        path = validate_output_path(filepath, "OBJ mesh")

        positions, colors, triangles, min_elev, max_elev = self._geometry(grid, vertical_scale)
        # + 0.0 keeps negated zeros from printing as -0.000
        positions[:, 2] = -positions[:, 2] + 0.0

        try:
            with open(path, 'w') as f:
                f.write("# DTM Mesh exported from dtm-earthwork\n")
                f.write(f"# Vertices: {len(positions)}\n")
                f.write(f"# Faces: {len(triangles)}\n")
                f.write(f"# Elevation range: {min_elev:.3f} to {max_elev:.3f}\n")
                f.write(f"# Vertical scale: {vertical_scale}\n\n")

                for (x, y, z), (r, g, b) in zip(positions, colors):
                    f.write(f"v {x:.3f} {y:.3f} {z:.3f} {r:.3f} {g:.3f} {b:.3f}\n")

                f.write("\n")
                for a, b, c in triangles.astype(np.int64) + 1:
                    f.write(f"f {a} {b} {c}\n")
        except OSError as e:
            raise ResourceError(f"Cannot write OBJ mesh to '{path}': {e}") from e

        logger.info("Exported DTM mesh to %s", path)
        return path
