"""
Capability Backends

Small protocols for the geometry and raster operations the algorithms
depend on, with the default shapely / scipy / contourpy implementations.
Tests substitute deterministic fakes through the same protocols.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Protocol, Tuple

import numpy as np

if TYPE_CHECKING:
    from .interpolation import InterpolationConfig
    from .raster import RasterGrid

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class GeometryBackend(Protocol):
    """Planar geometry operations used by the TIN and volume code."""

    def polygon(self, ring: np.ndarray) -> Any:
        """Region for an (N, 2) ring, implicitly closed."""
        ...

    def convex_hull(self, points: np.ndarray) -> Any:
        """Region covering the convex hull of (N, 2) points."""
        ...

    def delaunay(self, points: np.ndarray) -> List[np.ndarray]:
        """Delaunay triangles of (N, 2) points, each a (3, 2) corner array."""
        ...

    def intersects(self, region: Any, x, y) -> np.ndarray:
        """True where (x, y) touches or lies inside the region (vectorised)."""
        ...

    def buffer(self, ring: np.ndarray, distance: float) -> np.ndarray:
        """Exterior ring (closed, (K, 2)) of the ring's polygon grown by distance."""
        ...


class ShapelyGeometryBackend:
    """GEOS-backed geometry through shapely 2."""

    def polygon(self, ring: np.ndarray) -> Any:
        import shapely
        from shapely.geometry import Polygon

        region = Polygon(np.asarray(ring, dtype=np.float64)[:, :2])
        shapely.prepare(region)
        return region

    def convex_hull(self, points: np.ndarray) -> Any:
        import shapely
        from shapely.geometry import MultiPoint

        # May collapse to a LineString or Point for degenerate input
        region = MultiPoint(np.asarray(points, dtype=np.float64)[:, :2]).convex_hull
        shapely.prepare(region)
        return region

    def delaunay(self, points: np.ndarray) -> List[np.ndarray]:
        import shapely
        from shapely.geometry import MultiPoint

        collection = shapely.delaunay_triangles(
            MultiPoint(np.asarray(points, dtype=np.float64)[:, :2]),
            tolerance=0.0,
            only_edges=False,
        )

        triangles = []
        for tri in shapely.get_parts(collection):
            coords = np.asarray(tri.exterior.coords)
            # Closed ring: 4 coordinates, the last repeating the first
            triangles.append(coords[:3, :2])
        return triangles

    def intersects(self, region: Any, x, y) -> np.ndarray:
        import shapely

        return shapely.intersects_xy(region, x, y)

    def buffer(self, ring: np.ndarray, distance: float) -> np.ndarray:
        from shapely.geometry import Polygon

        grown = Polygon(np.asarray(ring, dtype=np.float64)[:, :2]).buffer(distance, quad_segs=8)
        if grown.is_empty:
            return np.empty((0, 2))
        if grown.geom_type == "MultiPolygon":
            grown = grown.geoms[0]
        return np.asarray(grown.exterior.coords)[:, :2]


class ScipyGeometryBackend(ShapelyGeometryBackend):
    """Qhull Delaunay from scipy; regions and predicates stay on shapely."""

    def delaunay(self, points: np.ndarray) -> List[np.ndarray]:
        from scipy.spatial import Delaunay, QhullError

        xy = np.asarray(points, dtype=np.float64)[:, :2]
        try:
            tri = Delaunay(xy)
        except QhullError as e:
            # Flat (collinear) or otherwise degenerate input
            logger.debug("Qhull could not triangulate %d points: %s", len(xy), e)
            return []

        return [xy[simplex] for simplex in tri.simplices]


@dataclass
class GridLayout:
    """Placement of a north-up output raster."""
    min_x: float
    max_y: float
    pixel_width: float
    pixel_height: float  # negative for north-up
    cols: int
    rows: int

    def cell_centers(self) -> Tuple[np.ndarray, np.ndarray]:
        """X coordinates of column centres and Y coordinates of row centres."""
        xs = self.min_x + (np.arange(self.cols) + 0.5) * self.pixel_width
        ys = self.max_y + (np.arange(self.rows) + 0.5) * self.pixel_height
        return xs, ys


class RasterBackend(Protocol):
    """Raster fill and contour tracing."""

    def from_points(
        self,
        xyz: np.ndarray,
        layout: GridLayout,
        config: 'InterpolationConfig',
    ) -> 'RasterGrid':
        ...

    def trace_contours(
        self,
        grid: 'RasterGrid',
        levels: np.ndarray,
    ) -> List[Tuple[float, np.ndarray]]:
        ...

    def read_cell(self, grid: 'RasterGrid', row: int, col: int) -> float:
        ...

    def write_cell(self, grid: 'RasterGrid', row: int, col: int, value: float) -> None:
        ...


class IdwRasterBackend:
    """
    Inverse distance weighting fill and marching-squares contours.

    Each cell centre gets  sum(w_i * z_i) / sum(w_i)  with
    w_i = 1 / (d_i ** power + smoothing); a sample exactly at the centre
    passes its z through unchanged.
    """

    def from_points(
        self,
        xyz: np.ndarray,
        layout: GridLayout,
        config: 'InterpolationConfig',
    ) -> 'RasterGrid':
        from scipy.spatial.distance import cdist

        from .raster import RasterGrid

        xy = xyz[:, :2]
        z = xyz[:, 2]

        xs, ys = layout.cell_centers()
        gx, gy = np.meshgrid(xs, ys)
        centers = np.column_stack([gx.ravel(), gy.ravel()])

        values = np.full(len(centers), config.nodata, dtype=np.float64)
        chunk = max(1, int(config.chunk_size))

        for start in range(0, len(centers), chunk):
            block = centers[start:start + chunk]
            distances = cdist(block, xy)

            exact = distances == 0.0
            has_exact = exact.any(axis=1)

            with np.errstate(divide='ignore', invalid='ignore'):
                weights = 1.0 / (distances ** config.power + config.smoothing)
                weight_sum = weights.sum(axis=1)
                estimate = (weights @ z) / weight_sum

            estimate = np.where(has_exact, z[np.argmax(exact, axis=1)], estimate)
            # Cells with no usable contribution keep nodata
            estimate = np.where(np.isfinite(estimate), estimate, config.nodata)
            values[start:start + chunk] = estimate

        return RasterGrid(
            data=values.reshape(layout.rows, layout.cols),
            origin_x=layout.min_x,
            origin_y=layout.max_y,
            pixel_width=layout.pixel_width,
            pixel_height=layout.pixel_height,
            nodata=config.nodata,
        )

    def trace_contours(
        self,
        grid: 'RasterGrid',
        levels: np.ndarray,
    ) -> List[Tuple[float, np.ndarray]]:
        import contourpy

        if grid.width < 2 or grid.height < 2 or len(levels) == 0:
            return []

        xs, ys = grid.world_coords(centers=True)
        z = np.ma.masked_array(grid.data.astype(np.float64), mask=~grid.valid_mask)

        # corner_mask=False drops whole quads that touch a nodata cell
        generator = contourpy.contour_generator(
            x=xs,
            y=ys,
            z=z,
            name="serial",
            corner_mask=False,
            line_type=contourpy.LineType.Separate,
        )

        lines = []
        for level in levels:
            for line in generator.lines(float(level)):
                if len(line) >= 2:
                    lines.append((float(level), np.asarray(line, dtype=np.float64)))
        return lines

    def read_cell(self, grid: 'RasterGrid', row: int, col: int) -> float:
        return grid.cell_at(row, col)

    def write_cell(self, grid: 'RasterGrid', row: int, col: int, value: float) -> None:
        grid.set_cell(row, col, value)


DEFAULT_GEOMETRY_BACKEND = ShapelyGeometryBackend()
DEFAULT_RASTER_BACKEND = IdwRasterBackend()


def report_progress(progress: Optional[ProgressCallback], value: int) -> None:
    """Invoke a progress callback if one was supplied."""
    if progress is not None:
        progress(value)
