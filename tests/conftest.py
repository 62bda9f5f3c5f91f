"""
Shared pytest fixtures and configuration for dtm_earthwork tests.
"""

import numpy as np
import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "requires_laspy: requires laspy to be installed"
    )
    config.addinivalue_line(
        "markers", "requires_matplotlib: requires matplotlib to be installed"
    )
    config.addinivalue_line(
        "markers", "requires_rasterio: requires rasterio for GeoTIFF tests"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests based on missing dependencies."""
    try:
        import laspy
        laspy_available = True
    except ImportError:
        laspy_available = False

    try:
        import matplotlib
        matplotlib.use("Agg")
        matplotlib_available = True
    except ImportError:
        matplotlib_available = False

    try:
        import rasterio
        rasterio_available = True
    except ImportError:
        rasterio_available = False

    for item in items:
        if "requires_laspy" in item.keywords and not laspy_available:
            item.add_marker(pytest.mark.skip(reason="laspy not installed"))
        if "requires_matplotlib" in item.keywords and not matplotlib_available:
            item.add_marker(pytest.mark.skip(reason="matplotlib not installed"))
        if "requires_rasterio" in item.keywords and not rasterio_available:
            item.add_marker(pytest.mark.skip(reason="rasterio not installed"))


class BoxRegion:
    """Axis-aligned rectangle standing in for a polygon region."""

    def __init__(self, points):
        pts = np.asarray(points, dtype=float)[:, :2]
        self.min_x, self.min_y = pts.min(axis=0)
        self.max_x, self.max_y = pts.max(axis=0)


class FakeGeometryBackend:
    """
    Deterministic geometry for unit tests.

    Regions are bounding boxes (exact for rectangles), and delaunay returns
    the triangles it was constructed with, or a fan over the input points.
    """

    def __init__(self, triangles=None):
        self.triangles = triangles
        self.intersect_calls = 0

    def polygon(self, ring):
        return BoxRegion(ring)

    def convex_hull(self, points):
        return BoxRegion(points)

    def delaunay(self, points):
        if self.triangles is not None:
            return [np.asarray(t, dtype=float) for t in self.triangles]
        pts = np.asarray(points, dtype=float)[:, :2]
        return [np.array([pts[0], pts[i], pts[i + 1]]) for i in range(1, len(pts) - 1)]

    def intersects(self, region, x, y):
        self.intersect_calls += 1
        x = np.asarray(x)
        y = np.asarray(y)
        return (
            (x >= region.min_x) & (x <= region.max_x)
            & (y >= region.min_y) & (y <= region.max_y)
        )

    def buffer(self, ring, distance):
        r = BoxRegion(ring)
        return np.array([
            [r.min_x - distance, r.min_y - distance],
            [r.max_x + distance, r.min_y - distance],
            [r.max_x + distance, r.max_y + distance],
            [r.min_x - distance, r.max_y + distance],
            [r.min_x - distance, r.min_y - distance],
        ])


class FakeRasterBackend:
    """Fills every cell with the mean z; traces one horizontal line per level."""

    def from_points(self, xyz, layout, config):
        from dtm_earthwork.core.raster import RasterGrid

        return RasterGrid(
            data=np.full((layout.rows, layout.cols), float(np.mean(xyz[:, 2]))),
            origin_x=layout.min_x,
            origin_y=layout.max_y,
            pixel_width=layout.pixel_width,
            pixel_height=layout.pixel_height,
            nodata=config.nodata,
        )

    def trace_contours(self, grid, levels):
        min_x, min_y, max_x, _ = grid.bounds
        return [
            (float(level), np.array([[min_x, min_y + i], [max_x, min_y + i]]))
            for i, level in enumerate(levels)
        ]

    def read_cell(self, grid, row, col):
        return grid.cell_at(row, col)

    def write_cell(self, grid, row, col, value):
        grid.set_cell(row, col, value)


@pytest.fixture
def fake_geometry():
    return FakeGeometryBackend()


@pytest.fixture
def fake_raster():
    return FakeRasterBackend()


@pytest.fixture
def square_corners():
    """Corners of a flat 10 x 10 square at z = 0."""
    return [
        {"x": 0.0, "y": 0.0, "z": 0.0},
        {"x": 10.0, "y": 0.0, "z": 0.0},
        {"x": 10.0, "y": 10.0, "z": 0.0},
        {"x": 0.0, "y": 10.0, "z": 0.0},
    ]


@pytest.fixture
def triangle_points():
    """A single survey triangle with one raised vertex."""
    return [
        {"x": 0.0, "y": 0.0, "z": 0.0},
        {"x": 10.0, "y": 0.0, "z": 0.0},
        {"x": 5.0, "y": 10.0, "z": 10.0},
    ]


@pytest.fixture
def sloped_points():
    """Survey grid on the plane z = 100 + 0.1 * x."""
    xs, ys = np.meshgrid(np.arange(0.0, 21.0, 5.0), np.arange(0.0, 21.0, 5.0))
    xs = xs.ravel()
    ys = ys.ravel()
    return np.column_stack([xs, ys, 100.0 + 0.1 * xs])


@pytest.fixture
def sample_point_cloud():
    """Small synthetic survey for fast tests."""
    from dtm_earthwork.io.point_cloud import generate_sample_terrain

    return generate_sample_terrain(num_points=60, size=(30.0, 30.0), seed=7)


@pytest.fixture
def small_grid():
    """3 x 4 north-up raster with one nodata cell."""
    from dtm_earthwork.core.raster import NODATA, RasterGrid

    data = np.array([
        [1.0, 2.0, 3.0, 4.0],
        [5.0, NODATA, 7.0, 8.0],
        [9.0, 10.0, 11.0, 12.0],
    ])
    return RasterGrid(
        data=data,
        origin_x=100.0,
        origin_y=50.0,
        pixel_width=2.0,
        pixel_height=-2.0,
    )


@pytest.fixture
def flat_grid():
    """10 x 10 raster at elevation 5 covering [0, 10] x [0, 10]."""
    from dtm_earthwork.core.raster import RasterGrid

    return RasterGrid(
        data=np.full((10, 10), 5.0),
        origin_x=0.0,
        origin_y=10.0,
        pixel_width=1.0,
        pixel_height=-1.0,
    )
