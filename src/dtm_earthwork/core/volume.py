"""
Volume Engine Module

Calculates cut and fill volumes relative to a flat reference elevation,
either from the raster grid or from the TIN (prism method).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

import numpy as np

from .backends import DEFAULT_GEOMETRY_BACKEND, GeometryBackend
from .validation import (
    InvalidInputError,
    NoTINAvailableError,
    validate_boundary,
    validate_finite,
)

if TYPE_CHECKING:
    from .raster import RasterGrid
    from .tin import TIN

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VolumeResult:
    """
    Earthwork volumes relative to a base elevation.

    All volumes are in cubic units (m³ if coordinates are in meters).
    Net volume is always cut - fill: positive = net export,
    negative = net import.
    """
    cut: float = 0.0
    fill: float = 0.0
    area: float = 0.0
    method: str = "grid"

    @property
    def net(self) -> float:
        return self.cut - self.fill

    def summary(self) -> str:
        """Return human-readable summary."""
        lines = [
            "=" * 50,
            f"EARTHWORK VOLUME ({self.method.upper()} METHOD)",
            "=" * 50,
            f"Total Area:        {self.area:,.1f} sq units",
            f"Cut (Excavation):  {self.cut:,.1f} cubic units",
            f"Fill (Embankment): {self.fill:,.1f} cubic units",
            f"NET VOLUME:        {self.net:,.1f} cubic units",
            f"  {'(Export required)' if self.net > 0 else '(Import required)'}",
            "=" * 50,
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "cut": self.cut,
            "fill": self.fill,
            "net": self.net,
            "area": self.area,
            "method": self.method,
        }


class VolumeEngine:
    """
    Cut/fill calculation over a raster grid or a TIN.

    Boundaries restrict the calculation to a sub-region. Membership is an
    *intersects* test, so cells or centroids lying exactly on the boundary
    are counted.
    """

    def __init__(self, backend: Optional[GeometryBackend] = None):
        self.backend = backend or DEFAULT_GEOMETRY_BACKEND

    def boundary_region(self, boundary: Any, convex_hull: bool = True) -> Optional[Any]:
        """
        Build a containment region from boundary points.

        Args:
            boundary: Ring of (x, y) points; fewer than 3 means no boundary
            convex_hull: Use the convex hull of the points (scattered mask
                points) instead of the ring itself

        Returns:
            Backend region, or None when no boundary applies
        """
        ring = validate_boundary(boundary)
        if ring is None:
            return None
        if convex_hull:
            return self.backend.convex_hull(ring)
        return self.backend.polygon(ring)

    def calculate_grid(
        self,
        grid: 'RasterGrid',
        base_elevation: float,
        boundary: Any = None,
        boundary_is_polygon: bool = False,
    ) -> VolumeResult:
        """
        Grid-based cut/fill.

        Every non-nodata cell whose world coordinate (top-left corner, per
        the geotransform) intersects the boundary contributes
        |elevation - base| * cell_area to cut or fill and cell_area to area.

        Args:
            grid: RasterGrid holding existing ground
            base_elevation: Reference (design) elevation
            boundary: Optional mask points (>= 3)
            boundary_is_polygon: Use the boundary ring as-is instead of its
                convex hull

        Returns:
            VolumeResult with method "grid"
        """
        if grid is None:
            raise InvalidInputError("DTM not available for volume calculation")

        base_elevation = validate_finite(base_elevation, "base elevation")
        region = self.boundary_region(boundary, convex_hull=not boundary_is_polygon)

        logger.debug(
            "Calculating volume with boundary mask: %s", "Yes" if region is not None else "No"
        )

        include = grid.valid_mask
        if region is not None and include.any():
            xs, ys = grid.world_coords()
            include = include & np.asarray(self.backend.intersects(region, xs, ys), dtype=bool)

        cell_area = grid.cell_area
        diff = grid.data[include].astype(np.float64) - base_elevation

        above = diff > 0
        cut = float(np.sum(diff[above] * cell_area))
        fill = float(np.sum(np.abs(diff[~above]) * cell_area))
        area = cell_area * int(np.count_nonzero(include))

        result = VolumeResult(cut=cut, fill=fill, area=area, method="grid")

        logger.info(
            "Volume (grid-based): Cut=%.3f Fill=%.3f Area=%.3f",
            result.cut, result.fill, result.area,
        )
        return result

    def calculate_tin(
        self,
        tin: Optional['TIN'],
        base_elevation: float,
        boundary_polygon: Any = None,
    ) -> VolumeResult:
        """
        TIN prism cut/fill.

        Each triangle contributes planar_area * |mean(z) - base| to cut or
        fill. With a boundary polygon, triangles whose centroid does not
        intersect it are skipped.

        Raises:
            NoTINAvailableError: If no TIN has been generated
        """
        if tin is None or tin.is_empty:
            raise NoTINAvailableError("TIN not generated. Call generate_tin first.")

        base_elevation = validate_finite(base_elevation, "base elevation")
        region = self.boundary_region(boundary_polygon, convex_hull=False)

        logger.debug(
            "Calculating TIN volume with %d triangles, base: %s",
            tin.triangle_count, base_elevation,
        )

        # TIN construction guarantees every index is in range
        corners = tin.triangle_vertices()

        x = corners[:, :, 0]
        y = corners[:, :, 1]
        z = corners[:, :, 2]

        if region is not None:
            cx = (x[:, 0] + x[:, 1] + x[:, 2]) / 3.0
            cy = (y[:, 0] + y[:, 1] + y[:, 2]) / 3.0
            keep = np.asarray(self.backend.intersects(region, cx, cy), dtype=bool)
            x, y, z = x[keep], y[keep], z[keep]

        area = np.abs(
            (x[:, 1] - x[:, 0]) * (y[:, 2] - y[:, 0])
            - (y[:, 1] - y[:, 0]) * (x[:, 2] - x[:, 0])
        ) / 2.0

        height_diff = (z[:, 0] + z[:, 1] + z[:, 2]) / 3.0 - base_elevation
        prism = area * np.abs(height_diff)
        above = height_diff > 0

        result = VolumeResult(
            cut=float(np.sum(prism[above])),
            fill=float(np.sum(prism[~above])),
            area=float(np.sum(area)),
            method="tin",
        )

        logger.info(
            "TIN Volume: Cut=%.3f Fill=%.3f Area=%.3f",
            result.cut, result.fill, result.area,
        )
        return result
