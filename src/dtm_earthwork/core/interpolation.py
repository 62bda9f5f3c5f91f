"""
Grid Interpolation Module

Converts a scattered survey point set into a regular north-up elevation
raster (DTM) by inverse distance weighting.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from .backends import (
    DEFAULT_RASTER_BACKEND,
    GridLayout,
    ProgressCallback,
    RasterBackend,
    report_progress,
)
from .raster import NODATA, RasterGrid
from .validation import (
    InterpolationError,
    ParameterError,
    validate_grid_dimensions,
    validate_points,
    validate_positive,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterpolationConfig:
    """
    Tunables for IDW gridding.

    Attributes:
        power: Distance exponent in the weight 1 / (d**power + smoothing)
        smoothing: Additive smoothing term in the weight denominator
        margin: Distance added on every side of the point bounding box
        nodata: Sentinel for cells without an elevation
        chunk_size: Number of cell centres evaluated per distance block
    """
    power: float = 2.0
    smoothing: float = 1.0
    margin: float = 5.0
    nodata: float = NODATA
    chunk_size: int = 4096

    def __post_init__(self):
        if not math.isfinite(self.power) or self.power <= 0:
            raise ParameterError(f"IDW power must be > 0, got {self.power}")
        if not math.isfinite(self.smoothing) or self.smoothing < 0:
            raise ParameterError(f"IDW smoothing cannot be negative, got {self.smoothing}")
        if not math.isfinite(self.margin) or self.margin < 0:
            raise ParameterError(f"Grid margin cannot be negative, got {self.margin}")
        if self.chunk_size < 1:
            raise ParameterError(f"chunk_size must be >= 1, got {self.chunk_size}")


class GridInterpolator:
    """
    Builds a RasterGrid from survey points.

    The grid covers the point bounding box expanded by `config.margin` on
    every side, with floor(extent / pixel_size) cells per axis (at least one).
    """

    def __init__(
        self,
        config: Optional[InterpolationConfig] = None,
        backend: Optional[RasterBackend] = None,
    ):
        self.config = config or InterpolationConfig()
        self.backend = backend or DEFAULT_RASTER_BACKEND

    def layout_for(self, xyz: np.ndarray, pixel_size: float) -> GridLayout:
        """Compute the output raster placement for validated points."""
        min_x = float(np.min(xyz[:, 0])) - self.config.margin
        max_x = float(np.max(xyz[:, 0])) + self.config.margin
        min_y = float(np.min(xyz[:, 1])) - self.config.margin
        max_y = float(np.max(xyz[:, 1])) + self.config.margin

        cols = max(1, int(math.floor((max_x - min_x) / pixel_size)))
        rows = max(1, int(math.floor((max_y - min_y) / pixel_size)))

        validate_grid_dimensions(rows, cols, (min_x, min_y, max_x, max_y), pixel_size)

        # A zero-width extent (margin 0, single x) still needs a usable cell
        span_x = (max_x - min_x) or pixel_size
        span_y = (max_y - min_y) or pixel_size

        return GridLayout(
            min_x=min_x,
            max_y=max_y,
            pixel_width=span_x / cols,
            pixel_height=-span_y / rows,
            cols=cols,
            rows=rows,
        )

    def generate(
        self,
        points: Any,
        pixel_size: float,
        progress: Optional[ProgressCallback] = None,
    ) -> RasterGrid:
        """
        Interpolate points onto a regular grid.

        Args:
            points: Survey points (see validate_points for accepted forms)
            pixel_size: Requested cell size in coordinate units
            progress: Optional callback receiving percent milestones

        Returns:
            RasterGrid with nodata fixed at config.nodata

        Raises:
            ValidationError: If the point list is empty, short or malformed
            ParameterError: If pixel_size is not positive
            InterpolationError: If the grid could not be produced
        """
        xyz = validate_points(points)
        pixel_size = validate_positive(pixel_size, "pixel size")
        report_progress(progress, 10)

        logger.debug(
            "Generating DTM with %d points, pixel size: %s", len(xyz), pixel_size
        )
        report_progress(progress, 30)

        layout = self.layout_for(xyz, pixel_size)
        report_progress(progress, 40)

        if layout.rows * layout.cols == 0:
            raise InterpolationError("Grid dimensions collapsed to zero")
        report_progress(progress, 50)

        logger.debug("Interpolating %d x %d cells", layout.cols, layout.rows)
        report_progress(progress, 60)

        grid = self.backend.from_points(xyz, layout, self.config)
        report_progress(progress, 70)

        if grid.shape != (layout.rows, layout.cols):
            raise InterpolationError(
                f"Interpolation produced a {grid.shape} grid, "
                f"expected {(layout.rows, layout.cols)}"
            )

        report_progress(progress, 100)

        logger.info("DTM generated: %d x %d cells", layout.cols, layout.rows)
        logger.debug(
            "  Bounds: [%.3f, %.3f] to [%.3f, %.3f]",
            layout.min_x,
            layout.max_y + layout.rows * layout.pixel_height,
            layout.min_x + layout.cols * layout.pixel_width,
            layout.max_y,
        )

        return grid
