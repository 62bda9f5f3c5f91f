"""
Contour Extraction Module

Traces iso-elevation polylines through a RasterGrid.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .backends import DEFAULT_RASTER_BACKEND, RasterBackend
from .raster import RasterGrid
from .validation import AllNodataError, InvalidInputError, validate_positive

logger = logging.getLogger(__name__)


@dataclass
class ContourLine:
    """A single contour polyline in world coordinates."""
    elevation: float
    points: List[Tuple[float, float]]

    @property
    def is_closed(self) -> bool:
        return len(self.points) > 2 and self.points[0] == self.points[-1]

    def to_dict(self) -> dict:
        return {
            "elevation": self.elevation,
            "points": [{"x": x, "y": y} for x, y in self.points],
        }


def contour_levels(min_elev: float, max_elev: float, interval: float) -> np.ndarray:
    """Every multiple of `interval` within [min_elev, max_elev]."""
    first = math.ceil(min_elev / interval)
    last = math.floor(max_elev / interval)
    if last < first:
        return np.empty(0)
    return np.arange(first, last + 1, dtype=np.float64) * interval


class ContourExtractor:
    """Extracts contour lines at a fixed interval."""

    def __init__(self, backend: Optional[RasterBackend] = None):
        self.backend = backend or DEFAULT_RASTER_BACKEND

    def extract(self, grid: RasterGrid, interval: float) -> List[ContourLine]:
        """
        Trace contours at every multiple of `interval`.

        Cells holding nodata are never crossed by a contour. An empty list
        is a valid result (flat terrain, all nodata, or interval larger than
        the elevation range).

        Raises:
            ParameterError: If interval is not positive
            InvalidInputError: If no grid was supplied
        """
        interval = validate_positive(interval, "contour interval")

        if grid is None:
            raise InvalidInputError("No DTM available for contour generation")

        try:
            min_elev, max_elev = grid.scan_min_max()
        except AllNodataError:
            logger.debug("Raster is all nodata; no contours to trace")
            return []

        levels = contour_levels(min_elev, max_elev, interval)

        contours = [
            ContourLine(
                elevation=level,
                points=[(float(x), float(y)) for x, y in line],
            )
            for level, line in self.backend.trace_contours(grid, levels)
        ]

        logger.info(
            "Generated %d contour lines at %s interval", len(contours), interval
        )

        return contours
