"""
Raster Grid Module

Canonical in-memory representation of a single-band elevation raster
(DTM) with its affine geotransform and nodata sentinel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import numpy as np
from affine import Affine

from .validation import AllNodataError, InvalidInputError

logger = logging.getLogger(__name__)

NODATA = -9999.0


@dataclass
class RasterGrid:
    """
    Regular grid of elevations addressed by (row, col).

    World coordinates follow the GDAL geotransform convention:

        x = origin_x + col * pixel_width + row * rotation_x
        y = origin_y + col * rotation_y + row * pixel_height

    Rasters produced by GridInterpolator are north-up, so origin is the
    top-left corner and pixel_height is negative.

    Attributes:
        data: 2D float32 array of elevations [rows, cols]
        origin_x, origin_y: World coordinates of the top-left corner
        pixel_width, pixel_height: Cell size along columns / rows
        rotation_x, rotation_y: Rotation terms (normally 0)
        nodata: Sentinel marking cells without an elevation
        crs: Optional coordinate reference system (passed through to GeoTIFF)
    """
    data: np.ndarray
    origin_x: float
    origin_y: float
    pixel_width: float
    pixel_height: float
    rotation_x: float = 0.0
    rotation_y: float = 0.0
    nodata: float = NODATA
    crs: Optional[str] = None

    def __post_init__(self):
        data = np.array(self.data, dtype=np.float32)
        if data.ndim != 2:
            raise InvalidInputError(
                f"Raster data must be a 2D array, got {data.ndim} dimension(s)"
            )

        self.nodata = float(np.float32(self.nodata))

        # Every cell is either a finite elevation or exactly nodata
        data[~np.isfinite(data)] = self.nodata
        self.data = data

    @classmethod
    def from_cells(
        cls,
        cells,
        width: int,
        height: int,
        transform: Union[Affine, Tuple[float, ...]],
        nodata: float = NODATA,
        crs: Optional[str] = None,
    ) -> RasterGrid:
        """
        Build a grid from a flat row-major cell sequence.

        Args:
            cells: width * height elevations, row-major
            width: Number of columns
            height: Number of rows
            transform: Affine, or a GDAL-ordered 6-tuple
                (origin_x, pixel_width, rotation_x, origin_y, rotation_y, pixel_height)
            nodata: Nodata sentinel
            crs: Optional CRS string
        """
        cells = np.asarray(cells, dtype=np.float32).ravel()
        if cells.size != width * height:
            raise InvalidInputError(
                f"Data size mismatch: expected {width * height}, got {cells.size}"
            )

        if not isinstance(transform, Affine):
            transform = Affine.from_gdal(*transform)

        return cls.from_transform(cells.reshape(height, width), transform, nodata, crs)

    @classmethod
    def from_transform(
        cls,
        data: np.ndarray,
        transform: Affine,
        nodata: float = NODATA,
        crs: Optional[str] = None,
    ) -> RasterGrid:
        """Build a grid from a 2D array and an affine transform."""
        return cls(
            data=data,
            origin_x=transform.c,
            origin_y=transform.f,
            pixel_width=transform.a,
            pixel_height=transform.e,
            rotation_x=transform.b,
            rotation_y=transform.d,
            nodata=nodata,
            crs=crs,
        )

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        """Grid dimensions (rows, cols)."""
        return self.data.shape

    @property
    def is_empty(self) -> bool:
        return self.data.size == 0

    @property
    def cells(self) -> np.ndarray:
        """Row-major flat view of the elevations (length width * height)."""
        return self.data.ravel()

    @property
    def transform(self) -> Affine:
        return Affine(
            self.pixel_width, self.rotation_x, self.origin_x,
            self.rotation_y, self.pixel_height, self.origin_y,
        )

    @property
    def geotransform(self) -> Tuple[float, float, float, float, float, float]:
        """GDAL-ordered geotransform tuple."""
        return self.transform.to_gdal()

    @property
    def valid_mask(self) -> np.ndarray:
        """Boolean array, True where the cell holds an elevation."""
        return self.data != np.float32(self.nodata)

    @property
    def cell_area(self) -> float:
        return abs(self.pixel_width * self.pixel_height)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Spatial bounds (min_x, min_y, max_x, max_y) of the raster footprint."""
        corners = [
            self.transform * (col, row)
            for col, row in ((0, 0), (self.width, 0), (0, self.height), (self.width, self.height))
        ]
        xs = [c[0] for c in corners]
        ys = [c[1] for c in corners]
        return (min(xs), min(ys), max(xs), max(ys))

    def _check_index(self, row: int, col: int) -> None:
        if not (0 <= row < self.height and 0 <= col < self.width):
            raise IndexError(
                f"Cell ({row}, {col}) outside raster of {self.height} rows x {self.width} cols"
            )

    def cell_at(self, row: int, col: int) -> float:
        """Elevation (or nodata) stored at a cell."""
        self._check_index(row, col)
        return float(self.data[row, col])

    def set_cell(self, row: int, col: int, value: float) -> None:
        """Write a cell, storing nodata for non-finite values."""
        self._check_index(row, col)
        value = float(value)
        self.data[row, col] = value if np.isfinite(value) else self.nodata

    def is_nodata(self, row: int, col: int) -> bool:
        return self.cell_at(row, col) == np.float32(self.nodata)

    def world_coord_of(self, row: float, col: float) -> Tuple[float, float]:
        """World (x, y) of a cell's top-left corner (fractional indices allowed)."""
        x = self.origin_x + col * self.pixel_width + row * self.rotation_x
        y = self.origin_y + col * self.rotation_y + row * self.pixel_height
        return (x, y)

    def cell_center(self, row: int, col: int) -> Tuple[float, float]:
        """World (x, y) of a cell centre."""
        return self.world_coord_of(row + 0.5, col + 0.5)

    def world_coords(self, centers: bool = False) -> Tuple[np.ndarray, np.ndarray]:
        """
        World coordinates for every cell as two [rows, cols] arrays.

        Args:
            centers: Use cell centres instead of top-left corners
        """
        offset = 0.5 if centers else 0.0
        cols = np.arange(self.width, dtype=np.float64) + offset
        rows = np.arange(self.height, dtype=np.float64) + offset
        cc, rr = np.meshgrid(cols, rows)
        xs = self.origin_x + cc * self.pixel_width + rr * self.rotation_x
        ys = self.origin_y + cc * self.rotation_y + rr * self.pixel_height
        return xs, ys

    def scan_min_max(self) -> Tuple[float, float]:
        """
        Minimum and maximum elevation, ignoring nodata.

        Raises:
            AllNodataError: If every cell is nodata
        """
        valid = self.data[self.valid_mask]
        if valid.size == 0:
            raise AllNodataError(
                f"Raster of {self.height} x {self.width} cells contains only nodata"
            )
        return (float(valid.min()), float(valid.max()))

    def statistics(self) -> dict:
        """Calculate basic statistics for the raster."""
        valid = self.data[self.valid_mask]

        if len(valid) == 0:
            return {"error": "No valid elevation data"}

        return {
            "min_elevation": float(np.min(valid)),
            "max_elevation": float(np.max(valid)),
            "mean_elevation": float(np.mean(valid)),
            "std_elevation": float(np.std(valid)),
            "elevation_range": float(np.max(valid) - np.min(valid)),
            "valid_cells": int(len(valid)),
            "total_cells": int(self.data.size),
            "nodata_cells": int(self.data.size - len(valid)),
        }

    def summary(self, include_cells: bool = True) -> dict[str, Any]:
        """
        Plain record describing the raster.

        min_elevation / max_elevation are None for an all-nodata raster.
        """
        try:
            min_elev, max_elev = self.scan_min_max()
        except AllNodataError:
            min_elev = max_elev = None

        record: dict[str, Any] = {
            "width": self.width,
            "height": self.height,
            "min_elevation": min_elev,
            "max_elevation": max_elev,
            "origin_x": self.origin_x,
            "origin_y": self.origin_y,
            "pixel_width": self.pixel_width,
            "pixel_height": self.pixel_height,
            "rotation_x": self.rotation_x,
            "rotation_y": self.rotation_y,
            "nodata": self.nodata,
        }
        if include_cells:
            record["data"] = self.cells.tolist()
        return record

    @classmethod
    def load(cls, filepath: Union[str, Path]) -> RasterGrid:
        """Read a single-band GeoTIFF (requires rasterio)."""
        from ..io.raster_io import read_geotiff

        return read_geotiff(filepath)

    def save(self, filepath: Union[str, Path]) -> Path:
        """Write the raster to GeoTIFF (requires rasterio)."""
        from ..io.raster_io import write_geotiff

        return write_geotiff(self, filepath)
