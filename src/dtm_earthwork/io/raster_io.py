"""
Raster I/O Module

Single-band GeoTIFF persistence for RasterGrid via rasterio.

rasterio is an optional dependency (install the `raster` extra).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import numpy as np

from ..core.raster import NODATA, RasterGrid
from ..core.validation import ResourceError, validate_output_path

logger = logging.getLogger(__name__)


def _require_rasterio():
    try:
        import rasterio
    except ImportError:
        raise ImportError(
            "rasterio required for GeoTIFF I/O. "
            "Install with: pip install rasterio"
        )
    return rasterio


def read_geotiff(filepath: Union[str, Path]) -> RasterGrid:
    """
    Read band 1 of a GeoTIFF into a RasterGrid.

    Cells equal to the file's nodata value (or -9999 when the file declares
    none) become the grid's nodata.

    Raises:
        ResourceError: If the file is missing or cannot be read as a raster
    """
    rasterio = _require_rasterio()
    from rasterio.errors import RasterioError

    path = Path(filepath)
    if not path.exists():
        raise ResourceError(f"Failed to open raster file: '{path}' does not exist")

    try:
        with rasterio.open(path) as src:
            if src.count < 1:
                raise ResourceError(f"Raster file '{path}' has no bands")

            data = src.read(1, out_dtype="float32")
            nodata = src.nodata
            crs = src.crs.to_string() if src.crs is not None else None
            transform = src.transform
    except RasterioError as e:
        raise ResourceError(f"Failed to open raster file '{path}': {e}") from e

    if nodata is not None and float(nodata) != NODATA:
        # Normalise to the library-wide sentinel
        data = np.where(data == np.float32(nodata), np.float32(NODATA), data)

    grid = RasterGrid.from_transform(data, transform, nodata=NODATA, crs=crs)

    logger.info("DTM loaded from %s (%d x %d)", path, grid.width, grid.height)
    return grid


def write_geotiff(grid: RasterGrid, filepath: Union[str, Path]) -> Path:
    """
    Write a RasterGrid as a single-band float32 GeoTIFF.

    Raises:
        FilePermissionError: If the output location is not writable
        ResourceError: If rasterio fails to create or write the file
    """
    rasterio = _require_rasterio()
    from rasterio.errors import RasterioError

    path = validate_output_path(filepath, "GeoTIFF")

    try:
        with rasterio.open(
            path,
            'w',
            driver='GTiff',
            height=grid.height,
            width=grid.width,
            count=1,
            dtype='float32',
            crs=grid.crs,
            transform=grid.transform,
            nodata=grid.nodata,
        ) as dst:
            dst.write(grid.data.astype(np.float32), 1)
    except RasterioError as e:
        raise ResourceError(f"Failed to create output file '{path}': {e}") from e

    logger.info("DTM saved to %s", path)
    return path
