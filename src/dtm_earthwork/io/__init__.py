"""I/O modules for loading and saving data."""

from .point_cloud import PointCloudLoader, PointCloud, Point3D, generate_sample_terrain
from .raster_io import read_geotiff, write_geotiff
from .exporters import (
    export_volume_json,
    export_contours_geojson,
    export_tin_geojson,
    export_boundary_geojson,
)

__all__ = [
    "PointCloudLoader",
    "PointCloud",
    "Point3D",
    "generate_sample_terrain",
    "read_geotiff",
    "write_geotiff",
    "export_volume_json",
    "export_contours_geojson",
    "export_tin_geojson",
    "export_boundary_geojson",
]
