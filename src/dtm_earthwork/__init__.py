"""
DTM Earthwork

A Python library for turning survey points into digital terrain models,
contours and TINs, and for calculating cut/fill volumes against a
reference elevation.
"""

import logging

__version__ = "0.1.0"

from .core.raster import RasterGrid, NODATA
from .core.interpolation import GridInterpolator, InterpolationConfig
from .core.contours import ContourExtractor, ContourLine
from .core.tin import TIN, DelaunayTriangulator
from .core.volume import VolumeEngine, VolumeResult
from .core.mesh import Mesh, MeshBuilder
from .core.validation import EarthworkError
from .engine import EarthworkEngine, OperationResult
from .io.point_cloud import PointCloud, PointCloudLoader, Point3D

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "RasterGrid",
    "NODATA",
    "GridInterpolator",
    "InterpolationConfig",
    "ContourExtractor",
    "ContourLine",
    "TIN",
    "DelaunayTriangulator",
    "VolumeEngine",
    "VolumeResult",
    "Mesh",
    "MeshBuilder",
    "EarthworkError",
    "EarthworkEngine",
    "OperationResult",
    "PointCloud",
    "PointCloudLoader",
    "Point3D",
]
