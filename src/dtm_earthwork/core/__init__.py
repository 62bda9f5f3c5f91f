"""Core data structures and algorithms."""

from .raster import RasterGrid, NODATA
from .interpolation import GridInterpolator, InterpolationConfig
from .contours import ContourExtractor, ContourLine
from .tin import TIN, DelaunayTriangulator
from .volume import VolumeEngine, VolumeResult
from .mesh import Mesh, MeshBuilder

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
]
