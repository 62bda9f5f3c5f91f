"""
Point Input Module

Survey point containers and loaders for text (XYZ/CSV) and LAS/LAZ files,
plus a synthetic terrain generator for demos and tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, NamedTuple, Optional, Tuple

import numpy as np

from ..core.validation import InvalidInputError, ResourceError, validate_points

try:
    import laspy
    HAS_LASPY = True
except ImportError:
    HAS_LASPY = False

logger = logging.getLogger(__name__)


class Point3D(NamedTuple):
    """A surveyed point."""
    x: float
    y: float
    z: float


def _wkt_from_las(las) -> Optional[str]:
    """WKT stored in the LAS VLRs (LASF_WKT or legacy LASF_Projection 2112)."""
    for vlr in getattr(las, 'vlrs', None) or []:
        is_wkt = (
            (vlr.user_id == "LASF_WKT" and vlr.record_id == 1)
            or (vlr.user_id == "LASF_Projection" and vlr.record_id == 2112)
        )
        if not is_wkt:
            continue
        try:
            wkt = vlr.record_data.decode('utf-8').rstrip('\x00').strip()
        except (AttributeError, UnicodeDecodeError):
            continue
        if wkt:
            return wkt
    return None


@dataclass
class PointCloud:
    """
    Survey point set.

    Attributes:
        xyz: Nx3 array of point coordinates
        classification: Optional per-point ASPRS class codes (2 = ground)
        crs: Coordinate reference system (EPSG code or WKT)
    """
    xyz: np.ndarray
    classification: Optional[np.ndarray] = None
    crs: Optional[str] = None
    _bounds: Optional[Tuple[np.ndarray, np.ndarray]] = field(default=None, repr=False)

    def __post_init__(self):
        self.xyz = np.asarray(self.xyz, dtype=np.float64)
        if self.xyz.ndim != 2 or self.xyz.shape[1] != 3:
            raise InvalidInputError(f"xyz must be Nx3 array, got shape {self.xyz.shape}")

        if self.classification is not None and len(self.classification) != len(self.xyz):
            raise InvalidInputError("classification length must match xyz")

    @classmethod
    def from_points(cls, points: Any, crs: Optional[str] = None) -> PointCloud:
        """Build from any point form accepted by validate_points."""
        return cls(xyz=validate_points(points, minimum=1), crs=crs)

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Get (min_xyz, max_xyz) bounding box."""
        if self._bounds is None:
            self._bounds = (np.min(self.xyz, axis=0), np.max(self.xyz, axis=0))
        return self._bounds

    @property
    def num_points(self) -> int:
        return len(self.xyz)

    @property
    def x(self) -> np.ndarray:
        return self.xyz[:, 0]

    @property
    def y(self) -> np.ndarray:
        return self.xyz[:, 1]

    @property
    def z(self) -> np.ndarray:
        return self.xyz[:, 2]

    def to_points(self) -> List[Point3D]:
        return [Point3D(float(x), float(y), float(z)) for x, y, z in self.xyz]

    def filter_by_classification(self, classes: list[int]) -> PointCloud:
        """Keep only points whose class code is in `classes` (e.g. [2] for ground)."""
        if self.classification is None:
            raise InvalidInputError("Point cloud has no classification data")

        mask = np.isin(self.classification, classes)
        return PointCloud(
            xyz=self.xyz[mask].copy(),
            classification=self.classification[mask].copy(),
            crs=self.crs,
        )


class PointCloudLoader:
    """
    Loads survey points from disk, picking the reader by file extension.

    Supported formats:
        - XYZ / TXT / CSV (x y z [classification] per line)
        - LAS / LAZ (requires laspy)
    """

    CLASS_GROUND = 2

    @classmethod
    def load(cls, filepath: str | Path, **kwargs) -> PointCloud:
        """
        Load a point file.

        Raises:
            ResourceError: If the file does not exist or cannot be parsed
            InvalidInputError: If the extension is not supported
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        loaders = {
            '.las': cls._load_las,
            '.laz': cls._load_las,
            '.xyz': cls._load_text,
            '.txt': cls._load_text,
            '.csv': cls._load_text,
        }

        if suffix not in loaders:
            raise InvalidInputError(f"Unsupported point file format: {suffix}")

        if not filepath.exists():
            raise ResourceError(f"Point file '{filepath}' does not exist")

        cloud = loaders[suffix](filepath, **kwargs)
        logger.info("Loaded %d points from %s", cloud.num_points, filepath)
        return cloud

    @classmethod
    def _load_las(cls, filepath: Path, **kwargs) -> PointCloud:
        if not HAS_LASPY:
            raise ImportError(
                "laspy is required to load LAS/LAZ files. "
                "Install with: pip install laspy (add lazrs for LAZ)"
            )

        try:
            with laspy.open(filepath) as reader:
                las = reader.read()
        except (laspy.errors.LaspyException, OSError) as e:
            raise ResourceError(f"Failed to read '{filepath}': {e}") from e

        xyz = np.column_stack([las.x, las.y, las.z]).astype(np.float64)

        classification = None
        if hasattr(las, 'classification'):
            classification = np.array(las.classification, dtype=np.uint8)

        return PointCloud(xyz=xyz, classification=classification, crs=_wkt_from_las(las))

    @classmethod
    def _load_text(
        cls,
        filepath: Path,
        delimiter: Optional[str] = None,
        skip_header: int = 0,
        **kwargs
    ) -> PointCloud:
        if delimiter is None and filepath.suffix.lower() == '.csv':
            delimiter = ','

        try:
            data = np.loadtxt(filepath, delimiter=delimiter, skiprows=skip_header, ndmin=2)
        except ValueError as e:
            raise ResourceError(f"Failed to parse '{filepath}': {e}") from e

        if data.size == 0:
            return PointCloud(xyz=np.empty((0, 3)))

        if data.shape[1] < 3:
            raise InvalidInputError("Point file must have at least 3 columns (x y z)")

        classification = None
        if data.shape[1] >= 4:
            classification = data[:, 3].astype(np.uint8)

        return PointCloud(xyz=data[:, :3], classification=classification)


def generate_sample_terrain(
    num_points: int = 200,
    size: Tuple[float, float] = (100.0, 100.0),
    base_elevation: float = 100.0,
    hill_height: float = 10.0,
    noise_scale: float = 0.5,
    seed: int = 42,
) -> PointCloud:
    """
    Generate scattered synthetic survey points.

    Points are uniformly scattered over `size` with elevations on rolling
    hills plus a little noise. Useful for demos without field data.

    Args:
        num_points: Number of survey shots
        size: (width, height) of the surveyed area
        base_elevation: Mean elevation
        hill_height: Amplitude of the hills
        noise_scale: Standard deviation of random noise
        seed: Random seed for reproducibility
    """
    rng = np.random.default_rng(seed)

    width, height = size
    x = rng.uniform(0.0, width, num_points)
    y = rng.uniform(0.0, height, num_points)

    z = base_elevation + (
        hill_height * np.sin(x / 20) * np.cos(y / 25)
        + hill_height * 0.5 * np.sin(x / 10 + y / 15)
        + noise_scale * rng.standard_normal(num_points)
    )

    classification = np.full(num_points, PointCloudLoader.CLASS_GROUND, dtype=np.uint8)

    return PointCloud(xyz=np.column_stack([x, y, z]), classification=classification)
