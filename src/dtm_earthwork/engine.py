"""
Earthwork Engine

Single entry point coordinating DTM, contour, TIN, volume and mesh
operations. Holds the current raster and TIN, and turns component
failures into OperationResult values with the message kept in
`last_error`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar, Union

from .core.backends import DEFAULT_GEOMETRY_BACKEND, GeometryBackend, RasterBackend
from .core.contours import ContourExtractor, ContourLine
from .core.interpolation import GridInterpolator, InterpolationConfig
from .core.mesh import Mesh, MeshBuilder
from .core.raster import RasterGrid
from .core.tin import TIN, DelaunayTriangulator
from .core.validation import EarthworkError, InvalidInputError, validate_boundary, validate_finite
from .core.volume import VolumeEngine, VolumeResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Outcome of an engine operation: a value, or the error that prevented it."""
    value: Optional[T] = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EarthworkEngine:
    """
    Facade over the earthwork components.

    Components raise typed exceptions; every public operation here catches
    them, records the message in `last_error`, notifies `on_error` and
    returns a failed OperationResult instead.

    Example:
        >>> engine = EarthworkEngine()
        >>> engine.generate_dtm(points, pixel_size=1.0)
        >>> result = engine.calculate_volume(base_elevation=100.0)
        >>> if result.ok:
        ...     print(result.value.summary())
    """

    def __init__(
        self,
        config: Optional[InterpolationConfig] = None,
        geometry_backend: Optional[GeometryBackend] = None,
        raster_backend: Optional[RasterBackend] = None,
        on_progress: Optional[Callable[[int], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self.geometry_backend = geometry_backend or DEFAULT_GEOMETRY_BACKEND

        self.interpolator = GridInterpolator(config=config, backend=raster_backend)
        self.contour_extractor = ContourExtractor(backend=raster_backend)
        self.triangulator = DelaunayTriangulator(backend=self.geometry_backend)
        self.volume_engine = VolumeEngine(backend=self.geometry_backend)
        self.mesh_builder = MeshBuilder()

        self.on_progress = on_progress
        self.on_error = on_error

        self.grid: Optional[RasterGrid] = None
        self.tin: Optional[TIN] = None

        self._last_error = ""
        self._is_processing = False
        self._progress = 0

    @property
    def last_error(self) -> str:
        return self._last_error

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def progress(self) -> int:
        return self._progress

    def _set_progress(self, value: int) -> None:
        if value != self._progress:
            self._progress = value
            if self.on_progress is not None:
                self.on_progress(value)

    def _set_error(self, message: str) -> None:
        self._last_error = message
        if self.on_error is not None:
            self.on_error(message)

    def _run(self, operation: str, func: Callable[[], T]) -> OperationResult[T]:
        try:
            return OperationResult(value=func())
        except (EarthworkError, ImportError) as e:
            message = str(e)
            logger.warning("%s failed: %s", operation, message)
            self._set_error(message)
            return OperationResult(error=message, exception=e)

    def _require_grid(self) -> RasterGrid:
        if self.grid is None:
            raise InvalidInputError("No DTM available. Generate or load a DTM first.")
        return self.grid

    # DTM

    def generate_dtm(
        self,
        points: Any,
        pixel_size: float,
        progress: Optional[Callable[[int], None]] = None,
    ) -> OperationResult[RasterGrid]:
        """Interpolate survey points into the current DTM."""

        def on_milestone(value: int) -> None:
            self._set_progress(value)
            if progress is not None:
                progress(value)

        def generate() -> RasterGrid:
            grid = self.interpolator.generate(points, pixel_size, progress=on_milestone)
            self.grid = grid
            return grid

        self._is_processing = True
        self._set_progress(0)
        try:
            result = self._run("DTM generation", generate)
        finally:
            self._is_processing = False

        if result.ok:
            self._set_progress(100)
        return result

    def generate_contours(self, interval: float) -> OperationResult[List[ContourLine]]:
        return self._run(
            "Contour generation",
            lambda: self.contour_extractor.extract(self._require_grid(), interval),
        )

    def get_dtm_data(self, include_cells: bool = True) -> OperationResult[dict]:
        """Plain record of the current DTM (dimensions, range, transform, cells)."""
        return self._run(
            "DTM read",
            lambda: self._require_grid().summary(include_cells=include_cells),
        )

    def save_dtm(self, filepath: Union[str, Path]) -> OperationResult[Path]:
        return self._run("DTM save", lambda: self._require_grid().save(filepath))

    def load_dtm(self, filepath: Union[str, Path]) -> OperationResult[RasterGrid]:
        """Load a GeoTIFF as the current DTM."""

        def load() -> RasterGrid:
            grid = RasterGrid.load(filepath)
            self.grid = grid
            return grid

        return self._run("DTM load", load)

    # Mesh

    def generate_3d_mesh(self, vertical_scale: float = 1.0) -> OperationResult[Mesh]:
        return self._run(
            "Mesh generation",
            lambda: self.mesh_builder.build(self._require_grid(), vertical_scale),
        )

    def export_dtm_as_obj(
        self,
        filepath: Union[str, Path],
        vertical_scale: float = 1.5,
    ) -> OperationResult[Path]:
        return self._run(
            "OBJ export",
            lambda: self.mesh_builder.export_obj(self._require_grid(), filepath, vertical_scale),
        )

    # Volumes

    def calculate_volume(
        self,
        base_elevation: float,
        mask_points: Any = None,
    ) -> OperationResult[VolumeResult]:
        """Grid cut/fill, optionally limited to the convex hull of mask_points."""
        return self._run(
            "Volume calculation",
            lambda: self.volume_engine.calculate_grid(
                self._require_grid(), base_elevation, mask_points
            ),
        )

    def generate_tin(self, points: Any) -> OperationResult[TIN]:
        """Triangulate points, replacing any previous TIN."""

        def generate() -> TIN:
            self.tin = None
            self.tin = self.triangulator.generate(points)
            return self.tin

        return self._run("TIN generation", generate)

    def calculate_volume_tin(
        self,
        base_elevation: float,
        boundary_polygon: Any = None,
    ) -> OperationResult[VolumeResult]:
        return self._run(
            "TIN volume calculation",
            lambda: self.volume_engine.calculate_tin(self.tin, base_elevation, boundary_polygon),
        )

    def clear_tin(self) -> None:
        self.tin = None

    # Geometry helpers

    def create_buffer(
        self,
        points: Any,
        distance: float,
    ) -> OperationResult[List[Tuple[float, float]]]:
        """
        Grow (or shrink, for negative distance) a polygon ring.

        Returns the closed exterior ring of the buffered polygon; fewer than
        three points give an empty ring.
        """

        def buffer() -> List[Tuple[float, float]]:
            ring = validate_boundary(points)
            grow = validate_finite(distance, "buffer distance")
            if ring is None:
                return []
            return [(float(x), float(y)) for x, y in self.geometry_backend.buffer(ring, grow)]

        return self._run("Buffer", buffer)
