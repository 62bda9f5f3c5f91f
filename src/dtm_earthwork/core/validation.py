"""
Input Validation Module

Provides the exception hierarchy and validation functions for the
dtm_earthwork package. All validation functions provide clear, actionable
error messages.
"""

from __future__ import annotations

import math
import os
import warnings
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np


class EarthworkError(Exception):
    """Base exception for all terrain and earthwork errors."""
    pass


class ValidationError(EarthworkError, ValueError):
    """Base exception for validation errors with user-friendly messages."""
    pass


class EmptyInputError(ValidationError):
    """No points were supplied."""
    pass


class InsufficientPointsError(ValidationError):
    """Fewer points than the operation needs."""
    pass


class MissingFieldError(ValidationError):
    """A point lacks one of its x, y or z coordinates."""
    pass


class InvalidInputError(ValidationError):
    """An artifact handed to a component is empty or malformed."""
    pass


class ParameterError(EarthworkError, ValueError):
    """Invalid numeric parameter (pixel size, contour interval, ...)."""
    pass


class ComputationError(EarthworkError):
    """A computation could not produce a meaningful result."""
    pass


class InterpolationError(ComputationError):
    """Grid interpolation failed."""
    pass


class DegenerateInputError(ComputationError):
    """Geometry is degenerate (e.g. all points collinear)."""
    pass


class NoTINAvailableError(ComputationError):
    """A TIN operation was requested before a TIN was generated."""
    pass


class AllNodataError(ComputationError):
    """Raster contains only nodata cells."""
    pass


class ResourceError(EarthworkError, OSError):
    """A file could not be read or written."""
    pass


class FilePermissionError(ResourceError):
    """Cannot write to specified path."""
    pass


MIN_POINTS = 3


def _coerce_float(value: Any, index: int, name: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Point {index} has a non-numeric {name} coordinate: {value!r}"
        )
    if not math.isfinite(result):
        raise ValidationError(
            f"Point {index} has a non-finite {name} coordinate: {result}"
        )
    return result


def _extract_coords(point: Any, index: int, fields: str) -> list[float]:
    """Pull the named coordinates out of a mapping, object or sequence."""
    if isinstance(point, Mapping):
        missing = [f for f in fields if f not in point]
        if missing:
            raise MissingFieldError(
                f"Point {index} missing {', '.join(missing)} coordinate. "
                f"Points must contain {', '.join(fields)} coordinates."
            )
        return [_coerce_float(point[f], index, f) for f in fields]

    if all(hasattr(point, f) for f in fields):
        return [_coerce_float(getattr(point, f), index, f) for f in fields]

    if isinstance(point, (Sequence, np.ndarray)) and not isinstance(point, (str, bytes)):
        if len(point) < len(fields):
            raise MissingFieldError(
                f"Point {index} has {len(point)} values, expected {len(fields)} "
                f"({', '.join(fields)})."
            )
        return [_coerce_float(point[i], index, f) for i, f in enumerate(fields)]

    raise MissingFieldError(
        f"Point {index} missing {', '.join(fields)} coordinates "
        f"(got {type(point).__name__})."
    )


def validate_points(points: Any, minimum: int = MIN_POINTS) -> np.ndarray:
    """
    Validate a point list and convert it to an (N, 3) float64 array.

    Accepts a sequence of mappings with x/y/z keys, objects with x/y/z
    attributes (e.g. Point3D), 3-element sequences, an (N, 3) array or a
    PointCloud.

    Args:
        points: The point collection to validate
        minimum: Minimum number of points required

    Returns:
        (N, 3) array of x, y, z coordinates in input order

    Raises:
        EmptyInputError: If no points were supplied
        InsufficientPointsError: If fewer than `minimum` points
        MissingFieldError: If any point lacks x, y or z
        ValidationError: If a coordinate is non-numeric or non-finite
    """
    if points is None:
        raise EmptyInputError("No points provided")

    # PointCloud and friends
    if hasattr(points, "xyz") and isinstance(points.xyz, np.ndarray):
        points = points.xyz

    if isinstance(points, np.ndarray):
        if points.size == 0:
            raise EmptyInputError("No points provided")
        if points.ndim != 2 or points.shape[1] < 3:
            raise MissingFieldError(
                f"Point array must be Nx3 (x, y, z), got shape {points.shape}"
            )
        if len(points) < minimum:
            raise InsufficientPointsError(
                f"Insufficient points: {len(points)} (minimum {minimum} required)"
            )
        xyz = np.asarray(points[:, :3], dtype=np.float64)
        if not np.all(np.isfinite(xyz)):
            bad = int(np.argmax(~np.all(np.isfinite(xyz), axis=1)))
            raise ValidationError(f"Point {bad} has a non-finite coordinate")
        return xyz.copy()

    points = list(points)

    if not points:
        raise EmptyInputError("No points provided")

    if len(points) < minimum:
        raise InsufficientPointsError(
            f"Insufficient points: {len(points)} (minimum {minimum} required)"
        )

    coords = [_extract_coords(p, i, "xyz") for i, p in enumerate(points)]
    return np.array(coords, dtype=np.float64)


def validate_boundary(boundary: Any) -> Optional[np.ndarray]:
    """
    Convert a boundary ring into an (N, 2) array.

    Rings with fewer than three points are treated as "no boundary" and
    return None. A closing point equal to the first point is dropped so the
    ring is always implicitly closed.

    Accepts the same containers as validate_points, so a PointCloud works
    as a scattered mask.

    Raises:
        MissingFieldError: If a ring point lacks x or y
        ValidationError: If the boundary is not a collection of points
    """
    if boundary is None:
        return None

    # PointCloud and friends
    if hasattr(boundary, "xyz") and isinstance(boundary.xyz, np.ndarray):
        boundary = boundary.xyz

    if isinstance(boundary, np.ndarray):
        if boundary.ndim != 2 or boundary.shape[1] < 2:
            raise MissingFieldError(
                f"Boundary array must be Nx2 (x, y), got shape {boundary.shape}"
            )
        ring = np.asarray(boundary[:, :2], dtype=np.float64)
    else:
        if isinstance(boundary, (str, bytes)):
            raise ValidationError(
                f"Boundary must be a sequence of (x, y) points, got {type(boundary).__name__}"
            )
        try:
            items = list(boundary)
        except TypeError:
            raise ValidationError(
                f"Boundary must be a sequence of (x, y) points, got {type(boundary).__name__}"
            ) from None
        if len(items) < MIN_POINTS:
            return None
        ring = np.array(
            [_extract_coords(p, i, "xy") for i, p in enumerate(items)],
            dtype=np.float64,
        )

    if len(ring) > MIN_POINTS and np.array_equal(ring[0], ring[-1]):
        ring = ring[:-1]

    if len(ring) < MIN_POINTS:
        return None

    return ring


def validate_positive(value: Any, context: str) -> float:
    """
    Validate a parameter is a positive, finite number.

    Args:
        value: The value to validate
        context: Description of the parameter (used in error messages)

    Returns:
        The validated value as a float

    Raises:
        ParameterError: If value is None, not a number, or <= 0
    """
    if value is None:
        raise ParameterError(f"{context} cannot be None")

    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        raise ParameterError(
            f"{context} must be a number, got {type(value).__name__}"
        )

    if not math.isfinite(value) or value <= 0:
        raise ParameterError(f"Invalid {context}: {value} (must be > 0)")

    return float(value)


def validate_finite(value: Any, context: str) -> float:
    """Validate a parameter is a finite number (may be zero or negative)."""
    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        raise ParameterError(
            f"{context} must be a number, got {type(value).__name__}"
        )
    if not math.isfinite(value):
        raise ParameterError(f"{context} must be finite, got {value}")
    return float(value)


def validate_output_path(filepath: Union[str, Path], context: str = "output file") -> Path:
    """
    Validate output path is writable before attempting to write.

    Args:
        filepath: The path to validate
        context: Description of what will be written (used in error messages)

    Returns:
        The validated path as a Path object

    Raises:
        FilePermissionError: If directory doesn't exist or isn't writable
    """
    path = Path(filepath)
    parent = path.parent

    # Handle empty parent (current directory)
    if str(parent) == '.':
        parent = Path.cwd()

    if not parent.exists():
        raise FilePermissionError(
            f"Cannot write {context}: directory '{parent}' does not exist. "
            "Create the directory first or specify a different path."
        )

    if not os.access(parent, os.W_OK):
        raise FilePermissionError(
            f"Cannot write {context}: no write permission for directory '{parent}'."
        )

    if path.exists() and not os.access(path, os.W_OK):
        raise FilePermissionError(
            f"Cannot overwrite {context}: file '{path}' exists but is not writable."
        )

    return path


def validate_grid_dimensions(
    rows: int,
    cols: int,
    bounds: tuple[float, float, float, float],
    pixel_size: float,
) -> None:
    """
    Validate that grid dimensions are usable.

    Args:
        rows: Number of rows
        cols: Number of columns
        bounds: (min_x, min_y, max_x, max_y) of the grid extent
        pixel_size: Requested cell size

    Raises:
        InterpolationError: If both dimensions collapsed to zero
    """
    if rows <= 0 and cols <= 0:
        min_x, min_y, max_x, max_y = bounds
        raise InterpolationError(
            f"Invalid grid dimensions ({rows} rows x {cols} cols). "
            f"Check that bounds ({min_x:.1f}, {min_y:.1f}) to ({max_x:.1f}, {max_y:.1f}) "
            f"are valid with pixel size {pixel_size}."
        )

    total_cells = rows * cols
    if total_cells > 100_000_000:  # 100M cells
        warnings.warn(
            f"Creating very large grid ({rows}x{cols} = {total_cells:,} cells). "
            "Consider using a coarser pixel size to reduce memory usage.",
            UserWarning,
            stacklevel=3,
        )
