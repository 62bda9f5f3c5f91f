"""
TIN Module

Builds a Triangulated Irregular Network from survey points via a planar
Delaunay triangulation, keeping every vertex at its original index.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np
from scipy.spatial import cKDTree

from .backends import DEFAULT_GEOMETRY_BACKEND, GeometryBackend
from .validation import DegenerateInputError, InvalidInputError, validate_points

logger = logging.getLogger(__name__)

# Backends may copy or reorder coordinates; corners are matched back to the
# input points within this distance along each axis.
DEFAULT_MATCH_TOLERANCE = 1e-3


@dataclass
class TIN:
    """
    Triangulated irregular network.

    Attributes:
        vertices: (N, 3) array of x, y, z in original point order
        triangles: (M, 3) array of vertex indices
    """
    vertices: np.ndarray
    triangles: np.ndarray = field(default_factory=lambda: np.empty((0, 3), dtype=np.int64))

    def __post_init__(self):
        self.vertices = np.asarray(self.vertices, dtype=np.float64).reshape(-1, 3)
        self.triangles = np.asarray(self.triangles, dtype=np.int64).reshape(-1, 3)

        if self.triangles.size:
            if self.triangles.min() < 0 or self.triangles.max() >= len(self.vertices):
                raise InvalidInputError(
                    f"Triangle index out of range for {len(self.vertices)} vertices"
                )
            t = self.triangles
            repeated = (t[:, 0] == t[:, 1]) | (t[:, 1] == t[:, 2]) | (t[:, 0] == t[:, 2])
            if np.any(repeated):
                raise InvalidInputError(
                    f"Triangle {int(np.argmax(repeated))} repeats a vertex index"
                )

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        return self.triangle_count == 0

    @property
    def flat_triangles(self) -> List[int]:
        """Triangle indices flattened to [v0, v1, v2, v0, v1, v2, ...]."""
        return self.triangles.ravel().tolist()

    def triangle_vertices(self) -> np.ndarray:
        """(M, 3, 3) array with the x, y, z of every triangle corner."""
        return self.vertices[self.triangles]

    def planar_areas(self) -> np.ndarray:
        """Area of every triangle projected onto the XY plane."""
        v = self.triangle_vertices()
        ax = v[:, 1, 0] - v[:, 0, 0]
        ay = v[:, 1, 1] - v[:, 0, 1]
        bx = v[:, 2, 0] - v[:, 0, 0]
        by = v[:, 2, 1] - v[:, 0, 1]
        return np.abs(ax * by - ay * bx) / 2.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "vertex_count": self.vertex_count,
            "triangle_count": self.triangle_count,
            "vertices": [
                {"x": float(x), "y": float(y), "z": float(z)} for x, y, z in self.vertices
            ],
            "triangles": self.flat_triangles,
        }


class DelaunayTriangulator:
    """
    Delaunay TIN generation with vertex reconciliation.

    The geometry backend returns triangles as corner coordinates; each corner
    is mapped back to the first input point lying within `tolerance` of it in
    both x and y. Triangles that cannot be fully reconciled are dropped with
    a warning.
    """

    def __init__(
        self,
        backend: Optional[GeometryBackend] = None,
        tolerance: float = DEFAULT_MATCH_TOLERANCE,
    ):
        self.backend = backend or DEFAULT_GEOMETRY_BACKEND
        self.tolerance = tolerance

    def generate(self, points: Any) -> TIN:
        """
        Triangulate points in the XY plane.

        Args:
            points: Survey points (at least 3)

        Returns:
            TIN whose vertices are the input points in input order

        Raises:
            InsufficientPointsError: If fewer than 3 points
            ValidationError: If the point list is malformed
            DegenerateInputError: If no triangle could be produced
        """
        xyz = validate_points(points)

        logger.debug("Generating TIN from %d points...", len(xyz))

        corners = self.backend.delaunay(xyz[:, :2])

        logger.debug("Triangulation returned %d triangles", len(corners))

        if len(corners) == 0:
            raise DegenerateInputError(
                "Delaunay triangulation produced no triangles "
                "(are all points collinear or coincident?)"
            )

        triangles = self._reconcile(xyz, corners)

        if len(triangles) == 0:
            raise DegenerateInputError(
                "No triangle could be matched back to the input points"
            )

        tin = TIN(vertices=xyz, triangles=np.array(triangles, dtype=np.int64))

        logger.info(
            "TIN complete: %d vertices, %d triangles",
            tin.vertex_count,
            tin.triangle_count,
        )
        return tin

    def _reconcile(self, xyz: np.ndarray, corners: List[np.ndarray]) -> List[List[int]]:
        """Map triangle corner coordinates back to input point indices."""
        xy = xyz[:, :2]
        tree = cKDTree(xy)
        tol = self.tolerance

        triangles = []
        dropped = []

        for t, tri in enumerate(corners):
            tri = np.asarray(tri, dtype=np.float64)[:3, :2]
            # Chebyshev ball, then the strict per-axis test
            candidates = tree.query_ball_point(tri, r=tol, p=np.inf)

            indices = []
            for c, (corner, found) in enumerate(zip(tri, candidates)):
                matches = [
                    i for i in sorted(found)
                    if abs(xy[i, 0] - corner[0]) < tol and abs(xy[i, 1] - corner[1]) < tol
                ]
                if not matches:
                    logger.debug(
                        "Could not find matching vertex for triangle %d coord %d", t, c
                    )
                    break
                indices.append(matches[0])

            if len(indices) != 3:
                dropped.append((t, "unmatched corner"))
                continue

            if len(set(indices)) != 3:
                dropped.append((t, "corners matched the same vertex"))
                continue

            triangles.append(self._counter_clockwise(xy, indices))

        if dropped:
            sample = ", ".join(f"#{t} ({why})" for t, why in dropped[:5])
            more = f" and {len(dropped) - 5} more" if len(dropped) > 5 else ""
            warnings.warn(
                f"Dropped {len(dropped)} of {len(corners)} triangles that could not "
                f"be reconciled within {tol}: {sample}{more}",
                UserWarning,
                stacklevel=3,
            )

        return triangles

    @staticmethod
    def _counter_clockwise(xy: np.ndarray, indices: List[int]) -> List[int]:
        i0, i1, i2 = indices
        cross = (
            (xy[i1, 0] - xy[i0, 0]) * (xy[i2, 1] - xy[i0, 1])
            - (xy[i1, 1] - xy[i0, 1]) * (xy[i2, 0] - xy[i0, 0])
        )
        if cross < 0:
            return [i0, i2, i1]
        return [i0, i1, i2]
