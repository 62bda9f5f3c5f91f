"""
Visualization Utilities

Static preview figures for DTMs, contours, TINs and cut/fill maps.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.validation import validate_boundary, validate_output_path

try:
    import matplotlib.pyplot as plt
    from matplotlib.colors import LinearSegmentedColormap, TwoSlopeNorm
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

if TYPE_CHECKING:
    from ..core.contours import ContourLine
    from ..core.mesh import Mesh
    from ..core.raster import RasterGrid
    from ..core.tin import TIN


def require_matplotlib():
    if not HAS_MATPLOTLIB:
        raise ImportError("matplotlib is required. Install with: pip install matplotlib")


# Cut/fill colormap (red = cut, blue = fill)
CUT_FILL_COLORS = [
    (0.0, (0.2, 0.2, 0.8)),
    (0.4, (0.6, 0.8, 1.0)),
    (0.5, (0.95, 0.95, 0.95)),
    (0.6, (1.0, 0.8, 0.6)),
    (1.0, (0.8, 0.2, 0.2)),
]


def get_cut_fill_cmap():
    require_matplotlib()
    return LinearSegmentedColormap.from_list("cut_fill", CUT_FILL_COLORS)


def _new_axes(ax, figsize, **kwargs):
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize, subplot_kw=kwargs or None)
    else:
        fig = ax.figure
    return fig, ax


def _extent(grid: 'RasterGrid') -> list[float]:
    min_x, min_y, max_x, max_y = grid.bounds
    return [min_x, max_x, min_y, max_y]


def _draw_boundary(ax, boundary: Any, label: str = 'Boundary') -> None:
    ring = validate_boundary(boundary)
    if ring is None:
        return
    closed = np.vstack([ring, ring[:1]])
    ax.plot(closed[:, 0], closed[:, 1], 'r-', linewidth=2, label=label)
    ax.legend()


def plot_dtm(
    grid: 'RasterGrid',
    contours: Optional[Sequence['ContourLine']] = None,
    boundary: Any = None,
    ax=None,
    title: str = "Digital Terrain Model",
    cmap: str = "terrain",
    figsize: Tuple[int, int] = (10, 8),
):
    """
    Plot a DTM as a heatmap, with optional contour lines and boundary.

    Args:
        grid: RasterGrid to plot
        contours: ContourLines from ContourExtractor to overlay
        boundary: Optional ring of (x, y) points to outline
        ax: Optional matplotlib axes (creates new figure if None)
        title: Plot title
        cmap: Colormap name
        figsize: Figure size if creating new figure

    Returns:
        matplotlib Figure
    """
    require_matplotlib()
    fig, ax = _new_axes(ax, figsize)

    data = np.ma.masked_array(grid.data, mask=~grid.valid_mask)

    # Row 0 is the north edge for north-up rasters
    origin = 'upper' if grid.pixel_height < 0 else 'lower'
    im = ax.imshow(data, extent=_extent(grid), origin=origin, cmap=cmap, aspect='equal')
    plt.colorbar(im, ax=ax, label='Elevation')

    for line in contours or []:
        pts = np.asarray(line.points)
        ax.plot(pts[:, 0], pts[:, 1], 'k-', linewidth=0.5, alpha=0.6)

    _draw_boundary(ax, boundary)

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_title(title)

    return fig


def plot_cut_fill(
    grid: 'RasterGrid',
    base_elevation: float,
    boundary: Any = None,
    ax=None,
    title: str = "Cut/Fill Map",
    figsize: Tuple[int, int] = (10, 8),
):
    """
    Plot elevation minus base elevation (red = cut, blue = fill).

    Returns:
        matplotlib Figure
    """
    require_matplotlib()
    fig, ax = _new_axes(ax, figsize)

    diff = np.ma.masked_array(
        grid.data.astype(np.float64) - base_elevation, mask=~grid.valid_mask
    )

    limit = float(np.abs(diff).max()) if diff.count() else 0.0
    limit = limit or 1.0
    norm = TwoSlopeNorm(vmin=-limit, vcenter=0.0, vmax=limit)

    origin = 'upper' if grid.pixel_height < 0 else 'lower'
    im = ax.imshow(
        diff,
        extent=_extent(grid),
        origin=origin,
        cmap=get_cut_fill_cmap(),
        norm=norm,
        aspect='equal',
    )
    plt.colorbar(im, ax=ax, label='Cut (+) / Fill (-)')

    _draw_boundary(ax, boundary)

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_title(f"{title} (base {base_elevation:g})")

    return fig


def plot_tin(
    tin: 'TIN',
    boundary: Any = None,
    ax=None,
    title: str = "TIN",
    cmap: str = "terrain",
    figsize: Tuple[int, int] = (10, 8),
):
    """Plot TIN edges over vertices coloured by elevation."""
    require_matplotlib()
    fig, ax = _new_axes(ax, figsize)

    v = tin.vertices
    ax.triplot(v[:, 0], v[:, 1], tin.triangles, color='gray', linewidth=0.5)
    sc = ax.scatter(v[:, 0], v[:, 1], c=v[:, 2], cmap=cmap, s=12, zorder=3)
    plt.colorbar(sc, ax=ax, label='Elevation')

    _draw_boundary(ax, boundary)

    ax.set_aspect('equal')
    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_title(f"{title} ({tin.triangle_count} triangles)")

    return fig


def plot_mesh_3d(
    mesh: 'Mesh',
    ax=None,
    title: str = "3D Terrain",
    figsize: Tuple[int, int] = (12, 8),
):
    """Render a Mesh with its vertex colours (Y up in the mesh, Z up here)."""
    require_matplotlib()
    fig, ax = _new_axes(ax, figsize, projection='3d')

    verts = mesh.vertices.reshape(-1, 3)
    tris = mesh.indices.reshape(-1, 3)
    colors = mesh.colors.reshape(-1, 3)

    if len(tris):
        face_colors = colors[tris].mean(axis=1)
        surf = ax.plot_trisurf(verts[:, 0], verts[:, 2], verts[:, 1], triangles=tris, linewidth=0)
        surf.set_facecolor(face_colors)

    ax.set_xlabel('X')
    ax.set_ylabel('Z')
    ax.set_zlabel('Elevation')
    ax.set_title(title)

    return fig


def save_figure(fig, filepath: Union[str, Path], dpi: int = 150) -> Path:
    """Save a figure to disk and close it."""
    require_matplotlib()
    path = validate_output_path(filepath, "figure")
    fig.savefig(path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
    return path
