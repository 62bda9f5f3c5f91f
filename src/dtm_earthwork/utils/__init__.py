"""Utility modules."""

from .visualization import plot_dtm, plot_cut_fill, plot_tin, plot_mesh_3d, save_figure

__all__ = ["plot_dtm", "plot_cut_fill", "plot_tin", "plot_mesh_3d", "save_figure"]
