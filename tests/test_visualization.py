"""
Tests for preview figures.
"""

import pytest

pytestmark = pytest.mark.requires_matplotlib


@pytest.fixture
def survey_dtm(sample_point_cloud):
    from dtm_earthwork.core.interpolation import GridInterpolator

    return GridInterpolator().generate(sample_point_cloud, pixel_size=2.0)


class TestFigures:
    """Smoke tests for each plot."""

    def test_plot_dtm_with_contours(self, survey_dtm, tmp_path):
        """Test DTM heatmap with contour and boundary overlays."""
        from dtm_earthwork.core.contours import ContourExtractor
        from dtm_earthwork.utils.visualization import plot_dtm, save_figure

        contours = ContourExtractor().extract(survey_dtm, interval=2.0)
        fig = plot_dtm(survey_dtm, contours=contours, boundary=[(5, 5), (20, 5), (20, 20)])
        path = save_figure(fig, tmp_path / "dtm.png")

        assert path.exists()

    def test_plot_cut_fill(self, survey_dtm, tmp_path):
        """Test cut/fill map renders."""
        from dtm_earthwork.utils.visualization import plot_cut_fill, save_figure

        fig = plot_cut_fill(survey_dtm, base_elevation=100.0)

        assert save_figure(fig, tmp_path / "cut_fill.png").exists()

    def test_plot_tin(self, sample_point_cloud, tmp_path):
        """Test TIN edges render."""
        from dtm_earthwork.core.tin import DelaunayTriangulator
        from dtm_earthwork.utils.visualization import plot_tin, save_figure

        tin = DelaunayTriangulator().generate(sample_point_cloud)
        fig = plot_tin(tin)

        assert save_figure(fig, tmp_path / "tin.png").exists()

    def test_plot_mesh_3d(self, survey_dtm, tmp_path):
        """Test the coloured mesh renders in 3D."""
        from dtm_earthwork.core.mesh import MeshBuilder
        from dtm_earthwork.utils.visualization import plot_mesh_3d, save_figure

        fig = plot_mesh_3d(MeshBuilder().build(survey_dtm, vertical_scale=2.0))

        assert save_figure(fig, tmp_path / "mesh.png").exists()
