"""
Tests for point loading, GeoTIFF persistence and exporters.
"""

import json

import numpy as np
import pytest

from dtm_earthwork.core.contours import ContourLine
from dtm_earthwork.core.raster import NODATA, RasterGrid
from dtm_earthwork.core.tin import DelaunayTriangulator
from dtm_earthwork.core.validation import InvalidInputError, ResourceError
from dtm_earthwork.core.volume import VolumeResult
from dtm_earthwork.io.exporters import (
    export_boundary_geojson,
    export_contours_geojson,
    export_tin_geojson,
    export_volume_json,
)
from dtm_earthwork.io.point_cloud import (
    Point3D,
    PointCloud,
    PointCloudLoader,
    generate_sample_terrain,
)


class TestPointCloud:
    """Tests for the PointCloud container."""

    def test_generate_sample_terrain(self):
        """Test synthetic survey generation."""
        pc = generate_sample_terrain(num_points=100, size=(50.0, 40.0))

        assert pc.num_points == 100
        bounds_min, bounds_max = pc.bounds
        assert bounds_min[0] >= 0 and bounds_max[0] <= 50
        assert bounds_min[1] >= 0 and bounds_max[1] <= 40

    def test_sample_is_reproducible(self):
        """Test the seed fixes the output."""
        a = generate_sample_terrain(seed=3)
        b = generate_sample_terrain(seed=3)

        np.testing.assert_array_equal(a.xyz, b.xyz)

    def test_to_points(self):
        """Test conversion to Point3D records."""
        pc = PointCloud(xyz=np.array([[1.0, 2.0, 3.0]]))

        assert pc.to_points() == [Point3D(1.0, 2.0, 3.0)]

    def test_from_points(self, triangle_points):
        """Test building from point records."""
        pc = PointCloud.from_points(triangle_points)

        assert pc.num_points == 3
        assert pc.z.tolist() == [0.0, 0.0, 10.0]

    def test_bad_shape(self):
        """Test xyz must be Nx3."""
        with pytest.raises(InvalidInputError):
            PointCloud(xyz=np.zeros((4, 2)))

    def test_filter_by_classification(self, sample_point_cloud):
        """Test ground filtering keeps all-ground samples."""
        ground = sample_point_cloud.filter_by_classification([PointCloudLoader.CLASS_GROUND])

        assert ground.num_points == sample_point_cloud.num_points


class TestPointCloudLoader:
    """Tests for loading point files."""

    def test_load_xyz(self, tmp_path):
        """Test whitespace-delimited XYZ files."""
        path = tmp_path / "survey.xyz"
        path.write_text("0 0 1\n10 0 2\n5 10 3\n")

        pc = PointCloudLoader.load(path)

        assert pc.num_points == 3
        assert pc.classification is None

    def test_load_csv_with_header(self, tmp_path):
        """Test comma-delimited files with a header row and class column."""
        path = tmp_path / "survey.csv"
        path.write_text("x,y,z,class\n0,0,1,2\n10,0,2,2\n5,10,3,6\n")

        pc = PointCloudLoader.load(path, skip_header=1)

        assert pc.xyz.shape == (3, 3)
        assert pc.classification.tolist() == [2, 2, 6]

    def test_single_line(self, tmp_path):
        """Test a one-point file still gives an Nx3 array."""
        path = tmp_path / "one.txt"
        path.write_text("1 2 3\n")

        assert PointCloudLoader.load(path).xyz.shape == (1, 3)

    def test_too_few_columns(self, tmp_path):
        """Test files without z are rejected."""
        path = tmp_path / "flat.xyz"
        path.write_text("0 0\n1 1\n")

        with pytest.raises(InvalidInputError, match="at least 3 columns"):
            PointCloudLoader.load(path)

    def test_unsupported_extension(self, tmp_path):
        """Test unknown formats are rejected."""
        with pytest.raises(InvalidInputError, match="Unsupported"):
            PointCloudLoader.load(tmp_path / "survey.dxf")

    def test_missing_file(self, tmp_path):
        """Test missing files raise ResourceError."""
        with pytest.raises(ResourceError):
            PointCloudLoader.load(tmp_path / "missing.xyz")

    @pytest.mark.requires_laspy
    def test_las_roundtrip(self, tmp_path):
        """Test LAS files written with laspy load back."""
        import laspy

        header = laspy.LasHeader(point_format=3, version="1.2")
        header.scales = np.array([0.001, 0.001, 0.001])
        las = laspy.LasData(header)
        las.x = np.array([0.0, 10.0, 5.0])
        las.y = np.array([0.0, 0.0, 10.0])
        las.z = np.array([1.0, 2.0, 3.0])
        las.classification = np.array([2, 2, 2], dtype=np.uint8)
        path = tmp_path / "survey.las"
        las.write(path)

        pc = PointCloudLoader.load(path)

        assert pc.num_points == 3
        np.testing.assert_allclose(pc.z, [1.0, 2.0, 3.0])
        assert pc.classification.tolist() == [2, 2, 2]


@pytest.mark.requires_rasterio
class TestGeoTiff:
    """Tests for GeoTIFF save/load."""

    def test_roundtrip(self, small_grid, tmp_path):
        """Test cells, transform and nodata survive a save/load cycle."""
        path = small_grid.save(tmp_path / "dtm.tif")
        loaded = RasterGrid.load(path)

        assert loaded.shape == small_grid.shape
        assert loaded.geotransform == pytest.approx(small_grid.geotransform)
        assert loaded.nodata == NODATA
        np.testing.assert_array_equal(loaded.data, small_grid.data)
        assert loaded.is_nodata(1, 1)

    def test_missing_file(self, tmp_path):
        """Test loading a missing file raises ResourceError."""
        with pytest.raises(ResourceError):
            RasterGrid.load(tmp_path / "missing.tif")

    def test_not_a_raster(self, tmp_path):
        """Test unreadable files raise ResourceError."""
        path = tmp_path / "junk.tif"
        path.write_text("not a tiff")

        with pytest.raises(ResourceError):
            RasterGrid.load(path)


class TestExporters:
    """Tests for JSON and GeoJSON exports."""

    def test_volume_json(self, tmp_path):
        """Test the volume summary includes net and base."""
        path = export_volume_json(
            VolumeResult(cut=10.0, fill=4.0, area=50.0), tmp_path / "volume.json",
            base_elevation=100.0,
        )
        data = json.loads(path.read_text())

        assert data["net"] == 6.0
        assert data["base_elevation"] == 100.0
        assert data["method"] == "grid"

    def test_contours_geojson(self, tmp_path):
        """Test contours become LineString features."""
        contours = [
            ContourLine(2.0, [(0.0, 0.0), (1.0, 1.0)]),
            ContourLine(4.0, [(0.0, 2.0), (1.0, 3.0), (2.0, 3.0)]),
        ]
        path = export_contours_geojson(contours, tmp_path / "contours.geojson", crs="EPSG:32633")
        data = json.loads(path.read_text())

        assert data["type"] == "FeatureCollection"
        assert [f["properties"]["elevation"] for f in data["features"]] == [2.0, 4.0]
        assert data["features"][1]["geometry"]["type"] == "LineString"
        assert len(data["features"][1]["geometry"]["coordinates"]) == 3
        assert data["crs"]["properties"]["name"] == "EPSG:32633"

    def test_tin_geojson(self, triangle_points, tmp_path):
        """Test TIN triangles become closed 3D polygons."""
        tin = DelaunayTriangulator().generate(triangle_points)
        data = json.loads(export_tin_geojson(tin, tmp_path / "tin.geojson").read_text())

        ring = data["features"][0]["geometry"]["coordinates"][0]
        assert len(ring) == 4
        assert ring[0] == ring[-1]
        assert data["features"][0]["properties"]["mean_elevation"] == pytest.approx(10.0 / 3.0)
        assert data["properties"]["triangle_count"] == 1

    def test_boundary_geojson(self, tmp_path):
        """Test boundary rings are closed on output."""
        path = export_boundary_geojson([(0, 0), (4, 0), (4, 4)], tmp_path / "boundary.geojson")
        coords = json.loads(path.read_text())["features"][0]["geometry"]["coordinates"][0]

        assert coords == [[0.0, 0.0], [4.0, 0.0], [4.0, 4.0], [0.0, 0.0]]
