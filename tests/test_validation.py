"""
Tests for input validation module.
"""

import warnings

import numpy as np
import pytest

from dtm_earthwork.core.validation import (
    EarthworkError,
    ValidationError,
    EmptyInputError,
    InsufficientPointsError,
    MissingFieldError,
    ParameterError,
    InterpolationError,
    FilePermissionError,
    ResourceError,
    validate_points,
    validate_boundary,
    validate_positive,
    validate_finite,
    validate_output_path,
    validate_grid_dimensions,
)


class TestPointValidation:
    """Tests for survey point validation."""

    def test_mappings(self, triangle_points):
        """Test list of x/y/z mappings converts to an Nx3 array."""
        xyz = validate_points(triangle_points)

        assert xyz.shape == (3, 3)
        assert xyz[2].tolist() == [5.0, 10.0, 10.0]

    def test_sequences_and_arrays(self):
        """Test plain triples and numpy arrays are accepted."""
        triples = [(0, 0, 1), (1, 0, 2), (0, 1, 3)]

        assert validate_points(triples).shape == (3, 3)
        assert validate_points(np.array(triples, dtype=float)).shape == (3, 3)

    def test_named_tuple_points(self):
        """Test objects with x/y/z attributes."""
        from dtm_earthwork.io.point_cloud import Point3D

        pts = [Point3D(0, 0, 1), Point3D(1, 0, 2), Point3D(0, 1, 3)]
        xyz = validate_points(pts)

        assert xyz[:, 2].tolist() == [1.0, 2.0, 3.0]

    def test_point_cloud_input(self, sample_point_cloud):
        """Test PointCloud is accepted directly."""
        xyz = validate_points(sample_point_cloud)

        assert len(xyz) == sample_point_cloud.num_points

    def test_empty_raises(self):
        """Test empty input raises EmptyInputError."""
        with pytest.raises(EmptyInputError):
            validate_points([])
        with pytest.raises(EmptyInputError):
            validate_points(None)
        with pytest.raises(EmptyInputError):
            validate_points(np.empty((0, 3)))

    def test_insufficient_points(self):
        """Test fewer than 3 points raises with the count in the message."""
        with pytest.raises(InsufficientPointsError, match=r"Insufficient points: 2 \(minimum 3"):
            validate_points([(0, 0, 0), (1, 1, 1)])

    def test_empty_checked_before_count(self):
        """Test an empty list is reported as empty, not insufficient."""
        with pytest.raises(EmptyInputError):
            validate_points([], minimum=3)

    def test_missing_field_names_index(self):
        """Test missing z names the offending point."""
        pts = [
            {"x": 0, "y": 0, "z": 0},
            {"x": 1, "y": 0},
            {"x": 0, "y": 1, "z": 0},
        ]
        with pytest.raises(MissingFieldError, match="Point 1 missing z"):
            validate_points(pts)

    def test_non_numeric_raises(self):
        """Test non-numeric coordinates raise ValidationError."""
        pts = [(0, 0, 0), (1, 0, "high"), (0, 1, 0)]
        with pytest.raises(ValidationError, match="non-numeric z"):
            validate_points(pts)

    def test_non_finite_raises(self):
        """Test NaN coordinates are rejected."""
        pts = np.array([[0, 0, 0], [1, 0, np.nan], [0, 1, 0]], dtype=float)
        with pytest.raises(ValidationError, match="Point 1"):
            validate_points(pts)

    def test_errors_are_value_errors(self):
        """Test validation errors remain catchable as ValueError."""
        with pytest.raises(ValueError):
            validate_points([(0, 0, 0)])

    def test_does_not_mutate_input(self):
        """Test the returned array is a copy."""
        arr = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)
        xyz = validate_points(arr)
        xyz[0, 0] = 99.0

        assert arr[0, 0] == 0.0


class TestBoundaryValidation:
    """Tests for boundary ring conversion."""

    def test_short_ring_is_no_boundary(self):
        """Test fewer than 3 points means no boundary."""
        assert validate_boundary(None) is None
        assert validate_boundary([]) is None
        assert validate_boundary([(0, 0), (1, 1)]) is None

    def test_mapping_ring(self):
        """Test x/y mappings convert to an Nx2 array."""
        ring = validate_boundary([{"x": 0, "y": 0}, {"x": 4, "y": 0}, {"x": 4, "y": 4}])

        assert ring.shape == (3, 2)

    def test_closing_point_dropped(self):
        """Test an explicitly closed ring is opened."""
        ring = validate_boundary([(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)])

        assert len(ring) == 4

    def test_missing_y_raises(self):
        """Test ring points must have x and y."""
        with pytest.raises(MissingFieldError):
            validate_boundary([{"x": 0}, {"x": 1, "y": 0}, {"x": 1, "y": 1}])

    def test_point_cloud_boundary(self, sample_point_cloud):
        """Test a PointCloud becomes an Nx2 ring of its x/y."""
        ring = validate_boundary(sample_point_cloud)

        assert ring.shape == (sample_point_cloud.num_points, 2)
        np.testing.assert_array_equal(ring[:, 0], sample_point_cloud.x)

    def test_non_collection_raises(self):
        """Test scalars and strings are rejected with ValidationError."""
        with pytest.raises(ValidationError, match="sequence of"):
            validate_boundary(5.0)
        with pytest.raises(ValidationError, match="sequence of"):
            validate_boundary("0,0 1,0 1,1")


class TestParameterValidation:
    """Tests for scalar parameter validation."""

    def test_valid_positive(self):
        """Test positive values pass through as floats."""
        assert validate_positive(1, "pixel size") == 1.0
        assert validate_positive(0.5, "pixel size") == 0.5

    def test_zero_raises(self):
        """Test zero raises ParameterError naming the parameter."""
        with pytest.raises(ParameterError, match="Invalid pixel size: 0"):
            validate_positive(0, "pixel size")

    def test_negative_raises(self):
        """Test negative values raise ParameterError."""
        with pytest.raises(ParameterError, match="must be > 0"):
            validate_positive(-2.0, "contour interval")

    def test_none_raises(self):
        """Test None raises ParameterError."""
        with pytest.raises(ParameterError, match="cannot be None"):
            validate_positive(None, "pixel size")

    def test_string_raises(self):
        """Test strings are rejected."""
        with pytest.raises(ParameterError, match="must be a number"):
            validate_positive("1.0", "pixel size")

    def test_finite_allows_negative(self):
        """Test validate_finite accepts any finite number."""
        assert validate_finite(-12.5, "base elevation") == -12.5
        assert validate_finite(0, "base elevation") == 0.0

    def test_finite_rejects_inf(self):
        """Test infinities are rejected."""
        with pytest.raises(ParameterError, match="must be finite"):
            validate_finite(float("inf"), "base elevation")

    def test_hierarchy(self):
        """Test all errors share the EarthworkError base."""
        assert issubclass(ParameterError, EarthworkError)
        assert issubclass(ValidationError, EarthworkError)
        assert issubclass(ResourceError, OSError)


class TestOutputPathValidation:
    """Tests for output path validation."""

    def test_valid_path(self, tmp_path):
        """Test valid output path in existing directory."""
        output = tmp_path / "output.obj"
        assert validate_output_path(output) == output

    def test_nonexistent_directory_raises(self, tmp_path):
        """Test path in non-existent directory raises FilePermissionError."""
        output = tmp_path / "nonexistent" / "output.tif"
        with pytest.raises(FilePermissionError, match="does not exist"):
            validate_output_path(output)

    def test_custom_context_in_message(self, tmp_path):
        """Test that context appears in error message."""
        output = tmp_path / "nonexistent" / "output.tif"
        with pytest.raises(FilePermissionError, match="GeoTIFF"):
            validate_output_path(output, context="GeoTIFF")


class TestGridDimensionValidation:
    """Tests for grid dimension validation."""

    def test_valid_dimensions(self):
        """Test valid grid dimensions pass."""
        validate_grid_dimensions(100, 100, (0, 0, 100, 100), 1.0)

    def test_zero_dimensions_raise(self):
        """Test that collapsed dimensions raise InterpolationError."""
        with pytest.raises(InterpolationError, match="Invalid grid dimensions"):
            validate_grid_dimensions(0, 0, (0, 0, 0, 0), 1.0)

    def test_large_grid_warns(self):
        """Test that very large grids emit warning."""
        with pytest.warns(UserWarning, match="very large grid"):
            validate_grid_dimensions(20000, 20000, (0, 0, 20000, 20000), 1.0)

    def test_normal_grid_no_warning(self):
        """Test normal grid doesn't warn."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            validate_grid_dimensions(1000, 1000, (0, 0, 1000, 1000), 1.0)
