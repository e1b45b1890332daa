"""
Unit tests for turbprep.structs module.
"""

import unittest
import numpy as np
import pandas as pd
import os
import tempfile
from turbprep.errors import AxisTooSmallError, BadFormatError, NotFoundError, OutOfRangeError
from turbprep.structs import (
    AirfoilCoordinate,
    AirfoilMarker,
    BladeGeometry,
    FileList,
    MarkerType,
    ProjectParams,
    TurbSimGrid,
    TurbSimTimingInfo,
    TurbSimVelocityData,
    expand_range
)


def blade_frame(radii, chords=None):
    """Blade definition DataFrame with plausible defaults."""
    n = len(radii)
    return pd.DataFrame({
        "radius": radii,
        "chord": chords if chords is not None else np.linspace(3.0, 1.0, n),
        "twist": np.linspace(12.0, 0.0, n),
        "relative_thickness": np.linspace(24.0, 18.0, n),
        "xt4": np.zeros(n),
        "yt4": np.zeros(n),
        "pcba_x": np.zeros(n),
        "pcba_y": np.zeros(n),
        "relative_twist_axis": np.zeros(n),
    })


class TestAirfoilCoordinate(unittest.TestCase):
    """Test cases for AirfoilCoordinate and AirfoilMarker."""

    def test_trailing_edge_flag_follows_x(self):
        """Test that the trailing-edge flag is derived from x."""
        self.assertTrue(AirfoilCoordinate(0, 1.0, 0.0).is_trailing_edge)
        self.assertFalse(AirfoilCoordinate(1, 0.99, 0.0).is_trailing_edge)

    def test_copy_is_independent(self):
        """Test that a copy can be modified without touching the original."""
        coord = AirfoilCoordinate(3, 0.5, 0.1, is_top_surface=True)
        other = coord.copy()
        other.y = -0.1

        self.assertEqual(coord.y, 0.1)
        self.assertTrue(other.is_top_surface)
        self.assertTrue(coord.is_2d)

    def test_marker_type_from_string(self):
        """Test that markers accept the textual tag."""
        marker = AirfoilMarker("TESS", 4)
        self.assertEqual(marker.type, MarkerType.TESS)
        self.assertEqual(marker, AirfoilMarker(MarkerType.TESS, 4))

    def test_unknown_marker_type(self):
        """Test that an unknown tag is rejected."""
        with self.assertRaises(ValueError):
            AirfoilMarker("NOSE", 0)


class TestFileList(unittest.TestCase):
    """Test cases for FileList class."""

    def setUp(self):
        """Set up a directory with one existing file."""
        self.temp_dir = tempfile.mkdtemp()
        self.existing = os.path.join(self.temp_dir, "FX77-W-258.dat")
        with open(self.existing, 'w') as f:
            f.write("NAME FX77-W-258\n")

    def tearDown(self):
        """Clean up test files."""
        import shutil
        shutil.rmtree(self.temp_dir)

    def test_headers(self):
        """Test revision and date taken from the text after the last tab."""
        file_list = FileList()
        file_list.add_header("# Revision\t1.3")
        file_list.add_header("# Date\t2024-02-01")
        file_list.add_header("# Comment without value")

        self.assertEqual(file_list.revision, "1.3")
        self.assertEqual(file_list.date, "2024-02-01")
        self.assertEqual(len(file_list.headers), 3)

    def test_header_without_tab_value(self):
        """Test that a header with an empty tab value leaves the field unset."""
        file_list = FileList()
        file_list.add_header("# Revision\t")
        self.assertEqual(file_list.revision, "")

    def test_valid_and_missing_files(self):
        """Test the split into existing and missing entries."""
        file_list = FileList()
        file_list.add_file_path(self.existing)
        file_list.add_file_path(os.path.join(self.temp_dir, "missing.dat"))

        self.assertEqual(len(file_list), 2)
        self.assertEqual(file_list.valid_file_paths(), [self.existing])
        self.assertEqual(file_list.valid_file_count(), 1)
        self.assertEqual(len(file_list.missing_files()), 1)

    def test_get_file_by_name(self):
        """Test substring lookup on the file names."""
        file_list = FileList()
        file_list.add_file_path(self.existing)

        self.assertEqual(file_list.get_file_by_name("W-258").file_path, self.existing)
        with self.assertRaises(NotFoundError):
            file_list.get_file_by_name("DU91")


class TestBladeGeometry(unittest.TestCase):
    """Test cases for BladeGeometry class."""

    def test_radii(self):
        """Test absolute and relative radii."""
        blade = BladeGeometry(blade_frame([5.0, 10.0, 20.0]))

        np.testing.assert_array_equal(blade.radii, [5.0, 10.0, 20.0])
        np.testing.assert_array_almost_equal(blade.relative_radii, [0.25, 0.5, 1.0])
        self.assertEqual(blade.get_radius_values(), [5.0, 10.0, 20.0])
        self.assertEqual(blade.number_of_sections, 3)

    def test_get_row_by_radius(self):
        """Test row lookup within the tolerance."""
        blade = BladeGeometry(blade_frame([5.0, 10.0, 20.0], chords=[3.0, 2.5, 1.0]))

        self.assertEqual(blade.get_row_by_radius(10.0005)["chord"], 2.5)
        with self.assertRaises(NotFoundError):
            blade.get_row_by_radius(10.01)

    def test_radii_must_increase(self):
        """Test that non-increasing radii are rejected."""
        with self.assertRaises(BadFormatError):
            BladeGeometry(blade_frame([5.0, 5.0, 20.0]))

    def test_missing_column(self):
        """Test that a missing column is rejected."""
        with self.assertRaises(BadFormatError):
            BladeGeometry(blade_frame([5.0, 10.0]).drop(columns=["twist"]))


class TestTurbSimGrid(unittest.TestCase):
    """Test cases for TurbSimGrid class."""

    def test_axes_are_centred(self):
        """Test that the axes are centred on the hub and evenly spaced."""
        grid = TurbSimGrid(hub_height=90.0, spacing_y=2.5, spacing_z=3.0, num_y=5, num_z=4)
        y = grid.axis_y()
        z = grid.axis_z()

        self.assertAlmostEqual(y[0] + y[-1], 0.0)
        self.assertAlmostEqual(0.5 * (z[0] + z[-1]), 90.0)
        np.testing.assert_array_almost_equal(np.diff(y), np.full(4, 2.5))
        np.testing.assert_array_almost_equal(np.diff(z), np.full(3, 3.0))
        self.assertAlmostEqual(grid.width, 10.0)
        self.assertAlmostEqual(grid.height, 9.0)

    def test_small_example(self):
        """Test the axes of a 2x2 grid."""
        grid = TurbSimGrid(hub_height=1.0, spacing_y=2.0, spacing_z=2.0, num_y=2, num_z=2)
        np.testing.assert_array_equal(grid.axis_y(), [-1.0, 1.0])
        np.testing.assert_array_equal(grid.axis_z(), [0.0, 2.0])

    def test_grid_points_order(self):
        """Test that grid points run y-inner and z-outer."""
        grid = TurbSimGrid(hub_height=1.0, spacing_y=2.0, spacing_z=2.0, num_y=2, num_z=2)
        y, z = grid.grid_points()
        np.testing.assert_array_equal(y, [-1.0, 1.0, -1.0, 1.0])
        np.testing.assert_array_equal(z, [0.0, 0.0, 2.0, 2.0])

    def test_too_small(self):
        """Test that fewer than 2 points per axis are rejected."""
        with self.assertRaises(AxisTooSmallError):
            TurbSimGrid(hub_height=1.0, spacing_y=1.0, spacing_z=1.0, num_y=1, num_z=3)


class TestTurbSimVelocityData(unittest.TestCase):
    """Test cases for TurbSimVelocityData class."""

    def test_add_and_get_timestep(self):
        """Test appending and reading timesteps."""
        velocity = TurbSimVelocityData(4)
        velocity.add_timestep(np.ones((4, 3)))
        velocity.add_timestep(2.0 * np.ones((4, 3)))

        self.assertEqual(len(velocity), 2)
        np.testing.assert_array_equal(velocity.timestep(1), 2.0 * np.ones((4, 3)))
        with self.assertRaises(OutOfRangeError):
            velocity.timestep(2)

    def test_wrong_shape(self):
        """Test that a timestep of the wrong size is rejected."""
        velocity = TurbSimVelocityData(4)
        with self.assertRaises(BadFormatError):
            velocity.add_timestep(np.ones((3, 3)))


class TestTurbSimTimingInfo(unittest.TestCase):
    """Test cases for TurbSimTimingInfo class."""

    def test_padding_and_usable_window(self):
        """Test dt, padding and the usable iteration window."""
        timing = TurbSimTimingInfo(total_timesteps=100, hub_velocity=8.0, longitudinal_res=0.5, grid_width_y=16.0)

        self.assertAlmostEqual(timing.timestep, 0.0625)
        # ceil((16 / 8) / 2 / 0.0625)
        self.assertEqual(timing.padding, 16)
        self.assertEqual(timing.usable_iterations, 68)
        self.assertAlmostEqual(timing.usable_time, 4.25)

    def test_raw_index(self):
        """Test the offset of user iterations by the padding."""
        timing = TurbSimTimingInfo(total_timesteps=100, hub_velocity=8.0, longitudinal_res=0.5, grid_width_y=16.0)

        self.assertEqual(timing.raw_index(0), timing.padding)
        self.assertEqual(timing.raw_index(67), 83)
        with self.assertRaises(OutOfRangeError):
            timing.raw_index(68)
        with self.assertRaises(OutOfRangeError):
            timing.raw_index(-1)

    def test_too_short(self):
        """Test that fewer timesteps than the padding are rejected."""
        with self.assertRaises(OutOfRangeError):
            TurbSimTimingInfo(total_timesteps=10, hub_velocity=8.0, longitudinal_res=0.5, grid_width_y=16.0)


class TestExpandRange(unittest.TestCase):
    """Test cases for expand_range function."""

    def test_inclusive_end(self):
        """Test that the end value is included when it lies on the step grid."""
        np.testing.assert_array_almost_equal(expand_range(4.0, 6.0, 0.5), [4.0, 4.5, 5.0, 5.5, 6.0])

    def test_end_off_grid(self):
        """Test that an end value between steps is not reached."""
        np.testing.assert_array_almost_equal(expand_range(0.0, 1.0, 0.3), [0.0, 0.3, 0.6, 0.9])

    def test_decreasing(self):
        """Test a negative step."""
        np.testing.assert_array_almost_equal(expand_range(2.0, 0.0, -1.0), [2.0, 1.0, 0.0])

    def test_invalid_step(self):
        """Test that a zero or wrongly signed step is rejected."""
        with self.assertRaises(OutOfRangeError):
            expand_range(0.0, 1.0, 0.0)
        with self.assertRaises(OutOfRangeError):
            expand_range(0.0, 1.0, -0.5)


class TestProjectParams(unittest.TestCase):
    """Test cases for ProjectParams class."""

    def test_defaults(self):
        """Test default values."""
        params = ProjectParams()
        self.assertEqual(params.interpolation_method, "monotonic_cubic")
        self.assertEqual(params.number_of_sections, 0)
        np.testing.assert_array_equal(params.pitch_angles, [0.0])
        self.assertEqual(params.wind_speeds[0], 4.0)
        self.assertEqual(params.wind_speeds[-1], 25.0)


if __name__ == '__main__':
    unittest.main()
