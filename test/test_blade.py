"""
Unit tests for turbprep.blade module.
"""

import unittest
import numpy as np
import pandas as pd
from turbprep.airfoil import naca_four_digit
from turbprep.blade import AirfoilCatalog, BladeSectionInterpolator
from turbprep.errors import NotFoundError, OutOfRangeError
from turbprep.performance import AirfoilPerformance
from turbprep.structs import BladeGeometry, MarkerType


def make_blade(radii=(5.0, 10.0, 20.0), chord=(3.0, 2.0, 1.0), twist=(10.0, 5.0, 0.0),
               thickness=(24.0, 21.0, 18.0)):
    n = len(radii)
    return BladeGeometry(pd.DataFrame({
        "radius": radii,
        "chord": chord,
        "twist": twist,
        "relative_thickness": thickness,
        "xt4": np.zeros(n),
        "yt4": np.zeros(n),
        "pcba_x": np.zeros(n),
        "pcba_y": np.zeros(n),
        "relative_twist_axis": np.zeros(n),
    }))


def make_polar(name, thickness, cl_slope):
    table = AirfoilPerformance(name, relative_thickness=thickness)
    for alpha in (-5.0, 0.0, 5.0, 10.0):
        table.add_point(alpha, cl_slope * alpha, 0.01)
    return table


class TestAirfoilCatalog(unittest.TestCase):
    """Test cases for AirfoilCatalog class."""

    def setUp(self):
        """Set up a catalog of three symmetric airfoils, added out of order."""
        self.catalog = AirfoilCatalog()
        for t in (0.21, 0.24, 0.18):
            self.catalog.add_geometry(naca_four_digit(t, n_points=41))

    def test_sorted_by_thickness(self):
        """Test that geometries are kept sorted by relative thickness."""
        self.assertEqual([g.name for g in self.catalog.geometries], ["NACA0018", "NACA0021", "NACA0024"])
        self.assertEqual(len(self.catalog), 3)
        self.assertEqual(self.catalog.thickness_range(), (18.0, 24.0))

    def test_find_interpolation_pair(self):
        """Test the bracketing pair inside and outside the catalog."""
        lower, upper = self.catalog.find_interpolation_pair(22.0)
        self.assertEqual((lower.name, upper.name), ("NACA0021", "NACA0024"))
        lower, upper = self.catalog.find_interpolation_pair(10.0)
        self.assertEqual((lower.name, upper.name), ("NACA0018", "NACA0021"))
        lower, upper = self.catalog.find_interpolation_pair(30.0)
        self.assertEqual((lower.name, upper.name), ("NACA0021", "NACA0024"))

    def test_find_best_match(self):
        """Test the closest airfoil by thickness."""
        self.assertEqual(self.catalog.find_best_match(20.0).name, "NACA0021")
        self.assertEqual(self.catalog.find_best_match(2.0).name, "NACA0018")

    def test_exact_match_is_a_copy(self):
        """Test that an exact thickness returns an independent copy."""
        geometry = self.catalog.geometry_for_thickness(21.0)
        self.assertEqual(geometry.name, "NACA0021")
        self.assertIsNot(geometry, self.catalog.geometries[1])

        geometry.apply_scaling(5.0, 5.0, 1.0)
        self.assertEqual(self.catalog.geometries[1].scaled_coordinates, [])

    def test_interpolated_geometry(self):
        """Test a thickness between two catalog entries."""
        geometry = self.catalog.geometry_for_thickness(22.5)
        self.assertEqual(geometry.name, "interpolated_T22.50")
        self.assertEqual(geometry.relative_thickness, 22.5)
        self.assertAlmostEqual(geometry.max_thickness(), 0.225, delta=2e-3)

    def test_outside_range_warns(self):
        """Test that a thickness outside the catalog falls back to the closest airfoil."""
        with self.assertWarns(UserWarning):
            geometry = self.catalog.geometry_for_thickness(30.0)
        self.assertEqual(geometry.name, "NACA0024")

    def test_empty_catalog(self):
        """Test NotFoundError on an empty catalog."""
        catalog = AirfoilCatalog()
        with self.assertRaises(NotFoundError):
            catalog.geometry_for_thickness(20.0)
        with self.assertRaises(NotFoundError):
            catalog.find_interpolation_pair(20.0)
        self.assertIsNone(catalog.performance_for_thickness(20.0))

    def test_performance_for_thickness(self):
        """Test performance interpolation between two tables."""
        self.catalog.add_performance(make_polar("thick", 24.0, 0.08))
        self.catalog.add_performance(make_polar("thin", 18.0, 0.12))

        table = self.catalog.performance_for_thickness(21.0)
        self.assertEqual(table.relative_thickness, 21.0)
        self.assertAlmostEqual(table.interpolate_performance(5.0).cl, 0.5)

        exact = self.catalog.performance_for_thickness(18.0)
        self.assertEqual(exact.name, "thin")
        self.assertIsNot(exact, self.catalog.performances[0])

    def test_single_performance_table(self):
        """Test that a single table is used for every thickness."""
        self.catalog.add_performance(make_polar("only", 21.0, 0.1))
        self.assertEqual(self.catalog.performance_for_thickness(18.5).name, "only")

    def test_polars_group_tables_by_thickness(self):
        """Test that tables of equal thickness at different Reynolds numbers form one polar."""
        self.add_reynolds_tables()

        polars = self.catalog.polars()
        self.assertEqual(len(polars), 2)
        self.assertEqual(polars[0].reynolds_numbers(), [1e6, 3e6])
        self.assertEqual(polars[1].reynolds_numbers(), [3e6])
        self.assertEqual(len(polars[0]), 8)
        self.assertTrue(self.catalog.has_reynolds_dependence())

    def test_polar_for_thickness(self):
        """Test exact polar lookup and blending between two thicknesses."""
        self.assertIsNone(self.catalog.polar_for_thickness(21.0))
        self.add_reynolds_tables()

        exact = self.catalog.polar_for_thickness(18.0)
        self.assertEqual(exact.name, "thin")
        self.assertEqual(exact.reynolds_numbers(), [1e6, 3e6])

        blended = self.catalog.polar_for_thickness(21.0)
        self.assertEqual(blended.relative_thickness, 21.0)
        self.assertEqual(blended.reynolds_numbers(), [1e6, 3e6])
        # thick polar is clamped to its only Reynolds number at 1e6
        self.assertAlmostEqual(blended.interpolate_coefficients(1e6, 0.0, 10.0).cl, 0.9)
        self.assertAlmostEqual(blended.interpolate_coefficients(3e6, 0.0, 10.0).cl, 1.0)

    def test_single_reynolds_number(self):
        """Test that one table per thickness carries no Reynolds dependence."""
        self.catalog.add_performance(make_polar("thick", 24.0, 0.08))
        self.catalog.add_performance(make_polar("thin", 18.0, 0.12))
        self.assertFalse(self.catalog.has_reynolds_dependence())

    def add_reynolds_tables(self):
        low = make_polar("thin", 18.0, 0.1)
        low.set_reynolds_number(1e6)
        high = make_polar("thin", 18.0, 0.12)
        high.set_reynolds_number(3e6)
        thick = make_polar("thick", 24.0, 0.08)
        thick.set_reynolds_number(3e6)
        for table in (low, high, thick):
            self.catalog.add_performance(table)


class TestBladeSectionInterpolator(unittest.TestCase):
    """Test cases for BladeSectionInterpolator class."""

    def setUp(self):
        """Set up a three-station blade and a matching catalog."""
        self.catalog = AirfoilCatalog([naca_four_digit(t, n_points=41) for t in (0.18, 0.21, 0.24)],
                                      [make_polar("thin", 18.0, 0.12), make_polar("thick", 24.0, 0.08)])
        self.blade = make_blade()
        self.interpolator = BladeSectionInterpolator(self.blade, self.catalog)

    def test_untwisted_tip_section(self):
        """Test placement of the tip station: chord 1, no twist, pivot at the origin."""
        section = self.interpolator.interpolate_at_radius(20.0)

        self.assertEqual(section.airfoil_name, "NACA0018")
        self.assertEqual(section.chord, 1.0)
        self.assertEqual(section.twist, 0.0)
        xyz = section.transformed_coordinates()
        le = section.geometry.get_marker(MarkerType.LE).index
        np.testing.assert_array_almost_equal(xyz[le], [-0.25, 0.0, 20.0])
        np.testing.assert_array_almost_equal(xyz[0], [0.75, 0.0, 20.0])
        np.testing.assert_array_equal(xyz[:, 2], np.full(len(xyz), 20.0))

    def test_twisted_section(self):
        """Test that the chord line is turned by the twist and the pivot sits on (xt4, yt4)."""
        section = self.interpolator.interpolate_at_radius(10.0)
        xyz = section.transformed_coordinates()
        le = xyz[section.geometry.get_marker(MarkerType.LE).index, :2]
        te = xyz[0, :2]

        chord_vector = te - le
        self.assertAlmostEqual(np.linalg.norm(chord_vector), 2.0)
        self.assertAlmostEqual(np.degrees(np.arctan2(chord_vector[1], chord_vector[0])), 5.0)
        np.testing.assert_array_almost_equal(le + 0.25 * chord_vector, [0.0, 0.0])

    def test_interpolated_station(self):
        """Test a radius between two stations."""
        section = self.interpolator.interpolate_at_radius(7.5)

        self.assertGreater(section.chord, 2.0)
        self.assertLess(section.chord, 3.0)
        self.assertGreater(section.relative_thickness, 21.0)
        self.assertLess(section.relative_thickness, 24.0)
        self.assertTrue(section.airfoil_name.startswith("interpolated_T"))
        self.assertIsNotNone(section.performance)
        self.assertAlmostEqual(section.performance.relative_thickness, section.relative_thickness)

    def test_outside_blade_warns(self):
        """Test the warning for a radius beyond the blade definition."""
        with self.assertWarns(UserWarning):
            section = self.interpolator.interpolate_at_radius(25.0)
        self.assertEqual(section.chord, 1.0)

    def test_interpolate_all_sections(self):
        """Test one section per definition station."""
        sections = self.interpolator.interpolate_all_sections()
        self.assertEqual([s.radius for s in sections], [5.0, 10.0, 20.0])
        self.assertEqual([s.airfoil_name for s in sections], ["NACA0024", "NACA0021", "NACA0018"])

    def test_failing_sections_are_skipped(self):
        """Test that stations without airfoil data are skipped with a warning."""
        interpolator = BladeSectionInterpolator(self.blade, AirfoilCatalog())
        with self.assertWarns(UserWarning):
            sections = interpolator.interpolate_all_sections()
        self.assertEqual(sections, [])

    def test_generate_dense_sections(self):
        """Test equally spaced sections from root to tip."""
        sections = self.interpolator.generate_dense_sections(7)
        np.testing.assert_array_almost_equal([s.radius for s in sections], np.linspace(5.0, 20.0, 7))
        with self.assertRaises(OutOfRangeError):
            self.interpolator.generate_dense_sections(1)

    def test_generate_blade_surface(self):
        """Test that the surface is the list of placed contours."""
        surface = self.interpolator.generate_blade_surface()
        self.assertEqual(len(surface), 3)
        self.assertEqual(surface[0].shape, (81, 3))

    def test_blade_volume(self):
        """Test the trapezoidal blade volume."""
        sections = self.interpolator.interpolate_all_sections()
        areas = [s.area() for s in sections]
        expected = 0.5 * (areas[0] + areas[1]) * 5.0 + 0.5 * (areas[1] + areas[2]) * 10.0

        self.assertAlmostEqual(self.interpolator.blade_volume(sections), expected)
        self.assertEqual(self.interpolator.blade_volume(sections[:1]), 0.0)

    def test_method_selection(self):
        """Test the linear fall back and rejection of unknown methods."""
        short = BladeSectionInterpolator(make_blade((5.0, 20.0), (3.0, 1.0), (10.0, 0.0), (24.0, 18.0)),
                                         self.catalog, method="akima")
        self.assertEqual(short.effective_method, "linear")
        self.assertEqual(self.interpolator.effective_method, "monotonic_cubic")
        with self.assertRaises(OutOfRangeError):
            BladeSectionInterpolator(self.blade, self.catalog, method="quintic")


if __name__ == '__main__':
    unittest.main()
