"""
Unit tests for turbprep.graphics module.
"""

import unittest
import numpy as np
import os
import tempfile
from unittest.mock import patch, MagicMock
import plotly.graph_objects as go
from turbprep.airfoil import naca_four_digit
from turbprep.graphics import _show, plot_airfoil, plot_blade_sections, plot_wind_field
from turbprep.turbsim import TurbSimManager

from project_files import make_sections, write_wnd


class TestPlotBladeSections(unittest.TestCase):
    """Test cases for plot_blade_sections function."""

    def setUp(self):
        """Set up three placed sections."""
        self.sections = make_sections()

    @patch('turbprep.graphics.go.Figure')
    def test_plot_blade_sections_traces(self, mock_figure):
        """Test that every section adds a contour and a chord line trace."""
        mock_fig = MagicMock()
        mock_figure.return_value = mock_fig

        result = plot_blade_sections(self.sections, show_plot=False)

        self.assertIsNone(result)
        self.assertEqual(mock_fig.add_trace.call_count, 6)
        mock_fig.show.assert_not_called()
        self.assertTrue(mock_fig.update_layout.called)

    @patch('turbprep.graphics.go.Figure')
    def test_plot_without_chord_lines(self, mock_figure):
        """Test that chord lines can be switched off."""
        mock_fig = MagicMock()
        mock_figure.return_value = mock_fig

        plot_blade_sections(self.sections, show_plot=False, show_chord_lines=False)
        self.assertEqual(mock_fig.add_trace.call_count, 3)

    def test_return_figure(self):
        """Test the returned figure holds closed contours at the section radii."""
        fig = plot_blade_sections(self.sections, show_plot=False, return_fig=True,
                                  show_chord_lines=False)

        self.assertIsInstance(fig, go.Figure)
        self.assertEqual(len(fig.data), 3)
        contour = fig.data[1]
        n = len(self.sections[1].transformed_coordinates())
        self.assertEqual(len(contour.x), n + 1)
        np.testing.assert_array_almost_equal(contour.z, np.full(n + 1, 10.0))
        self.assertEqual(contour.name, "NACA0021 r=10.00m")

    def test_empty_sections(self):
        """Test that an empty section list gives an empty figure."""
        fig = plot_blade_sections([], show_plot=False, return_fig=True)
        self.assertEqual(len(fig.data), 0)


class TestPlotAirfoil(unittest.TestCase):
    """Test cases for plot_airfoil function."""

    def test_plot_airfoil(self):
        """Test the point and resampled traces."""
        fig = plot_airfoil(naca_four_digit(0.12), npoints=100, show_plot=False, return_fig=True)

        self.assertEqual(len(fig.data), 2)
        self.assertEqual(len(fig.data[0].x), 121)
        self.assertEqual(len(fig.data[1].x), 99)


class TestPlotWindField(unittest.TestCase):
    """Test cases for plot_wind_field function."""

    def setUp(self):
        """Set up a loaded wind field."""
        self.temp_dir = tempfile.mkdtemp()
        path = os.path.join(self.temp_dir, "field.wnd")
        write_wnd(path)
        self.manager = TurbSimManager()
        self.manager.load(path)

    def tearDown(self):
        """Clean up test files."""
        import shutil
        shutil.rmtree(self.temp_dir)

    def test_heatmap(self):
        """Test the heatmap axes and values of one component."""
        fig = plot_wind_field(self.manager, iteration=1, component='w', show_plot=False, return_fig=True)

        heatmap = fig.data[0]
        np.testing.assert_array_almost_equal(heatmap.x, [-2.0, 0.0, 2.0])
        np.testing.assert_array_almost_equal(heatmap.y, [9.0, 11.0])
        np.testing.assert_array_almost_equal(np.array(heatmap.z), np.full((2, 3), -0.4))

    def test_unknown_component(self):
        """Test that an unknown component name is rejected."""
        with self.assertRaises(ValueError):
            plot_wind_field(self.manager, component='x', show_plot=False)


class TestShow(unittest.TestCase):
    """Test cases for the renderer fallback."""

    def test_fallback_without_renderer(self):
        """Test that failing renderers are skipped silently."""
        fig = MagicMock()
        fig.show.side_effect = Exception("no display")

        _show(fig)
        self.assertEqual(fig.show.call_count, 2)


if __name__ == '__main__':
    unittest.main()
