"""
Airfoil catalog and spanwise blade section assembly.
"""

import logging
import warnings
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import integrate

from .airfoil import AirfoilGeometry, interpolate_between_geometries
from .errors import NotFoundError, OutOfRangeError, TurbPrepError
from .interpolation import INTERPOLATION_METHODS, interpolate_1d
from .performance import AirfoilPerformance, AirfoilPolar, interpolate_between_polars, interpolate_between_tables
from .structs import BladeGeometry, InterpolatedBladeSection

logger = logging.getLogger(__name__)

THICKNESS_MATCH_TOLERANCE = 1e-9


def _sorted_by_thickness(items):
    return sorted(items, key=lambda item: item.relative_thickness)


def _find_pair(items: Sequence, target_thickness: float) -> Tuple:
    if len(items) < 2:
        raise NotFoundError("Need at least 2 airfoils for interpolation")
    for lower, upper in zip(items[:-1], items[1:]):
        if lower.relative_thickness <= target_thickness <= upper.relative_thickness:
            return lower, upper
    # outside the catalog the closest boundary pair is returned
    if target_thickness < items[0].relative_thickness:
        return items[0], items[1]
    return items[-2], items[-1]


def _best_match(items: Sequence, target_thickness: float):
    if not items:
        raise NotFoundError("No airfoil data available")
    return min(items, key=lambda item: abs(item.relative_thickness - target_thickness))


class AirfoilCatalog:
    """
    Airfoil geometries and performance tables, each kept sorted by relative thickness.

    The catalog owns its entries; lookups return new (interpolated or copied) objects so that
    callers never alias catalog data.
    """

    def __init__(self,
                 geometries: Optional[List[AirfoilGeometry]] = None,
                 performances: Optional[List[AirfoilPerformance]] = None):
        self.geometries: List[AirfoilGeometry] = _sorted_by_thickness(geometries or [])
        self.performances: List[AirfoilPerformance] = _sorted_by_thickness(performances or [])

    def add_geometry(self, geometry: AirfoilGeometry) -> None:
        self.geometries = _sorted_by_thickness(self.geometries + [geometry])

    def add_performance(self, performance: AirfoilPerformance) -> None:
        self.performances = _sorted_by_thickness(self.performances + [performance])

    def thickness_range(self) -> Tuple[float, float]:
        if not self.geometries:
            raise NotFoundError("Airfoil catalog holds no geometries")
        return self.geometries[0].relative_thickness, self.geometries[-1].relative_thickness

    def find_interpolation_pair(self, target_thickness: float) -> Tuple[AirfoilGeometry, AirfoilGeometry]:
        return _find_pair(self.geometries, target_thickness)

    def find_best_match(self, target_thickness: float) -> AirfoilGeometry:
        return _best_match(self.geometries, target_thickness)

    def geometry_for_thickness(self, target_thickness: float) -> AirfoilGeometry:
        """
        Airfoil of the target relative thickness [%].

        An exact catalog match is copied; a target inside the catalog range is interpolated between
        the bracketing pair; a target outside the range falls back to the closest airfoil with a warning.
        """
        best = self.find_best_match(target_thickness)
        if abs(best.relative_thickness - target_thickness) <= THICKNESS_MATCH_TOLERANCE:
            geometry = best.copy()
            geometry.scaled_coordinates = []
            return geometry
        lo, hi = self.thickness_range()
        if target_thickness < lo or target_thickness > hi:
            warnings.warn(f"Relative thickness {target_thickness:.3f}% outside airfoil catalog range "
                          f"[{lo:.3f}, {hi:.3f}]%, using '{best.name}'")
            geometry = best.copy()
            geometry.scaled_coordinates = []
            return geometry
        left, right = self.find_interpolation_pair(target_thickness)
        return interpolate_between_geometries(left, right, target_thickness)

    def performance_for_thickness(self, target_thickness: float) -> Optional[AirfoilPerformance]:
        """Performance table of the target relative thickness, None when the catalog holds none."""
        if not self.performances:
            return None
        best = _best_match(self.performances, target_thickness)
        if len(self.performances) < 2 or abs(best.relative_thickness - target_thickness) <= THICKNESS_MATCH_TOLERANCE:
            return best.copy()
        lo = self.performances[0].relative_thickness
        hi = self.performances[-1].relative_thickness
        if target_thickness < lo or target_thickness > hi:
            return best.copy()
        left, right = _find_pair(self.performances, target_thickness)
        return interpolate_between_tables(left, right, target_thickness)

    def polars(self, mach: float = 0.0) -> List[AirfoilPolar]:
        """Performance tables of equal thickness merged into one polar each, sorted by thickness."""
        groups = []
        for table in self.performances:
            if groups and abs(groups[-1][0].relative_thickness - table.relative_thickness) <= THICKNESS_MATCH_TOLERANCE:
                groups[-1].append(table)
            else:
                groups.append([table])
        return [AirfoilPolar.from_tables(group, mach) for group in groups]

    def polar_for_thickness(self, target_thickness: float, mach: float = 0.0) -> Optional[AirfoilPolar]:
        """Reynolds dependent polar of the target relative thickness, None when the catalog holds no tables."""
        polars = self.polars(mach)
        if not polars:
            return None
        best = _best_match(polars, target_thickness)
        if len(polars) < 2 or abs(best.relative_thickness - target_thickness) <= THICKNESS_MATCH_TOLERANCE:
            return best
        if target_thickness < polars[0].relative_thickness or target_thickness > polars[-1].relative_thickness:
            return best
        left, right = _find_pair(polars, target_thickness)
        return interpolate_between_polars(left, right, target_thickness)

    def has_reynolds_dependence(self) -> bool:
        return any(len(polar.reynolds_numbers()) > 1 for polar in self.polars())

    def __len__(self):
        return len(self.geometries)


class BladeSectionInterpolator:
    """
    Builds placed blade sections from a blade definition and an airfoil catalog.

    Chord, twist, relative thickness, pitch axis offset and the twist-axis position are
    interpolated along the span with the selected method; fewer than 3 definition stations
    fall back to linear interpolation.

    Attributes:
        blade (BladeGeometry): Blade definition
        catalog (AirfoilCatalog): Airfoil data used for the sections
        method (str): Spanwise interpolation method
    """

    def __init__(self, blade: BladeGeometry, catalog: AirfoilCatalog, method: str = "monotonic_cubic"):
        if method not in INTERPOLATION_METHODS:
            raise OutOfRangeError(f"Unknown interpolation method: {method}")
        self.blade = blade
        self.catalog = catalog
        self.method = method

    @property
    def effective_method(self) -> str:
        if self.blade.number_of_sections < 3:
            return "linear"
        return self.method

    def _distribution(self, column: str, radius: float) -> float:
        return interpolate_1d(self.blade.radii, self.blade.column(column), radius, self.effective_method)

    def interpolate_at_radius(self, radius: float) -> InterpolatedBladeSection:
        """
        Assemble the blade section at `radius` [m].

        Steps:
            1. Interpolate the station quantities along the span.
            2. Take the airfoil of the station thickness from the catalog.
            3. Scale by chord, twist about the pitch axis, move the pivot to (xt4, yt4).
        """
        radii = self.blade.radii
        if radius < radii[0] or radius > radii[-1]:
            warnings.warn(f"Interpolating outside blade definition (r={radius}m, range: {radii[0]}-{radii[-1]}m)")

        chord = self._distribution("chord", radius)
        twist = self._distribution("twist", radius)
        thickness = self._distribution("relative_thickness", radius)
        pitch_axis_offset = self._distribution("relative_twist_axis", radius)
        xt4 = self._distribution("xt4", radius)
        yt4 = self._distribution("yt4", radius)

        geometry = self.catalog.geometry_for_thickness(thickness)
        performance = self.catalog.performance_for_thickness(thickness)

        geometry.apply_scaling(chord, chord, radius)
        geometry.set_spanwise_position(radius)
        pivot_x, pivot_y = geometry.apply_twist_around_quarter_chord(twist, pitch_axis_offset)
        geometry.apply_translation_xy(xt4 - pivot_x, yt4 - pivot_y)

        logger.debug("Section at r=%.3f: chord=%.4f twist=%.3f thickness=%.3f", radius, chord, twist, thickness)
        return InterpolatedBladeSection(geometry, geometry.name, thickness, radius, chord,
                                        pitch_axis_offset, twist, performance)

    def interpolate_all_sections(self) -> List[InterpolatedBladeSection]:
        """One section per blade definition station; stations that fail are skipped with a warning."""
        return self._sections_at(self.blade.radii)

    def generate_dense_sections(self, number_of_sections: int) -> List[InterpolatedBladeSection]:
        """`number_of_sections` equally spaced sections from root to tip."""
        if number_of_sections < 2:
            raise OutOfRangeError("At least 2 sections are needed for a dense blade")
        radii = self.blade.radii
        return self._sections_at(np.linspace(radii[0], radii[-1], number_of_sections))

    def _sections_at(self, radii) -> List[InterpolatedBladeSection]:
        sections = []
        for radius in radii:
            try:
                sections.append(self.interpolate_at_radius(float(radius)))
            except TurbPrepError as e:
                warnings.warn(f"Failed to interpolate section at radius {radius}: {e}")
        logger.info("Interpolated %s of %s blade sections", len(sections), len(radii))
        return sections

    def generate_blade_surface(self, sections: Optional[List[InterpolatedBladeSection]] = None) -> List[np.ndarray]:
        """Placed Nx3 contours of the given (default: all definition) sections, root to tip."""
        if sections is None:
            sections = self.interpolate_all_sections()
        return [section.transformed_coordinates() for section in sections]

    def blade_volume(self, sections: Optional[List[InterpolatedBladeSection]] = None) -> float:
        """Blade volume [m^3], trapezoidal rule over the section areas along the span."""
        if sections is None:
            sections = self.interpolate_all_sections()
        if len(sections) < 2:
            return 0.0
        radii = np.array([s.radius for s in sections])
        areas = np.array([s.area() for s in sections])
        return float(integrate.trapezoid(areas, radii))
