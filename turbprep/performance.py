"""
Airfoil performance tables (lift, drag and moment coefficients over angle of attack).
"""

from typing import Iterable, List, Optional
import bisect

import numpy as np
import pandas as pd

from .errors import BadFormatError, EmptyTableError, NotFoundError, OutOfRangeError
from .interpolation import trilinear_interpolation
from .structs import PerformancePoint, PolarPoint

CONDITION_TOLERANCE = 1e-6


class AirfoilPerformance:
    """
    Alpha-indexed aerodynamic coefficients of one airfoil.

    Attributes:
        name (str): Reference name (REFNUM)
        xa (float): Pitch axis position [% chord]
        relative_thickness (float): Relative thickness [%]
        reynolds_number (float): Reynolds number
        depang (float): Twist design angle [deg]
        n_alpha (int): Declared number of rows
        n_vals (int): Declared number of values per row
        points (List[PerformancePoint]): Rows, alpha strictly increasing
    """

    def __init__(self, name: str = "", relative_thickness: float = 0.0, reynolds_number: float = 0.0):
        self.name = name
        self.xa = 0.0
        self.relative_thickness = relative_thickness
        self.reynolds_number = reynolds_number
        self.depang = 0.0
        self.n_alpha = 0
        self.n_vals = 0
        self.headers: List[str] = []
        self.points: List[PerformancePoint] = []

    # Ordinary setters, kept for callers that configure a table field by field.
    def set_name(self, name: str) -> None:
        self.name = name

    def set_xa(self, xa: float) -> None:
        self.xa = float(xa)

    def set_relative_thickness(self, relative_thickness: float) -> None:
        self.relative_thickness = float(relative_thickness)

    def set_reynolds_number(self, reynolds_number: float) -> None:
        self.reynolds_number = float(reynolds_number)

    def set_depang(self, depang: float) -> None:
        self.depang = float(depang)

    def set_n_alpha(self, n_alpha: int) -> None:
        self.n_alpha = int(n_alpha)

    def set_n_vals(self, n_vals: int) -> None:
        self.n_vals = int(n_vals)

    def add_point(self, alpha: float, cl: float, cd: float, cm: float = 0.0) -> None:
        """Insert a row keeping alpha sorted; a repeated alpha raises BadFormatError."""
        alphas = self.alphas()
        pos = bisect.bisect_left(alphas, alpha)
        if pos < len(alphas) and alphas[pos] == alpha:
            raise BadFormatError(f"Duplicate angle of attack {alpha} in performance table '{self.name}'")
        self.points.insert(pos, PerformancePoint(float(alpha), float(cl), float(cd), float(cm)))

    def __len__(self):
        return len(self.points)

    def is_empty(self) -> bool:
        return not self.points

    def _require_points(self) -> None:
        if not self.points:
            raise EmptyTableError(f"Performance table '{self.name}' is empty")

    def alphas(self) -> List[float]:
        return [p.alpha for p in self.points]

    def alpha_range(self):
        """(min, max) angle of attack of the table."""
        self._require_points()
        return self.points[0].alpha, self.points[-1].alpha

    def get_performance_at_alpha(self, alpha: float, tolerance: float = 1e-6) -> PerformancePoint:
        self._require_points()
        for p in self.points:
            if abs(p.alpha - alpha) <= tolerance:
                return p
        raise NotFoundError(f"No row at alpha {alpha} in performance table '{self.name}'")

    def interpolate_performance(self, alpha: float) -> PerformancePoint:
        """
        Coefficients at `alpha`, linear between the bracketing rows.

        Outside the tabulated range the first or last row is returned.
        """
        self._require_points()
        alphas = self.alphas()
        pos = bisect.bisect_left(alphas, alpha)
        if pos == 0:
            return self.points[0]
        if pos >= len(self.points):
            return self.points[-1]
        lo, hi = self.points[pos - 1], self.points[pos]
        f = (alpha - lo.alpha) / (hi.alpha - lo.alpha)
        return PerformancePoint(alpha,
                                lo.cl + f * (hi.cl - lo.cl),
                                lo.cd + f * (hi.cd - lo.cd),
                                lo.cm + f * (hi.cm - lo.cm))

    def max_cl_alpha(self) -> float:
        self._require_points()
        return max(self.points, key=lambda p: p.cl).alpha

    def max_cl(self) -> float:
        self._require_points()
        return max(p.cl for p in self.points)

    def min_cd(self) -> float:
        self._require_points()
        return min(p.cd for p in self.points)

    def stall_alpha(self) -> float:
        """Angle of attack at maximum lift."""
        return self.max_cl_alpha()

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.points, columns=["alpha", "cl", "cd", "cm"])

    def copy(self) -> "AirfoilPerformance":
        other = AirfoilPerformance(self.name, self.relative_thickness, self.reynolds_number)
        other.xa = self.xa
        other.depang = self.depang
        other.n_alpha = self.n_alpha
        other.n_vals = self.n_vals
        other.headers = list(self.headers)
        other.points = list(self.points)
        return other

    def __repr__(self):
        return (f"AirfoilPerformance(name={self.name!r}, relative_thickness={self.relative_thickness}, "
                f"rows={len(self.points)})")


def interpolate_between_tables(left: AirfoilPerformance,
                               right: AirfoilPerformance,
                               target_thickness: float,
                               name: Optional[str] = None) -> AirfoilPerformance:
    """
    Blend two performance tables linearly in relative thickness.

    Both tables are evaluated on the union of their alpha grids (clamped outside each table's range),
    then Cl, Cd and Cm are blended with factor (target - left) / (right - left).

    Raises:
        OutOfRangeError: If the target lies outside the thickness interval of the two tables.
        EmptyTableError: If either table has no rows.
    """
    lo = min(left.relative_thickness, right.relative_thickness)
    hi = max(left.relative_thickness, right.relative_thickness)
    if target_thickness < lo or target_thickness > hi:
        raise OutOfRangeError(
            f"Target thickness {target_thickness} outside [{lo}, {hi}] of '{left.name}' and '{right.name}'")
    left._require_points()
    right._require_points()

    result = AirfoilPerformance(name or f"interpolated_T{target_thickness:.2f}",
                                relative_thickness=target_thickness)
    if right.relative_thickness == left.relative_thickness:
        factor = 0.0
    else:
        factor = (target_thickness - left.relative_thickness) / (right.relative_thickness - left.relative_thickness)

    result.xa = left.xa + factor * (right.xa - left.xa)
    result.reynolds_number = left.reynolds_number + factor * (right.reynolds_number - left.reynolds_number)
    result.depang = left.depang + factor * (right.depang - left.depang)

    for alpha in np.union1d(left.alphas(), right.alphas()):
        a = left.interpolate_performance(alpha)
        b = right.interpolate_performance(alpha)
        result.add_point(float(alpha),
                         a.cl + factor * (b.cl - a.cl),
                         a.cd + factor * (b.cd - a.cd),
                         a.cm + factor * (b.cm - a.cm))
    result.n_alpha = len(result)
    result.n_vals = max(left.n_vals, right.n_vals)
    return result


class AirfoilPolar:
    """
    Aerodynamic coefficients of one airfoil over Reynolds number, Mach number and angle of attack.

    Each (Reynolds, Mach) block keeps its own alpha axis; a query between blocks is answered by
    trilinear interpolation, clamped to the tabulated Reynolds and Mach ranges.

    Attributes:
        name (str): Airfoil reference name
        relative_thickness (float): Relative thickness [%]
        points (List[PolarPoint]): Tabulated operating conditions
    """

    def __init__(self, name: str = "", relative_thickness: float = 0.0):
        self.name = name
        self.relative_thickness = relative_thickness
        self.points: List[PolarPoint] = []

    @classmethod
    def from_tables(cls, tables: Iterable[AirfoilPerformance], mach: float = 0.0,
                    name: Optional[str] = None) -> "AirfoilPolar":
        """Merge single-Reynolds performance tables of one airfoil into a polar at Mach `mach`."""
        tables = list(tables)
        if not tables:
            raise EmptyTableError("No performance tables to build a polar from")
        polar = cls(name or tables[0].name, tables[0].relative_thickness)
        for table in tables:
            for p in table.points:
                polar.add_point(table.reynolds_number, mach, p.alpha, p.cl, p.cd, p.cm)
        return polar

    def add_point(self, reynolds: float, mach: float, alpha: float,
                  cl: float, cd: float, cm: float = 0.0) -> None:
        if self.find_point(reynolds, mach, alpha) is not None:
            raise BadFormatError(f"Duplicate operating condition (Re={reynolds}, Ma={mach}, alpha={alpha}) "
                                 f"in polar '{self.name}'")
        self.points.append(PolarPoint(float(reynolds), float(mach), float(alpha),
                                      float(cl), float(cd), float(cm)))

    def __len__(self):
        return len(self.points)

    def is_empty(self) -> bool:
        return not self.points

    def reynolds_numbers(self) -> List[float]:
        return sorted({p.reynolds for p in self.points})

    def mach_numbers(self) -> List[float]:
        return sorted({p.mach for p in self.points})

    def angles_of_attack(self) -> List[float]:
        return sorted({p.alpha for p in self.points})

    def find_point(self, reynolds: float, mach: float, alpha: float) -> Optional[PolarPoint]:
        for p in self.points:
            if (abs(p.reynolds - reynolds) < CONDITION_TOLERANCE and abs(p.mach - mach) < CONDITION_TOLERANCE
                    and abs(p.alpha - alpha) < CONDITION_TOLERANCE):
                return p
        return None

    def _grids(self):
        """Reynolds axis, per-block Mach axes, per-block alpha axes and the cl, cd, cm blocks."""
        reynolds = self.reynolds_numbers()
        machs, angles = [], []
        values = {"cl": [], "cd": [], "cm": []}
        for re in reynolds:
            block = [p for p in self.points if p.reynolds == re]
            block_machs = sorted({p.mach for p in block})
            machs.append(block_machs)
            block_angles = []
            block_values = {key: [] for key in values}
            for mach in block_machs:
                rows = sorted((p for p in block if p.mach == mach), key=lambda p: p.alpha)
                block_angles.append([p.alpha for p in rows])
                for key in values:
                    block_values[key].append([getattr(p, key) for p in rows])
            angles.append(block_angles)
            for key in values:
                values[key].append(block_values[key])
        return reynolds, machs, angles, values

    def interpolate_coefficients(self, reynolds: float, mach: float, alpha: float) -> PolarPoint:
        """
        Coefficients at an operating condition.

        A tabulated condition is returned as stored; any other condition is interpolated.

        Raises:
            EmptyTableError: If the polar holds no points.
        """
        if not self.points:
            raise EmptyTableError(f"Polar '{self.name}' is empty")
        exact = self.find_point(reynolds, mach, alpha)
        if exact is not None:
            return exact
        axis_re, axis_mach, axis_alpha, values = self._grids()
        cl, cd, cm = (trilinear_interpolation(reynolds, mach, alpha, axis_re, axis_mach, axis_alpha, values[key])
                      for key in ("cl", "cd", "cm"))
        return PolarPoint(float(reynolds), float(mach), float(alpha), cl, cd, cm)

    def table_at(self, reynolds: float, mach: float = 0.0) -> AirfoilPerformance:
        """Alpha table at one Reynolds and Mach number, on the union of the polar's alpha values."""
        table = AirfoilPerformance(self.name, self.relative_thickness, reynolds)
        for alpha in self.angles_of_attack():
            p = self.interpolate_coefficients(reynolds, mach, alpha)
            table.add_point(alpha, p.cl, p.cd, p.cm)
        table.n_alpha = len(table)
        table.n_vals = 4
        return table

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.points, columns=["reynolds", "mach", "alpha", "cl", "cd", "cm"])

    def copy(self) -> "AirfoilPolar":
        other = AirfoilPolar(self.name, self.relative_thickness)
        other.points = list(self.points)
        return other


def interpolate_between_polars(left: AirfoilPolar,
                               right: AirfoilPolar,
                               target_thickness: float,
                               name: Optional[str] = None) -> AirfoilPolar:
    """
    Blend two polars linearly in relative thickness on the union of their operating conditions.

    Raises:
        OutOfRangeError: If the target lies outside the thickness interval of the two polars.
        EmptyTableError: If either polar has no points.
    """
    lo = min(left.relative_thickness, right.relative_thickness)
    hi = max(left.relative_thickness, right.relative_thickness)
    if target_thickness < lo or target_thickness > hi:
        raise OutOfRangeError(
            f"Target thickness {target_thickness} outside [{lo}, {hi}] of '{left.name}' and '{right.name}'")
    if right.relative_thickness == left.relative_thickness:
        factor = 0.0
    else:
        factor = (target_thickness - left.relative_thickness) / (right.relative_thickness - left.relative_thickness)

    result = AirfoilPolar(name or f"interpolated_T{target_thickness:.2f}", target_thickness)
    conditions = sorted({(p.reynolds, p.mach, p.alpha) for p in left.points + right.points})
    for re, mach, alpha in conditions:
        a = left.interpolate_coefficients(re, mach, alpha)
        b = right.interpolate_coefficients(re, mach, alpha)
        result.add_point(re, mach, alpha,
                         a.cl + factor * (b.cl - a.cl),
                         a.cd + factor * (b.cd - a.cd),
                         a.cm + factor * (b.cm - a.cm))
    return result
