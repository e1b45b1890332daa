"""
Airfoil geometry container, normalization pipeline and thickness interpolation.
"""

from typing import List, Optional, Tuple

import numpy as np

from .computations import rotate_points_2d
from .errors import BadFormatError, MarkerMissingError, OutOfRangeError
from .interpolation import linear_interpolation, resample_airfoil
from .structs import TE_TOLERANCE, AirfoilCoordinate, AirfoilMarker, MarkerType


THICKNESS_MATCH_TOLERANCE = 1e-3

NOSE_MODES = ("flat", "interpolate")


def _is_te_x(x: float) -> bool:
    return x >= 1.0 - TE_TOLERANCE


class AirfoilGeometry:
    """
    Closed airfoil contour with markers, metadata and a placed (scaled) copy.

    Attributes:
        name (str): Airfoil name
        coordinates (List[AirfoilCoordinate]): Canonical contour in unit chord coordinates
        markers (List[AirfoilMarker]): Markers referencing canonical coordinates
        headers (List[str]): Raw header lines of the source file
        scaled_coordinates (List[AirfoilCoordinate]): Contour after scaling, twist and translation
        orientation_normalized (bool): True once the normalization pipeline has run

    Notes:
        - After `normalize` the contour runs counter-clockwise from the upper trailing edge, the
          leading edge sits at the origin and carries the LE marker, and exactly one coordinate is
          flagged as upper and one as lower trailing-edge corner.
        - Relative thickness is stored in percent.
    """

    def __init__(self, name: str = "", relative_thickness: Optional[float] = None):
        self.name = name
        self.coordinates: List[AirfoilCoordinate] = []
        self.markers: List[AirfoilMarker] = []
        self.headers: List[str] = []
        self.scaled_coordinates: List[AirfoilCoordinate] = []
        self.orientation_normalized = False
        self._relative_thickness = relative_thickness

    @classmethod
    def from_points(cls,
                    xy: np.ndarray,
                    name: str = "",
                    relative_thickness: Optional[float] = None,
                    normalize: bool = True) -> "AirfoilGeometry":
        """Build a geometry from an Nx2 (or Nx3) array of contour points."""
        geometry = cls(name=name, relative_thickness=relative_thickness)
        for i, pt in enumerate(np.asarray(xy, dtype=float)):
            z = pt[2] if len(pt) > 2 else 0.0
            geometry.add_coordinate(AirfoilCoordinate(i, pt[0], pt[1], z))
        if normalize:
            geometry.normalize()
        return geometry

    # ------------------------------------------------------------------ building

    def add_coordinate(self, coordinate: AirfoilCoordinate) -> None:
        self.coordinates.append(coordinate)
        self.orientation_normalized = False

    def add_marker(self, marker_type, index: int) -> None:
        self.markers.append(AirfoilMarker(marker_type, index))

    def add_header(self, header: str) -> None:
        self.headers.append(header)

    # ------------------------------------------------------------------ metadata

    @property
    def relative_thickness(self) -> Optional[float]:
        """Relative thickness in percent of chord."""
        return self._relative_thickness

    @relative_thickness.setter
    def relative_thickness(self, value: Optional[float]) -> None:
        self._relative_thickness = None if value is None else float(value)

    @property
    def relative_thickness_fraction(self) -> Optional[float]:
        if self._relative_thickness is None:
            return None
        return self._relative_thickness / 100.0

    def __len__(self):
        return len(self.coordinates)

    def has_marker(self, marker_type) -> bool:
        marker_type = MarkerType(marker_type)
        return any(m.type == marker_type for m in self.markers)

    def get_marker(self, marker_type) -> AirfoilMarker:
        marker_type = MarkerType(marker_type)
        for marker in self.markers:
            if marker.type == marker_type:
                return marker
        raise MarkerMissingError(f"Airfoil '{self.name}' has no {marker_type.value} marker")

    def get_leading_edge(self) -> AirfoilCoordinate:
        return self.coordinates[self.get_marker(MarkerType.LE).index]

    def get_trailing_edge(self) -> AirfoilCoordinate:
        return self.coordinates[self.get_marker(MarkerType.TE).index]

    def chord_length(self) -> float:
        return abs(self.get_trailing_edge().x - self.get_leading_edge().x)

    def coordinates_array(self) -> np.ndarray:
        """Nx3 array of the canonical contour."""
        return np.array([[c.x, c.y, c.z] for c in self.coordinates]).reshape(-1, 3)

    def scaled_array(self) -> np.ndarray:
        """Nx3 array of the placed contour."""
        return np.array([[c.x, c.y, c.z] for c in self._scaled()]).reshape(-1, 3)

    def copy(self) -> "AirfoilGeometry":
        other = AirfoilGeometry(self.name, self._relative_thickness)
        other.coordinates = [c.copy() for c in self.coordinates]
        other.markers = [m.copy() for m in self.markers]
        other.headers = list(self.headers)
        other.scaled_coordinates = [c.copy() for c in self.scaled_coordinates]
        other.orientation_normalized = self.orientation_normalized
        return other

    # ------------------------------------------------------------------ normalization

    def normalize(self, nose: str = "interpolate") -> None:
        """
        Bring a raw imported contour into canonical form.

        Steps, in order:
            1. Insert a nose point at x = 0 when the contour does not reach the origin.
            2. Translate the nose onto the origin; trailing-edge points keep their x.
            3. Reverse a clockwise contour so that it runs counter-clockwise.
            4. Put the LE marker on the x = 0 point.
            5. Flag the upper surface (index <= LE index).
            6. Flag the upper and lower trailing-edge corners.

        Args:
            nose: "flat" inserts the nose at the y of the min-x point, "interpolate" at the mean
                y of the min-x point and its closest neighbour along x.

        Raises:
            BadFormatError: If the contour is too short, has no trailing edge on either side,
                or a marker ends up out of range. The geometry is left unchanged.
        """
        if nose not in NOSE_MODES:
            raise OutOfRangeError(f"Unknown nose mode: {nose}")
        if len(self.coordinates) < 3:
            raise BadFormatError(f"Airfoil '{self.name}' needs at least 3 coordinates, got {len(self.coordinates)}")

        coords = [c.copy() for c in self.coordinates]
        markers = [m.copy() for m in self.markers]

        # 1. nose point
        xs = np.array([c.x for c in coords])
        if not np.any(xs == 0.0):
            k = int(np.argmin(xs))
            if xs[k] > 0.0:
                neighbours = [j for j in (k - 1, k + 1) if 0 <= j < len(coords)]
                j = min(neighbours, key=lambda idx: xs[idx])
                if nose == "flat":
                    y_nose = coords[k].y
                else:
                    y_nose = 0.5 * (coords[k].y + coords[j].y)
                insert_at = max(k, j)
                coords.insert(insert_at, AirfoilCoordinate(insert_at, 0.0, y_nose, coords[k].z))
                for m in markers:
                    if m.index >= insert_at:
                        m.index += 1
        for i, c in enumerate(coords):
            c.index = i

        # 2. centre on the nose
        k = int(np.argmin([c.x for c in coords]))
        dx = -coords[k].x
        dy = -coords[k].y
        for c in coords:
            if not c.is_trailing_edge:
                c.x += dx
            c.y += dy
        coords[k].x = 0.0

        # 3. counter-clockwise orientation
        if coords[0].y > coords[1].y:
            coords.reverse()
            last = len(coords) - 1
            for m in markers:
                m.index = last - m.index
            for i, c in enumerate(coords):
                c.index = i

        # 4. leading edge
        le_index = next(i for i, c in enumerate(coords) if c.x == 0.0)
        le_markers = [m for m in markers if m.type == MarkerType.LE]
        if le_markers:
            le_markers[0].index = le_index
            markers = [m for m in markers if m.type != MarkerType.LE or m is le_markers[0]]
        else:
            markers.append(AirfoilMarker(MarkerType.LE, le_index))

        # 5. + 6. surface and trailing-edge flags
        _assign_surface_flags(coords, le_index, self.name)
        if not any(m.type == MarkerType.TE for m in markers):
            te_index = next(i for i, c in enumerate(coords) if c.is_te_top_edge)
            markers.append(AirfoilMarker(MarkerType.TE, te_index))

        for m in markers:
            if m.index < 0 or m.index >= len(coords):
                raise BadFormatError(
                    f"Marker {m.type.value} index {m.index} out of range for airfoil '{self.name}'")

        self.coordinates = coords
        self.markers = markers
        self.orientation_normalized = True
        if self._relative_thickness is None:
            self._relative_thickness = self.max_thickness() * 100.0

    # ------------------------------------------------------------------ surfaces

    def separate_surfaces(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Split the contour into upper and lower surface.

        Returns:
            upper: Kx2 array, x descending from (1, 0) to (0, 0).
            lower: Mx2 array, x ascending from (0, 0) to (1, 0).
        """
        upper = [c for c in self.coordinates
                 if c.is_top_surface and (not _is_te_x(c.x) or c.is_te_top_edge)]
        lower = [c for c in self.coordinates
                 if not c.is_top_surface and (not _is_te_x(c.x) or c.is_te_bottom_edge)]

        upper_xy = [(c.x, c.y) for c in sorted(upper, key=lambda c: -c.x)]
        lower_xy = [(c.x, c.y) for c in sorted(lower, key=lambda c: c.x)]

        if not upper_xy or upper_xy[0] != (1.0, 0.0):
            upper_xy.insert(0, (1.0, 0.0))
        if upper_xy[-1] != (0.0, 0.0):
            upper_xy.append((0.0, 0.0))
        if not lower_xy or lower_xy[0] != (0.0, 0.0):
            lower_xy.insert(0, (0.0, 0.0))
        if lower_xy[-1] != (1.0, 0.0):
            lower_xy.append((1.0, 0.0))

        return np.array(upper_xy), np.array(lower_xy)

    def max_thickness(self) -> float:
        """Largest |y_upper - y_lower| over upper/lower points sharing x within 1e-3."""
        upper, lower = self.separate_surfaces()
        match = np.abs(upper[:, 0][:, None] - lower[:, 0][None, :]) < THICKNESS_MATCH_TOLERANCE
        if not np.any(match):
            return 0.0
        dy = np.abs(upper[:, 1][:, None] - lower[:, 1][None, :])
        return float(np.max(dy[match]))

    def resampled(self, npoints: int = 200) -> np.ndarray:
        """
        Smooth contour with cosine-spaced x, used for plotting.

        Returns:
            Nx2 array running from the trailing edge over the upper side back to the trailing edge.
        """
        return resample_airfoil(self.coordinates_array()[:, :2], npoints)

    # ------------------------------------------------------------------ placement

    def _scaled(self) -> List[AirfoilCoordinate]:
        if not self.scaled_coordinates:
            return [c.copy() for c in self.coordinates]
        return self.scaled_coordinates

    def apply_scaling(self, chord: float, max_thickness: float, radius: float) -> None:
        """Replace the placed contour by the canonical one scaled in x, y and z."""
        scaled = []
        for c in self.coordinates:
            s = c.copy()
            s.x = c.x * chord
            s.y = c.y * max_thickness
            s.z = c.z * radius
            scaled.append(s)
        self.scaled_coordinates = scaled

    def apply_twist_around_pivot(self, angle_degrees: float, pivot_x: float, pivot_y: float) -> None:
        """Rotate the placed contour counter-clockwise about (pivot_x, pivot_y)."""
        scaled = [c.copy() for c in self._scaled()]
        if not scaled:
            return
        xy = np.array([[c.x, c.y] for c in scaled])
        rotated = rotate_points_2d(xy, angle_degrees, (pivot_x, pivot_y))
        for c, (x, y) in zip(scaled, rotated):
            c.x = float(x)
            c.y = float(y)
        self.scaled_coordinates = scaled

    def apply_twist_around_quarter_chord(self, angle_degrees: float,
                                         pitch_axis_offset: float = 0.0) -> Tuple[float, float]:
        """
        Twist the placed contour about its pitch axis.

        The pivot lies on the chord line at x_min + (0.25 + pitch_axis_offset / 100) * (x_max - x_min).
        It is measured on the placed contour, not the unit-chord canonical one, so that after
        `apply_scaling` the pivot sits at the quarter chord of the scaled section.

        Returns:
            The pivot (x, y).
        """
        xs = [c.x for c in self._scaled()]
        x_min, x_max = min(xs), max(xs)
        pivot_x = x_min + (0.25 + pitch_axis_offset / 100.0) * (x_max - x_min)
        pivot_y = 0.0
        self.apply_twist_around_pivot(angle_degrees, pivot_x, pivot_y)
        return pivot_x, pivot_y

    def apply_translation_xy(self, dx: float, dy: float) -> None:
        scaled = [c.copy() for c in self._scaled()]
        for c in scaled:
            c.x += dx
            c.y += dy
        self.scaled_coordinates = scaled

    def set_spanwise_position(self, z: float) -> None:
        """Place the whole placed contour at the spanwise coordinate z."""
        scaled = [c.copy() for c in self._scaled()]
        for c in scaled:
            c.z = z
        self.scaled_coordinates = scaled


def _assign_surface_flags(coords: List[AirfoilCoordinate], le_index: int, name: str = "") -> None:
    """Set the top-surface and trailing-edge flags of a contour with its LE at `le_index`."""
    for c in coords:
        c.is_top_surface = c.index <= le_index
        c.is_trailing_edge = _is_te_x(c.x)
        c.is_te_top_edge = False
        c.is_te_bottom_edge = False

    top = next((c for c in coords if c.index < le_index and c.is_trailing_edge), None)
    bottom = next((c for c in coords if c.index > le_index and c.is_trailing_edge), None)
    if top is None or bottom is None:
        raise BadFormatError(f"Airfoil '{name}' has no trailing edge at x = 1 on both surfaces")
    top.is_te_top_edge = True
    bottom.is_te_bottom_edge = True


def _blend_surface(thick: np.ndarray, thin: np.ndarray, t: float) -> Tuple[np.ndarray, np.ndarray]:
    """Blend two surfaces, given with ascending x, on the union of their abscissae."""
    xs = np.union1d(thick[:, 0], thin[:, 0])
    y_thick = linear_interpolation(xs, thick[:, 0], thick[:, 1])
    y_thin = linear_interpolation(xs, thin[:, 0], thin[:, 1])
    return xs, (1.0 - t) * y_thick + t * y_thin


def interpolate_between_geometries(left: AirfoilGeometry,
                                   right: AirfoilGeometry,
                                   target_thickness: float) -> AirfoilGeometry:
    """
    Synthesise an airfoil of the target relative thickness from two bracketing airfoils.

    Upper and lower surfaces are blended separately on the union of both inputs' abscissae
    with weight t = |(target - thick) / (thin - thick)| on the thinner airfoil.

    Args:
        left: First airfoil (normalized).
        right: Second airfoil (normalized).
        target_thickness: Relative thickness of the result [%].

    Returns:
        New normalized AirfoilGeometry with relative thickness equal to the target.

    Raises:
        OutOfRangeError: If the target lies outside [thin, thick].
    """
    if left.relative_thickness >= right.relative_thickness:
        thick, thin = left, right
    else:
        thick, thin = right, left
    hi = thick.relative_thickness
    lo = thin.relative_thickness
    if target_thickness < lo or target_thickness > hi:
        raise OutOfRangeError(
            f"Target thickness {target_thickness} outside [{lo}, {hi}] of '{thin.name}' and '{thick.name}'")

    if hi == lo:
        result = thick.copy()
        result.scaled_coordinates = []
        result.relative_thickness = target_thickness
        return result

    t = abs((target_thickness - hi) / (lo - hi))

    thick_upper, thick_lower = thick.separate_surfaces()
    thin_upper, thin_lower = thin.separate_surfaces()
    xu, yu = _blend_surface(thick_upper[::-1], thin_upper[::-1], t)
    xl, yl = _blend_surface(thick_lower, thin_lower, t)

    # upper from trailing to leading edge, then lower without repeating the nose
    x = np.concatenate([xu[::-1], xl[1:]])
    y = np.concatenate([yu[::-1], yl[1:]])

    result = AirfoilGeometry(name=f"interpolated_T{target_thickness:.2f}",
                             relative_thickness=target_thickness)
    coords = [AirfoilCoordinate(i, xi, yi) for i, (xi, yi) in enumerate(zip(x, y))]
    le_index = len(xu) - 1
    _assign_surface_flags(coords, le_index, result.name)
    result.coordinates = coords
    result.add_marker(MarkerType.LE, le_index)
    result.add_marker(MarkerType.TE, 0)
    result.orientation_normalized = True
    return result


def naca_four_digit(thickness: float, n_points: int = 61, camber: float = 0.0,
                    camber_position: float = 0.4, name: Optional[str] = None) -> AirfoilGeometry:
    """
    Closed trailing-edge NACA 4-digit airfoil on a cosine-spaced grid.

    Args:
        thickness: Maximum thickness as a fraction of chord (e.g. 0.18).
        n_points: Points per surface, leading and trailing edge included.
        camber: Maximum camber as a fraction of chord.
        camber_position: Chordwise position of maximum camber.
        name: Optional name, defaults to the NACA designation.

    Returns:
        Normalized AirfoilGeometry.
    """
    beta = np.linspace(0.0, np.pi, n_points)
    x = 0.5 * (1.0 - np.cos(beta))
    yt = 5.0 * thickness * (0.2969 * np.sqrt(x) - 0.1260 * x - 0.3516 * x**2
                            + 0.2843 * x**3 - 0.1036 * x**4)
    yt[0] = 0.0
    yt[-1] = 0.0
    if camber > 0.0:
        p = camber_position
        yc = np.where(x < p,
                      camber / p**2 * (2 * p * x - x**2),
                      camber / (1 - p)**2 * ((1 - 2 * p) + 2 * p * x - x**2))
    else:
        yc = np.zeros_like(x)

    upper = np.column_stack([x[::-1], (yc + yt)[::-1]])
    lower = np.column_stack([x[1:], (yc - yt)[1:]])
    xy = np.vstack([upper, lower])
    xy[0, 1] = 0.0
    xy[-1, 1] = 0.0
    if name is None:
        name = f"NACA{int(round(camber * 100))}{int(round(camber_position * 10)) if camber > 0 else 0}{int(round(thickness * 100)):02d}"
    return AirfoilGeometry.from_points(xy, name=name, relative_thickness=thickness * 100.0)
