"""
Data structures for the TurbPrep package.
"""

from enum import Enum
from typing import List, NamedTuple, Optional, Tuple
import math
import os

import numpy as np
import pandas as pd

from .errors import AxisTooSmallError, BadFormatError, NotFoundError, OutOfRangeError


TE_TOLERANCE = 1e-9


class MarkerType(Enum):
    """Marker tags that can be attached to an airfoil coordinate."""
    LE = "LE"
    TE = "TE"
    TEE = "TEE"
    TESSMAX = "TESSMAX"
    TESS = "TESS"
    SPLIT = "SPLIT"


class AirfoilMarker:
    """
    Tags a coordinate of an airfoil contour.

    Attributes:
        type (MarkerType): Marker tag
        index (int): Index of the tagged coordinate within the owning contour
    """

    def __init__(self, type: MarkerType, index: int):
        self.type = MarkerType(type)
        self.index = int(index)

    def copy(self) -> "AirfoilMarker":
        return AirfoilMarker(self.type, self.index)

    def __eq__(self, other):
        if not isinstance(other, AirfoilMarker):
            return NotImplemented
        return self.type == other.type and self.index == other.index

    def __repr__(self):
        return f"AirfoilMarker({self.type.value}, {self.index})"


class AirfoilCoordinate:
    """
    A single point of an airfoil contour in airfoil-local coordinates.

    Attributes:
        index (int): Position within the owning contour (0..N-1 after normalization)
        x (float): Chordwise coordinate, 0 at the leading edge and 1 at the trailing edge
        y (float): Thickness-wise coordinate
        z (float): Spanwise coordinate, 0 for a 2-D profile
        is_top_surface (bool): True for the upper side including the leading edge
        is_trailing_edge (bool): True when x >= 1
        is_te_top_edge (bool): Upper corner of the trailing edge
        is_te_bottom_edge (bool): Lower corner of the trailing edge
    """

    def __init__(self,
                 index: int,
                 x: float,
                 y: float,
                 z: float = 0.0,
                 is_top_surface: bool = False,
                 is_trailing_edge: Optional[bool] = None,
                 is_te_top_edge: bool = False,
                 is_te_bottom_edge: bool = False):
        """Initialize AirfoilCoordinate; the trailing-edge flag follows x unless given."""
        self.index = int(index)
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)
        self.is_top_surface = is_top_surface
        if is_trailing_edge is None:
            is_trailing_edge = self.x >= 1.0 - TE_TOLERANCE
        self.is_trailing_edge = is_trailing_edge
        self.is_te_top_edge = is_te_top_edge
        self.is_te_bottom_edge = is_te_bottom_edge

    @property
    def is_2d(self) -> bool:
        return self.z == 0.0

    def copy(self) -> "AirfoilCoordinate":
        return AirfoilCoordinate(self.index, self.x, self.y, self.z,
                                 is_top_surface=self.is_top_surface,
                                 is_trailing_edge=self.is_trailing_edge,
                                 is_te_top_edge=self.is_te_top_edge,
                                 is_te_bottom_edge=self.is_te_bottom_edge)

    def as_tuple(self) -> Tuple:
        return (self.index, self.x, self.y, self.z, self.is_top_surface,
                self.is_trailing_edge, self.is_te_top_edge, self.is_te_bottom_edge)

    def __eq__(self, other):
        if not isinstance(other, AirfoilCoordinate):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __repr__(self):
        return f"AirfoilCoordinate({self.index}, {self.x:.6f}, {self.y:.6f}, {self.z:.6f})"


class PerformancePoint(NamedTuple):
    """One row of an airfoil performance table (alpha in degrees)."""
    alpha: float
    cl: float
    cd: float
    cm: float = 0.0


class PolarPoint(NamedTuple):
    """Coefficients of an airfoil at one (Reynolds number, Mach number, alpha) operating condition."""
    reynolds: float
    mach: float
    alpha: float
    cl: float
    cd: float
    cm: float = 0.0


class FileInfo:
    """
    An entry of a file list.

    Attributes:
        file_path (str): Absolute path of the referenced file
        file_name (str): Base name of the referenced file
        exists (bool): Whether the file was found when the list was read
    """

    def __init__(self, file_path: str):
        self.file_path = file_path
        self.file_name = os.path.basename(file_path)
        self.exists = os.path.isfile(file_path)

    def __repr__(self):
        return f"FileInfo({self.file_path!r}, exists={self.exists})"


class FileList:
    """
    Parsed content of a file that lists data files, one per line.

    Attributes:
        source (str): Path of the list file
        file_infos (List[FileInfo]): Entries in file order
        headers (List[str]): Raw header lines (starting with '#')
        revision (str): Value of the "Revision" header (text after its last tab)
        date (str): Value of the "Date" header (text after its last tab)
    """

    def __init__(self, source: str = ""):
        self.source = source
        self.file_infos: List[FileInfo] = []
        self.headers: List[str] = []
        self.revision = ""
        self.date = ""

    def add_header(self, header: str) -> None:
        self.headers.append(header)
        if "Revision" in header:
            value = self._tab_value(header)
            if value:
                self.revision = value
        elif "Date" in header:
            value = self._tab_value(header)
            if value:
                self.date = value

    @staticmethod
    def _tab_value(header: str) -> str:
        pos = header.rfind("\t")
        if pos == -1 or pos + 1 >= len(header):
            return ""
        return header[pos + 1:].strip()

    def add_file_path(self, file_path: str) -> None:
        self.file_infos.append(FileInfo(file_path))

    def valid_file_paths(self) -> List[str]:
        return [info.file_path for info in self.file_infos if info.exists]

    def missing_files(self) -> List[str]:
        return [info.file_path for info in self.file_infos if not info.exists]

    def valid_file_count(self) -> int:
        return len(self.valid_file_paths())

    def get_file_by_name(self, name: str) -> FileInfo:
        """Return the first entry whose file name contains `name`."""
        for info in self.file_infos:
            if name in info.file_name:
                return info
        raise NotFoundError(f"No file found for name: {name}")

    def __len__(self):
        return len(self.file_infos)


class BladeGeometry:
    """
    Tabulated blade definition along the span.

    Attributes:
        rows (pd.DataFrame): One row per definition station with the columns listed in COLUMNS
        headers (List[str]): Raw header lines of the source file

    Notes:
        - Radii are absolute [m] and must be strictly increasing.
        - Relative thickness and relative twist axis are in percent.
        - Relative radii are r / R with R the last (tip) radius.
    """

    COLUMNS = ["radius", "chord", "twist", "relative_thickness", "xt4", "yt4",
               "pcba_x", "pcba_y", "relative_twist_axis"]

    def __init__(self, rows: pd.DataFrame, headers: Optional[List[str]] = None):
        rows = rows.reset_index(drop=True)
        missing = [col for col in self.COLUMNS if col not in rows.columns]
        if missing:
            raise BadFormatError(f"Blade geometry is missing columns: {missing}")
        radii = rows["radius"].to_numpy(dtype=float)
        if len(radii) == 0:
            raise BadFormatError("Blade geometry has no rows")
        if np.any(np.diff(radii) <= 0.0):
            raise BadFormatError("Blade geometry radii must be strictly increasing")
        self.rows = rows[self.COLUMNS].astype(float)
        self.headers = headers if headers is not None else []

    @property
    def number_of_sections(self) -> int:
        return len(self.rows)

    @property
    def radii(self) -> np.ndarray:
        return self.rows["radius"].to_numpy()

    @property
    def relative_radii(self) -> np.ndarray:
        radii = self.radii
        return radii / radii[-1]

    def column(self, name: str) -> np.ndarray:
        return self.rows[name].to_numpy()

    def get_radius_values(self) -> List[float]:
        return self.radii.tolist()

    def get_row_by_radius(self, radius: float, tolerance: float = 0.001) -> pd.Series:
        """Return the first definition row within `tolerance` of `radius`."""
        matches = self.rows[np.abs(self.rows["radius"] - radius) <= tolerance]
        if matches.empty:
            raise NotFoundError(f"No blade geometry found for radius: {radius}")
        return matches.iloc[0]


class TurbSimGrid:
    """
    Regular (y, z) sampling grid of a TurbSim full-field wind file.

    Attributes:
        hub_height (float): Height of the grid centre [m]
        spacing_y (float): Lateral grid spacing [m]
        spacing_z (float): Vertical grid spacing [m]
        num_y (int): Number of lateral points
        num_z (int): Number of vertical points
    """

    def __init__(self, hub_height: float, spacing_y: float, spacing_z: float, num_y: int, num_z: int):
        if num_y < 2 or num_z < 2:
            raise AxisTooSmallError(f"TurbSim grid needs at least 2x2 points, got {num_y}x{num_z}")
        if spacing_y <= 0.0 or spacing_z <= 0.0:
            raise OutOfRangeError("TurbSim grid spacings must be > 0")
        self.hub_height = float(hub_height)
        self.spacing_y = float(spacing_y)
        self.spacing_z = float(spacing_z)
        self.num_y = int(num_y)
        self.num_z = int(num_z)

    @property
    def total_points(self) -> int:
        return self.num_y * self.num_z

    @property
    def width(self) -> float:
        return (self.num_y - 1) * self.spacing_y

    @property
    def height(self) -> float:
        return (self.num_z - 1) * self.spacing_z

    def axis_y(self) -> np.ndarray:
        return np.arange(self.num_y) * self.spacing_y - self.width / 2.0

    def axis_z(self) -> np.ndarray:
        return self.hub_height - self.height / 2.0 + np.arange(self.num_z) * self.spacing_z

    def grid_points(self) -> Tuple[np.ndarray, np.ndarray]:
        """Flat y and z coordinates of every grid point, z-outer and y-inner."""
        zz, yy = np.meshgrid(self.axis_z(), self.axis_y(), indexing='ij')
        return yy.ravel(), zz.ravel()


class TurbSimVelocityData:
    """
    Velocity vectors of a TurbSim wind field.

    Attributes:
        data (np.ndarray): Array of shape (n_timesteps, num_y * num_z, 3) holding (u, v, w),
            grid points ordered z-outer and y-inner
    """

    def __init__(self, points_per_timestep: int, data: Optional[np.ndarray] = None):
        self.points_per_timestep = int(points_per_timestep)
        if data is None:
            data = np.zeros((0, self.points_per_timestep, 3))
        data = np.asarray(data, dtype=float)
        if data.ndim != 3 or data.shape[1] != self.points_per_timestep or data.shape[2] != 3:
            raise BadFormatError(
                f"Velocity data must have shape (n, {self.points_per_timestep}, 3), got {data.shape}")
        self.data = data

    def add_timestep(self, velocities: np.ndarray) -> None:
        velocities = np.asarray(velocities, dtype=float)
        if velocities.shape != (self.points_per_timestep, 3):
            raise BadFormatError(
                f"Timestep must have {self.points_per_timestep} velocity vectors, got {velocities.shape}")
        self.data = np.concatenate([self.data, velocities[None, :, :]], axis=0)

    def timestep(self, index: int) -> np.ndarray:
        if index < 0 or index >= len(self):
            raise OutOfRangeError(f"Timestep {index} outside [0, {len(self)})")
        return self.data[index]

    def __len__(self):
        return self.data.shape[0]


class TurbSimTimingInfo:
    """
    Time discretisation of a TurbSim wind field, including the padding that TurbSim adds
    at both ends so the whole grid width has been convected through the rotor plane.

    Attributes:
        total_timesteps (int): Number of stored timesteps
        timestep (float): dt = dx / V_hub [s]
        padding (int): ceil((grid_width_y / V_hub) / 2 / dt)
        usable_iterations (int): total_timesteps - 2 * padding
        usable_time (float): usable_iterations * dt [s]
    """

    def __init__(self, total_timesteps: int, hub_velocity: float, longitudinal_res: float, grid_width_y: float):
        if hub_velocity <= 0.0:
            raise OutOfRangeError("Hub velocity must be > 0")
        self.total_timesteps = int(total_timesteps)
        self.timestep = longitudinal_res / hub_velocity
        pad_time = grid_width_y / hub_velocity
        self.padding = int(math.ceil(pad_time / 2.0 / self.timestep))
        self.usable_iterations = self.total_timesteps - 2 * self.padding
        if self.usable_iterations < 0:
            raise OutOfRangeError(
                f"Wind field has {self.total_timesteps} timesteps, fewer than the padding 2x{self.padding}")
        self.usable_time = self.usable_iterations * self.timestep

    def raw_index(self, user_iteration: int) -> int:
        """Map an iteration of the usable window onto the stored timestep index."""
        if user_iteration < 0 or user_iteration >= self.usable_iterations:
            raise OutOfRangeError(
                f"Iteration {user_iteration} outside [0, {self.usable_iterations})")
        return int(user_iteration) + self.padding


class InterpolatedBladeSection:
    """
    A blade section synthesised at one radial station.

    Attributes:
        geometry (AirfoilGeometry): Interpolated airfoil; its scaled contour is placed on the blade
        airfoil_name (str): Source airfoil name or the interpolated label
        relative_thickness (float): Relative thickness [%]
        radius (float): Blade radius [m]
        chord (float): Chord length [m]
        pitch_axis_offset (float): Pitch axis offset from the quarter chord [% chord]
        twist (float): Twist angle [deg]
        performance (AirfoilPerformance): Optional interpolated performance table
    """

    def __init__(self, geometry, airfoil_name: str, relative_thickness: float, radius: float,
                 chord: float, pitch_axis_offset: float, twist: float, performance=None):
        self.geometry = geometry
        self.airfoil_name = airfoil_name
        self.relative_thickness = relative_thickness
        self.radius = radius
        self.chord = chord
        self.pitch_axis_offset = pitch_axis_offset
        self.twist = twist
        self.performance = performance

    def transformed_coordinates(self) -> np.ndarray:
        """Nx3 array of the scaled, twisted and translated contour."""
        return self.geometry.scaled_array()

    def area(self) -> float:
        """Enclosed area of the placed contour (shoelace formula)."""
        xyz = self.transformed_coordinates()
        x, y = xyz[:, 0], xyz[:, 1]
        return 0.5 * abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


class ProjectParams:
    """
    Plain parameter set of a pre-processing project, built from a parsed configuration.

    Attributes:
        project_name (str): Project name
        project_id (str): Project identifier
        project_revision (str): Revision string
        project_date (str): Date string
        project_engineer (str): Responsible engineer
        turbine_is_horizontal (bool): True for a horizontal axis turbine
        number_of_blades (int): Blade count
        hub_radius (float): Hub radius [m]
        rated_rotorspeed (float): Rotor speed at rated conditions [rpm]
        min_rotorspeed (float): Minimum rotor speed [rpm]
        rated_electrical_power (float): Rated electrical power [W]
        simulation_is_time_based (bool): Static (False) or time based (True) simulation
        wind_speeds (np.ndarray): Wind speeds from the wind speed range [m/s]
        tip_speed_ratios (np.ndarray): Tip speed ratios from the TSR range
        pitch_angles (np.ndarray): Pitch angles from the pitch range [deg]
        number_of_sections (int): Number of equally spaced sections to synthesise
        interpolation_method (str): Spanwise interpolation method for chord, twist and thickness
        output_directory (str): Directory receiving the exported files
    """

    def __init__(self,
                 project_name: str = "",
                 project_id: str = "",
                 project_revision: str = "",
                 project_date: str = "",
                 project_engineer: str = "",
                 turbine_is_horizontal: bool = True,
                 number_of_blades: int = 3,
                 hub_radius: float = 0.0,
                 rated_rotorspeed: float = 0.0,
                 min_rotorspeed: float = 0.0,
                 rated_electrical_power: float = 0.0,
                 simulation_is_time_based: bool = False,
                 wind_speeds: Optional[np.ndarray] = None,
                 tip_speed_ratios: Optional[np.ndarray] = None,
                 pitch_angles: Optional[np.ndarray] = None,
                 number_of_sections: int = 0,
                 interpolation_method: str = "monotonic_cubic",
                 output_directory: str = "output"):
        """Initialize ProjectParams with the provided data."""
        self.project_name = project_name
        self.project_id = project_id
        self.project_revision = project_revision
        self.project_date = project_date
        self.project_engineer = project_engineer
        self.turbine_is_horizontal = turbine_is_horizontal
        self.number_of_blades = number_of_blades
        self.hub_radius = hub_radius
        self.rated_rotorspeed = rated_rotorspeed
        self.min_rotorspeed = min_rotorspeed
        self.rated_electrical_power = rated_electrical_power
        self.simulation_is_time_based = simulation_is_time_based

        if wind_speeds is None:
            self.wind_speeds = np.arange(4.0, 25.0 + 0.5, 1.0)
        else:
            self.wind_speeds = wind_speeds

        if tip_speed_ratios is None:
            self.tip_speed_ratios = np.array([])
        else:
            self.tip_speed_ratios = tip_speed_ratios

        if pitch_angles is None:
            self.pitch_angles = np.array([0.0])
        else:
            self.pitch_angles = pitch_angles

        self.number_of_sections = number_of_sections
        self.interpolation_method = interpolation_method
        self.output_directory = output_directory


def expand_range(start: float, end: float, step: float) -> np.ndarray:
    """Sequence start, start + step, ... up to and including end when it lies on the step grid."""
    if step == 0.0:
        raise OutOfRangeError("Range step must be non-zero")
    if (end - start) / step < 0.0:
        raise OutOfRangeError(f"Range step {step} does not lead from {start} to {end}")
    n = int(math.floor((end - start) / step + 1e-9)) + 1
    return start + step * np.arange(n)
