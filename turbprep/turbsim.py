"""
TurbSim full-field wind files in the Bladed/AeroDyn binary (.wnd) format.
"""

import logging
from typing import NamedTuple, Optional, Tuple

import numpy as np

from .errors import BadFormatError, FileAccessError, NotLoadedError, TruncatedFileError, TurbPrepError
from .interpolation import BilinearTurbSimInterpolator
from .structs import TurbSimGrid, TurbSimTimingInfo, TurbSimVelocityData

logger = logging.getLogger(__name__)

WND_MAGIC = -99
WND_COMPONENTS = 3
WND_HEADER_SIZE = 104

# Little-endian header of the .wnd format; unnamed bytes are unused here.
WND_HEADER_DTYPE = np.dtype({
    'names': ['magic', 'version', 'n_components', 'latitude', 'roughness',
              'hub_height', 'ti_u', 'ti_v', 'ti_w',
              'spacing_z', 'spacing_y', 'longitudinal_res',
              'half_timesteps', 'hub_velocity', 'num_z', 'num_y'],
    'formats': ['<i2', '<i2', '<i4', '<f4', '<f4',
                '<f4', '<f4', '<f4', '<f4',
                '<f4', '<f4', '<f4',
                '<i4', '<f4', '<i4', '<i4'],
    'offsets': [0, 2, 4, 8, 12,
                16, 20, 24, 28,
                32, 36, 40,
                44, 48, 72, 76],
    'itemsize': WND_HEADER_SIZE,
})


class TurbSimFileData(NamedTuple):
    """Everything parsed from one wind file."""
    grid: TurbSimGrid
    velocity: TurbSimVelocityData
    timing: TurbSimTimingInfo
    hub_velocity: float
    turbulence_intensity: Tuple[float, float, float]


def decode_velocities(raw: np.ndarray, hub_velocity: float, turbulence_intensity) -> np.ndarray:
    """
    Convert quantised int16 samples (..., 3) into velocities [m/s].

    u = V_hub * ((TI_u / 100) / 1000 * raw_u + 1), v and w without the mean offset.
    """
    scale = hub_velocity * (np.asarray(turbulence_intensity, dtype=float) / 100.0) / 1000.0
    offset = np.array([hub_velocity, 0.0, 0.0])
    return np.asarray(raw, dtype=np.float64) * scale + offset


class BladedBinaryReader:
    """Reader for the Bladed/AeroDyn full-field binary format."""

    def read(self, file_path: str) -> TurbSimFileData:
        """
        Parse a .wnd file.

        Args:
            file_path: Path to the wind file.

        Returns:
            TurbSimFileData holding grid, decoded velocities and timing.

        Raises:
            FileAccessError: If the file cannot be read.
            TruncatedFileError: If the file is shorter than its header announces.
            BadFormatError: If the header magic or the grid description is inconsistent.
        """
        try:
            with open(file_path, 'rb') as f:
                buffer = f.read()
        except OSError as e:
            raise FileAccessError(f"Cannot open wind file {file_path}: {e}") from e

        if len(buffer) < WND_HEADER_SIZE:
            raise TruncatedFileError(
                f"Wind file {file_path} has {len(buffer)} bytes, header needs {WND_HEADER_SIZE}")

        header = np.frombuffer(buffer, dtype=WND_HEADER_DTYPE, count=1)[0]
        if int(header['magic']) != WND_MAGIC or int(header['n_components']) != WND_COMPONENTS:
            raise BadFormatError(f"{file_path} is not a Bladed full-field wind file")

        num_y = int(header['num_y'])
        num_z = int(header['num_z'])
        half_nt = int(header['half_timesteps'])
        if num_y < 2 or num_z < 2 or half_nt <= 0:
            raise BadFormatError(
                f"Invalid grid in {file_path}: num_y={num_y}, num_z={num_z}, timesteps={2 * half_nt}")
        spacing_y = float(header['spacing_y'])
        spacing_z = float(header['spacing_z'])
        if not (spacing_y > 0.0 and spacing_z > 0.0):
            raise BadFormatError(f"Invalid grid spacing in {file_path}: dy={spacing_y}, dz={spacing_z}")

        hub_velocity = float(header['hub_velocity'])
        turbulence_intensity = (float(header['ti_u']), float(header['ti_v']), float(header['ti_w']))
        total_timesteps = 2 * half_nt
        points = num_y * num_z

        count = total_timesteps * points * 3
        needed = WND_HEADER_SIZE + 2 * count
        if len(buffer) < needed:
            raise TruncatedFileError(f"Wind file {file_path} has {len(buffer)} bytes, expected {needed}")

        raw = np.frombuffer(buffer, dtype='<i2', count=count, offset=WND_HEADER_SIZE)
        raw = raw.reshape(total_timesteps, points, 3)

        try:
            grid = TurbSimGrid(float(header['hub_height']), spacing_y, spacing_z, num_y, num_z)
            timing = TurbSimTimingInfo(total_timesteps, hub_velocity, float(header['longitudinal_res']),
                                       (num_y - 1) * spacing_y)
        except TurbPrepError as e:
            raise BadFormatError(f"Inconsistent header in {file_path}: {e}") from e

        velocity = TurbSimVelocityData(points, decode_velocities(raw, hub_velocity, turbulence_intensity))
        logger.debug("Read %s: %sx%s grid, %s timesteps, V_hub=%.3f m/s",
                     file_path, num_y, num_z, total_timesteps, hub_velocity)
        return TurbSimFileData(grid, velocity, timing, hub_velocity, turbulence_intensity)


class TurbSimManager:
    """
    Owns a loaded wind field and answers velocity queries in the usable time window.

    The reader and interpolator are borrowed strategies; the grid, velocities and timing
    belong to the manager after `load`.
    """

    def __init__(self,
                 reader: Optional[BladedBinaryReader] = None,
                 interpolator: Optional[BilinearTurbSimInterpolator] = None):
        self.reader = reader if reader is not None else BladedBinaryReader()
        self.interpolator = interpolator if interpolator is not None else BilinearTurbSimInterpolator()
        self.file_path = None
        self._data: Optional[TurbSimFileData] = None

    def load(self, file_path: str) -> None:
        self._data = self.reader.read(file_path)
        self.file_path = file_path
        logger.info("Loaded wind field %s (%s usable iterations, dt=%.4f s)",
                    file_path, self._data.timing.usable_iterations, self._data.timing.timestep)

    @property
    def is_loaded(self) -> bool:
        return self._data is not None

    def _loaded(self) -> TurbSimFileData:
        if self._data is None:
            raise NotLoadedError("No wind field loaded")
        return self._data

    @property
    def grid(self) -> TurbSimGrid:
        return self._loaded().grid

    @property
    def velocity(self) -> TurbSimVelocityData:
        return self._loaded().velocity

    @property
    def timing(self) -> TurbSimTimingInfo:
        return self._loaded().timing

    def hub_velocity(self) -> float:
        return self._loaded().hub_velocity

    def timestep(self) -> float:
        return self._loaded().timing.timestep

    def usable_iterations(self) -> int:
        return self._loaded().timing.usable_iterations

    def usable_time(self) -> float:
        return self._loaded().timing.usable_time

    def velocity_at(self, point, user_iteration: int) -> np.ndarray:
        """Velocity (u, v, w) at a 3-D point; only y and z are used."""
        data = self._loaded()
        raw_index = data.timing.raw_index(user_iteration)
        return self.interpolator.interpolate(point, raw_index, data.grid, data.velocity)

    def velocities_at(self, points: np.ndarray, user_iteration: int) -> np.ndarray:
        """Velocities (M, 3) at M points for one iteration."""
        data = self._loaded()
        raw_index = data.timing.raw_index(user_iteration)
        return self.interpolator.interpolate_many(points, raw_index, data.grid, data.velocity)

    def velocity_components(self, user_iteration: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Grid values of u, v and w for one iteration, each shaped (num_z, num_y)."""
        data = self._loaded()
        ts = data.velocity.timestep(data.timing.raw_index(user_iteration))
        shape = (data.grid.num_z, data.grid.num_y)
        return ts[:, 0].reshape(shape), ts[:, 1].reshape(shape), ts[:, 2].reshape(shape)

    def velocity_time_series(self, point) -> Tuple[np.ndarray, np.ndarray]:
        """
        Velocity history at one point over the usable window.

        Returns:
            times: Array of the usable times [s].
            velocities: Array (usable_iterations, 3).
        """
        data = self._loaded()
        n = data.timing.usable_iterations
        times = np.arange(n) * data.timing.timestep
        velocities = np.array([self.velocity_at(point, i) for i in range(n)]).reshape(n, 3)
        return times, velocities
