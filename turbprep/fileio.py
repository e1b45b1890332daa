"""
File input/output operations for the TurbPrep package.
"""

import logging
import os
import warnings
from typing import List, Sequence

import ezdxf
import h5py
import numpy as np
import pandas as pd

from .airfoil import AirfoilGeometry
from .errors import BadFormatError, FileAccessError, TurbPrepError, with_line_number
from .performance import AirfoilPerformance, AirfoilPolar
from .structs import AirfoilCoordinate, BladeGeometry, FileList, InterpolatedBladeSection

logger = logging.getLogger(__name__)

PERFORMANCE_KEYS = ("REFNUM", "XA", "THICK", "REYN", "DEPANG", "NALPHA", "NVALS")


def _read_lines(path: str, what: str) -> List[str]:
    try:
        with open(path, 'r') as f:
            return f.read().splitlines()
    except OSError as e:
        raise FileAccessError(f"Cannot open {what} file: {path}") from e


def _tokenize(line: str) -> List[str]:
    """Split on tabs; lines without tab separated fields are split on whitespace."""
    tokens = [token.strip() for token in line.split('\t') if token.strip()]
    if len(tokens) <= 1:
        tokens = line.split()
    return tokens


def _is_number(token: str) -> bool:
    try:
        float(token)
        return True
    except ValueError:
        return False


def load_airfoil_geometry(path: str, nose: str = "interpolate") -> AirfoilGeometry:
    """
    Loads an airfoil contour file and normalizes it.

    Args:
        path: Path to the airfoil geometry file.
        nose: Nose insertion mode passed to `AirfoilGeometry.normalize`.

    Returns:
        Normalized AirfoilGeometry.

    Expected Format:
        - Lines starting with `#` are kept as headers
        - `NAME <name>` and `RELDICKE <relative thickness [%]>`
        - `MARKER <type> <index>` with 1-based coordinate numbering
        - `DEF <x> <y> [<z>]` coordinate rows, tab or space separated

    Notes:
        - The file name (without extension) is used when no NAME is given
        - Relative thickness is measured from the contour when RELDICKE is missing
    """
    lines = _read_lines(path, "airfoil geometry")
    geometry = AirfoilGeometry(name=os.path.splitext(os.path.basename(path))[0])

    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        if line.startswith('#'):
            geometry.add_header(line)
            continue
        try:
            tokens = _tokenize(line)
            if len(tokens) >= 2 and tokens[0] == "NAME":
                geometry.name = tokens[1]
            elif len(tokens) >= 2 and tokens[0] == "RELDICKE":
                geometry.relative_thickness = float(tokens[1])
            elif len(tokens) >= 3 and tokens[0] == "MARKER":
                geometry.add_marker(tokens[1], int(tokens[2]) - 1)
            elif len(tokens) >= 3 and tokens[0] == "DEF":
                z = float(tokens[3]) if len(tokens) > 3 else 0.0
                geometry.add_coordinate(AirfoilCoordinate(len(geometry), float(tokens[1]), float(tokens[2]), z))
        except TurbPrepError as e:
            raise with_line_number(e, number, f"Error parsing airfoil geometry line {number} in file {path}: {e}") from e
        except ValueError as e:
            raise BadFormatError(f"Error parsing airfoil geometry line {number} in file {path}: {e}",
                                 line_number=number) from e

    if len(geometry) == 0:
        raise BadFormatError(f"No valid airfoil coordinate data found in file: {path}")

    try:
        geometry.normalize(nose=nose)
    except TurbPrepError as e:
        raise type(e)(f"Invalid airfoil contour in file {path}: {e}") from e
    logger.debug("Loaded airfoil %s (%s points, %.2f%%)", geometry.name, len(geometry), geometry.relative_thickness)
    return geometry


def load_airfoil_performance(path: str) -> AirfoilPerformance:
    """
    Loads an airfoil performance table.

    Args:
        path: Path to the performance file.

    Returns:
        AirfoilPerformance with rows sorted by angle of attack.

    Expected Format:
        - Lines starting with `#` are kept as headers
        - Header keys REFNUM, XA, THICK, REYN, DEPANG, NALPHA, NVALS followed by a value
        - Data rows `alpha cl cd [cm]` whose first token is numeric; cm defaults to 0

    Notes:
        - A NALPHA value that disagrees with the number of rows only triggers a warning
    """
    lines = _read_lines(path, "airfoil performance")
    performance = AirfoilPerformance(name=os.path.splitext(os.path.basename(path))[0])
    setters = {
        "REFNUM": performance.set_name,
        "XA": lambda v: performance.set_xa(float(v)),
        "THICK": lambda v: performance.set_relative_thickness(float(v)),
        "REYN": lambda v: performance.set_reynolds_number(float(v)),
        "DEPANG": lambda v: performance.set_depang(float(v)),
        "NALPHA": lambda v: performance.set_n_alpha(int(v)),
        "NVALS": lambda v: performance.set_n_vals(int(v)),
    }

    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        if line.startswith('#'):
            performance.headers.append(line)
            continue
        try:
            tokens = _tokenize(line)
            if len(tokens) >= 2 and tokens[0] in PERFORMANCE_KEYS:
                setters[tokens[0]](tokens[1])
            elif len(tokens) >= 3 and _is_number(tokens[0]):
                cm = float(tokens[3]) if len(tokens) > 3 else 0.0
                performance.add_point(float(tokens[0]), float(tokens[1]), float(tokens[2]), cm)
        except TurbPrepError as e:
            raise with_line_number(e, number,
                                   f"Error parsing airfoil performance line {number} in file {path}: {e}") from e
        except ValueError as e:
            raise BadFormatError(f"Error parsing airfoil performance line {number} in file {path}: {e}",
                                 line_number=number) from e

    if performance.is_empty():
        raise BadFormatError(f"No valid airfoil performance data found in file: {path}")
    if performance.n_alpha > 0 and performance.n_alpha != len(performance):
        warnings.warn(f"NALPHA ({performance.n_alpha}) doesn't match actual data rows "
                      f"({len(performance)}) in file: {path}")
    return performance


def load_blade_geometry(path: str) -> BladeGeometry:
    """
    Loads a blade definition file.

    Args:
        path: Path to the blade geometry file.

    Returns:
        BladeGeometry with one row per definition station.

    Expected Format:
        - Lines starting with `#` are kept as headers
        - `DEF radius chord twist rel_thickness xt4 yt4 pcba_x pcba_y rel_twist_axis` rows
    """
    lines = _read_lines(path, "blade geometry")
    headers = []
    rows = []
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        if line.startswith('#'):
            headers.append(line)
            continue
        tokens = _tokenize(line)
        if not tokens or tokens[0] != "DEF":
            continue
        try:
            if len(tokens) < 10:
                raise BadFormatError("Insufficient columns for blade geometry row")
            rows.append([float(token) for token in tokens[1:10]])
        except TurbPrepError as e:
            raise with_line_number(e, number, f"Error parsing blade geometry line {number}: {e}") from e
        except ValueError as e:
            raise BadFormatError(f"Error parsing blade geometry line {number}: {e}", line_number=number) from e

    if not rows:
        raise BadFormatError(f"No valid blade geometry data found in file: {path}")
    blade = BladeGeometry(pd.DataFrame(rows, columns=BladeGeometry.COLUMNS), headers)
    logger.debug("Loaded blade geometry %s (%s stations)", path, blade.number_of_sections)
    return blade


def load_file_list(path: str) -> FileList:
    """
    Loads a list of data files, one path per line.

    Relative paths are resolved against the directory of the list file. Missing files are
    reported with a warning; a list without any existing file raises FileAccessError.
    """
    lines = _read_lines(path, "file list")
    base_dir = os.path.dirname(os.path.abspath(path))
    file_list = FileList(path)
    for line in lines:
        trimmed = line.strip()
        if not trimmed:
            continue
        if trimmed.startswith('#'):
            file_list.add_header(line.strip(" \r\n"))
            continue
        entry = trimmed if os.path.isabs(trimmed) else os.path.join(base_dir, trimmed)
        file_list.add_file_path(os.path.normpath(entry))

    if len(file_list) == 0:
        raise BadFormatError(f"No file paths found in: {path}")
    missing = file_list.missing_files()
    if file_list.valid_file_count() == 0:
        raise FileAccessError("No valid files found in {}. Missing files:\n{}".format(
            path, "\n".join(f"  - {m}" for m in missing)))
    for m in missing:
        warnings.warn(f"File listed in {path} not found: {m}")
    return file_list


# ---------------------------------------------------------------------------- exporters

def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(parent, exist_ok=True)
    except OSError as e:
        raise FileAccessError(f"Cannot create output directory: {parent}") from e


def _write_csv(df: pd.DataFrame, path: str, what: str) -> None:
    _ensure_parent(path)
    try:
        df.to_csv(path, index=False)
    except OSError as e:
        raise FileAccessError(f"Cannot write {what} file: {path}") from e


def write_tecplot_sections(sections: Sequence[InterpolatedBladeSection], path: str,
                           title: str = "Blade sections") -> None:
    """
    Writes the placed section contours as Tecplot ASCII zones, one closed zone per section.
    """
    _ensure_parent(path)
    try:
        with open(path, 'w') as f:
            f.write(f'TITLE="{title}"\n')
            f.write('VARIABLES="X_chord[m]" "Y_thick[m]" "Z_radius[m]" "chord[m]" "radius[m]" "rel_thickness[%]"\n')
            for section in sections:
                xyz = section.transformed_coordinates()
                closed = np.vstack([xyz, xyz[:1]])
                f.write(f'ZONE I={len(closed)},T="{section.airfoil_name}_r{section.radius:.2f}m"\n')
                for x, y, z in closed:
                    f.write(f"{x:.8e}\t{y:.8e}\t{z:.8e}\t{section.chord:.8e}\t"
                            f"{section.radius:.8e}\t{section.relative_thickness:.6f}\n")
    except OSError as e:
        raise FileAccessError(f"Cannot write Tecplot file: {path}") from e
    logger.info("Wrote %s sections to %s", len(sections), path)


def write_dxf_sections(sections: Sequence[InterpolatedBladeSection], path: str) -> None:
    """Writes each placed section contour as a closed 3-D polyline on layer SECTIONS."""
    doc = ezdxf.new('R2000')
    doc.header['$INSUNITS'] = 6
    doc.layers.add('SECTIONS')
    msp = doc.modelspace()
    for section in sections:
        points = [tuple(p) for p in section.transformed_coordinates()]
        msp.add_polyline3d(points, close=True, dxfattribs={'layer': 'SECTIONS'})
    _ensure_parent(path)
    try:
        doc.saveas(path)
    except OSError as e:
        raise FileAccessError(f"Cannot write DXF file: {path}") from e
    logger.info("Wrote %s sections to %s", len(sections), path)


def write_sections_h5(sections: Sequence[InterpolatedBladeSection], path: str) -> None:
    """
    Writes the sections to an HDF5 file.

    Structure:
        /section_000 ... one group per section with attributes radius, chord, twist,
        relative_thickness, pitch_axis_offset, airfoil_name and datasets
        `coordinates` (placed, Nx3), `canonical` (unit chord, Nx3) and, when available,
        `performance` (alpha, cl, cd, cm).
    """
    _ensure_parent(path)
    try:
        with h5py.File(path, 'w') as h5:
            h5.attrs['number_of_sections'] = len(sections)
            for i, section in enumerate(sections):
                group = h5.create_group(f"section_{i:03d}")
                group.attrs['radius'] = section.radius
                group.attrs['chord'] = section.chord
                group.attrs['twist'] = section.twist
                group.attrs['relative_thickness'] = section.relative_thickness
                group.attrs['pitch_axis_offset'] = section.pitch_axis_offset
                group.attrs['airfoil_name'] = section.airfoil_name
                group.create_dataset('coordinates', data=section.transformed_coordinates())
                group.create_dataset('canonical', data=section.geometry.coordinates_array())
                if section.performance is not None and not section.performance.is_empty():
                    group.create_dataset('performance', data=section.performance.to_dataframe().to_numpy())
    except OSError as e:
        raise FileAccessError(f"Cannot write HDF5 file: {path}") from e
    logger.info("Wrote %s sections to %s", len(sections), path)


def write_wind_field_h5(manager, path: str) -> None:
    """
    Writes a loaded wind field to HDF5.

    Structure:
        - axis_y, axis_z: grid axes [m]
        - velocity: (n_timesteps, num_z, num_y, 3) velocities [m/s]
        - attributes hub_height, hub_velocity, timestep, padding, usable_iterations
    """
    grid = manager.grid
    timing = manager.timing
    velocity = manager.velocity.data.reshape(-1, grid.num_z, grid.num_y, 3)
    _ensure_parent(path)
    try:
        with h5py.File(path, 'w') as h5:
            h5.create_dataset('axis_y', data=grid.axis_y())
            h5.create_dataset('axis_z', data=grid.axis_z())
            h5.create_dataset('velocity', data=velocity, compression='gzip')
            h5.attrs['hub_height'] = grid.hub_height
            h5.attrs['hub_velocity'] = manager.hub_velocity()
            h5.attrs['timestep'] = timing.timestep
            h5.attrs['padding'] = timing.padding
            h5.attrs['usable_iterations'] = timing.usable_iterations
    except OSError as e:
        raise FileAccessError(f"Cannot write HDF5 file: {path}") from e
    logger.info("Wrote wind field to %s", path)


def write_performance_csv(performance: AirfoilPerformance, path: str) -> None:
    _write_csv(performance.to_dataframe(), path, "performance")


def write_polar_csv(polar: AirfoilPolar, path: str) -> None:
    """One row per operating condition: reynolds, mach, alpha, cl, cd, cm."""
    _write_csv(polar.to_dataframe(), path, "polar")


def write_section_summary_csv(sections: Sequence[InterpolatedBladeSection], path: str) -> None:
    """One row per section: radius, chord, twist, relative thickness, pitch axis offset, airfoil."""
    df = pd.DataFrame({
        'radius': [s.radius for s in sections],
        'chord': [s.chord for s in sections],
        'twist': [s.twist for s in sections],
        'relative_thickness': [s.relative_thickness for s in sections],
        'pitch_axis_offset': [s.pitch_axis_offset for s in sections],
        'airfoil': [s.airfoil_name for s in sections],
    })
    _write_csv(df, path, "section summary")


def write_velocity_time_series(manager, point, path: str) -> None:
    """Writes the velocity history at `point` over the usable window as CSV (time, u, v, w)."""
    times, velocities = manager.velocity_time_series(point)
    df = pd.DataFrame({
        'time': times,
        'u': velocities[:, 0],
        'v': velocities[:, 1],
        'w': velocities[:, 2],
    })
    _write_csv(df, path, "velocity time series")
