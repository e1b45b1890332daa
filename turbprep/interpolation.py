from scipy import interpolate
from turbprep.errors import AxisTooSmallError, DomainError, OutOfRangeError
from turbprep.structs import TurbSimGrid, TurbSimVelocityData


import numpy as np


from typing import Sequence, Tuple, Union


INTERPOLATION_METHODS = ("linear", "cubic", "akima", "monotonic_cubic")

MONOTONIC_SLOPE_EPS = 1e-10


def basic_linear_interpolation(x: float, x1: float, x2: float, y1: float, y2: float) -> float:
    """Straight line through (x1, y1) and (x2, y2) evaluated at x."""
    if x2 == x1:
        return y1
    return y1 + (x - x1) * (y2 - y1) / (x2 - x1)


def linear_interpolation(x: Union[float, np.ndarray],
                         X: Sequence[float],
                         Y: Sequence[float]) -> Union[float, np.ndarray]:
    """
    Piecewise linear interpolation on a sampled curve with flat extrapolation.

    For x <= X[0] the result is Y[0], for x >= X[-1] it is Y[-1]; otherwise the segment
    with X[i] < x <= X[i+1] is used. Repeated abscissae (vertical segments) are allowed.

    Args:
        x: Target abscissa, scalar or array.
        X: Non-decreasing abscissae.
        Y: Ordinates, same length as X.

    Returns:
        Interpolated value(s), a float for a scalar input.
    """
    X = np.asarray(X, dtype=float)
    Y = np.asarray(Y, dtype=float)
    if X.size == 0 or X.size != Y.size:
        raise DomainError(f"Linear interpolation needs matching non-empty arrays, got {X.size} and {Y.size}")
    scalar = np.ndim(x) == 0
    xq = np.atleast_1d(np.asarray(x, dtype=float))

    if X.size == 1:
        out = np.full_like(xq, Y[0])
    else:
        idx = np.searchsorted(X, xq, side='left')
        idx = np.clip(idx, 1, X.size - 1)
        x0 = X[idx - 1]
        x1 = X[idx]
        with np.errstate(divide='ignore', invalid='ignore'):
            frac = np.divide(xq - x0, x1 - x0, out=np.zeros_like(xq), where=(x1 != x0))
        out = Y[idx - 1] + frac * (Y[idx] - Y[idx - 1])
        out = np.where(xq <= X[0], Y[0], out)
        out = np.where(xq >= X[-1], Y[-1], out)

    return float(out[0]) if scalar else out


def bilinear_interpolation(target_mach: float,
                           target_alpha: float,
                           machs: Sequence[float],
                           angles: Sequence[Sequence[float]],
                           data: Sequence[Sequence[float]]) -> float:
    """
    Interpolation on a (mach, alpha) table where each mach block has its own alpha axis.

    Args:
        target_mach: Mach number, clamped to the tabulated range.
        target_alpha: Angle of attack in degrees.
        machs: Increasing mach values, one per block.
        angles: Alpha axis of each mach block.
        data: Values of each mach block on its alpha axis.

    Returns:
        Interpolated value.
    """
    if len(machs) == 0:
        raise DomainError("Bilinear interpolation needs at least one mach block")
    if len(machs) == 1:
        return linear_interpolation(target_alpha, angles[0], data[0])

    target_mach = min(max(target_mach, machs[0]), machs[-1])
    block = 0
    for i in range(len(machs) - 1):
        if target_mach <= machs[i + 1]:
            block = i
            break
    data0 = linear_interpolation(target_alpha, angles[block], data[block])
    data1 = linear_interpolation(target_alpha, angles[block + 1], data[block + 1])
    return basic_linear_interpolation(target_mach, machs[block], machs[block + 1], data0, data1)


def trilinear_interpolation(target_reynolds: float,
                            target_mach: float,
                            target_alpha: float,
                            reynolds: Sequence[float],
                            machs: Sequence[Sequence[float]],
                            angles: Sequence[Sequence[Sequence[float]]],
                            data: Sequence[Sequence[Sequence[float]]]) -> float:
    """Same as bilinear_interpolation one level up, over Reynolds blocks of (mach, alpha) tables."""
    if len(reynolds) == 0:
        raise DomainError("Trilinear interpolation needs at least one Reynolds block")
    if len(reynolds) == 1:
        return bilinear_interpolation(target_mach, target_alpha, machs[0], angles[0], data[0])

    target_reynolds = min(max(target_reynolds, reynolds[0]), reynolds[-1])
    block = 0
    for i in range(len(reynolds) - 1):
        if target_reynolds <= reynolds[i + 1]:
            block = i
            break
    data0 = bilinear_interpolation(target_mach, target_alpha, machs[block], angles[block], data[block])
    data1 = bilinear_interpolation(target_mach, target_alpha, machs[block + 1], angles[block + 1], data[block + 1])
    return basic_linear_interpolation(target_reynolds, reynolds[block], reynolds[block + 1], data0, data1)


def monotonic_cubic_derivatives(X: np.ndarray, Y: np.ndarray) -> np.ndarray:
    """
    Node derivatives of the monotonic cubic Hermite interpolant.

    End derivatives are the adjacent secant slopes. Interior derivatives are the harmonic mean
    of the neighbouring slopes, or zero at local extrema and flat segments.
    """
    m = np.diff(Y) / np.diff(X)
    d = np.empty_like(Y)
    d[0] = m[0]
    d[-1] = m[-1]
    m0 = m[:-1]
    m1 = m[1:]
    flat = (np.sign(m0) != np.sign(m1)) | (np.abs(m0) < MONOTONIC_SLOPE_EPS) | (np.abs(m1) < MONOTONIC_SLOPE_EPS)
    with np.errstate(divide='ignore', invalid='ignore'):
        harmonic = 2.0 / (1.0 / m0 + 1.0 / m1)
    d[1:-1] = np.where(flat, 0.0, harmonic)
    return d


def monotonic_cubic_interpolation(X: Sequence[float], Y: Sequence[float], x: float) -> float:
    """
    Monotonic cubic Hermite interpolation.

    Args:
        X: Strictly increasing abscissae, at least 3.
        Y: Ordinates.
        x: Target abscissa; outside [X[0], X[-1]] the end values are returned.

    Returns:
        Interpolated value.
    """
    X = np.asarray(X, dtype=float)
    Y = np.asarray(Y, dtype=float)
    if X.size != Y.size or X.size < 3:
        raise DomainError("Need at least 3 points for monotonic cubic interpolation")

    d = monotonic_cubic_derivatives(X, Y)

    k = int(np.searchsorted(X, x, side='left'))
    if k == 0:
        return float(Y[0])
    if k == X.size:
        return float(Y[-1])
    i = k - 1

    h = X[i + 1] - X[i]
    t = (x - X[i]) / h
    h00 = 2 * t**3 - 3 * t**2 + 1
    h10 = t**3 - 2 * t**2 + t
    h01 = -2 * t**3 + 3 * t**2
    h11 = t**3 - t**2
    return float(h00 * Y[i] + h10 * h * d[i] + h01 * Y[i + 1] + h11 * h * d[i + 1])


def interpolate_1d(X: Sequence[float], Y: Sequence[float], x: float, method: str = "monotonic_cubic") -> float:
    """
    Evaluate a spanwise distribution with the selected interpolation strategy.

    Args:
        X: Increasing abscissae.
        Y: Ordinates.
        x: Target abscissa; outside the data range the end values are returned.
        method: One of INTERPOLATION_METHODS.

    Returns:
        Interpolated value.
    """
    if method == "linear":
        return linear_interpolation(x, X, Y)
    if method == "monotonic_cubic":
        return monotonic_cubic_interpolation(X, Y, x)
    if method not in INTERPOLATION_METHODS:
        raise OutOfRangeError(f"Unknown interpolation method: {method}")

    X = np.asarray(X, dtype=float)
    Y = np.asarray(Y, dtype=float)
    if X.size != Y.size or X.size < 3:
        raise DomainError(f"Need at least 3 points for {method} interpolation")
    if x <= X[0]:
        return float(Y[0])
    if x >= X[-1]:
        return float(Y[-1])

    if method == "cubic":
        spline = interpolate.CubicSpline(X, Y, bc_type='natural')
    else:
        spline = interpolate.Akima1DInterpolator(X, Y)
    return float(spline(x))


def find_lower_index(axis: np.ndarray, value: float) -> int:
    """
    Lower index i of the axis cell holding `value`, so that axis[i] <= value < axis[i+1].

    Values outside the axis are clamped to the first or last cell.
    """
    n = len(axis)
    if n < 2:
        raise AxisTooSmallError(f"Interpolation axis needs at least 2 points, got {n}")
    if value >= axis[-1]:
        return n - 2
    i = int(np.searchsorted(axis, value, side='right')) - 1
    return min(max(i, 0), n - 2)


def _find_cells_and_weights(axis_y: np.ndarray,
                            axis_z: np.ndarray,
                            y_q: np.ndarray,
                            z_q: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Find cells and weights for bilinear interpolation of many query points.

    For each query (y_q, z_q), clamp to flat-extrapolate and return:
        i,j: lower cell indices along y and z
        t,u: local linear coordinates in [0,1] within that cell

    Args:
        axis_y: Lateral grid axis.
        axis_z: Vertical grid axis.
        y_q: Query y values.
        z_q: Query z values.

    Returns:
        Tuple of (i, j, t, u) arrays for interpolation.
    """
    if len(axis_y) < 2 or len(axis_z) < 2:
        raise AxisTooSmallError("Interpolation axes need at least 2 points")

    # clamp for flat extrapolation
    y_q = np.clip(y_q, axis_y[0], axis_y[-1])
    z_q = np.clip(z_q, axis_z[0], axis_z[-1])

    # locate lower cell indices
    i = np.searchsorted(axis_y, y_q, side='right') - 1
    j = np.searchsorted(axis_z, z_q, side='right') - 1
    i = np.clip(i, 0, len(axis_y) - 2)
    j = np.clip(j, 0, len(axis_z) - 2)

    y0 = axis_y[i]
    y1 = axis_y[i + 1]
    z0 = axis_z[j]
    z1 = axis_z[j + 1]

    with np.errstate(divide='ignore', invalid='ignore'):
        t = np.divide(y_q - y0, y1 - y0, out=np.zeros_like(y_q), where=(y1 != y0))
        u = np.divide(z_q - z0, z1 - z0, out=np.zeros_like(z_q), where=(z1 != z0))

    return i, j, t, u


class BilinearTurbSimInterpolator:
    """
    Bilinear interpolation of TurbSim velocities in the (y, z) plane.

    The bounding cell is located first and its four corners are read directly from the flat
    per-timestep array, followed by two lerps along z and one along y for each component.
    """

    def interpolate(self,
                    point: Sequence[float],
                    raw_index: int,
                    grid: TurbSimGrid,
                    velocity: TurbSimVelocityData) -> np.ndarray:
        """
        Interpolate the velocity vector at a point.

        Args:
            point: (x, y, z) query point; x is ignored.
            raw_index: Index of the stored timestep.
            grid: Wind field grid.
            velocity: Velocity store.

        Returns:
            Velocity vector (u, v, w).
        """
        axis_y = grid.axis_y()
        axis_z = grid.axis_z()
        y = float(point[1])
        z = float(point[2])
        iy = find_lower_index(axis_y, y)
        iz = find_lower_index(axis_z, z)

        ts = velocity.timestep(raw_index)
        ny = grid.num_y
        v00 = ts[iz * ny + iy]
        v10 = ts[(iz + 1) * ny + iy]
        v01 = ts[iz * ny + (iy + 1)]
        v11 = ts[(iz + 1) * ny + (iy + 1)]

        tz = _unit_fraction(z, axis_z[iz], axis_z[iz + 1])
        ty = _unit_fraction(y, axis_y[iy], axis_y[iy + 1])

        col0 = (1.0 - tz) * v00 + tz * v10
        col1 = (1.0 - tz) * v01 + tz * v11
        return (1.0 - ty) * col0 + ty * col1

    def interpolate_many(self,
                         points: np.ndarray,
                         raw_index: int,
                         grid: TurbSimGrid,
                         velocity: TurbSimVelocityData) -> np.ndarray:
        """
        Vectorized version of `interpolate` for an Nx3 array of points.

        Returns:
            Nx3 array of velocity vectors.
        """
        points = np.atleast_2d(np.asarray(points, dtype=float))
        i, j, t, u = _find_cells_and_weights(grid.axis_y(), grid.axis_z(), points[:, 1], points[:, 2])

        ts = velocity.timestep(raw_index)
        ny = grid.num_y
        f00 = ts[j * ny + i]
        f10 = ts[(j + 1) * ny + i]
        f01 = ts[j * ny + (i + 1)]
        f11 = ts[(j + 1) * ny + (i + 1)]

        col0 = (1.0 - u)[:, None] * f00 + u[:, None] * f10
        col1 = (1.0 - u)[:, None] * f01 + u[:, None] * f11
        return (1.0 - t)[:, None] * col0 + t[:, None] * col1


def _unit_fraction(value: float, a0: float, a1: float) -> float:
    if a1 == a0:
        return 0.0
    return min(max((value - a0) / (a1 - a0), 0.0), 1.0)


def resample_airfoil(xy: np.ndarray, npoints: int = 200) -> np.ndarray:
    """
    Resample an airfoil contour on a cosine-spaced x grid.

    Process:
        1. Identify the leading edge as the point with minimum x.
        2. Split into upper (before the leading edge) and lower surface.
        3. Interpolate both surfaces on `npoints / 2` cosine-spaced x values.
        4. Recombine from the trailing edge over the upper side back to the trailing edge.

    Args:
        xy: Nx2 matrix of (x, y) coordinates running from the upper trailing edge.
        npoints: Number of points of the resampled contour (default: 200).

    Returns:
        Resampled contour, Nx2.
    """
    xy = np.asarray(xy, dtype=float)[:, :2]
    le_idx = int(np.argmin(xy[:, 0]))

    upper = xy[:le_idx + 1, :]
    lower = xy[le_idx:, :]

    # np.unique sorts ascending and drops repeated trailing-edge abscissae
    x_upper, iu = np.unique(upper[:, 0], return_index=True)
    x_lower, il = np.unique(lower[:, 0], return_index=True)
    y_upper = upper[iu, 1]
    y_lower = lower[il, 1]

    x_min = max(np.min(x_upper), np.min(x_lower))
    x_max = min(np.max(x_upper), np.max(x_lower))
    beta = np.linspace(0.0, np.pi, int(round(npoints / 2)))
    x_resample = x_min + 0.5 * (1.0 - np.cos(beta)) * (x_max - x_min)

    itp_upper = interpolate.interp1d(x_upper, y_upper, bounds_error=False, fill_value='extrapolate')
    itp_lower = interpolate.interp1d(x_lower, y_lower, bounds_error=False, fill_value='extrapolate')

    x_combined = np.concatenate([np.flip(x_resample), x_resample[1:]])
    y_combined = np.concatenate([np.flip(itp_upper(x_resample)), itp_lower(x_resample[1:])])
    return np.column_stack([x_combined, y_combined])
