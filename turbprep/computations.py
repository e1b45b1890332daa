"""
Geometric utility functions for the TurbPrep package.
"""

import numpy as np
import math
from typing import Sequence


def rotation_matrix_2d(angle_deg: float) -> np.ndarray:
    """Counter-clockwise 2x2 rotation by `angle_deg` degrees."""
    c = math.cos(math.radians(angle_deg))
    s = math.sin(math.radians(angle_deg))
    return np.array([
        [c, -s],
        [s, c]
    ])


def rotate_points_2d(xy: np.ndarray, angle_deg: float, pivot: Sequence[float] = (0.0, 0.0)) -> np.ndarray:
    """
    Rotate Nx2 points counter-clockwise by `angle_deg` degrees about `pivot`.

    Args:
        xy: Nx2 array of (x, y) points.
        angle_deg: Rotation angle in degrees, positive counter-clockwise.
        pivot: Centre of rotation.

    Returns:
        Nx2 array of rotated points.
    """
    p = np.asarray(pivot, dtype=float)
    return (rotation_matrix_2d(angle_deg) @ (np.asarray(xy, dtype=float) - p).T).T + p
