from __future__ import annotations

import math
from typing import Tuple

import numpy as np

Vec2 = Tuple[float, float]

TRACK_EDGE_WIDTH_MM = 28.0


def normalize_angle(deg: float) -> float:
    """Wrap ``deg`` into the half-open interval (-180, 180]."""

    result = math.fmod(deg, 360.0)
    if result > 180.0:
        result -= 360.0
    elif result <= -180.0:
        result += 360.0
    return result


def normalize_vec(v: Vec2) -> Vec2:
    length = math.hypot(v[0], v[1])
    if length <= 1e-12:
        return 0.0, 0.0
    return v[0] / length, v[1] / length


def _clean(value: float) -> float:
    # cos/sin of quarter turns come back as ~1e-17 instead of 0
    return 0.0 if abs(value) < 1e-15 else value


def rotation_matrix(deg: float) -> np.ndarray:
    rad = math.radians(deg)
    c = _clean(math.cos(rad))
    s = _clean(math.sin(rad))
    return np.array([[c, -s], [s, c]], dtype=float)


def rotate(v: Vec2, deg: float) -> Vec2:
    x, y = rotation_matrix(deg) @ np.array(v, dtype=float)
    return float(x), float(y)


def unit_from_deg(deg: float) -> Vec2:
    rad = math.radians(deg)
    return normalize_vec((_clean(math.cos(rad)), _clean(math.sin(rad))))


def angle_of(v: Vec2) -> float:
    return normalize_angle(math.degrees(math.atan2(v[1], v[0])))


def angle_diff(a_deg: float, b_deg: float) -> float:
    """Signed smallest difference ``a - b`` in degrees."""

    return normalize_angle(a_deg - b_deg)


def distance(a: Vec2, b: Vec2) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def arc_end(radius: float, angle_deg: float, sign: int, x_offset: float = 0.0) -> Vec2:
    """End point of an arc leaving ``(x_offset, 0)`` along +x and turning by ``angle_deg``."""

    theta = math.radians(angle_deg)
    return x_offset + radius * math.sin(theta), sign * (radius - radius * math.cos(theta))
