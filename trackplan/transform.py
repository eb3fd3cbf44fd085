"""Rigid transforms between a piece's local frame and world space."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .geometry import ComponentGeometry, Connector
from .vectors import Vec2, normalize_vec, rotation_matrix


@dataclass(frozen=True)
class Pose:
    x: float
    y: float
    rotation_deg: float

    @property
    def position(self) -> Vec2:
        return self.x, self.y


def to_world(local: Connector, pose: Pose) -> Connector:
    rot = rotation_matrix(pose.rotation_deg)
    px, py = rot @ np.array([local.x_mm, local.y_mm], dtype=float)
    dx, dy = rot @ np.array(local.dir, dtype=float)
    return Connector(
        x_mm=float(px) + pose.x,
        y_mm=float(py) + pose.y,
        dir=normalize_vec((float(dx), float(dy))),
        width_mm=local.width_mm,
    )


def to_local(world: Connector, pose: Pose) -> Connector:
    """Inverse of :func:`to_world` for the same ``pose``."""

    inv = rotation_matrix(-pose.rotation_deg)
    px, py = inv @ np.array([world.x_mm - pose.x, world.y_mm - pose.y], dtype=float)
    dx, dy = inv @ np.array(world.dir, dtype=float)
    return Connector(
        x_mm=float(px),
        y_mm=float(py),
        dir=normalize_vec((float(dx), float(dy))),
        width_mm=world.width_mm,
    )


def transform_point(point: Vec2, pose: Pose) -> Vec2:
    x, y = rotation_matrix(pose.rotation_deg) @ np.array(point, dtype=float)
    return float(x) + pose.x, float(y) + pose.y


def world_connectors(geometry: ComponentGeometry, pose: Pose) -> List[Tuple[str, Connector]]:
    return [(key, to_world(local, pose)) for key, local in geometry.connectors()]

