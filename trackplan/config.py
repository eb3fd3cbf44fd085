"""Configuration helpers for snapping and alignment."""

from __future__ import annotations

import copy
from dataclasses import dataclass


@dataclass
class SnapConfig:
    """Tolerances shared by the snap detector and the connection store."""

    distance_mm: float = 8.0
    angle_deg: float = 15.0
    width_tolerance_mm: float = 1e-3
    alignment_epsilon: float = 1e-6
    default_length_mm: float = 10.0


_SNAP_CONFIG = SnapConfig()


def get_snap_config() -> SnapConfig:
    return copy.deepcopy(_SNAP_CONFIG)


def set_snap_config(config: SnapConfig) -> None:
    global _SNAP_CONFIG
    _SNAP_CONFIG = copy.deepcopy(config)


def resolve_config(config: SnapConfig | None) -> SnapConfig:
    return config if config is not None else get_snap_config()
