"""Snap detection: nearest compatible connector and the pose that aligns to it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .config import SnapConfig, resolve_config
from .connections import connected_group, item_geometry, local_connector
from .geometry import Connector, GeometryCache
from .layout import EndpointRef, Layout
from .logging_utils import apply_debug_logging
from .transform import Pose, to_world, world_connectors
from .vectors import angle_diff, distance, normalize_angle, rotation_matrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapCandidate:
    moving: EndpointRef
    target: EndpointRef
    distance: float
    angle_diff: float

    def sort_key(self) -> Tuple[float, str, str, str]:
        return (
            self.distance,
            self.moving.connector_key,
            self.target.item_id,
            self.target.connector_key,
        )


@dataclass(frozen=True)
class SnapResult:
    pose: Pose
    moving: EndpointRef
    target: EndpointRef
    distance: float


def anti_parallel_error(moving: Connector, target: Connector) -> float:
    """Signed angle between ``moving`` and the reversed ``target`` direction."""

    return angle_diff(moving.direction_deg, target.direction_deg + 180.0)


def solve_alignment(local: Connector, tentative: Pose, target: Connector) -> Pose:
    """Pose that lands ``local`` exactly on ``target``, facing it.

    ``target`` is in world space; ``tentative`` only seeds the rotation delta.
    """

    current = to_world(local, tentative)
    desired = target.direction_deg + 180.0
    delta = desired - current.direction_deg
    rotation = normalize_angle(tentative.rotation_deg + delta)
    rx, ry = rotation_matrix(rotation) @ np.array([local.x_mm, local.y_mm], dtype=float)
    return Pose(target.x_mm - float(rx), target.y_mm - float(ry), rotation)


def collect_candidates(
    layout: Layout,
    item_id: str,
    tentative: Pose,
    *,
    cache: Optional[GeometryCache] = None,
    config: Optional[SnapConfig] = None,
) -> List[SnapCandidate]:
    """All connector pairs within the distance and angle window, best first."""

    config = resolve_config(config)
    cache = cache if cache is not None else GeometryCache()
    item = layout.item(item_id)
    if item is None:
        return []
    geometry = item_geometry(layout, item, cache)
    if geometry is None:
        return []

    group = connected_group(layout, item_id)
    connected = layout.connected_endpoints()
    moving = [
        (key, world)
        for key, world in world_connectors(geometry, tentative)
        if EndpointRef(item_id, key) not in connected
    ]

    accepted: List[SnapCandidate] = []
    for other in layout.placed_items:
        if other.id in group or other.track_system_id != item.track_system_id:
            continue
        other_geometry = item_geometry(layout, other, cache)
        if other_geometry is None:
            continue
        for target_key, target_world in world_connectors(other_geometry, other.pose):
            target_ref = EndpointRef(other.id, target_key)
            if target_ref in connected:
                continue
            for moving_key, moving_world in moving:
                dist = distance(moving_world.position, target_world.position)
                if dist > config.distance_mm:
                    continue
                diff = anti_parallel_error(moving_world, target_world)
                if abs(diff) > config.angle_deg:
                    continue
                accepted.append(
                    SnapCandidate(EndpointRef(item_id, moving_key), target_ref, dist, diff)
                )
    accepted.sort(key=SnapCandidate.sort_key)
    return accepted


def find_snap(
    layout: Layout,
    item_id: str,
    tentative: Pose,
    *,
    cache: Optional[GeometryCache] = None,
    config: Optional[SnapConfig] = None,
) -> Optional[SnapResult]:
    """Best alignment for ``item_id`` dragged to ``tentative``, or ``None`` for free placement.

    Ties on distance go to the lexicographically smallest
    (moving key, target item id, target key).
    """

    cache = cache if cache is not None else GeometryCache()
    candidates = collect_candidates(layout, item_id, tentative, cache=cache, config=config)
    if not candidates:
        return None
    best = candidates[0]
    local = local_connector(layout, best.moving, cache)
    target_item = layout.item(best.target.item_id)
    target_local = local_connector(layout, best.target, cache)
    if local is None or target_item is None or target_local is None:
        return None
    target_world = to_world(target_local, target_item.pose)
    pose = solve_alignment(local, tentative, target_world)
    logger.debug(
        'Snap %s -> %s at %.3f mm (angle error %.3f deg)',
        best.moving,
        best.target,
        best.distance,
        best.angle_diff,
    )
    return SnapResult(pose=pose, moving=best.moving, target=best.target, distance=best.distance)


def alignment_error(
    layout: Layout,
    a: EndpointRef,
    b: EndpointRef,
    *,
    cache: Optional[GeometryCache] = None,
) -> Optional[Tuple[float, float]]:
    """Distance (mm) and anti-parallel error (deg) between two placed endpoints."""

    item_a = layout.item(a.item_id)
    item_b = layout.item(b.item_id)
    local_a = local_connector(layout, a, cache)
    local_b = local_connector(layout, b, cache)
    if item_a is None or item_b is None or local_a is None or local_b is None:
        return None
    world_a = to_world(local_a, item_a.pose)
    world_b = to_world(local_b, item_b.pose)
    return distance(world_a.position, world_b.position), anti_parallel_error(world_a, world_b)


apply_debug_logging(globals(), logger=logger)
