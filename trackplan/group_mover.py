"""Rigid moves of whole connected groups around a pivot item."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Set, Tuple

import numpy as np

from .connections import connected_group, is_group_grounded
from .layout import EndpointRef, Layout
from .transform import Pose
from .vectors import normalize_angle, rotation_matrix

logger = logging.getLogger(__name__)


def move_group(
    layout: Layout,
    pivot_id: str,
    resolved: Pose,
    *,
    group: Optional[Iterable[str]] = None,
    respect_grounding: bool = True,
) -> Layout:
    """Move ``pivot_id`` to ``resolved`` and carry its connected group along.

    Every member keeps its pose relative to the pivot. When any member of the
    group is grounded the layout is returned unchanged.
    """

    pivot = layout.item(pivot_id)
    if pivot is None:
        return layout
    members: Set[str] = set(group) if group is not None else connected_group(layout, pivot_id)
    members.add(pivot_id)
    if respect_grounding and is_group_grounded(layout, members):
        logger.info('Group of %s is grounded; move ignored', pivot_id)
        return layout

    delta = resolved.rotation_deg - pivot.rotation_deg
    rot = rotation_matrix(delta)
    old_pivot = np.array([pivot.x, pivot.y], dtype=float)
    new_pivot = np.array([resolved.x, resolved.y], dtype=float)

    moved = []
    for placed in layout.placed_items:
        if placed.id not in members:
            continue
        if placed.id == pivot_id:
            moved.append(
                placed.with_pose(Pose(resolved.x, resolved.y, normalize_angle(resolved.rotation_deg)))
            )
            continue
        offset = np.array([placed.x, placed.y], dtype=float) - old_pivot
        nx, ny = rot @ offset + new_pivot
        moved.append(
            placed.with_pose(Pose(float(nx), float(ny), normalize_angle(placed.rotation_deg + delta)))
        )
    logger.debug('Moved %d item(s) with pivot %s by %.6f deg', len(moved), pivot_id, delta)
    return layout.replace_items(moved)


def rotate_group(
    layout: Layout,
    pivot_id: str,
    delta_deg: float,
    *,
    about: Optional[Tuple[float, float]] = None,
) -> Layout:
    """Rotate the group of ``pivot_id`` by ``delta_deg`` around ``about`` (default: pivot origin)."""

    pivot = layout.item(pivot_id)
    if pivot is None:
        return layout
    cx, cy = about if about is not None else (pivot.x, pivot.y)
    ox, oy = rotation_matrix(delta_deg) @ np.array([pivot.x - cx, pivot.y - cy], dtype=float)
    resolved = Pose(float(ox) + cx, float(oy) + cy, pivot.rotation_deg + delta_deg)
    return move_group(layout, pivot_id, resolved)


@dataclass(frozen=True)
class ConnectSides:
    fixed: EndpointRef
    moving: EndpointRef
    fixed_group: frozenset
    moving_group: frozenset


def choose_sides(
    layout: Layout,
    first: EndpointRef,
    second: EndpointRef,
) -> Optional[ConnectSides]:
    """Decide which endpoint's group stays put when connecting ``first`` and ``second``.

    ``second`` is the most recently selected endpoint. A grounded group is always
    fixed; otherwise the larger group is fixed and on a tie ``second`` moves.
    Returns ``None`` when both groups are grounded.
    """

    group_first = frozenset(connected_group(layout, first.item_id))
    group_second = frozenset(connected_group(layout, second.item_id))
    grounded_first = is_group_grounded(layout, set(group_first))
    grounded_second = is_group_grounded(layout, set(group_second))

    if grounded_first and grounded_second:
        return None
    if grounded_first:
        moving_second = True
    elif grounded_second:
        moving_second = False
    elif len(group_first) != len(group_second):
        moving_second = len(group_second) < len(group_first)
    else:
        moving_second = True

    if moving_second:
        return ConnectSides(first, second, group_first, group_second)
    return ConnectSides(second, first, group_second, group_first)


def set_grounded(layout: Layout, item_id: str, grounded: bool) -> Layout:
    item = layout.item(item_id)
    if item is None or item.is_grounded == grounded:
        return layout
    return layout.replace_items([replace(item, is_grounded=grounded)])
