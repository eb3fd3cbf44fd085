"""Editing operations over immutable layouts and the interactive controller built on them."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import List, Optional, Union

from .config import SnapConfig, resolve_config
from .connections import (
    ConnectFail,
    connect,
    connected_group,
    delete_item,
    disconnect,
    is_group_grounded,
    local_connector,
)
from .geometry import GeometryCache
from .group_mover import choose_sides, move_group, rotate_group, set_grounded
from .layout import Connection, EndpointRef, Layout, LayoutInvariantError, PlacedItem
from .logging_utils import apply_debug_logging
from .snapping import SnapResult, alignment_error, find_snap, solve_alignment
from .transform import Pose, to_world

logger = logging.getLogger(__name__)

GROUNDED = 'grounded'
SAME_GROUP = 'same-group'
NO_SELECTION = 'no-selection'
NO_PREVIEW = 'no-preview'

ROTATION_STEP_DEG = 15.0


@dataclass
class EditOK:
    layout: Layout
    message: str = ''
    connection: Optional[Connection] = None


@dataclass
class EditFail:
    reason: str
    message: str


EditResult = Union[EditOK, EditFail]


@dataclass(frozen=True)
class DragPreview:
    """Non-committed drag state; ``layout`` shows the group at the previewed pose."""

    item_id: str
    tentative: Pose
    pose: Pose
    snap: Optional[SnapResult]
    layout: Layout


def _fail(reason: str, message: str) -> EditFail:
    logger.info('Edit rejected (%s): %s', reason, message)
    return EditFail(reason, message)


def _from_connect_fail(result: ConnectFail) -> EditFail:
    return _fail(result.reason, result.message)


def add_item(
    layout: Layout,
    component_id: str,
    pose: Pose = Pose(0.0, 0.0, 0.0),
    *,
    track_system_id: Optional[str] = None,
    item_id: Optional[str] = None,
) -> EditResult:
    system = layout.track_system(track_system_id or layout.active_track_system_id)
    if system is None:
        return _fail('unknown-track-system', f'track system {track_system_id!r} is not loaded')
    if system.component(component_id) is None:
        return _fail('unknown-component', f'component {component_id!r} is not in {system.id}')
    new_id = item_id or str(uuid.uuid4())
    if layout.item(new_id) is not None:
        return _fail('duplicate-item', f'item {new_id} already exists')
    placed = PlacedItem(
        id=new_id,
        track_system_id=system.id,
        component_id=component_id,
        x=pose.x,
        y=pose.y,
        rotation_deg=pose.rotation_deg,
    )
    logger.info('Placed %s (%s) at (%.3f, %.3f)', new_id, component_id, pose.x, pose.y)
    return EditOK(replace(layout, placed_items=layout.placed_items + (placed,)))


def preview_drag(
    layout: Layout,
    item_id: str,
    tentative: Pose,
    *,
    cache: Optional[GeometryCache] = None,
    config: Optional[SnapConfig] = None,
) -> Optional[DragPreview]:
    """Compute where a drag would land without touching ``layout``.

    Returns ``None`` when the item is unknown or its group is grounded.
    """

    if layout.item(item_id) is None:
        return None
    group = connected_group(layout, item_id)
    if is_group_grounded(layout, group):
        return None
    snap = find_snap(layout, item_id, tentative, cache=cache, config=config)
    pose = snap.pose if snap is not None else tentative
    moved = move_group(layout, item_id, pose, group=group)
    return DragPreview(item_id=item_id, tentative=tentative, pose=pose, snap=snap, layout=moved)


def _warn_if_misaligned(
    layout: Layout,
    a: EndpointRef,
    b: EndpointRef,
    cache: Optional[GeometryCache],
    config: SnapConfig,
) -> None:
    error = alignment_error(layout, a, b, cache=cache)
    if error is None:
        return
    dist, angle = error
    if dist > config.alignment_epsilon or abs(angle) > config.alignment_epsilon:
        logger.warning(
            'Alignment tolerance exceeded for %s <-> %s: %.3e mm, %.3e deg',
            a,
            b,
            dist,
            angle,
        )


def commit_drag(
    layout: Layout,
    preview: DragPreview,
    *,
    cache: Optional[GeometryCache] = None,
    config: Optional[SnapConfig] = None,
) -> EditResult:
    config = resolve_config(config)
    if layout.item(preview.item_id) is None:
        return _fail(NO_SELECTION, f'item {preview.item_id} is not placed')
    if is_group_grounded(layout, connected_group(layout, preview.item_id)):
        return _fail(GROUNDED, 'the dragged group is grounded')
    moved = move_group(layout, preview.item_id, preview.pose)
    if preview.snap is None:
        return EditOK(moved)

    _warn_if_misaligned(moved, preview.snap.moving, preview.snap.target, cache, config)
    result = connect(moved, preview.snap.moving, preview.snap.target, cache=cache, config=config)
    if isinstance(result, ConnectFail):
        # keep the snapped position even if the connection itself is refused
        return EditOK(moved, message=result.message)
    return EditOK(result.layout, connection=result.connection)


def rotate_item(
    layout: Layout,
    item_id: str,
    delta_deg: float,
    *,
    pivot: Optional[EndpointRef] = None,
    cache: Optional[GeometryCache] = None,
) -> EditResult:
    """Rotate the group of ``item_id``; a pivot endpoint keeps its world position."""

    item = layout.item(item_id)
    if item is None:
        return _fail(NO_SELECTION, f'item {item_id} is not placed')
    if is_group_grounded(layout, connected_group(layout, item_id)):
        return _fail(GROUNDED, 'the selected group is grounded')
    about = None
    if pivot is not None and pivot.item_id in connected_group(layout, item_id):
        pivot_item = layout.item(pivot.item_id)
        local = local_connector(layout, pivot, cache)
        if local is not None and pivot_item is not None:
            about = to_world(local, pivot_item.pose).position
    return EditOK(rotate_group(layout, item_id, delta_deg, about=about))


def connect_endpoints(
    layout: Layout,
    first: EndpointRef,
    second: EndpointRef,
    *,
    cache: Optional[GeometryCache] = None,
    config: Optional[SnapConfig] = None,
) -> EditResult:
    """Align the moving side onto the fixed side and connect the two endpoints.

    ``second`` is the most recently selected endpoint.
    """

    config = resolve_config(config)
    cache = cache if cache is not None else GeometryCache()

    # run the store's checks before moving anything
    checked = connect(layout, first, second, cache=cache, config=config)
    if isinstance(checked, ConnectFail):
        return _from_connect_fail(checked)

    error = alignment_error(layout, first, second, cache=cache)
    already_aligned = (
        error is not None and error[0] <= config.distance_mm and abs(error[1]) <= config.angle_deg
    )

    if second.item_id in connected_group(layout, first.item_id):
        if not already_aligned:
            return _fail(SAME_GROUP, 'endpoints belong to the same group and are not aligned')
        logger.info('Closing loop between %s and %s', first, second)
        return EditOK(checked.layout, connection=checked.connection)

    sides = choose_sides(layout, first, second)
    if sides is None:
        if not already_aligned:
            return _fail(GROUNDED, 'both groups are grounded')
        return EditOK(checked.layout, connection=checked.connection)

    moving_item = layout.item(sides.moving.item_id)
    fixed_item = layout.item(sides.fixed.item_id)
    moving_local = local_connector(layout, sides.moving, cache)
    fixed_local = local_connector(layout, sides.fixed, cache)
    if moving_item is None or fixed_item is None or moving_local is None or fixed_local is None:
        raise LayoutInvariantError(f'endpoints {first} / {second} vanished after validation')
    target = to_world(fixed_local, fixed_item.pose)
    pose = solve_alignment(moving_local, moving_item.pose, target)

    moved = move_group(layout, moving_item.id, pose, group=sides.moving_group)
    _warn_if_misaligned(moved, sides.fixed, sides.moving, cache, config)
    result = connect(moved, first, second, cache=cache, config=config)
    if isinstance(result, ConnectFail):
        return _from_connect_fail(result)
    return EditOK(result.layout, connection=result.connection)


def disconnect_endpoints(layout: Layout, first: EndpointRef, second: EndpointRef) -> EditResult:
    return EditOK(disconnect(layout, first, second))


def remove_item(layout: Layout, item_id: str) -> EditResult:
    if layout.item(item_id) is None:
        return _fail(NO_SELECTION, f'item {item_id} is not placed')
    return EditOK(delete_item(layout, item_id))


def toggle_grounded(layout: Layout, item_id: str) -> EditResult:
    item = layout.item(item_id)
    if item is None:
        return _fail(NO_SELECTION, f'item {item_id} is not placed')
    return EditOK(set_grounded(layout, item_id, not item.is_grounded))


@dataclass
class LayoutEditor:
    """Interactive controller: holds the committed layout plus selection and drag state.

    Every operation replaces :attr:`layout` with a new value on success and
    leaves it untouched on failure; the last advisory text is kept in
    :attr:`message`.
    """

    layout: Layout
    config: Optional[SnapConfig] = None
    cache: GeometryCache = field(default_factory=GeometryCache)
    selected_item_id: Optional[str] = None
    selected_endpoints: List[EndpointRef] = field(default_factory=list)
    message: str = ''
    _preview: Optional[DragPreview] = field(default=None, init=False, repr=False)

    @property
    def preview(self) -> Optional[DragPreview]:
        return self._preview

    @property
    def display_layout(self) -> Layout:
        return self._preview.layout if self._preview is not None else self.layout

    def _apply(self, result: EditResult) -> EditResult:
        if isinstance(result, EditOK):
            self.layout = result.layout
            self.message = result.message
        else:
            self.message = result.message
        self._prune_selection()
        return result

    def _prune_selection(self) -> None:
        if self.selected_item_id and self.layout.item(self.selected_item_id) is None:
            self.selected_item_id = None
        self.selected_endpoints = [
            ref for ref in self.selected_endpoints if self.layout.item(ref.item_id) is not None
        ]

    def select_item(self, item_id: Optional[str]) -> None:
        self.selected_item_id = item_id
        self.selected_endpoints = []

    def select_endpoint(self, ref: EndpointRef, additive: bool = False) -> None:
        """Plain selection replaces; additive toggles and keeps the last two endpoints."""

        if not additive:
            chosen = [ref]
        elif ref in self.selected_endpoints:
            chosen = [entry for entry in self.selected_endpoints if entry != ref]
        else:
            chosen = (self.selected_endpoints + [ref])[-2:]
        self.selected_endpoints = chosen
        self.selected_item_id = chosen[-1].item_id if chosen else None

    def add_item(self, component_id: str, pose: Pose = Pose(0.0, 0.0, 0.0), **kwargs) -> EditResult:
        result = self._apply(add_item(self.layout, component_id, pose, **kwargs))
        if isinstance(result, EditOK):
            self.selected_item_id = result.layout.placed_items[-1].id
        return result

    def preview_drag(self, item_id: str, tentative: Pose) -> Optional[DragPreview]:
        self._preview = preview_drag(
            self.layout, item_id, tentative, cache=self.cache, config=self.config
        )
        if self._preview is not None:
            self.selected_item_id = item_id
        return self._preview

    def commit_drag(self) -> EditResult:
        preview, self._preview = self._preview, None
        if preview is None:
            return self._apply(EditFail(NO_PREVIEW, 'no drag in progress'))
        return self._apply(commit_drag(self.layout, preview, cache=self.cache, config=self.config))

    def cancel_drag(self) -> None:
        self._preview = None

    def rotate_selected(self, delta_deg: float = ROTATION_STEP_DEG) -> EditResult:
        if self.selected_item_id is None:
            return self._apply(EditFail(NO_SELECTION, 'nothing selected'))
        pivot = next(
            (ref for ref in self.selected_endpoints if ref.item_id == self.selected_item_id),
            None,
        )
        return self._apply(
            rotate_item(self.layout, self.selected_item_id, delta_deg, pivot=pivot, cache=self.cache)
        )

    def connect_selected_endpoints(
        self, first: Optional[EndpointRef] = None, second: Optional[EndpointRef] = None
    ) -> EditResult:
        if first is None or second is None:
            if len(self.selected_endpoints) != 2:
                return self._apply(EditFail(NO_SELECTION, 'select exactly two endpoints'))
            first, second = self.selected_endpoints
        return self._apply(
            connect_endpoints(self.layout, first, second, cache=self.cache, config=self.config)
        )

    def disconnect_selected_endpoints(
        self, first: Optional[EndpointRef] = None, second: Optional[EndpointRef] = None
    ) -> EditResult:
        if first is None or second is None:
            if len(self.selected_endpoints) != 2:
                return self._apply(EditFail(NO_SELECTION, 'select exactly two endpoints'))
            first, second = self.selected_endpoints
        return self._apply(disconnect_endpoints(self.layout, first, second))

    def delete_item(self, item_id: Optional[str] = None) -> EditResult:
        target = item_id or self.selected_item_id
        if target is None:
            return self._apply(EditFail(NO_SELECTION, 'nothing selected'))
        return self._apply(remove_item(self.layout, target))

    def toggle_grounded(self, item_id: Optional[str] = None) -> EditResult:
        target = item_id or self.selected_item_id
        if target is None:
            return self._apply(EditFail(NO_SELECTION, 'nothing selected'))
        return self._apply(toggle_grounded(self.layout, target))


apply_debug_logging(globals(), logger=logger)
