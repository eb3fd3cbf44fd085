"""Immutable layout value types."""

from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from .catalog import TrackComponentDefinition, TrackSystemDefinition
from .transform import Pose


class LayoutInvariantError(RuntimeError):
    """Raised when a layout violates a structural invariant (a programming error)."""


@dataclass(frozen=True)
class PlacedItem:
    id: str
    track_system_id: str
    component_id: str
    x: float = 0.0
    y: float = 0.0
    rotation_deg: float = 0.0
    is_grounded: bool = False

    @property
    def pose(self) -> Pose:
        return Pose(self.x, self.y, self.rotation_deg)

    def with_pose(self, pose: Pose) -> "PlacedItem":
        return replace(self, x=pose.x, y=pose.y, rotation_deg=pose.rotation_deg)


@dataclass(frozen=True, order=True)
class EndpointRef:
    item_id: str
    connector_key: str

    def __str__(self) -> str:
        return f'{self.item_id}:{self.connector_key}'


@dataclass(frozen=True)
class Connection:
    """Unordered pair of endpoints."""

    a: EndpointRef
    b: EndpointRef

    @property
    def endpoints(self) -> Tuple[EndpointRef, EndpointRef]:
        return self.a, self.b

    def has_endpoint(self, ref: EndpointRef) -> bool:
        return ref == self.a or ref == self.b

    def matches(self, first: EndpointRef, second: EndpointRef) -> bool:
        return {self.a, self.b} == {first, second}

    def involves_item(self, item_id: str) -> bool:
        return self.a.item_id == item_id or self.b.item_id == item_id

    def other(self, ref: EndpointRef) -> EndpointRef:
        return self.b if ref == self.a else self.a


@dataclass(frozen=True)
class Layout:
    track_systems: Tuple[TrackSystemDefinition, ...] = ()
    active_track_system_id: Optional[str] = None
    placed_items: Tuple[PlacedItem, ...] = ()
    connections: Tuple[Connection, ...] = ()
    shapes: Tuple[Mapping[str, Any], ...] = ()

    def __post_init__(self) -> None:
        # shapes are opaque records, stored read-only
        frozen = tuple(MappingProxyType(dict(shape)) for shape in self.shapes)
        object.__setattr__(self, 'shapes', frozen)

    def item(self, item_id: str) -> Optional[PlacedItem]:
        for placed in self.placed_items:
            if placed.id == item_id:
                return placed
        return None

    def items_by_id(self) -> Dict[str, PlacedItem]:
        return {placed.id: placed for placed in self.placed_items}

    def track_system(self, system_id: Optional[str]) -> Optional[TrackSystemDefinition]:
        for system in self.track_systems:
            if system.id == system_id:
                return system
        return None

    @property
    def active_track_system(self) -> Optional[TrackSystemDefinition]:
        return self.track_system(self.active_track_system_id)

    def component_for(self, item: PlacedItem) -> Optional[TrackComponentDefinition]:
        system = self.track_system(item.track_system_id)
        return system.component(item.component_id) if system else None

    def connection_for(self, ref: EndpointRef) -> Optional[Connection]:
        for connection in self.connections:
            if connection.has_endpoint(ref):
                return connection
        return None

    def is_endpoint_connected(self, ref: EndpointRef) -> bool:
        return self.connection_for(ref) is not None

    def connected_endpoints(self) -> FrozenSet[EndpointRef]:
        return frozenset(ref for connection in self.connections for ref in connection.endpoints)

    def replace_items(self, updated: Iterable[PlacedItem]) -> "Layout":
        changes = {placed.id: placed for placed in updated}
        if not changes:
            return self
        return replace(
            self,
            placed_items=tuple(changes.get(placed.id, placed) for placed in self.placed_items),
        )


def check_invariants(layout: Layout) -> None:
    """Raise :class:`LayoutInvariantError` on dangling, duplicate or self connections."""

    item_ids = {placed.id for placed in layout.placed_items}
    if len(item_ids) != len(layout.placed_items):
        raise LayoutInvariantError('duplicate placed item ids')
    used: Dict[EndpointRef, Connection] = {}
    for connection in layout.connections:
        if connection.a.item_id == connection.b.item_id:
            raise LayoutInvariantError(f'self connection on item {connection.a.item_id}')
        for ref in connection.endpoints:
            if ref.item_id not in item_ids:
                raise LayoutInvariantError(f'connection references missing item {ref.item_id}')
            if ref in used:
                raise LayoutInvariantError(f'endpoint {ref} used by two connections')
            used[ref] = connection


def empty_layout(track_systems: Iterable[TrackSystemDefinition]) -> Layout:
    systems = tuple(track_systems)
    return Layout(
        track_systems=systems,
        active_track_system_id=systems[0].id if systems else None,
    )
