"""Connection store: invariant-preserving connect/disconnect and group queries."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Set, Union

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

from .config import SnapConfig, resolve_config
from .geometry import ComponentGeometry, Connector, GeometryCache
from .layout import Connection, EndpointRef, Layout, PlacedItem

logger = logging.getLogger(__name__)

SELF_CONNECTION = 'self-connection'
ENDPOINT_IN_USE = 'endpoint-in-use'
WIDTH_MISMATCH = 'width-mismatch'
UNKNOWN_ITEM = 'unknown-item'
UNKNOWN_CONNECTOR = 'unknown-connector'


@dataclass
class ConnectOK:
    layout: Layout
    connection: Connection


@dataclass
class ConnectFail:
    reason: str
    message: str


ConnectResult = Union[ConnectOK, ConnectFail]


def item_geometry(
    layout: Layout, item: PlacedItem, cache: Optional[GeometryCache] = None
) -> Optional[ComponentGeometry]:
    definition = layout.component_for(item)
    if definition is None:
        return None
    cache = cache if cache is not None else GeometryCache()
    return cache.get(definition, item.track_system_id)


def local_connector(
    layout: Layout, ref: EndpointRef, cache: Optional[GeometryCache] = None
) -> Optional[Connector]:
    item = layout.item(ref.item_id)
    if item is None:
        return None
    geometry = item_geometry(layout, item, cache)
    return geometry.connector(ref.connector_key) if geometry else None


def connect(
    layout: Layout,
    a: EndpointRef,
    b: EndpointRef,
    *,
    cache: Optional[GeometryCache] = None,
    config: Optional[SnapConfig] = None,
) -> ConnectResult:
    """Record a connection between ``a`` and ``b``; geometry is not checked here."""

    config = resolve_config(config)
    if a.item_id == b.item_id:
        return ConnectFail(SELF_CONNECTION, f'cannot connect item {a.item_id} to itself')
    for ref in (a, b):
        if layout.item(ref.item_id) is None:
            return ConnectFail(UNKNOWN_ITEM, f'item {ref.item_id} is not placed')
    for ref in (a, b):
        if layout.is_endpoint_connected(ref):
            return ConnectFail(ENDPOINT_IN_USE, f'endpoint {ref} is already connected')

    conn_a = local_connector(layout, a, cache)
    conn_b = local_connector(layout, b, cache)
    if conn_a is None or conn_b is None:
        missing = a if conn_a is None else b
        return ConnectFail(UNKNOWN_CONNECTOR, f'endpoint {missing} does not exist')
    if abs(conn_a.width_mm - conn_b.width_mm) > config.width_tolerance_mm:
        return ConnectFail(
            WIDTH_MISMATCH,
            f'track widths differ ({conn_a.width_mm:g} mm vs {conn_b.width_mm:g} mm)',
        )

    connection = Connection(a, b)
    logger.info('Connected %s <-> %s', a, b)
    return ConnectOK(
        layout=replace(layout, connections=layout.connections + (connection,)),
        connection=connection,
    )


def disconnect(layout: Layout, a: EndpointRef, b: EndpointRef) -> Layout:
    remaining = tuple(c for c in layout.connections if not c.matches(a, b))
    if len(remaining) == len(layout.connections):
        return layout
    logger.info('Disconnected %s <-> %s', a, b)
    return replace(layout, connections=remaining)


def delete_item(layout: Layout, item_id: str) -> Layout:
    """Remove an item together with every connection touching it."""

    if layout.item(item_id) is None:
        return layout
    kept = tuple(c for c in layout.connections if not c.involves_item(item_id))
    logger.info(
        'Deleted item %s and %d connection(s)',
        item_id,
        len(layout.connections) - len(kept),
    )
    return replace(
        layout,
        placed_items=tuple(placed for placed in layout.placed_items if placed.id != item_id),
        connections=kept,
    )


def _adjacency(layout: Layout) -> Dict[str, Set[str]]:
    graph: Dict[str, Set[str]] = {placed.id: set() for placed in layout.placed_items}
    for connection in layout.connections:
        a_id, b_id = connection.a.item_id, connection.b.item_id
        graph.setdefault(a_id, set()).add(b_id)
        graph.setdefault(b_id, set()).add(a_id)
    return graph


def connected_group(layout: Layout, item_id: str) -> Set[str]:
    """Breadth-first traversal from ``item_id``; always contains ``item_id``."""

    graph = _adjacency(layout)
    visited = {item_id}
    queue = deque([item_id])
    while queue:
        current = queue.popleft()
        for neighbour in graph.get(current, ()):
            if neighbour not in visited:
                visited.add(neighbour)
                queue.append(neighbour)
    return visited


def group_partition(layout: Layout) -> List[Set[str]]:
    """Every connected group at once, ordered by first member in placement order."""

    ids = [placed.id for placed in layout.placed_items]
    if not ids:
        return []
    index = {item_id: idx for idx, item_id in enumerate(ids)}
    rows: List[int] = []
    cols: List[int] = []
    for connection in layout.connections:
        a_idx = index.get(connection.a.item_id)
        b_idx = index.get(connection.b.item_id)
        if a_idx is None or b_idx is None:
            continue
        rows.append(a_idx)
        cols.append(b_idx)
    matrix = csr_matrix(
        (np.ones(len(rows), dtype=np.int8), (rows, cols)),
        shape=(len(ids), len(ids)),
    )
    _, labels = connected_components(matrix, directed=False)

    groups: Dict[int, Set[str]] = {}
    order: List[int] = []
    for item_id, label in zip(ids, labels):
        label = int(label)
        if label not in groups:
            groups[label] = set()
            order.append(label)
        groups[label].add(item_id)
    return [groups[label] for label in order]


def is_group_grounded(layout: Layout, group: Set[str]) -> bool:
    return any(placed.is_grounded for placed in layout.placed_items if placed.id in group)


def free_connectors(
    layout: Layout, item_id: str, cache: Optional[GeometryCache] = None
) -> List[str]:
    item = layout.item(item_id)
    geometry = item_geometry(layout, item, cache) if item else None
    if geometry is None:
        return []
    connected = layout.connected_endpoints()
    return [
        key for key in geometry.connector_keys() if EndpointRef(item_id, key) not in connected
    ]
