"""Plain-data export and all-or-nothing import of projects and layouts."""

from __future__ import annotations

import json
import logging
import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .catalog import CatalogError, is_finite_number, parse_track_system, track_system_to_dict
from .layout import (
    Connection,
    EndpointRef,
    Layout,
    LayoutInvariantError,
    PlacedItem,
    check_invariants,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1

SHAPE_NUMERIC_FIELDS: Dict[str, Tuple[str, ...]] = {
    'rectangle': ('x', 'y', 'width', 'height', 'rotationDeg'),
    'circle': ('x', 'y', 'width', 'rotationDeg'),
    'text': ('x', 'y', 'fontSize', 'width', 'height', 'rotationDeg'),
    'dimension': ('x', 'y', 'length', 'rotationDeg', 'offsetMm'),
}


class LayoutImportError(ValueError):
    pass


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    created_at: str
    updated_at: str
    layout: Layout


@dataclass
class ImportOK:
    project: Project


@dataclass
class ImportFail:
    error: str


ImportResult = Union[ImportOK, ImportFail]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_project(name: str, layout: Layout) -> Project:
    timestamp = _now_iso()
    return Project(id=str(uuid.uuid4()), name=name, created_at=timestamp, updated_at=timestamp, layout=layout)


def touch(project: Project, layout: Layout) -> Project:
    return replace(project, layout=layout, updated_at=_now_iso())


def layout_to_dict(layout: Layout) -> Dict[str, Any]:
    return {
        'activeTrackSystemId': layout.active_track_system_id,
        'trackSystems': [track_system_to_dict(system) for system in layout.track_systems],
        'placedItems': [
            {
                'id': placed.id,
                'trackSystemId': placed.track_system_id,
                'componentId': placed.component_id,
                'x': placed.x,
                'y': placed.y,
                'rotationDeg': placed.rotation_deg,
                'isGrounded': placed.is_grounded,
            }
            for placed in layout.placed_items
        ],
        'connections': [
            {
                'endpoints': [
                    {'itemId': ref.item_id, 'connectorKey': ref.connector_key}
                    for ref in connection.endpoints
                ]
            }
            for connection in layout.connections
        ],
        'shapes': [dict(shape) for shape in layout.shapes],
    }


def _iter_numbers(value: Any, path: str) -> Iterator[Tuple[str, float]]:
    if isinstance(value, bool):
        return
    if isinstance(value, (int, float)):
        yield path, value
    elif isinstance(value, Mapping):
        for key, nested in value.items():
            yield from _iter_numbers(nested, f'{path}.{key}')
    elif isinstance(value, (list, tuple)):
        for idx, nested in enumerate(value):
            yield from _iter_numbers(nested, f'{path}[{idx}]')


def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise LayoutImportError(f'{what} must be an object')
    return value


def _require_list(raw: Mapping[str, Any], key: str) -> List[Any]:
    value = raw.get(key, [])
    if not isinstance(value, list):
        raise LayoutImportError(f'"{key}" must be a list')
    return value


def _require_str(raw: Mapping[str, Any], key: str, what: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value:
        raise LayoutImportError(f'{what} is missing "{key}"')
    return value


def _require_number(raw: Mapping[str, Any], key: str, what: str) -> float:
    value = raw.get(key)
    if not is_finite_number(value):
        raise LayoutImportError(f'{what} has a non-finite or missing "{key}"')
    return float(value)


def _parse_placed_item(raw: Any, index: int) -> PlacedItem:
    what = f'placed item #{index}'
    raw = _require_mapping(raw, what)
    grounded = raw.get('isGrounded', False)
    if not isinstance(grounded, bool):
        raise LayoutImportError(f'{what} has a non-boolean "isGrounded"')
    return PlacedItem(
        id=_require_str(raw, 'id', what),
        track_system_id=_require_str(raw, 'trackSystemId', what),
        component_id=_require_str(raw, 'componentId', what),
        x=_require_number(raw, 'x', what),
        y=_require_number(raw, 'y', what),
        rotation_deg=_require_number(raw, 'rotationDeg', what),
        is_grounded=grounded,
    )


def _parse_connection(raw: Any, index: int) -> Connection:
    what = f'connection #{index}'
    raw = _require_mapping(raw, what)
    endpoints = raw.get('endpoints')
    if not isinstance(endpoints, list) or len(endpoints) != 2:
        raise LayoutImportError(f'{what} must have exactly two endpoints')
    refs = []
    for endpoint in endpoints:
        endpoint = _require_mapping(endpoint, f'{what} endpoint')
        refs.append(
            EndpointRef(
                _require_str(endpoint, 'itemId', what),
                _require_str(endpoint, 'connectorKey', what),
            )
        )
    return Connection(refs[0], refs[1])


def _parse_shape(raw: Any, index: int) -> Dict[str, Any]:
    what = f'shape #{index}'
    raw = _require_mapping(raw, what)
    kind = _require_str(raw, 'type', what)
    _require_str(raw, 'id', what)
    numeric = SHAPE_NUMERIC_FIELDS.get(kind)
    if numeric is None:
        raise LayoutImportError(f'{what} has unknown type "{kind}"')
    for key in numeric:
        _require_number(raw, key, what)
    if kind == 'text' and not isinstance(raw.get('text'), str):
        raise LayoutImportError(f'{what} is missing "text"')
    return dict(raw)


def layout_from_dict(raw: Any) -> Layout:
    """Build a :class:`Layout` from plain data; raises :class:`LayoutImportError`."""

    raw = _require_mapping(raw, 'layout')
    for path, number in _iter_numbers(raw, 'layout'):
        if not math.isfinite(number):
            raise LayoutImportError(f'non-finite number at {path}')

    try:
        systems = tuple(parse_track_system(entry) for entry in _require_list(raw, 'trackSystems'))
    except CatalogError as exc:
        raise LayoutImportError(f'invalid track system: {exc}') from exc
    if not systems:
        raise LayoutImportError('no track systems found in the import')

    components = {system.id: system.component_ids() for system in systems}
    placed = tuple(
        _parse_placed_item(entry, idx) for idx, entry in enumerate(_require_list(raw, 'placedItems'))
    )
    for item in placed:
        if item.component_id not in components.get(item.track_system_id, set()):
            raise LayoutImportError(
                f'placed item {item.id} references missing track system or component '
                f'{item.track_system_id}/{item.component_id}'
            )

    ids = {item.id for item in placed}
    connections = tuple(
        _parse_connection(entry, idx) for idx, entry in enumerate(_require_list(raw, 'connections'))
    )
    for connection in connections:
        for ref in connection.endpoints:
            if ref.item_id not in ids:
                raise LayoutImportError(f'connection references missing item {ref.item_id}')

    shapes = tuple(_parse_shape(entry, idx) for idx, entry in enumerate(_require_list(raw, 'shapes')))

    active = raw.get('activeTrackSystemId')
    if not isinstance(active, str) or active not in components:
        active = systems[0].id

    layout = Layout(
        track_systems=systems,
        active_track_system_id=active,
        placed_items=placed,
        connections=connections,
        shapes=shapes,
    )
    try:
        check_invariants(layout)
    except LayoutInvariantError as exc:
        raise LayoutImportError(str(exc)) from exc
    return layout


def project_to_dict(project: Project) -> Dict[str, Any]:
    return {
        'version': EXPORT_VERSION,
        'project': {
            'id': project.id,
            'name': project.name,
            'createdAt': project.created_at,
            'updatedAt': project.updated_at,
            'layout': layout_to_dict(project.layout),
        },
    }


def export_project(project: Project) -> str:
    return json.dumps(project_to_dict(project), indent=2, allow_nan=False)


def _reject_constant(token: str) -> float:
    raise LayoutImportError(f'non-finite number {token} in file')


def _valid_iso(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    try:
        datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    return value


def parse_project_import(text: str) -> ImportResult:
    """Parse an exported project; any problem rejects the whole payload."""

    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except LayoutImportError as exc:
        return ImportFail(str(exc))
    except json.JSONDecodeError:
        return ImportFail('File is not valid JSON.')

    if not isinstance(parsed, dict):
        return ImportFail('Project payload is missing.')
    version = parsed.get('version')
    if version is not None and version != EXPORT_VERSION:
        return ImportFail(f'Unsupported export version {version}.')

    raw_project = parsed.get('project', parsed)
    if not isinstance(raw_project, dict):
        return ImportFail('Project payload is missing.')
    if 'layout' not in raw_project:
        return ImportFail('Layout is missing from the file.')

    try:
        layout = layout_from_dict(raw_project['layout'])
    except LayoutImportError as exc:
        logger.warning('Rejected project import: %s', exc)
        return ImportFail(str(exc))

    name = raw_project.get('name')
    name = name.strip() if isinstance(name, str) and name.strip() else 'Imported Project'
    now = _now_iso()
    project_id = raw_project.get('id')
    project = Project(
        id=project_id if isinstance(project_id, str) and project_id else str(uuid.uuid4()),
        name=name,
        created_at=_valid_iso(raw_project.get('createdAt')) or now,
        updated_at=_valid_iso(raw_project.get('updatedAt')) or now,
        layout=layout,
    )
    logger.info(
        'Imported project %r: %d item(s), %d connection(s)',
        project.name,
        len(layout.placed_items),
        len(layout.connections),
    )
    return ImportOK(project)
