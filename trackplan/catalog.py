"""Track catalog definitions and load-time validation of variant parameters."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

TRACK_COMPONENT_TYPES: Tuple[str, ...] = ('straight', 'curve', 'switch', 'crossing', 'other')

TRACK_COMPONENT_TYPE_LABELS: Dict[str, str] = {
    'straight': 'Straight',
    'curve': 'Curve',
    'switch': 'Switch',
    'crossing': 'Crossing',
    'other': 'Other',
}

SWITCH_DIRECTIONS = ('left', 'right')


class CatalogError(Exception):
    pass


@dataclass(frozen=True)
class SimpleSwitchParams:
    direction: str
    straight_length_mm: float
    branch_radius_mm: float
    branch_angle_deg: float
    variant: str = field(default='simple-switch', init=False)


@dataclass(frozen=True)
class CurvedSwitchParams:
    direction: str
    inner_radius_mm: float
    outer_radius_mm: float
    angle_deg: float
    variant: str = field(default='curved-switch', init=False)


@dataclass(frozen=True)
class ThreeWaySwitchParams:
    straight_length_mm: float
    branch_radius_mm: float
    branch_angle_deg: float
    branch_offset_mm: float
    variant: str = field(default='three-way', init=False)


@dataclass(frozen=True)
class YSwitchParams:
    stub_length_mm: float
    branch_radius_mm: float
    branch_angle_deg: float
    variant: str = field(default='y-switch', init=False)


@dataclass(frozen=True)
class DoubleSlipParams:
    length_mm: float
    crossing_angle_deg: float
    slip_radius_mm: float
    variant: str = field(default='double-slip', init=False)


@dataclass(frozen=True)
class CrossingParams:
    length_mm: float
    crossing_angle_deg: float
    variant: str = field(default='crossing', init=False)


@dataclass(frozen=True)
class InvalidParams:
    """Record for a known variant whose required fields did not validate.

    ``raw`` keeps the original meta record so it is written back unchanged.
    """

    variant: str
    missing: Tuple[str, ...]
    raw: Mapping[str, Any] = field(default_factory=dict, hash=False)


VariantParams = Union[
    SimpleSwitchParams,
    CurvedSwitchParams,
    ThreeWaySwitchParams,
    YSwitchParams,
    DoubleSlipParams,
    CrossingParams,
    InvalidParams,
]

# variant tag -> parameter struct; fields map to camelCase catalog keys
_PARAM_TYPES = {
    'simple-switch': SimpleSwitchParams,
    'curved-switch': CurvedSwitchParams,
    'three-way': ThreeWaySwitchParams,
    'y-switch': YSwitchParams,
    'double-slip': DoubleSlipParams,
    'crossing': CrossingParams,
}


@dataclass(frozen=True)
class TrackComponentDefinition:
    id: str
    type: str
    label: str = ''
    length_mm: Optional[float] = None
    radius_mm: Optional[float] = None
    angle_deg: Optional[float] = None
    clockwise: bool = False
    article: Optional[str] = None
    params: Optional[VariantParams] = None


@dataclass(frozen=True)
class TrackSystemDefinition:
    id: str
    name: str
    scale: str = ''
    ratio: float = 1.0
    gauge_mm: float = 16.5
    parallel_spacing_mm: float = 0.0
    module_length_mm: float = 0.0
    components: Tuple[TrackComponentDefinition, ...] = ()

    def component(self, component_id: str) -> Optional[TrackComponentDefinition]:
        for component in self.components:
            if component.id == component_id:
                return component
        return None

    def component_ids(self) -> set[str]:
        return {component.id for component in self.components}


def is_finite_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def parse_variant_params(raw: object) -> Optional[VariantParams]:
    """Turn a raw ``meta`` record into a typed parameter struct.

    Returns ``None`` when the record carries no recognised variant tag, which
    geometry evaluation treats as simple-switch defaults.
    """

    if not isinstance(raw, Mapping):
        return None
    variant = raw.get('variant')
    param_type = _PARAM_TYPES.get(variant) if isinstance(variant, str) else None
    if param_type is None:
        if variant is not None:
            logger.info('Unrecognised variant tag %r, using simple-switch defaults', variant)
        return None

    values: Dict[str, Any] = {}
    missing: List[str] = []
    for f in fields(param_type):
        if not f.init:
            continue
        key = _camel(f.name)
        value = raw.get(key)
        if f.name == 'direction':
            if value not in SWITCH_DIRECTIONS:
                missing.append(key)
                continue
        elif not is_finite_number(value):
            missing.append(key)
            continue
        else:
            value = float(value)
        values[f.name] = value

    if missing:
        logger.warning('Variant %s is missing required fields: %s', variant, ', '.join(missing))
        return InvalidParams(
            variant=variant, missing=tuple(missing), raw=MappingProxyType(dict(raw))
        )
    return param_type(**values)


def _optional_number(raw: Mapping[str, Any], key: str) -> Optional[float]:
    value = raw.get(key)
    return float(value) if is_finite_number(value) else None


def parse_component(raw: object) -> TrackComponentDefinition:
    if not isinstance(raw, Mapping):
        raise CatalogError(f'component entry must be a mapping, got {type(raw).__name__}')
    component_id = raw.get('id')
    if not isinstance(component_id, str) or not component_id:
        raise CatalogError('component entry is missing a string id')

    kind = raw.get('type')
    if kind not in TRACK_COMPONENT_TYPES:
        logger.info('Component %s has unknown type %r, loading as other', component_id, kind)
        kind = 'other'

    label = raw.get('label')
    article = raw.get('article')
    params = parse_variant_params(raw.get('meta')) if kind in ('switch', 'crossing') else None

    return TrackComponentDefinition(
        id=component_id,
        type=kind,
        label=label if isinstance(label, str) else component_id,
        length_mm=_optional_number(raw, 'lengthMm'),
        radius_mm=_optional_number(raw, 'radiusMm'),
        angle_deg=_optional_number(raw, 'angleDeg'),
        clockwise=raw.get('clockwise') is True,
        article=article if isinstance(article, str) else None,
        params=params,
    )


def parse_track_system(raw: object) -> TrackSystemDefinition:
    if not isinstance(raw, Mapping):
        raise CatalogError('track system entry must be a mapping')
    system_id = raw.get('id')
    if not isinstance(system_id, str) or not system_id:
        raise CatalogError('track system is missing a string id')
    components_raw = raw.get('components')
    if not isinstance(components_raw, Sequence) or isinstance(components_raw, str):
        raise CatalogError(f'track system {system_id} has no component list')

    components = tuple(parse_component(entry) for entry in components_raw)
    ids = [component.id for component in components]
    if len(set(ids)) != len(ids):
        raise CatalogError(f'track system {system_id} has duplicate component ids')

    def number(key: str, default: float) -> float:
        value = raw.get(key)
        return float(value) if is_finite_number(value) else default

    name = raw.get('name')
    scale = raw.get('scale')
    system = TrackSystemDefinition(
        id=system_id,
        name=name if isinstance(name, str) else system_id,
        scale=scale if isinstance(scale, str) else '',
        ratio=number('ratio', 1.0),
        gauge_mm=number('gaugeMm', 16.5),
        parallel_spacing_mm=number('parallelSpacingMm', 0.0),
        module_length_mm=number('moduleLengthMm', 0.0),
        components=components,
    )
    logger.info('Loaded track system %s with %d component(s)', system.id, len(components))
    return system


def _params_to_dict(params: VariantParams) -> Dict[str, Any]:
    if isinstance(params, InvalidParams):
        return {'variant': params.variant, **params.raw}
    payload: Dict[str, Any] = {'variant': params.variant}
    for f in fields(params):
        if f.init:
            payload[_camel(f.name)] = getattr(params, f.name)
    return payload


def component_to_dict(component: TrackComponentDefinition) -> Dict[str, Any]:
    payload: Dict[str, Any] = {'id': component.id, 'label': component.label, 'type': component.type}
    for key, value in (
        ('lengthMm', component.length_mm),
        ('radiusMm', component.radius_mm),
        ('angleDeg', component.angle_deg),
    ):
        if value is not None:
            payload[key] = value
    if component.clockwise:
        payload['clockwise'] = True
    if component.article is not None:
        payload['article'] = component.article
    if component.params is not None:
        payload['meta'] = _params_to_dict(component.params)
    return payload


def track_system_to_dict(system: TrackSystemDefinition) -> Dict[str, Any]:
    return {
        'id': system.id,
        'name': system.name,
        'scale': system.scale,
        'ratio': system.ratio,
        'gaugeMm': system.gauge_mm,
        'parallelSpacingMm': system.parallel_spacing_mm,
        'moduleLengthMm': system.module_length_mm,
        'components': [component_to_dict(component) for component in system.components],
    }
