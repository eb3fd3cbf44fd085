"""Geometry provider: catalog definitions to local connectors and path descriptors."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from .catalog import (
    CrossingParams,
    CurvedSwitchParams,
    DoubleSlipParams,
    InvalidParams,
    SimpleSwitchParams,
    ThreeWaySwitchParams,
    TrackComponentDefinition,
    YSwitchParams,
)
from .config import SnapConfig, resolve_config
from .vectors import TRACK_EDGE_WIDTH_MM, Vec2, angle_of, arc_end, normalize_angle, unit_from_deg

logger = logging.getLogger(__name__)

DEFAULT_SWITCH_STRAIGHT_MM = 239.07
DEFAULT_SWITCH_RADIUS_MM = 907.97
DEFAULT_SWITCH_ANGLE_DEG = 15.0


@dataclass(frozen=True)
class Connector:
    """Anchor where another piece can attach; ``dir`` points away from the piece."""

    x_mm: float
    y_mm: float
    dir: Vec2
    width_mm: float = TRACK_EDGE_WIDTH_MM

    @property
    def direction_deg(self) -> float:
        return angle_of(self.dir)

    @property
    def position(self) -> Vec2:
        return self.x_mm, self.y_mm


def make_connector(x_mm: float, y_mm: float, direction_deg: float) -> Connector:
    return Connector(x_mm=float(x_mm), y_mm=float(y_mm), dir=unit_from_deg(direction_deg))


@dataclass(frozen=True)
class MoveTo:
    x: float
    y: float


@dataclass(frozen=True)
class LineTo:
    x: float
    y: float


@dataclass(frozen=True)
class ArcTo:
    """Circular arc; ``sweep`` follows SVG semantics (1 = increasing angle)."""

    radius: float
    large_arc: int
    sweep: int
    x: float
    y: float


PathCommand = Union[MoveTo, LineTo, ArcTo]


def format_number(value: float) -> str:
    rounded = round(value, 6)
    if rounded == 0:
        rounded = 0.0
    text = f'{rounded:.6f}'.rstrip('0').rstrip('.')
    return text or '0'


def path_to_d(commands: Tuple[PathCommand, ...]) -> str:
    parts: List[str] = []
    for cmd in commands:
        if isinstance(cmd, MoveTo):
            parts.append(f'M {format_number(cmd.x)} {format_number(cmd.y)}')
        elif isinstance(cmd, LineTo):
            parts.append(f'L {format_number(cmd.x)} {format_number(cmd.y)}')
        else:
            r = format_number(cmd.radius)
            parts.append(
                f'A {r} {r} 0 {cmd.large_arc} {cmd.sweep} {format_number(cmd.x)} {format_number(cmd.y)}'
            )
    return ' '.join(parts)


@dataclass(frozen=True)
class ComponentGeometry:
    start: Connector
    end: Connector
    path: Tuple[PathCommand, ...]
    extra_connectors: Tuple[Tuple[str, Connector], ...] = ()
    diagnostics: Tuple[str, ...] = ()

    def connectors(self) -> List[Tuple[str, Connector]]:
        return [('start', self.start), ('end', self.end), *self.extra_connectors]

    def connector(self, key: str) -> Optional[Connector]:
        if key == 'start':
            return self.start
        if key == 'end':
            return self.end
        for name, connector in self.extra_connectors:
            if name == key:
                return connector
        return None

    def connector_keys(self) -> List[str]:
        return [key for key, _ in self.connectors()]

    def build_path_d(self) -> str:
        return path_to_d(self.path)


def _arc_sweep(sign: int) -> int:
    # sign +1 turns towards +y, i.e. increasing polar angle around the arc centre
    return 1 if sign > 0 else 0


def _direction_sign(direction: str) -> int:
    return 1 if direction == 'left' else -1


def straight_geometry(length: float, diagnostics: Tuple[str, ...] = ()) -> ComponentGeometry:
    return ComponentGeometry(
        start=make_connector(0.0, 0.0, 180.0),
        end=make_connector(length, 0.0, 0.0),
        path=(MoveTo(0.0, 0.0), LineTo(length, 0.0)),
        diagnostics=diagnostics,
    )


def curve_geometry(radius: float, angle_deg: float, clockwise: bool) -> ComponentGeometry:
    sign = -1 if clockwise else 1
    end_x, end_y = arc_end(radius, angle_deg, sign)
    return ComponentGeometry(
        start=make_connector(0.0, 0.0, 180.0),
        end=make_connector(end_x, end_y, sign * angle_deg),
        path=(MoveTo(0.0, 0.0), ArcTo(radius, 0, _arc_sweep(sign), end_x, end_y)),
    )


def simple_switch_geometry(params: SimpleSwitchParams) -> ComponentGeometry:
    """Straight main leg plus one diverging arc from the heel."""

    sign = _direction_sign(params.direction)
    length = params.straight_length_mm
    radius = params.branch_radius_mm
    bx, by = arc_end(radius, params.branch_angle_deg, sign)
    return ComponentGeometry(
        start=make_connector(0.0, 0.0, 180.0),
        end=make_connector(length, 0.0, 0.0),
        path=(
            MoveTo(0.0, 0.0),
            LineTo(length, 0.0),
            MoveTo(0.0, 0.0),
            ArcTo(radius, 0, _arc_sweep(sign), bx, by),
        ),
        extra_connectors=(('branch', make_connector(bx, by, sign * params.branch_angle_deg)),),
    )


def curved_switch_geometry(params: CurvedSwitchParams) -> ComponentGeometry:
    sign = _direction_sign(params.direction)
    heading = sign * params.angle_deg
    ox, oy = arc_end(params.outer_radius_mm, params.angle_deg, sign)
    ix, iy = arc_end(params.inner_radius_mm, params.angle_deg, sign)
    sweep = _arc_sweep(sign)
    return ComponentGeometry(
        start=make_connector(0.0, 0.0, 180.0),
        end=make_connector(ox, oy, heading),
        path=(
            MoveTo(0.0, 0.0),
            ArcTo(params.outer_radius_mm, 0, sweep, ox, oy),
            MoveTo(0.0, 0.0),
            ArcTo(params.inner_radius_mm, 0, sweep, ix, iy),
        ),
        extra_connectors=(('inner', make_connector(ix, iy, heading)),),
    )


def _symmetric_branches(
    x_offset: float, radius: float, angle_deg: float
) -> Tuple[Tuple[str, Connector], Tuple[str, Connector], Tuple[PathCommand, ...]]:
    lx, ly = arc_end(radius, angle_deg, 1, x_offset)
    rx, ry = arc_end(radius, angle_deg, -1, x_offset)
    path = (
        MoveTo(x_offset, 0.0),
        ArcTo(radius, 0, _arc_sweep(1), lx, ly),
        MoveTo(x_offset, 0.0),
        ArcTo(radius, 0, _arc_sweep(-1), rx, ry),
    )
    return (
        ('left', make_connector(lx, ly, angle_deg)),
        ('right', make_connector(rx, ry, -angle_deg)),
        path,
    )


def three_way_switch_geometry(params: ThreeWaySwitchParams) -> ComponentGeometry:
    length = params.straight_length_mm
    left, right, branch_path = _symmetric_branches(
        params.branch_offset_mm, params.branch_radius_mm, params.branch_angle_deg
    )
    return ComponentGeometry(
        start=make_connector(0.0, 0.0, 180.0),
        end=make_connector(length, 0.0, 0.0),
        path=(MoveTo(0.0, 0.0), LineTo(length, 0.0), *branch_path),
        extra_connectors=(left, right),
    )


def y_switch_geometry(params: YSwitchParams) -> ComponentGeometry:
    stub = params.stub_length_mm
    left, right, branch_path = _symmetric_branches(stub, params.branch_radius_mm, params.branch_angle_deg)
    return ComponentGeometry(
        start=make_connector(0.0, 0.0, 180.0),
        end=left[1],
        path=(MoveTo(0.0, 0.0), LineTo(stub, 0.0), *branch_path),
        extra_connectors=(right,),
    )


def _crossing_legs(length: float, crossing_angle_deg: float) -> Tuple[Vec2, Vec2]:
    half = length / 2.0
    rad = math.radians(crossing_angle_deg)
    dx = half * math.cos(rad)
    dy = half * math.sin(rad)
    return (half - dx, -dy), (half + dx, dy)


def crossing_geometry(params: CrossingParams) -> ComponentGeometry:
    length = params.length_mm
    angle = params.crossing_angle_deg
    (ax, ay), (bx, by) = _crossing_legs(length, angle)
    return ComponentGeometry(
        start=make_connector(0.0, 0.0, 180.0),
        end=make_connector(length, 0.0, 0.0),
        path=(MoveTo(0.0, 0.0), LineTo(length, 0.0), MoveTo(ax, ay), LineTo(bx, by)),
        extra_connectors=(
            ('crossStart', make_connector(ax, ay, normalize_angle(angle + 180.0))),
            ('crossEnd', make_connector(bx, by, angle)),
        ),
    )


def double_slip_geometry(params: DoubleSlipParams) -> ComponentGeometry:
    """Crossing with two slip roads.

    The straight leg runs start to end and the diagonal leg crossStart to crossEnd.
    One slip arc joins start to crossEnd and the other joins crossStart to end, so
    the path draws all four routes through the piece.
    """

    length = params.length_mm
    angle = params.crossing_angle_deg
    radius = params.slip_radius_mm
    (ax, ay), (bx, by) = _crossing_legs(length, angle)
    sweep = _arc_sweep(1 if angle > 0 else -1)
    return ComponentGeometry(
        start=make_connector(0.0, 0.0, 180.0),
        end=make_connector(length, 0.0, 0.0),
        path=(
            MoveTo(0.0, 0.0),
            LineTo(length, 0.0),
            MoveTo(ax, ay),
            LineTo(bx, by),
            MoveTo(0.0, 0.0),
            ArcTo(radius, 0, sweep, bx, by),
            MoveTo(ax, ay),
            ArcTo(radius, 0, sweep, length, 0.0),
        ),
        extra_connectors=(
            ('crossStart', make_connector(ax, ay, normalize_angle(angle + 180.0))),
            ('crossEnd', make_connector(bx, by, angle)),
        ),
    )


def _fallback(
    definition: TrackComponentDefinition, reason: str, config: SnapConfig
) -> ComponentGeometry:
    length = (
        definition.length_mm
        if definition.length_mm and definition.length_mm > 0
        else config.default_length_mm
    )
    message = f'component "{definition.id}": {reason}; using straight segment of {length:g} mm'
    logger.warning('Invalid geometry definition: %s', message)
    return straight_geometry(length, diagnostics=(message,))


def _default_switch_params(definition: TrackComponentDefinition) -> SimpleSwitchParams:
    return SimpleSwitchParams(
        direction='right' if definition.clockwise else 'left',
        straight_length_mm=definition.length_mm or DEFAULT_SWITCH_STRAIGHT_MM,
        branch_radius_mm=definition.radius_mm or DEFAULT_SWITCH_RADIUS_MM,
        branch_angle_deg=(
            definition.angle_deg if definition.angle_deg is not None else DEFAULT_SWITCH_ANGLE_DEG
        ),
    )


_VARIANT_BUILDERS: Dict[type, Callable[..., ComponentGeometry]] = {
    SimpleSwitchParams: simple_switch_geometry,
    CurvedSwitchParams: curved_switch_geometry,
    ThreeWaySwitchParams: three_way_switch_geometry,
    YSwitchParams: y_switch_geometry,
    DoubleSlipParams: double_slip_geometry,
    CrossingParams: crossing_geometry,
}


def geometry_of(
    definition: TrackComponentDefinition, config: Optional[SnapConfig] = None
) -> ComponentGeometry:
    """Evaluate ``definition`` into local connectors and a path; never raises."""

    config = resolve_config(config)
    kind = definition.type
    params = definition.params

    if isinstance(params, InvalidParams):
        return _fallback(
            definition,
            f'variant {params.variant} missing {", ".join(params.missing)}',
            config,
        )

    if kind == 'straight':
        if definition.length_mm is None or definition.length_mm <= 0:
            return _fallback(definition, 'straight without lengthMm', config)
        return straight_geometry(definition.length_mm)

    if kind == 'curve':
        if definition.radius_mm is None or definition.angle_deg is None:
            return _fallback(definition, 'curve without radiusMm/angleDeg', config)
        return curve_geometry(definition.radius_mm, definition.angle_deg, definition.clockwise)

    if kind == 'switch':
        if params is None or isinstance(params, CrossingParams):
            return simple_switch_geometry(_default_switch_params(definition))
        return _VARIANT_BUILDERS[type(params)](params)

    if kind == 'crossing':
        if isinstance(params, (CrossingParams, DoubleSlipParams)):
            return _VARIANT_BUILDERS[type(params)](params)
        if definition.length_mm is None or definition.angle_deg is None:
            return _fallback(definition, 'crossing without lengthMm/crossingAngleDeg', config)
        return crossing_geometry(CrossingParams(definition.length_mm, definition.angle_deg))

    return _fallback(definition, f'unsupported component type {kind!r}', config)


@dataclass
class GeometryCache:
    """Memo keyed by (track system id, component id).

    Component ids are only unique within one track system. Definitions are
    immutable so entries never go stale.
    """

    config: Optional[SnapConfig] = None
    _entries: Dict[Tuple[str, str], ComponentGeometry] = field(default_factory=dict)

    def get(
        self, definition: TrackComponentDefinition, track_system_id: str = ''
    ) -> ComponentGeometry:
        key = (track_system_id, definition.id)
        cached = self._entries.get(key)
        if cached is None:
            cached = geometry_of(definition, self.config)
            self._entries[key] = cached
        return cached

    def __len__(self) -> int:
        return len(self._entries)
