"""SVG output for layouts: one path per placed item plus connector markers."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Tuple
from xml.sax.saxutils import escape, quoteattr

from .connections import item_geometry
from .geometry import ArcTo, GeometryCache, format_number, path_to_d
from .layout import EndpointRef, Layout
from .transform import transform_point, world_connectors
from .vectors import TRACK_EDGE_WIDTH_MM

logger = logging.getLogger(__name__)

TRACK_COLOR = '#1f2937'
CONNECTOR_COLOR = '#dc2626'
CONNECTED_COLOR = '#16a34a'
GROUNDED_COLOR = '#6b7280'
CONNECTOR_RADIUS_MM = 4.0
PADDING_MM = 40.0

Bounds = Tuple[float, float, float, float]


def _extend(bounds: Optional[Bounds], x: float, y: float) -> Bounds:
    if bounds is None:
        return x, y, x, y
    return min(bounds[0], x), min(bounds[1], y), max(bounds[2], x), max(bounds[3], y)


def layout_bounds(layout: Layout, cache: Optional[GeometryCache] = None) -> Optional[Bounds]:
    """Bounding box of path vertices, arc radii and connectors in world space."""

    cache = cache if cache is not None else GeometryCache()
    bounds: Optional[Bounds] = None
    for item in layout.placed_items:
        geometry = item_geometry(layout, item, cache)
        if geometry is None:
            continue
        for cmd in geometry.path:
            wx, wy = transform_point((cmd.x, cmd.y), item.pose)
            pad = cmd.radius if isinstance(cmd, ArcTo) else 0.0
            bounds = _extend(bounds, wx - pad, wy - pad)
            bounds = _extend(bounds, wx + pad, wy + pad)
        for _, connector in world_connectors(geometry, item.pose):
            bounds = _extend(bounds, connector.x_mm, connector.y_mm)
    return bounds


def item_path_d(layout: Layout, item_id: str, cache: Optional[GeometryCache] = None) -> str:
    """Path ``d`` string of an item already transformed into world coordinates."""

    item = layout.item(item_id)
    geometry = item_geometry(layout, item, cache) if item else None
    if item is None or geometry is None:
        return ''
    world = []
    for cmd in geometry.path:
        wx, wy = transform_point((cmd.x, cmd.y), item.pose)
        world.append(replace(cmd, x=wx, y=wy))
    return path_to_d(tuple(world))


def generate_svg_document(
    layout: Layout,
    *,
    cache: Optional[GeometryCache] = None,
    show_connectors: bool = True,
    title: Optional[str] = None,
) -> str:
    cache = cache if cache is not None else GeometryCache()
    bounds = layout_bounds(layout, cache) or (0.0, 0.0, 100.0, 100.0)
    min_x, min_y, max_x, max_y = bounds
    min_x -= PADDING_MM
    min_y -= PADDING_MM
    width = max_x - min_x + PADDING_MM
    height = max_y - min_y + PADDING_MM

    # layout space is y-up, SVG is y-down: flip around the horizontal axis
    lines = [
        '<svg xmlns="http://www.w3.org/2000/svg" '
        f'viewBox="{format_number(min_x)} {format_number(-(min_y + height))} '
        f'{format_number(width)} {format_number(height)}" '
        f'width="{format_number(width)}mm" height="{format_number(height)}mm">',
    ]
    if title:
        lines.append(f'  <title>{escape(title)}</title>')
    lines.append('  <g transform="scale(1,-1)">')

    for item in layout.placed_items:
        d = item_path_d(layout, item.id, cache)
        if not d:
            logger.warning('Item %s has no geometry and is not drawn', item.id)
            continue
        color = GROUNDED_COLOR if item.is_grounded else TRACK_COLOR
        lines.append(
            f'    <path id={quoteattr(item.id)} d="{d}" fill="none" stroke="{color}" '
            f'stroke-width="{format_number(TRACK_EDGE_WIDTH_MM)}" stroke-linecap="butt"/>'
        )

    if show_connectors:
        connected = {ref for connection in layout.connections for ref in connection.endpoints}
        for item in layout.placed_items:
            geometry = item_geometry(layout, item, cache)
            if geometry is None:
                continue
            for key, connector in world_connectors(geometry, item.pose):
                is_connected = EndpointRef(item.id, key) in connected
                lines.append(
                    f'    <circle cx="{format_number(connector.x_mm)}" '
                    f'cy="{format_number(connector.y_mm)}" '
                    f'r="{format_number(CONNECTOR_RADIUS_MM)}" '
                    f'fill="{CONNECTED_COLOR if is_connected else CONNECTOR_COLOR}"/>'
                )

    lines.append('  </g>')
    lines.append('</svg>')
    return '\n'.join(lines) + '\n'
