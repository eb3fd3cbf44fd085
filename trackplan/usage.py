"""Bill of materials for a layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .catalog import TRACK_COMPONENT_TYPES
from .layout import Layout


@dataclass
class TrackUsageComponentCount:
    component_id: str
    label: str
    type: str
    article: Optional[str]
    count: int


@dataclass
class TrackUsageSummary:
    total_count: int = 0
    counts_by_type: Dict[str, int] = field(
        default_factory=lambda: {kind: 0 for kind in TRACK_COMPONENT_TYPES}
    )
    component_counts: List[TrackUsageComponentCount] = field(default_factory=list)


def summarize_usage(layout: Layout) -> TrackUsageSummary:
    summary = TrackUsageSummary()
    by_component: Dict[tuple, TrackUsageComponentCount] = {}
    for item in layout.placed_items:
        definition = layout.component_for(item)
        if definition is None:
            continue
        key = (item.track_system_id, definition.id)
        entry = by_component.get(key)
        if entry is None:
            entry = TrackUsageComponentCount(
                component_id=definition.id,
                label=definition.label or definition.id,
                type=definition.type,
                article=definition.article,
                count=0,
            )
            by_component[key] = entry
        entry.count += 1
        summary.total_count += 1
        summary.counts_by_type[definition.type] = summary.counts_by_type.get(definition.type, 0) + 1

    type_order = {kind: idx for idx, kind in enumerate(TRACK_COMPONENT_TYPES)}
    summary.component_counts = sorted(
        by_component.values(),
        key=lambda entry: (type_order.get(entry.type, len(type_order)), entry.label, entry.component_id),
    )
    return summary
