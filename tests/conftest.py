import pytest

from trackplan import Connection, EndpointRef, Layout, PlacedItem, parse_track_system

DEMO_SYSTEM = {
    "id": "demo",
    "name": "Demo H0",
    "scale": "H0",
    "ratio": 87,
    "gaugeMm": 16.5,
    "components": [
        {"id": "s200", "type": "straight", "label": "Straight 200", "lengthMm": 200, "article": "G200"},
        {"id": "s150", "type": "straight", "label": "Straight 150", "lengthMm": 150},
        {"id": "c500", "type": "curve", "label": "Curve R500", "radiusMm": 500, "angleDeg": 30},
        {"id": "c100", "type": "curve", "label": "Half circle", "radiusMm": 100, "angleDeg": 180},
        {
            "id": "sw",
            "type": "switch",
            "label": "Switch left",
            "meta": {
                "variant": "simple-switch",
                "direction": "left",
                "straightLengthMm": 200,
                "branchRadiusMm": 600,
                "branchAngleDeg": 15,
            },
        },
        {"id": "x30", "type": "crossing", "label": "Crossing 30", "lengthMm": 200, "angleDeg": 30},
    ],
}


def _ref(text):
    item_id, key = text.split(":")
    return EndpointRef(item_id, key)


@pytest.fixture
def system():
    return parse_track_system(DEMO_SYSTEM)


@pytest.fixture
def make_layout(system):
    """Build a layout from ``(id, component, x, y, rotation[, grounded])`` tuples."""

    def _make(items, connections=()):
        placed = []
        for entry in items:
            item_id, component_id, x, y, rotation = entry[:5]
            grounded = entry[5] if len(entry) > 5 else False
            placed.append(PlacedItem(item_id, system.id, component_id, x, y, rotation, grounded))
        return Layout(
            track_systems=(system,),
            active_track_system_id=system.id,
            placed_items=tuple(placed),
            connections=tuple(Connection(_ref(a), _ref(b)) for a, b in connections),
        )

    return _make


@pytest.fixture
def ref():
    return _ref
