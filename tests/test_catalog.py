import pytest

from trackplan import (
    CatalogError,
    CrossingParams,
    CurvedSwitchParams,
    DoubleSlipParams,
    InvalidParams,
    SimpleSwitchParams,
    ThreeWaySwitchParams,
    YSwitchParams,
    parse_component,
    parse_track_system,
)
from trackplan.catalog import component_to_dict, parse_variant_params, track_system_to_dict


@pytest.mark.parametrize(
    "meta, expected",
    [
        (
            {"variant": "simple-switch", "direction": "right", "straightLengthMm": 239.07,
             "branchRadiusMm": 907.97, "branchAngleDeg": 15},
            SimpleSwitchParams("right", 239.07, 907.97, 15.0),
        ),
        (
            {"variant": "curved-switch", "direction": "left", "innerRadiusMm": 400,
             "outerRadiusMm": 500, "angleDeg": 30},
            CurvedSwitchParams("left", 400.0, 500.0, 30.0),
        ),
        (
            {"variant": "three-way", "straightLengthMm": 200, "branchRadiusMm": 600,
             "branchAngleDeg": 15, "branchOffsetMm": 20},
            ThreeWaySwitchParams(200.0, 600.0, 15.0, 20.0),
        ),
        (
            {"variant": "y-switch", "stubLengthMm": 20, "branchRadiusMm": 600, "branchAngleDeg": 12},
            YSwitchParams(20.0, 600.0, 12.0),
        ),
        (
            {"variant": "double-slip", "lengthMm": 230, "crossingAngleDeg": 15, "slipRadiusMm": 800},
            DoubleSlipParams(230.0, 15.0, 800.0),
        ),
        (
            {"variant": "crossing", "lengthMm": 200, "crossingAngleDeg": 30},
            CrossingParams(200.0, 30.0),
        ),
    ],
)
def test_variant_params_are_typed(meta, expected):
    params = parse_variant_params(meta)
    assert params == expected
    assert params.variant == meta["variant"]


def test_missing_required_field_becomes_invalid_params():
    params = parse_variant_params(
        {"variant": "curved-switch", "direction": "left", "outerRadiusMm": 500, "angleDeg": float("nan")}
    )
    assert isinstance(params, InvalidParams)
    assert params.variant == "curved-switch"
    assert params.missing == ("innerRadiusMm", "angleDeg")


def test_bad_direction_is_reported_missing():
    params = parse_variant_params(
        {"variant": "simple-switch", "direction": "up", "straightLengthMm": 1,
         "branchRadiusMm": 1, "branchAngleDeg": 1}
    )
    assert isinstance(params, InvalidParams)
    assert params.missing == ("direction",)



def test_incomplete_variant_is_written_back_unchanged():
    meta = {"variant": "three-way", "straightLengthMm": 200, "branchRadiusMm": 600, "branchAngleDeg": 15}
    component = parse_component({"id": "three", "type": "switch", "label": "Three way", "meta": meta})
    assert component.params.missing == ("branchOffsetMm",)

    payload = component_to_dict(component)
    assert payload["meta"] == meta
    assert parse_component(payload) == component

    meta["branchOffsetMm"] = 20
    assert "branchOffsetMm" not in component.params.raw

@pytest.mark.parametrize("meta", [None, {}, {"variant": "mystery"}, "simple-switch"])
def test_unrecognised_meta_has_no_params(meta):
    assert parse_variant_params(meta) is None


def test_parse_component_reads_optional_fields():
    component = parse_component(
        {"id": "c1", "type": "curve", "radiusMm": 360, "angleDeg": 30, "clockwise": True, "article": "24130"}
    )
    assert component.radius_mm == 360.0
    assert component.angle_deg == 30.0
    assert component.clockwise is True
    assert component.article == "24130"
    assert component.label == "c1"
    assert component.length_mm is None


def test_unknown_type_loads_as_other():
    component = parse_component({"id": "buffer", "type": "buffer-stop", "lengthMm": 50})
    assert component.type == "other"


def test_meta_on_straight_is_ignored():
    component = parse_component({"id": "s", "type": "straight", "lengthMm": 10, "meta": {"variant": "crossing"}})
    assert component.params is None


@pytest.mark.parametrize(
    "raw",
    [
        "not a mapping",
        {"name": "no id", "components": []},
        {"id": "sys"},
        {"id": "sys", "components": [{"type": "straight"}]},
        {"id": "sys", "components": [{"id": "a", "type": "straight"}, {"id": "a", "type": "curve"}]},
    ],
)
def test_parse_track_system_rejects_unusable_payloads(raw):
    with pytest.raises(CatalogError):
        parse_track_system(raw)


def test_track_system_dict_round_trip(system):
    assert parse_track_system(track_system_to_dict(system)) == system
    assert system.component_ids() == {"s200", "s150", "c500", "c100", "sw", "x30"}
    assert system.component("missing") is None


def test_component_to_dict_uses_camel_case_keys(system):
    payload = component_to_dict(system.component("sw"))
    assert payload["meta"] == {
        "variant": "simple-switch",
        "direction": "left",
        "straightLengthMm": 200.0,
        "branchRadiusMm": 600.0,
        "branchAngleDeg": 15.0,
    }
