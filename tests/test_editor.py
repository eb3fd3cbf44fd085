import logging
import math

import pytest

from trackplan import (
    EditFail,
    EditOK,
    EndpointRef,
    Layout,
    LayoutEditor,
    PlacedItem,
    Pose,
    add_item,
    check_invariants,
    connect,
    connect_endpoints,
    empty_layout,
    parse_track_system,
)
from trackplan.editor import GROUNDED, NO_SELECTION, SAME_GROUP, ROTATION_STEP_DEG
from trackplan.group_mover import set_grounded


def test_connect_endpoints_resolves_exact_pose(make_layout, ref):
    layout = make_layout([("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 500.0, 300.0, 0.0)])
    result = connect_endpoints(layout, ref("a:end"), ref("b:start"))
    assert isinstance(result, EditOK)
    assert result.layout.item("b").pose == Pose(200.0, 0.0, 0.0)
    assert result.layout.item("a") == layout.item("a")
    assert result.connection.matches(ref("a:end"), ref("b:start"))
    check_invariants(result.layout)


def test_connect_endpoints_from_arbitrary_rotation(make_layout, ref):
    layout = make_layout([("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 500.0, 300.0, 45.0)])
    pose = connect_endpoints(layout, ref("a:end"), ref("b:start")).layout.item("b").pose
    assert pose.x == pytest.approx(200.0)
    assert pose.y == pytest.approx(0.0, abs=1e-9)
    assert pose.rotation_deg == pytest.approx(0.0, abs=1e-9)


def test_connect_endpoints_moves_the_smaller_group(make_layout, ref):
    layout = make_layout(
        [("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 200.0, 0.0, 0.0), ("c", "c500", 40.0, 700.0, 90.0)],
        connections=[("a:end", "b:start")],
    )
    result = connect_endpoints(layout, ref("c:start"), ref("b:end"))
    assert isinstance(result, EditOK)
    assert result.layout.item("a") == layout.item("a")
    assert result.layout.item("b") == layout.item("b")
    c = result.layout.item("c")
    assert c.x == pytest.approx(350.0)
    assert c.y == pytest.approx(0.0, abs=1e-9)
    assert c.rotation_deg == pytest.approx(0.0, abs=1e-9)


def test_connect_endpoints_keeps_grounded_side_fixed(make_layout, ref):
    layout = make_layout([("a", "s200", 0.0, 0.0, 0.0, True), ("b", "s150", 500.0, 300.0, 0.0)])
    # a is selected last and would move on a tie, but it is grounded
    result = connect_endpoints(layout, ref("b:start"), ref("a:end"))
    assert result.layout.item("a") == layout.item("a")
    assert result.layout.item("b").pose == Pose(200.0, 0.0, 0.0)


def test_connect_endpoints_both_grounded(make_layout, ref):
    layout = make_layout([("a", "s200", 0.0, 0.0, 0.0, True), ("b", "s150", 500.0, 300.0, 0.0, True)])
    result = connect_endpoints(layout, ref("a:end"), ref("b:start"))
    assert isinstance(result, EditFail)
    assert result.reason == GROUNDED

    aligned = make_layout([("a", "s200", 0.0, 0.0, 0.0, True), ("b", "s150", 200.0, 0.0, 0.0, True)])
    assert isinstance(connect_endpoints(aligned, ref("a:end"), ref("b:start")), EditOK)


def test_loop_closure_requires_alignment(make_layout, ref):
    open_chain = make_layout(
        [("a", "s200", 0.0, 0.0, 0.0), ("b", "s200", 200.0, 0.0, 0.0)],
        connections=[("a:end", "b:start")],
    )
    result = connect_endpoints(open_chain, ref("b:end"), ref("a:start"))
    assert isinstance(result, EditFail)
    assert result.reason == SAME_GROUP

    # two half circles close into a ring
    ring = make_layout(
        [("p", "c100", 0.0, 0.0, 0.0), ("q", "c100", 0.0, 200.0, 180.0)],
        connections=[("p:end", "q:start")],
    )
    closed = connect_endpoints(ring, ref("q:end"), ref("p:start"))
    assert isinstance(closed, EditOK)
    assert closed.layout.placed_items == ring.placed_items
    assert len(closed.layout.connections) == 2


def test_connect_endpoints_reports_store_failures(make_layout, ref):
    layout = make_layout([("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 500.0, 300.0, 0.0)])
    result = connect_endpoints(layout, ref("a:end"), ref("a:start"))
    assert result.reason == "self-connection"
    assert connect_endpoints(layout, ref("a:end"), ref("b:nope")).reason == "unknown-connector"


def test_add_item_uses_active_track_system(system):
    result = add_item(empty_layout([system]), "c500", Pose(5.0, 6.0, 7.0))
    assert isinstance(result, EditOK)
    (placed,) = result.layout.placed_items
    assert placed.track_system_id == "demo"
    assert placed.pose == Pose(5.0, 6.0, 7.0)
    assert len(placed.id) == 36

    assert add_item(result.layout, "nope").reason == "unknown-component"
    assert add_item(result.layout, "s200", item_id=placed.id).reason == "duplicate-item"


def test_drag_preview_commit_and_cancel(make_layout, ref):
    editor = LayoutEditor(make_layout([("a", "s200", 0.0, 0.0, 0.0), ("m", "s150", 900.0, 900.0, 0.0)]))
    committed = editor.layout

    preview = editor.preview_drag("m", Pose(205.0, 3.0, 0.0))
    assert preview.snap is not None
    assert preview.pose == Pose(200.0, 0.0, 0.0)
    assert editor.layout is committed
    assert editor.display_layout.item("m").pose == Pose(200.0, 0.0, 0.0)

    editor.cancel_drag()
    assert editor.preview is None
    assert editor.display_layout is committed

    editor.preview_drag("m", Pose(205.0, 3.0, 0.0))
    result = editor.commit_drag()
    assert isinstance(result, EditOK)
    assert editor.layout.item("m").pose == Pose(200.0, 0.0, 0.0)
    assert editor.layout.connections[0].matches(ref("m:start"), ref("a:end"))
    assert editor.preview is None


def test_drag_outside_window_places_freely(make_layout):
    editor = LayoutEditor(make_layout([("a", "s200", 0.0, 0.0, 0.0), ("m", "s150", 900.0, 900.0, 0.0)]))
    preview = editor.preview_drag("m", Pose(209.0, 0.0, 0.0))
    assert preview.snap is None
    editor.commit_drag()
    assert editor.layout.item("m").pose == Pose(209.0, 0.0, 0.0)
    assert editor.layout.connections == ()


def test_drag_carries_connected_group(make_layout):
    editor = LayoutEditor(
        make_layout(
            [("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 200.0, 0.0, 0.0)],
            connections=[("a:end", "b:start")],
        )
    )
    editor.preview_drag("b", Pose(1200.0, 500.0, 0.0))
    editor.commit_drag()
    assert editor.layout.item("a").pose == Pose(1000.0, 500.0, 0.0)
    assert len(editor.layout.connections) == 1


def test_select_endpoint_keeps_last_two(ref):
    editor = LayoutEditor(empty_layout([]))
    editor.select_endpoint(ref("a:end"))
    editor.select_endpoint(ref("b:start"), additive=True)
    editor.select_endpoint(ref("c:start"), additive=True)
    assert editor.selected_endpoints == [ref("b:start"), ref("c:start")]
    assert editor.selected_item_id == "c"
    editor.select_endpoint(ref("c:start"), additive=True)
    assert editor.selected_endpoints == [ref("b:start")]
    editor.select_endpoint(ref("a:end"))
    assert editor.selected_endpoints == [ref("a:end")]


def test_connect_selected_endpoints(make_layout, ref):
    editor = LayoutEditor(make_layout([("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 500.0, 300.0, 0.0)]))
    assert editor.connect_selected_endpoints().reason == NO_SELECTION

    editor.select_endpoint(ref("a:end"))
    editor.select_endpoint(ref("b:start"), additive=True)
    result = editor.connect_selected_endpoints()
    assert isinstance(result, EditOK)
    assert editor.layout.item("b").pose == Pose(200.0, 0.0, 0.0)

    result = editor.disconnect_selected_endpoints()
    assert isinstance(result, EditOK)
    assert editor.layout.connections == ()


def test_rotate_selected_steps_and_pivots(make_layout, ref):
    editor = LayoutEditor(make_layout([("a", "s200", 0.0, 0.0, 0.0)]))
    editor.select_item("a")
    editor.rotate_selected()
    assert editor.layout.item("a").rotation_deg == pytest.approx(ROTATION_STEP_DEG)

    editor = LayoutEditor(make_layout([("a", "s200", 0.0, 0.0, 0.0)]))
    editor.select_endpoint(ref("a:end"))
    editor.rotate_selected(90.0)
    a = editor.layout.item("a")
    assert (a.x, a.y, a.rotation_deg) == pytest.approx((200.0, -200.0, 90.0))


def test_delete_and_ground_through_editor(make_layout, ref):
    editor = LayoutEditor(
        make_layout(
            [("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 200.0, 0.0, 0.0)],
            connections=[("a:end", "b:start")],
        )
    )
    editor.toggle_grounded("a")
    assert editor.layout.item("a").is_grounded
    editor.toggle_grounded("a")
    assert not editor.layout.item("a").is_grounded

    editor.select_endpoint(ref("b:start"))
    editor.delete_item()
    assert editor.layout.item("b") is None
    assert editor.layout.connections == ()
    assert editor.selected_item_id is None
    assert editor.selected_endpoints == []
    assert editor.delete_item().reason == NO_SELECTION


def test_editor_add_item_selects_new_piece(system):
    editor = LayoutEditor(empty_layout([system]))
    result = editor.add_item("s200", item_id="first")
    assert isinstance(result, EditOK)
    assert editor.selected_item_id == "first"


def test_connect_endpoints_within_tolerance_does_not_warn(make_layout, ref, caplog):
    layout = make_layout([("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 500.0, 300.0, 0.0)])
    connect_endpoints(layout, ref("a:end"), ref("b:start"))
    assert "Alignment tolerance exceeded" not in caplog.text


def test_grounded_connect_of_aligned_group_still_records(make_layout, ref):
    layout = set_grounded(
        make_layout([("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 200.0, 0.0, 0.0)]), "a", True
    )
    direct = connect(layout, ref("a:end"), ref("b:start"))
    via_editor = connect_endpoints(layout, EndpointRef("a", "end"), EndpointRef("b", "start"))
    assert via_editor.layout.connections == direct.layout.connections
    assert math.isclose(via_editor.layout.item("b").x, 200.0)


def test_misaligned_connect_warns_and_still_commits(make_layout, ref, monkeypatch, caplog):
    import trackplan.editor as editor_module

    layout = make_layout([("a", "s200", 0.0, 0.0, 0.0), ("b", "s150", 500.0, 300.0, 0.0)])
    monkeypatch.setattr(
        editor_module,
        "solve_alignment",
        lambda local, tentative, target: Pose(target.x_mm + 0.5, target.y_mm, 0.0),
    )
    caplog.set_level(logging.WARNING, logger="trackplan.editor")

    result = connect_endpoints(layout, ref("a:end"), ref("b:start"))
    assert isinstance(result, EditOK)
    assert result.connection is not None
    assert result.connection.matches(ref("a:end"), ref("b:start"))
    assert result.layout.item("b").pose == Pose(200.5, 0.0, 0.0)
    assert "Alignment tolerance exceeded for a:end <-> b:start" in caplog.text


def test_editor_cache_keeps_track_systems_apart():
    alpha = parse_track_system(
        {"id": "alpha", "name": "Alpha", "components": [{"id": "s", "type": "straight", "lengthMm": 100}]}
    )
    beta = parse_track_system(
        {"id": "beta", "name": "Beta", "components": [{"id": "s", "type": "straight", "lengthMm": 300}]}
    )
    layout = Layout(
        track_systems=(alpha, beta),
        active_track_system_id="alpha",
        placed_items=(
            PlacedItem("x", "alpha", "s", 0.0, 1000.0, 0.0),
            PlacedItem("z", "beta", "s", 0.0, 0.0, 0.0),
            PlacedItem("y", "beta", "s", 900.0, 900.0, 0.0),
        ),
    )
    editor = LayoutEditor(layout)
    editor.preview_drag("x", Pose(0.0, 1000.0, 0.0))
    editor.cancel_drag()
    assert len(editor.cache) == 1

    preview = editor.preview_drag("y", Pose(303.0, 0.0, 0.0))
    assert preview.snap is not None
    assert preview.snap.target == EndpointRef("z", "end")
    assert preview.pose == Pose(300.0, 0.0, 0.0)
    assert len(editor.cache) == 2
