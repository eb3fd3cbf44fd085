from trackplan import summarize_usage


def test_usage_counts_by_component_and_type(make_layout):
    layout = make_layout(
        [
            ("a", "s200", 0.0, 0.0, 0.0),
            ("b", "c500", 0.0, 0.0, 0.0),
            ("c", "s200", 0.0, 0.0, 0.0),
            ("d", "sw", 0.0, 0.0, 0.0),
            ("e", "s150", 0.0, 0.0, 0.0),
        ]
    )
    summary = summarize_usage(layout)
    assert summary.total_count == 5
    assert summary.counts_by_type == {"straight": 3, "curve": 1, "switch": 1, "crossing": 0, "other": 0}
    assert [(entry.component_id, entry.count) for entry in summary.component_counts] == [
        ("s150", 1),
        ("s200", 2),
        ("c500", 1),
        ("sw", 1),
    ]
    assert summary.component_counts[1].article == "G200"


def test_empty_layout_usage(make_layout):
    summary = summarize_usage(make_layout([]))
    assert summary.total_count == 0
    assert summary.component_counts == []
    assert set(summary.counts_by_type.values()) == {0}
