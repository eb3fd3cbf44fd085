"""Example pipeline: build an oval from a catalog, snap the last piece and export it."""

from trackplan import (
    LayoutEditor,
    Pose,
    empty_layout,
    export_project,
    generate_svg_document,
    group_partition,
    new_project,
    parse_track_system,
    summarize_usage,
)
from trackplan.layout import EndpointRef

CATALOG = {
    "id": "h0-demo",
    "name": "H0 demo set",
    "scale": "H0",
    "ratio": 87,
    "gaugeMm": 16.5,
    "components": [
        {"id": "g231", "type": "straight", "label": "Straight 231", "lengthMm": 230.93},
        {"id": "r2-30", "type": "curve", "label": "Curve R2 30", "radiusMm": 437.5, "angleDeg": 30},
    ],
}


def main() -> None:
    editor = LayoutEditor(empty_layout([parse_track_system(CATALOG)]))

    pieces = ["g231"] + ["r2-30"] * 6 + ["g231"] + ["r2-30"] * 6
    previous = None
    for idx, component_id in enumerate(pieces):
        item_id = f"p{idx:02d}"
        editor.add_item(component_id, Pose(0.0, -1000.0 - 300.0 * idx, 0.0), item_id=item_id)
        if previous is not None:
            editor.connect_selected_endpoints(EndpointRef(previous, "end"), EndpointRef(item_id, "start"))
        previous = item_id

    # the loop closes onto the first straight
    result = editor.connect_selected_endpoints(EndpointRef(previous, "end"), EndpointRef("p00", "start"))
    print("Closing connection:", getattr(result, "connection", None) or result.message)

    layout = editor.layout
    print("Pieces:", len(layout.placed_items))
    print("Connections:", len(layout.connections))
    print("Groups:", len(group_partition(layout)))
    for entry in summarize_usage(layout).component_counts:
        print(f"  {entry.count} x {entry.label}")

    project = new_project("Oval", layout)
    with open("oval.json", "w", encoding="utf-8") as fout:
        fout.write(export_project(project))
    with open("oval.svg", "w", encoding="utf-8") as fout:
        fout.write(generate_svg_document(layout, title=project.name))


if __name__ == "__main__":
    main()
