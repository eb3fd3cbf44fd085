import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from trackplan import (
    GeometryCache,
    ImportFail,
    generate_svg_document,
    group_partition,
    parse_project_import,
    summarize_usage,
)
from trackplan.connections import free_connectors

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Inspect model railway layout projects")
    parser.add_argument("path", help="Path to an exported project JSON file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--svg-output-path",
        help="Write a standalone SVG drawing of the layout to the given path",
    )
    parser.add_argument(
        "--hide-connectors",
        action="store_true",
        help="Do not draw connector markers in the SVG output",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    logger.info("Reading project from %s", args.path)
    text = Path(args.path).read_text(encoding="utf-8")

    result = parse_project_import(text)
    if isinstance(result, ImportFail):
        logger.error("Import rejected: %s", result.error)
        print(f"Import rejected: {result.error}")
        raise SystemExit(1)

    project = result.project
    layout = project.layout
    cache = GeometryCache()

    print(f"Project: {project.name} ({project.id})")
    print(f"Active track system: {layout.active_track_system_id}")

    print(f"Items ({len(layout.placed_items)}):")
    for item in layout.placed_items:
        grounded = " grounded" if item.is_grounded else ""
        free = ", ".join(free_connectors(layout, item.id, cache)) or "-"
        print(
            f"  {item.id}: {item.component_id} at ({item.x:.3f}, {item.y:.3f}) "
            f"rot {item.rotation_deg:.3f}{grounded} free=[{free}]"
        )

    print(f"Connections ({len(layout.connections)}):")
    if layout.connections:
        for connection in layout.connections:
            print(f"  {connection.a} <-> {connection.b}")
    else:
        print("  (none)")

    groups = group_partition(layout)
    print(f"Groups ({len(groups)}):")
    order = {item.id: idx for idx, item in enumerate(layout.placed_items)}
    for idx, group in enumerate(groups):
        members = sorted(group, key=order.__getitem__)
        print(f"  [{idx}] {', '.join(members)}")

    usage = summarize_usage(layout)
    print(f"Usage: {usage.total_count} piece(s)")
    for kind, count in usage.counts_by_type.items():
        if count:
            print(f"  {kind}: {count}")
    for entry in usage.component_counts:
        article = f" [{entry.article}]" if entry.article else ""
        print(f"  {entry.count} x {entry.label}{article}")

    if args.svg_output_path:
        output_path = Path(args.svg_output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Writing SVG document to %s", output_path)
        document = generate_svg_document(
            layout,
            cache=cache,
            show_connectors=not args.hide_connectors,
            title=project.name,
        )
        output_path.write_text(document, encoding="utf-8")
        print(f"SVG document written to {output_path}")


if __name__ == "__main__":
    main(sys.argv[1:])
