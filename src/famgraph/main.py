"""
1) Import family tree records from a GEDCOM or JSON file.
2) Normalize relationships and assign generations.
3) Validate the tree for cycles, impossible ages and date ordering.
4) Store the tree in SQLite under an owner ID.
5) Lay out the tree and plot it (PNG/SVG/PDF) and/or export DOT.
"""

import argparse
import logging
from pathlib import Path

from famgraph.database import create_database
from famgraph.errors import CycleError
from famgraph.graph import ego_node_ids
from famgraph.layout import layout
from famgraph.models import LayoutConfig
from famgraph.parsing import load_gedcom_nodes, load_json_nodes
from famgraph.plotting import plot_layout, to_dot
from famgraph.state import TreeState
from famgraph.validation import validate_tree

MAX_WARNINGS_SHOWN = 10


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="famgraph",
        description="Normalize, validate, store and draw a family tree.",
    )
    parser.add_argument("input", type=Path, help="Input .ged or .json file")
    parser.add_argument("--db", type=Path, help="SQLite database to store the tree in")
    parser.add_argument("--owner", default="local", help="Owner ID the tree is stored under")
    parser.add_argument("--name", default="", help="Tree name")
    parser.add_argument("-o", "--output", type=Path, help="Image output path (.png, .svg, .pdf)")
    parser.add_argument("--dot", type=Path, help="Write DOT with pinned positions to this path")
    parser.add_argument("--focus", help="Only draw people near this person ID")
    parser.add_argument("--radius", type=int, default=2, help="Relationship steps around --focus")
    parser.add_argument("--node-size", type=float, default=LayoutConfig.node_size)
    parser.add_argument("--row-spacing", type=float, default=LayoutConfig.row_spacing)
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def load_records(path: Path) -> list[dict]:
    if path.suffix.lower() in (".ged", ".gedcom"):
        return load_gedcom_nodes(path)
    return load_json_nodes(path)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.input.exists():
        print(f"Input file not found: {args.input}")
        return 2

    print(f"Reading family tree: {args.input}")
    records = load_records(args.input)
    print(f"  Found {len(records)} persons")

    conn = create_database(args.db) if args.db else None
    state = TreeState(conn=conn)
    state.create_tree(args.owner, args.owner)
    state.tree.name = args.name or args.input.stem

    print("Normalizing relationships...")
    try:
        nodes = state.import_nodes(records)
    except CycleError as exc:
        print(f"  {exc}")
        if conn is not None:
            conn.close()
        return 1

    print("Validating tree...")
    warnings = validate_tree(nodes)
    if warnings:
        print(f"  Found {len(warnings)} validation warnings:")
        for w in warnings[:MAX_WARNINGS_SHOWN]:
            print(f"    - {w}")
        if len(warnings) > MAX_WARNINGS_SHOWN:
            print(f"    ... and {len(warnings) - MAX_WARNINGS_SHOWN} more")
    else:
        print("  No validation issues found")

    if conn is not None:
        print(f"Stored tree for owner {args.owner} in {args.db}")
        conn.close()

    if args.focus:
        try:
            keep = ego_node_ids(nodes, args.focus, radius=args.radius)
        except ValueError as exc:
            print(f"  {exc}")
            return 2
        nodes = [n for n in nodes if n.id in keep]
        print(f"  Focusing on {args.focus}: {len(nodes)} persons within {args.radius} steps")

    config = LayoutConfig(node_size=args.node_size, row_spacing=args.row_spacing)
    graph = layout(nodes, config)
    print(f"Laid out {len(graph.nodes)} persons and {len(graph.edges)} connectors")

    if args.output:
        plot_layout(graph, args.output)
    if args.dot:
        to_dot(graph).write_raw(str(args.dot))
        print(f"DOT saved to {args.dot}")

    print("Done!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
