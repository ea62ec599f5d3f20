"""Coordinate assignment and connector geometry for the family tree drawing."""

import logging
from collections.abc import Iterable

from famgraph.generation import assign_generations
from famgraph.models import LayoutConfig, LayoutEdge, LayoutGraph, PersonNode, Point, as_person_node
from famgraph.rows import GROUP_BREAK, Row, build_rows

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = LayoutConfig()


def position_rows(
    rows: list[Row], nodes_by_id: dict[str, PersonNode], config: LayoutConfig = DEFAULT_CONFIG
) -> tuple[float, float]:
    """
    Set x/y (node centers) and generation on every node that appears in `rows`.

    Rows are centered within the widest row. Returns the canvas (width, height).
    """
    if not rows:
        return 0.0, 0.0

    step = config.node_size + config.column_gap
    local_x: list[dict[str, float]] = []
    extents: list[float] = []

    for row in rows:
        cursor = 0.0
        centers: dict[str, float] = {}
        for nid in row:
            if nid is GROUP_BREAK:
                cursor += config.group_gap
                continue
            centers[nid] = cursor + config.node_size / 2
            cursor += step
        local_x.append(centers)
        extents.append(cursor - config.column_gap if centers else 0.0)

    widest = max(extents)
    for row_index, (centers, extent) in enumerate(zip(local_x, extents)):
        shift = config.padding + (widest - extent) / 2
        y = config.padding + row_index * config.row_spacing
        for nid, x in centers.items():
            node = nodes_by_id[nid]
            node.x = shift + x
            node.y = y
            # Row index is authoritative for rendering
            node.generation = row_index

    width = widest + 2 * config.padding
    height = (len(rows) - 1) * config.row_spacing + config.node_size + 2 * config.padding
    return width, height


def _spouse_edges(people: list[PersonNode], nodes_by_id: dict[str, PersonNode]) -> list[LayoutEdge]:
    edges: list[LayoutEdge] = []
    seen: set[tuple[str, str]] = set()
    for a in people:
        for pid in a.partners:
            b = nodes_by_id.get(pid)
            if b is None or b.id == a.id:
                continue
            key = tuple(sorted((a.id, b.id)))
            if key in seen:
                continue
            seen.add(key)
            left, right = (a, b) if a.id == key[0] else (b, a)
            edges.append(
                LayoutEdge(
                    id=f"spouse-{key[0]}-{key[1]}",
                    source=key[0],
                    target=key[1],
                    type="spouse",
                    path=[Point(left.x, left.y), Point(right.x, right.y)],
                )
            )
    return edges


def _union_child_edges(
    people: list[PersonNode], nodes_by_id: dict[str, PersonNode], config: LayoutConfig
) -> list[LayoutEdge]:
    edges: list[LayoutEdge] = []
    half = config.node_size / 2
    for child in people:
        parents = [nodes_by_id[pid] for pid in child.parent_ids if pid in nodes_by_id]
        if not parents:
            continue
        parent_ids = sorted(p.id for p in parents)

        start_x = sum(p.x for p in parents) / len(parents)
        start_y = max(p.y for p in parents) + half
        end_y = child.y - half
        drop_y = start_y + (end_y - start_y) / 2

        edges.append(
            LayoutEdge(
                id=f"union-child-{'+'.join(parent_ids)}-{child.id}",
                source=f"union-{'+'.join(parent_ids)}",
                target=child.id,
                type="union-child",
                path=[
                    Point(start_x, start_y),
                    Point(start_x, drop_y),
                    Point(child.x, drop_y),
                    Point(child.x, end_y),
                ],
            )
        )
    return edges


def build_edges(people: list[PersonNode], config: LayoutConfig = DEFAULT_CONFIG) -> list[LayoutEdge]:
    """
    Derive drawable connectors from positioned people.

    One "spouse" edge per unordered partner pair, then one "union-child"
    elbow per child with at least one parent: down from the middle of the
    parents, across to the child, down into the child.
    """
    nodes_by_id = {p.id: p for p in people if p.x is not None and p.y is not None}
    positioned = list(nodes_by_id.values())
    return _spouse_edges(positioned, nodes_by_id) + _union_child_edges(positioned, nodes_by_id, config)


def layout(nodes: Iterable, config: LayoutConfig | None = None) -> LayoutGraph:
    """
    Lay out a normalized node collection for rendering.

    Args:
        nodes: Canonical PersonNode objects or storage dicts
        config: Spacing constants (defaults to LayoutConfig())

    Returns:
        A LayoutGraph with positioned copies of the nodes in input order,
        the connector edges and the canvas extent
    """
    config = config or DEFAULT_CONFIG
    people = [as_person_node(n) for n in nodes]
    if not people:
        return LayoutGraph()

    nodes_by_id = {p.id: p for p in people}
    generations = assign_generations(people)
    rows = build_rows(nodes_by_id, generations)
    width, height = position_rows(rows, nodes_by_id, config)
    edges = build_edges(people, config)

    logger.debug(
        "Laid out %d people in %d rows with %d edges (%.0fx%.0f)",
        len(people),
        len(rows),
        len(edges),
        width,
        height,
    )
    return LayoutGraph(nodes=people, edges=edges, width=width, height=height)
