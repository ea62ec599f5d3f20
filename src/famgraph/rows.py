"""
Row construction for the layered family tree layout.

Each generation becomes one row. The top row is ordered by name. Every later
row is split into sibling clusters (people sharing the same set of parents)
that are ordered under their parents, with a group break between clusters.
Partners are placed next to each other in every row.
"""

import math
import unicodedata
from collections import defaultdict

from famgraph.models import PersonNode

# Placeholder in a row for extra horizontal space between sibling clusters
GROUP_BREAK = None

Row = list[str | None]


def label_key(label: str) -> str:
    """Case and accent insensitive collation key for display labels."""
    decomposed = unicodedata.normalize("NFKD", label or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold().strip()


def label_sort_key(node: PersonNode) -> tuple[str, str]:
    return (label_key(node.label), node.id)


def order_couple(a: PersonNode, b: PersonNode) -> tuple[PersonNode, PersonNode]:
    """Left-to-right order of a couple: male first when both are tagged, else by name."""
    if {a.sex, b.sex} == {"M", "F"}:
        return (a, b) if a.sex == "M" else (b, a)
    return (a, b) if label_sort_key(a) <= label_sort_key(b) else (b, a)


def compact_partners(ids: list[str], nodes_by_id: dict[str, PersonNode]) -> list[str]:
    """Reorder IDs so that each person sits next to one partner from the same list."""
    present = set(ids)
    visited: set[str] = set()
    result: list[str] = []

    for nid in ids:
        if nid in visited:
            continue
        visited.add(nid)
        node = nodes_by_id[nid]

        candidates = [
            nodes_by_id[pid]
            for pid in node.partners
            if pid in present and pid not in visited
        ]
        if not candidates:
            result.append(nid)
            continue

        partner = min(candidates, key=label_sort_key)
        visited.add(partner.id)
        left, right = order_couple(node, partner)
        result.extend([left.id, right.id])

    return result


def order_index(rows: list[Row]) -> dict[str, int]:
    """Position of every person within their row, not counting group breaks."""
    index: dict[str, int] = {}
    for row in rows:
        position = 0
        for nid in row:
            if nid is GROUP_BREAK:
                continue
            index[nid] = position
            position += 1
    return index


def _cluster_row(
    ids: list[str], nodes_by_id: dict[str, PersonNode], above: dict[str, int]
) -> Row:
    in_row = set(ids)
    signature: dict[str, str] = {}
    for nid in ids:
        parents = sorted(pid for pid in nodes_by_id[nid].parent_ids if pid in nodes_by_id)
        if parents:
            signature[nid] = "|".join(parents)

    # People without parents join the sibling cluster of a partner in this row
    # instead of a cluster of their own, so couples are never split by a break
    for nid in ids:
        if nid in signature:
            continue
        partners = sorted(
            (nodes_by_id[pid] for pid in nodes_by_id[nid].partners if pid in in_row and pid in signature),
            key=label_sort_key,
        )
        signature[nid] = signature[partners[0].id] if partners else f"~{nid}"

    clusters: dict[str, list[str]] = defaultdict(list)
    for nid in ids:
        clusters[signature[nid]].append(nid)

    def anchor(members: list[str]) -> float:
        positions = [
            above[pid]
            for nid in members
            for pid in nodes_by_id[nid].parent_ids
            if pid in above
        ]
        return sum(positions) / len(positions) if positions else math.inf

    ordered = sorted(clusters.items(), key=lambda item: (anchor(item[1]), item[0]))

    row: Row = []
    for _, members in ordered:
        if row:
            row.append(GROUP_BREAK)
        members = sorted(members, key=lambda nid: label_sort_key(nodes_by_id[nid]))
        row.extend(compact_partners(members, nodes_by_id))
    return row


def build_rows(nodes_by_id: dict[str, PersonNode], generations: dict[str, int]) -> list[Row]:
    """
    Group people into ordered rows, one per generation, oldest first.

    Args:
        nodes_by_id: Normalized people keyed by ID
        generations: Generation of every person, e.g. from assign_generations

    Returns:
        One list per row with person IDs in left-to-right order and
        GROUP_BREAK markers between sibling clusters
    """
    by_generation: dict[int, list[str]] = defaultdict(list)
    for nid in nodes_by_id:
        by_generation[generations.get(nid, 0)].append(nid)

    rows: list[Row] = []
    above: dict[str, int] = {}
    for generation in sorted(by_generation):
        ids = by_generation[generation]
        if not rows:
            ids = sorted(ids, key=lambda nid: label_sort_key(nodes_by_id[nid]))
            row = compact_partners(ids, nodes_by_id)
        else:
            row = _cluster_row(ids, nodes_by_id, above)
        rows.append(row)
        # Clusters are anchored on the row directly above only
        above = order_index([row])

    return rows
