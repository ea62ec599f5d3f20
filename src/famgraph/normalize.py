"""
Relationship normalization for family tree node collections.

Users edit one side of a relationship at a time, so raw node lists routinely
carry half-recorded links: a parent listing a child that does not list the
parent back, a partner link on only one side, a child with only one of two
parents recorded. `normalize_and_link` turns such a list into a canonical
one where every parent/child and partner link is mirrored on both sides.

The normalizer runs a fixed sequence of passes over an ID-keyed dict. Each
pass is a separate function that reads the dict as left by the previous one.
"""

import logging
from collections.abc import Iterable

from famgraph.models import SOCIAL_FIELDS, PersonNode, as_person_node

logger = logging.getLogger(__name__)

NodeMap = dict[str, PersonNode]


def unique(ids: Iterable[str | None]) -> list[str]:
    """De-duplicate IDs preserving first-seen order, dropping empty values."""
    return list(dict.fromkeys(i for i in ids if i))


def effective_parents(node: PersonNode, nodes_by_id: NodeMap) -> set[str]:
    """Known parents recorded on either side of the link."""
    parents = {pid for pid in node.parent_ids if pid in nodes_by_id}
    parents.update(pid for pid, p in nodes_by_id.items() if node.id in p.children_ids)
    return parents


def shares_parent(a: PersonNode, b: PersonNode, nodes_by_id: NodeMap) -> bool:
    a_parents = effective_parents(a, nodes_by_id)
    if not a_parents:
        return False
    return not a_parents.isdisjoint(effective_parents(b, nodes_by_id))


def descendants(node_id: str, nodes_by_id: NodeMap) -> set[str]:
    """Everyone reachable from a person through children_ids."""
    found: set[str] = set()
    stack = [node_id]
    while stack:
        current = nodes_by_id.get(stack.pop())
        if current is None:
            continue
        for cid in current.children_ids:
            if cid not in found:
                found.add(cid)
                stack.append(cid)
    return found


# ============================================================================
# Passes
# ============================================================================


def coerce_node(record) -> PersonNode:
    """Merge legacy parent_id into parent_ids, de-duplicate links and tidy content."""
    node = as_person_node(record)
    node.parent_ids = unique([*node.parent_ids, node.parent_id])
    node.partners = unique(p for p in node.partners if p != node.id)
    node.children_ids = unique(c for c in node.children_ids if c != node.id)
    node.parent_ids = [p for p in node.parent_ids if p != node.id]
    node.parent_id = node.parent_ids[0] if node.parent_ids else None

    content = node.content
    for name in SOCIAL_FIELDS:
        value = getattr(content, name)
        value = value.strip() if isinstance(value, str) else ""
        setattr(content, name, value or None)
    if not isinstance(content.description, str):
        content.description = ""
    return node


def mirror_partners(nodes_by_id: NodeMap) -> None:
    for a in nodes_by_id.values():
        for bid in a.partners:
            b = nodes_by_id.get(bid)
            if b is not None and a.id not in b.partners:
                b.partners.append(a.id)


def strip_sibling_partners(nodes_by_id: NodeMap) -> None:
    """Siblings are never partners; unknown partner IDs are dropped as well."""
    for node in nodes_by_id.values():
        kept = []
        for pid in node.partners:
            partner = nodes_by_id.get(pid)
            if partner is None:
                logger.debug("Dropping unknown partner %s of %s", pid, node.id)
                continue
            if shares_parent(node, partner, nodes_by_id):
                logger.debug("Dropping sibling partner link %s <-> %s", node.id, pid)
                continue
            kept.append(pid)
        node.partners = kept


def mirror_children_to_parents(nodes_by_id: NodeMap) -> None:
    for parent in nodes_by_id.values():
        for cid in parent.children_ids:
            child = nodes_by_id.get(cid)
            if child is not None and parent.id not in child.parent_ids:
                child.parent_ids.append(parent.id)


def mirror_parents_to_children(nodes_by_id: NodeMap) -> None:
    for child in nodes_by_id.values():
        for pid in child.parent_ids:
            parent = nodes_by_id.get(pid)
            if parent is not None and child.id not in parent.children_ids:
                parent.children_ids.append(child.id)


def infer_co_parents(nodes_by_id: NodeMap) -> None:
    """
    Fill in a missing second parent from the known parent's partner.

    A child with exactly one known parent P gets a second parent when exactly
    one of P's partners is already linked to the child, or failing that when
    P has exactly one partner at all. Several equally plausible partners
    means no inference. A partner who descends from the child is never a
    candidate, since that link would close a cycle.
    """
    for child in nodes_by_id.values():
        known = [pid for pid in child.parent_ids if pid in nodes_by_id]
        if len(known) != 1:
            continue
        parent = nodes_by_id[known[0]]
        if not parent.partners:
            continue
        below = descendants(child.id, nodes_by_id)

        candidates = [
            pid
            for pid in parent.partners
            if pid in nodes_by_id
            and pid != child.id
            and pid not in below
            and not shares_parent(parent, nodes_by_id[pid], nodes_by_id)
        ]
        if not candidates:
            continue

        linked = [pid for pid in candidates if child.id in nodes_by_id[pid].children_ids]
        if len(linked) == 1:
            inferred_id = linked[0]
        elif len(candidates) == 1:
            inferred_id = candidates[0]
        else:
            logger.debug("Co-parent of %s is ambiguous among %s", child.id, candidates)
            continue

        if inferred_id in child.parent_ids:
            continue
        # The child must not end up sharing a parent with one of its own partners
        if any(
            inferred_id in effective_parents(nodes_by_id[pid], nodes_by_id)
            for pid in child.partners
            if pid in nodes_by_id
        ):
            continue

        child.parent_ids.append(inferred_id)
        inferred = nodes_by_id[inferred_id]
        if child.id not in inferred.children_ids:
            inferred.children_ids.append(child.id)
        logger.debug("Inferred %s as co-parent of %s", inferred_id, child.id)


def sync_legacy_parent(nodes_by_id: NodeMap) -> None:
    """Drop dangling references and keep parent_id equal to parent_ids[0]."""
    for node in nodes_by_id.values():
        node.parent_ids = unique(p for p in node.parent_ids if p in nodes_by_id)
        node.children_ids = unique(c for c in node.children_ids if c in nodes_by_id)
        node.partners = unique(p for p in node.partners if p in nodes_by_id)
        node.parent_id = node.parent_ids[0] if node.parent_ids else None


PASSES = (
    mirror_partners,
    strip_sibling_partners,
    mirror_children_to_parents,
    mirror_parents_to_children,
    infer_co_parents,
    sync_legacy_parent,
)


def normalize_and_link(nodes: Iterable) -> list[PersonNode]:
    """
    Return the canonical form of a raw node collection.

    Args:
        nodes: PersonNode objects or storage dicts, in display order

    Returns:
        New PersonNode objects in the same order (a repeated ID keeps the
        first occurrence's position and the last record) with all
        relationships mirrored and dangling references removed
    """
    nodes_by_id: NodeMap = {}
    for record in nodes:
        node = coerce_node(record)
        if node.id in nodes_by_id:
            logger.warning("Duplicate node id %s, keeping the last record", node.id)
        nodes_by_id[node.id] = node

    for step in PASSES:
        step(nodes_by_id)

    return list(nodes_by_id.values())


# ============================================================================
# Mutation helpers
# ============================================================================


def _ids(nodes: list) -> set[str]:
    return {str(n.id if isinstance(n, PersonNode) else n.get("id")) for n in nodes}


def link_partners(nodes: list, a_id: str, b_id: str) -> list:
    """Link two people as partners; unknown IDs leave the input untouched."""
    ids = _ids(nodes)
    if a_id not in ids or b_id not in ids or a_id == b_id:
        return nodes

    nodes_by_id = {n.id: n for n in map(coerce_node, nodes)}
    nodes_by_id[a_id].partners.append(b_id)
    nodes_by_id[b_id].partners.append(a_id)
    return normalize_and_link(nodes_by_id.values())


def link_parent_child(nodes: list, parent_id: str, child_id: str) -> list:
    """Record parent_id as a parent of child_id; unknown IDs leave the input untouched."""
    ids = _ids(nodes)
    if parent_id not in ids or child_id not in ids or parent_id == child_id:
        return nodes

    nodes_by_id = {n.id: n for n in map(coerce_node, nodes)}
    nodes_by_id[parent_id].children_ids.append(child_id)
    nodes_by_id[child_id].parent_ids.append(parent_id)
    return normalize_and_link(nodes_by_id.values())


def remove_node(nodes: list, node_id: str) -> list[PersonNode]:
    """Remove a person and every reference to them, promoting remaining parents."""
    remaining = []
    for node in map(coerce_node, nodes):
        if node.id == node_id:
            continue
        node.parent_ids = [p for p in node.parent_ids if p != node_id]
        node.children_ids = [c for c in node.children_ids if c != node_id]
        node.partners = [p for p in node.partners if p != node_id]
        node.parent_id = node.parent_ids[0] if node.parent_ids else None
        remaining.append(node)
    return normalize_and_link(remaining)
