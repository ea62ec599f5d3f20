"""NetworkX graph building, cycle detection and subgraph selection."""

import logging
from collections.abc import Iterable

import networkx as nx

from famgraph.models import PersonNode, as_person_node

logger = logging.getLogger(__name__)

PARENT_OF = "PARENT_OF"
SPOUSE_OF = "SPOUSE_OF"


def build_graph(nodes: Iterable) -> nx.DiGraph:
    """
    Build a NetworkX directed graph from a node collection.

    PARENT_OF edges run parent -> child. SPOUSE_OF edges are added once per
    partner pair, from the ID that sorts first.
    """
    G = nx.DiGraph()
    people = [as_person_node(n) for n in nodes]

    # Add nodes (persons)
    # Note: use 'person_name' instead of 'name' to avoid conflict with pydot
    for p in people:
        G.add_node(
            p.id,
            person_name=p.label,
            sex=p.sex,
            birth_year=p.year,
            death_year=p.death_year,
        )

    # Add edges (relationships), skipping references to unknown people
    for p in people:
        for cid in p.children_ids:
            if cid in G:
                G.add_edge(p.id, cid, relationship_type=PARENT_OF)
        for pid in p.parent_ids:
            if pid in G:
                G.add_edge(pid, p.id, relationship_type=PARENT_OF)
        for pid in p.partners:
            if pid in G:
                a, b = sorted((p.id, pid))
                if not G.has_edge(b, a):
                    G.add_edge(a, b, relationship_type=SPOUSE_OF)

    return G


def build_lineage_graph(nodes: Iterable, candidate=None) -> nx.DiGraph:
    """
    Build the parent -> child digraph used for cycle detection.

    The candidate (a new or modified node, possibly not stored yet) replaces
    any stored node with the same ID before the edges are collected.
    """
    people: dict[str, PersonNode] = {}
    for n in nodes:
        node = as_person_node(n)
        people[node.id] = node
    if candidate is not None:
        node = as_person_node(candidate)
        people[node.id] = node

    G = nx.DiGraph()
    G.add_nodes_from(people)
    for p in people.values():
        for cid in p.children_ids:
            if cid:
                G.add_edge(p.id, cid)
        for pid in p.parent_ids:
            if pid:
                G.add_edge(pid, p.id)
        if p.parent_id:
            G.add_edge(p.parent_id, p.id)
    return G


def find_cycle(nodes: Iterable, candidate=None) -> list[str] | None:
    """Return the IDs along a parent -> child cycle, or None if the lineage is acyclic."""
    G = build_lineage_graph(nodes, candidate)
    try:
        cycle = nx.find_cycle(G, orientation="original")
    except nx.NetworkXNoCycle:
        return None
    cycle_nodes = [edge[0] for edge in cycle]
    logger.debug("Cycle detected in parent-child relationships: %s", cycle_nodes)
    return cycle_nodes


def detect_cycle(nodes: Iterable, candidate=None) -> bool:
    """True if the node set, with the candidate applied, makes anyone their own ancestor."""
    return find_cycle(nodes, candidate) is not None


def ego_node_ids(nodes: Iterable, center_id: str, radius: int = 2) -> set[str]:
    """
    Collect the people within a given number of relationship steps of a person.

    Args:
        nodes: The full node collection
        center_id: The person ID to center the selection on
        radius: Maximum distance from center (default 2)

    Returns:
        IDs of everyone within `radius` parent, child or partner links of `center_id`
    """
    G = build_graph(nodes)
    if center_id not in G:
        raise ValueError(f"Person ID {center_id} not found in graph")

    # Use undirected view for ego graph to capture both directions
    # (parents, children, spouses all within radius)
    undirected = G.to_undirected()
    ego = nx.ego_graph(undirected, center_id, radius=radius)
    return set(ego.nodes())
