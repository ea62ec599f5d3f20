"""Generation (depth) assignment over the parent -> child relation."""

import logging
from collections.abc import Iterable

from famgraph.models import PersonNode, as_person_node

logger = logging.getLogger(__name__)


def assign_generations(nodes: Iterable) -> dict[str, int]:
    """
    Compute a generation for every node by longest-path relaxation.

    People without known parents start from their previously stored
    generation (clamped to >= 0) and are raised to the level of their
    deepest partner, so an in-law stays level with the person they married.
    Everyone else starts at 0 and is raised to max(parent generations) + 1.
    Passes repeat until nothing changes. Generations are then shifted so
    the smallest is 0.

    The pass count is capped at 4 * n + 16. Hitting the cap (only possible
    with a cycle) returns the best effort values rather than failing.
    """
    people: dict[str, PersonNode] = {}
    for n in nodes:
        node = as_person_node(n)
        people[node.id] = node
    if not people:
        return {}

    parents_of = {
        nid: [pid for pid in p.parent_ids if pid in people and pid != nid]
        for nid, p in people.items()
    }
    partners_of = {
        nid: [pid for pid in p.partners if pid in people and pid != nid]
        for nid, p in people.items()
    }
    generation = {
        nid: 0 if parents_of[nid] else max(people[nid].generation, 0) for nid in people
    }

    max_passes = 4 * len(people) + 16
    for _ in range(max_passes):
        changed = False
        for nid, parents in parents_of.items():
            if parents:
                proposed = max(generation[pid] for pid in parents) + 1
            elif partners_of[nid]:
                proposed = max(generation[pid] for pid in partners_of[nid])
            else:
                continue
            if proposed > generation[nid]:
                generation[nid] = proposed
                changed = True
        if not changed:
            break
    else:
        logger.warning(
            "Generation assignment did not converge after %d passes; "
            "the parent-child relation probably contains a cycle",
            max_passes,
        )

    lowest = min(generation.values())
    return {nid: g - lowest for nid, g in generation.items()}


def apply_generations(nodes: Iterable) -> list[PersonNode]:
    """Return copies of the nodes with `generation` recomputed."""
    people = [as_person_node(n) for n in nodes]
    generations = assign_generations(people)
    for node in people:
        node.generation = generations[node.id]
    return people


def compute_generation(nodes: Iterable, node_id: str) -> int:
    """Generation of a single person, or 0 if the ID is unknown."""
    return assign_generations(nodes).get(node_id, 0)
