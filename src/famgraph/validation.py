"""Field checks at the mutation boundary and whole-tree plausibility warnings."""

from collections.abc import Iterable

from famgraph.errors import InvalidNodeError
from famgraph.graph import find_cycle
from famgraph.models import PersonNode, as_person_node

MIN_PARENT_AGE = 12


def check_node_fields(node: PersonNode) -> None:
    """Reject a record whose death year precedes its birth year."""
    if node.year is not None and node.death_year is not None and node.death_year < node.year:
        raise InvalidNodeError(
            f"{node.label or node.id}: death year {node.death_year} is before "
            f"birth year {node.year}"
        )


def validate_tree(nodes: Iterable) -> list[str]:
    """
    Validate the family tree for:
    - Cycles in parent-child relationships
    - Impossible ages (child born before parent)
    - Date ordering issues

    Returns a list of warning messages.
    """
    warnings: list[str] = []
    people = {n.id: n for n in map(as_person_node, nodes)}

    # Check for cycles
    cycle_nodes = find_cycle(people.values())
    if cycle_nodes:
        warnings.append(f"Cycle detected in parent-child relationships: {cycle_nodes}")

    # Check for impossible ages (child born before parent)
    for child in people.values():
        for pid in child.parent_ids:
            parent = people.get(pid)
            if parent is None or parent.year is None or child.year is None:
                continue

            if child.year < parent.year:
                warnings.append(
                    f"Impossible: {child.label} born before parent {parent.label}"
                )
            elif child.year - parent.year < MIN_PARENT_AGE:
                warnings.append(
                    f"Suspicious: {parent.label} was less than {MIN_PARENT_AGE} years "
                    f"old when {child.label} was born"
                )

    # Check death before birth
    for person in people.values():
        if person.year is not None and person.death_year is not None:
            if person.death_year < person.year:
                warnings.append(f"Impossible: {person.label} died before being born")

    return warnings
