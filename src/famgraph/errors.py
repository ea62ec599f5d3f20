"""Exceptions raised at the tree mutation boundary."""


class FamilyTreeError(ValueError):
    """Base class for rejected tree mutations."""


class CycleError(FamilyTreeError):
    """Raised when a mutation would make a person their own ancestor."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        path = " -> ".join(cycle + cycle[:1]) if cycle else "?"
        super().__init__(f"Relationship would create a circular lineage: {path}")


class InvalidNodeError(FamilyTreeError):
    """Raised when a node record carries impossible field values."""


class NodeNotFoundError(FamilyTreeError):
    """Raised when a mutation references a person that does not exist."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Person ID {node_id} not found in tree")
