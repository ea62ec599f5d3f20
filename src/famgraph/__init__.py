"""Public API for famgraph."""
from famgraph.errors import CycleError, FamilyTreeError, InvalidNodeError, NodeNotFoundError
from famgraph.generation import compute_generation
from famgraph.graph import detect_cycle
from famgraph.layout import layout
from famgraph.models import LayoutConfig, LayoutEdge, LayoutGraph, PersonNode, Point
from famgraph.normalize import normalize_and_link
from famgraph.state import TreeState

__all__ = [
    "normalize_and_link",
    "layout",
    "detect_cycle",
    "compute_generation",
    "PersonNode",
    "LayoutConfig",
    "LayoutEdge",
    "LayoutGraph",
    "Point",
    "TreeState",
    "FamilyTreeError",
    "CycleError",
    "InvalidNodeError",
    "NodeNotFoundError",
]
