"""
Tree state: the command handler that owns the current snapshot of one tree.

Every mutation builds a complete new node list, re-runs normalization and
generation assignment over the whole graph, and only then replaces the
snapshot. A rejected mutation raises before anything is replaced, so the
previous snapshot stays intact.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
import logging
import sqlite3
import uuid

from famgraph.database import get_tree_by_owner, upsert_tree_for_owner
from famgraph.errors import CycleError, FamilyTreeError, InvalidNodeError, NodeNotFoundError
from famgraph.generation import apply_generations
from famgraph.graph import find_cycle
from famgraph.layout import layout
from famgraph.models import LayoutConfig, LayoutGraph, PersonNode, TreeData
from famgraph.normalize import coerce_node, link_parent_child, link_partners, normalize_and_link, remove_node
from famgraph.rows import label_key, label_sort_key
from famgraph.validation import check_node_fields

logger = logging.getLogger(__name__)

MAX_HISTORY = 50
NODE_FIELDS = {f.name for f in fields(PersonNode)}


def new_node_id() -> str:
    return f"node-{uuid.uuid4().hex[:12]}"


def canonical(nodes) -> list[PersonNode]:
    """Normalize a node list and recompute every generation."""
    return apply_generations(normalize_and_link(nodes))


@dataclass
class TreeHistory:
    past: list[list[PersonNode]] = field(default_factory=list)
    present: list[PersonNode] = field(default_factory=list)
    future: list[list[PersonNode]] = field(default_factory=list)


class TreeState:
    """Current tree of one owner plus undo/redo history and optional autosave."""

    def __init__(self, tree: TreeData | None = None, conn: sqlite3.Connection | None = None):
        self.conn = conn
        self.tree = tree
        if tree is not None:
            tree.nodes = canonical(tree.nodes)
        self.history = TreeHistory(present=list(tree.nodes) if tree else [])

    @classmethod
    def load(cls, conn: sqlite3.Connection, owner_id: str) -> "TreeState":
        """Load an owner's stored tree (if any) with autosave to the same connection."""
        return cls(get_tree_by_owner(conn, owner_id), conn=conn)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> list[PersonNode]:
        return self.tree.nodes if self.tree else []

    @property
    def can_undo(self) -> bool:
        return bool(self.history.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.history.future)

    def get_node(self, node_id: str) -> PersonNode | None:
        """A copy of one person; editing it does not touch the tree or its history."""
        node = next((n for n in self.nodes if n.id == node_id), None)
        return node.copy() if node else None

    def search(self, query: str) -> list[PersonNode]:
        """People whose label contains the query, ignoring case and accents."""
        needle = label_key(query)
        if not needle:
            return []
        matches = [n for n in self.nodes if needle in label_key(n.label)]
        return sorted(matches, key=label_sort_key)

    def layout(self, config: LayoutConfig | None = None) -> LayoutGraph:
        return layout(self.nodes, config)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_tree(self, owner_id: str, owner_name: str) -> TreeData:
        """Start a new tree holding a single person for the owner."""
        now = datetime.now(timezone.utc).isoformat()
        root = coerce_node(PersonNode(id=new_node_id(), label=owner_name, line="self"))
        first_name = owner_name.split(" ")[0] if owner_name.strip() else "My"
        self.tree = TreeData(
            id=f"tree-{uuid.uuid4().hex[:12]}",
            name=f"{first_name} Family",
            owner_id=owner_id,
            nodes=[root],
            created_at=now,
            updated_at=now,
        )
        self.history = TreeHistory(present=[root])
        self._save()
        return self.tree

    def add_node(self, record, initial_children_ids: list[str] | None = None) -> PersonNode:
        """
        Add a person and link them into the tree.

        Args:
            record: PersonNode or storage dict; its id is replaced by a fresh one
            initial_children_ids: People the new person is a parent of. The new
                person also becomes partner of each such child's other parent.

        Returns:
            The committed node

        Raises:
            CycleError: the new links would make someone their own ancestor
            InvalidNodeError: the record's fields are inconsistent
        """
        current = self._require_nodes()
        node = self._new_node(record, initial_children_ids)
        committed = self._commit(self._insert(current, node))
        return next(n for n in committed if n.id == node.id)

    def add_sibling(self, sibling_id: str, record) -> PersonNode:
        """
        Add a brother or sister of an existing person.

        The new person gets the sibling's parents. When the sibling has no
        recorded parents, a placeholder father and mother are created as a
        couple and assigned to the sibling. Everything lands in one history
        step, or nothing does.
        """
        current = self._require_nodes()
        sibling = self._require_node(sibling_id)
        node = self._new_node(record)
        working = list(current)
        parent_ids = list(sibling.parent_ids)

        if not parent_ids:
            father = self._new_node(PersonNode(id="", label="Father", sex="M", is_placeholder=True))
            working = self._insert(working, father)
            mother = self._new_node(
                PersonNode(id="", label="Mother", sex="F", partners=[father.id], is_placeholder=True)
            )
            working = self._insert(working, mother)
            parent_ids = [father.id, mother.id]
            working = normalize_and_link(
                n.copy(parent_ids=list(parent_ids), parent_id=father.id) if n.id == sibling_id else n
                for n in working
            )
            logger.info("Created placeholder parents for %s", sibling_id)

        node.parent_ids = parent_ids
        node.parent_id = parent_ids[0]
        committed = self._commit(self._insert(working, node))
        return next(n for n in committed if n.id == node.id)

    def update_node(self, node_id: str, updates: dict) -> PersonNode:
        """Apply a partial update (PersonNode attribute names) to one person."""
        return self.update_nodes([(node_id, updates)])[0]

    def update_nodes(self, updates: list[tuple[str, dict]]) -> list[PersonNode]:
        """Apply several partial updates as a single history step."""
        current = self._require_nodes()
        by_id = {n.id: n.copy() for n in current}

        for node_id, changes in updates:
            if node_id not in by_id:
                raise NodeNotFoundError(node_id)
            if "id" in changes:
                raise InvalidNodeError("Person IDs cannot be changed")
            unknown = set(changes) - NODE_FIELDS
            if unknown:
                raise InvalidNodeError(f"Unknown person fields: {sorted(unknown)}")
            changes = dict(changes)
            # A new parent list replaces the legacy primary parent too
            if "parent_ids" in changes and "parent_id" not in changes:
                changes["parent_id"] = changes["parent_ids"][0] if changes["parent_ids"] else None
            candidate = by_id[node_id].copy(**changes)
            check_node_fields(candidate)
            by_id[node_id] = candidate

        cycle = find_cycle(by_id.values())
        if cycle:
            raise CycleError(cycle)

        committed = self._commit(list(by_id.values()))
        touched = {node_id for node_id, _ in updates}
        return [n for n in committed if n.id in touched]

    def delete_node(self, node_id: str) -> None:
        current = self._require_nodes()
        self._require_node(node_id)
        self._commit(remove_node(current, node_id))

    def import_nodes(self, nodes) -> list[PersonNode]:
        """Replace the whole tree with an imported node list."""
        self._require_nodes()
        return self._commit(list(nodes))

    def undo(self) -> bool:
        if not self.history.past:
            return False
        previous = self.history.past.pop()
        self.history.future.insert(0, self.history.present)
        self.history.present = previous
        self._replace(previous)
        return True

    def redo(self) -> bool:
        if not self.history.future:
            return False
        following = self.history.future.pop(0)
        self.history.past.append(self.history.present)
        self.history.present = following
        self._replace(following)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_nodes(self) -> list[PersonNode]:
        if self.tree is None:
            raise FamilyTreeError("No tree selected")
        return self.tree.nodes

    def _require_node(self, node_id: str) -> PersonNode:
        self._require_nodes()
        node = self.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def _new_node(self, record, children_ids: list[str] | None = None) -> PersonNode:
        """A checked copy of the record under a fresh ID."""
        node_id = new_node_id()
        if isinstance(record, PersonNode):
            node = coerce_node(record.copy(id=node_id))
        else:
            node = coerce_node({**record, "id": node_id})
        node.generation = 0
        node.children_ids = list(children_ids or [])
        check_node_fields(node)
        return node

    def _insert(self, nodes: list, node: PersonNode) -> list[PersonNode]:
        """Link a new node into a working list without committing it."""
        cycle = find_cycle(nodes, node)
        if cycle:
            raise CycleError(cycle)

        updated = normalize_and_link([*nodes, node])

        for child_id in node.children_ids:
            updated = link_parent_child(updated, node.id, child_id)
            child = next((n for n in updated if n.id == child_id), None)
            other_parent = next((pid for pid in child.parent_ids if pid != node.id), None) if child else None
            if other_parent:
                updated = link_partners(updated, node.id, other_parent)

        if node.parent_id:
            updated = link_parent_child(updated, node.parent_id, node.id)

        for partner_id in node.partners:
            updated = link_partners(updated, node.id, partner_id)

        return updated

    def _commit(self, nodes) -> list[PersonNode]:
        committed = canonical(nodes)
        # Normalization adds links of its own, so check the result as well
        cycle = find_cycle(committed)
        if cycle:
            raise CycleError(cycle)
        self.history.past = [*self.history.past, self.history.present][-MAX_HISTORY:]
        self.history.present = committed
        self.history.future = []
        self._replace(committed)
        return committed

    def _replace(self, nodes: list[PersonNode]) -> None:
        self.tree.nodes = nodes
        self.tree.updated_at = datetime.now(timezone.utc).isoformat()
        self._save()

    def _save(self) -> None:
        if self.conn is None or self.tree is None:
            return
        saved = upsert_tree_for_owner(self.conn, self.tree.owner_id, self.tree.name, self.tree.nodes)
        self.tree.id = saved.id
        self.tree.name = saved.name
