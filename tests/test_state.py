from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from famgraph.database import create_database
from famgraph.errors import CycleError, FamilyTreeError, InvalidNodeError, NodeNotFoundError
from famgraph.graph import detect_cycle
from famgraph.models import PersonNode, TreeData
from famgraph.state import MAX_HISTORY, TreeState


def person(node_id: str, label: str = "", **fields) -> dict:
    record = {"id": node_id, "label": label or node_id, "parentIds": [], "partners": [], "childrenIds": []}
    record.update(fields)
    return record


def make_state(*records: dict) -> TreeState:
    tree = TreeData(
        id="tree-1",
        name="Test Family",
        owner_id="owner-1",
        nodes=[PersonNode.from_dict(r) for r in records],
        created_at="",
        updated_at="",
    )
    return TreeState(tree)


class CreateTreeTests(unittest.TestCase):
    def test_create_tree(self) -> None:
        state = TreeState()
        tree = state.create_tree("owner-1", "Ada Lovelace")
        self.assertEqual(tree.name, "Ada Family")
        self.assertEqual(len(state.nodes), 1)
        root = state.nodes[0]
        self.assertEqual(root.label, "Ada Lovelace")
        self.assertEqual(root.line, "self")
        self.assertTrue(root.id.startswith("node-"))
        self.assertFalse(state.can_undo)

    def test_mutation_without_tree(self) -> None:
        with self.assertRaises(FamilyTreeError):
            TreeState().add_node({"label": "Nobody"})

    def test_loaded_tree_is_canonical(self) -> None:
        state = make_state(person("p", childrenIds=["c"]), person("c"))
        self.assertEqual(state.get_node("c").parent_ids, ["p"])
        self.assertEqual(state.get_node("c").generation, 1)


class CycleRejectionTests(unittest.TestCase):
    def test_second_update_closing_a_cycle_is_rejected(self) -> None:
        state = make_state(person("n1"), person("n2"))
        state.update_node("n2", {"parent_ids": ["n1"]})
        self.assertEqual(state.get_node("n1").children_ids, ["n2"])

        before = state.nodes
        with self.assertRaises(CycleError) as ctx:
            state.update_node("n1", {"parent_ids": ["n2"]})
        self.assertEqual(set(ctx.exception.cycle), {"n1", "n2"})
        self.assertIs(state.nodes, before)
        self.assertEqual(state.get_node("n1").parent_ids, [])

    def test_add_node_closing_a_cycle_is_rejected(self) -> None:
        state = make_state(person("gp", childrenIds=["p"]), person("p"))
        before = state.nodes
        with self.assertRaises(CycleError):
            state.add_node({"label": "X", "parentIds": ["p"]}, initial_children_ids=["gp"])
        self.assertIs(state.nodes, before)
        self.assertEqual(len(state.nodes), 2)

    def test_partner_link_does_not_infer_a_looping_parent(self) -> None:
        state = make_state(person("p", childrenIds=["c"]), person("c", childrenIds=["q"]), person("q"))
        state.update_node("p", {"partners": ["q"]})
        self.assertEqual(state.get_node("c").parent_ids, ["p"])
        self.assertEqual(state.get_node("q").partners, ["p"])
        self.assertFalse(detect_cycle(state.nodes))

    def test_import_with_a_cycle_is_rejected(self) -> None:
        state = make_state(person("a"))
        before = state.nodes
        with self.assertRaises(CycleError):
            state.import_nodes([person("x", parentIds=["y"]), person("y", parentIds=["x"])])
        self.assertIs(state.nodes, before)
        self.assertFalse(state.can_undo)


class AddNodeTests(unittest.TestCase):
    def test_add_child_of_existing_person(self) -> None:
        state = make_state(person("p"))
        kid = state.add_node({"label": "Kid", "parentId": "p"})
        self.assertEqual(kid.parent_ids, ["p"])
        self.assertEqual(kid.generation, 1)
        self.assertIn(kid.id, state.get_node("p").children_ids)

    def test_add_parent_links_partner_of_other_parent(self) -> None:
        state = make_state(person("mum"), person("kid", parentIds=["mum"]))
        dad = state.add_node({"label": "Dad", "sex": "M"}, initial_children_ids=["kid"])
        self.assertEqual(dad.children_ids, ["kid"])
        self.assertEqual(dad.partners, ["mum"])
        self.assertEqual(sorted(state.get_node("kid").parent_ids), sorted(["mum", dad.id]))
        self.assertEqual(state.get_node("mum").partners, [dad.id])

    def test_add_partner(self) -> None:
        state = make_state(person("a"))
        b = state.add_node({"label": "B", "partners": ["a"]})
        self.assertEqual(state.get_node("a").partners, [b.id])
        self.assertEqual(b.generation, 0)

    def test_record_id_is_replaced(self) -> None:
        state = make_state(person("a"))
        added = state.add_node(person("a", "Other"))
        self.assertNotEqual(added.id, "a")
        self.assertEqual(len(state.nodes), 2)

    def test_death_before_birth_is_rejected(self) -> None:
        state = make_state(person("a"))
        with self.assertRaises(InvalidNodeError):
            state.add_node({"label": "X", "year": 2000, "deathYear": 1990})
        self.assertEqual(len(state.nodes), 1)


class AddSiblingTests(unittest.TestCase):
    def test_sibling_shares_parents(self) -> None:
        state = make_state(person("p"), person("a", parentIds=["p"]))
        sibling = state.add_sibling("a", {"label": "Bea"})
        self.assertEqual(sibling.parent_ids, ["p"])
        self.assertEqual(len(state.nodes), 3)
        self.assertEqual(sorted(state.get_node("p").children_ids), sorted(["a", sibling.id]))

    def test_placeholder_parents_are_created(self) -> None:
        state = make_state(person("a"))
        sibling = state.add_sibling("a", {"label": "Bea"})

        a = state.get_node("a")
        self.assertEqual(len(a.parent_ids), 2)
        father, mother = (state.get_node(pid) for pid in a.parent_ids)
        self.assertEqual((father.label, father.sex), ("Father", "M"))
        self.assertEqual((mother.label, mother.sex), ("Mother", "F"))
        self.assertTrue(father.is_placeholder and mother.is_placeholder)
        self.assertEqual(father.partners, [mother.id])
        self.assertEqual(sorted(sibling.parent_ids), sorted(a.parent_ids))
        self.assertEqual(sibling.generation, 1)

    def test_placeholder_parents_and_sibling_are_one_history_step(self) -> None:
        state = make_state(person("a"))
        state.add_sibling("a", {"label": "Bea"})
        self.assertEqual(len(state.nodes), 4)
        self.assertEqual(len(state.history.past), 1)
        state.undo()
        self.assertEqual([n.id for n in state.nodes], ["a"])
        self.assertEqual(state.get_node("a").parent_ids, [])

    def test_rejected_sibling_leaves_tree_untouched(self) -> None:
        state = make_state(person("a"))
        before = state.nodes
        with self.assertRaises(InvalidNodeError):
            state.add_sibling("a", {"label": "Bad", "year": 2000, "deathYear": 1990})
        self.assertIs(state.nodes, before)
        self.assertEqual([n.id for n in state.nodes], ["a"])
        self.assertEqual(state.get_node("a").parent_ids, [])
        self.assertFalse(state.can_undo)

    def test_unknown_sibling(self) -> None:
        with self.assertRaises(NodeNotFoundError):
            make_state(person("a")).add_sibling("missing", {"label": "X"})


class UpdateAndDeleteTests(unittest.TestCase):
    def test_get_node_returns_a_copy(self) -> None:
        state = make_state(person("a", "Ann"), person("b"))
        node = state.get_node("a")
        node.label = "Changed"
        node.partners.append("b")
        self.assertEqual(state.get_node("a").label, "Ann")
        self.assertEqual(state.get_node("a").partners, [])
        self.assertIsNone(state.get_node("missing"))

    def test_update_label(self) -> None:
        state = make_state(person("a", "Ann"))
        updated = state.update_node("a", {"label": "Anne"})
        self.assertEqual(updated.label, "Anne")
        self.assertEqual(state.get_node("a").label, "Anne")

    def test_update_unknown_node(self) -> None:
        with self.assertRaises(NodeNotFoundError) as ctx:
            make_state(person("a")).update_node("missing", {"label": "X"})
        self.assertEqual(str(ctx.exception), "Person ID missing not found in tree")

    def test_update_rejects_id_and_unknown_fields(self) -> None:
        state = make_state(person("a"))
        with self.assertRaises(InvalidNodeError):
            state.update_node("a", {"id": "b"})
        with self.assertRaises(InvalidNodeError):
            state.update_node("a", {"nickname": "Al"})

    def test_update_nodes_is_one_history_step(self) -> None:
        state = make_state(person("a"), person("b"))
        state.update_nodes([("a", {"label": "A"}), ("b", {"label": "B"})])
        self.assertEqual(len(state.history.past), 1)
        state.undo()
        self.assertEqual([n.label for n in state.nodes], ["a", "b"])

    def test_delete_node(self) -> None:
        state = make_state(person("p", partners=["q"]), person("q"), person("c", parentIds=["p", "q"]))
        state.delete_node("p")
        self.assertIsNone(state.get_node("p"))
        self.assertEqual(state.get_node("c").parent_ids, ["q"])
        self.assertEqual(state.get_node("q").partners, [])

    def test_delete_unknown_node(self) -> None:
        with self.assertRaises(NodeNotFoundError):
            make_state(person("a")).delete_node("missing")

    def test_import_nodes_normalizes(self) -> None:
        state = make_state(person("a"))
        nodes = state.import_nodes([person("p", childrenIds=["c"]), person("c")])
        self.assertEqual([n.id for n in nodes], ["p", "c"])
        self.assertEqual(state.get_node("c").parent_id, "p")


class HistoryTests(unittest.TestCase):
    def test_undo_and_redo(self) -> None:
        state = make_state(person("a", "Ann"))
        self.assertFalse(state.undo())
        state.update_node("a", {"label": "Anne"})

        self.assertTrue(state.undo())
        self.assertEqual(state.get_node("a").label, "Ann")
        self.assertTrue(state.can_redo)

        self.assertTrue(state.redo())
        self.assertEqual(state.get_node("a").label, "Anne")
        self.assertFalse(state.redo())

    def test_new_change_clears_redo(self) -> None:
        state = make_state(person("a"))
        state.update_node("a", {"label": "One"})
        state.undo()
        state.update_node("a", {"label": "Two"})
        self.assertFalse(state.can_redo)

    def test_history_is_bounded(self) -> None:
        state = make_state(person("a"))
        for i in range(MAX_HISTORY + 5):
            state.update_node("a", {"label": f"v{i}"})
        self.assertEqual(len(state.history.past), MAX_HISTORY)


class SearchTests(unittest.TestCase):
    def test_search_ignores_case_and_accents(self) -> None:
        state = make_state(person("a", "Émile Zola"), person("b", "emily"), person("c", "Bob"))
        self.assertEqual([n.id for n in state.search("EMI")], ["a", "b"])
        self.assertEqual(state.search("  "), [])


class AutosaveTests(unittest.TestCase):
    def test_changes_are_saved_and_reloaded(self) -> None:
        conn = create_database(":memory:")
        try:
            state = TreeState(conn=conn)
            state.create_tree("owner-1", "Ada Lovelace")
            root_id = state.nodes[0].id
            state.add_node({"label": "Byron", "childrenIds": []}, initial_children_ids=[root_id])

            loaded = TreeState.load(conn, "owner-1")
            self.assertEqual(loaded.tree.name, "Ada Family")
            self.assertEqual(len(loaded.nodes), 2)
            self.assertEqual(len(loaded.get_node(root_id).parent_ids), 1)
        finally:
            conn.close()

    def test_load_without_stored_tree(self) -> None:
        conn = create_database(":memory:")
        try:
            self.assertEqual(TreeState.load(conn, "nobody").nodes, [])
        finally:
            conn.close()


if __name__ == "__main__":
    unittest.main()
