from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from famgraph.graph import PARENT_OF, SPOUSE_OF, build_graph, detect_cycle, ego_node_ids, find_cycle
from famgraph.normalize import normalize_and_link


def person(node_id: str, **fields) -> dict:
    record = {"id": node_id, "label": node_id, "parentIds": [], "partners": [], "childrenIds": []}
    record.update(fields)
    return record


class CycleDetectionTests(unittest.TestCase):
    def test_acyclic_tree(self) -> None:
        nodes = normalize_and_link(
            [person("gp", childrenIds=["p"]), person("p", childrenIds=["c"]), person("c")]
        )
        self.assertFalse(detect_cycle(nodes))
        self.assertIsNone(find_cycle(nodes))

    def test_candidate_closing_a_cycle(self) -> None:
        nodes = normalize_and_link([person("n1", childrenIds=["n2"]), person("n2")])
        candidate = person("n2", childrenIds=["n1"])
        self.assertTrue(detect_cycle(nodes, candidate))

    def test_candidate_not_yet_stored(self) -> None:
        nodes = normalize_and_link([person("gp", childrenIds=["p"]), person("p")])
        # A new node that is both child of p and parent of gp
        candidate = person("new", parentIds=["p"], childrenIds=["gp"])
        self.assertTrue(detect_cycle(nodes, candidate))
        self.assertEqual(set(find_cycle(nodes, candidate)), {"gp", "p", "new"})

    def test_transitive_cycle_through_parent_ids(self) -> None:
        nodes = normalize_and_link(
            [person("a", childrenIds=["b"]), person("b", childrenIds=["c"]), person("c")]
        )
        candidate = person("a", parentIds=["c"], childrenIds=["b"])
        self.assertTrue(detect_cycle(nodes, candidate))

    def test_partners_do_not_count_as_cycles(self) -> None:
        nodes = normalize_and_link([person("a", partners=["b"]), person("b", partners=["a"])])
        self.assertFalse(detect_cycle(nodes))

    def test_self_parent_is_a_cycle(self) -> None:
        self.assertTrue(detect_cycle([], person("a", parentIds=["a"])))


class BuildGraphTests(unittest.TestCase):
    def test_edges_and_attributes(self) -> None:
        nodes = normalize_and_link(
            [
                person("dad", partners=["mum"], sex="M", year=1950),
                person("mum", sex="F"),
                person("kid", parentIds=["dad", "mum"]),
            ]
        )
        G = build_graph(nodes)
        self.assertEqual(G.nodes["dad"]["person_name"], "dad")
        self.assertEqual(G.nodes["dad"]["birth_year"], 1950)
        self.assertEqual(G.edges["dad", "kid"]["relationship_type"], PARENT_OF)
        self.assertEqual(G.edges["mum", "kid"]["relationship_type"], PARENT_OF)
        spouse_edges = [
            (u, v) for u, v, d in G.edges(data=True) if d["relationship_type"] == SPOUSE_OF
        ]
        self.assertEqual(spouse_edges, [("dad", "mum")])

    def test_ego_node_ids(self) -> None:
        nodes = normalize_and_link(
            [
                person("gp", childrenIds=["p"]),
                person("p", childrenIds=["c"]),
                person("c", childrenIds=["gc"]),
                person("gc"),
                person("stranger"),
            ]
        )
        self.assertEqual(ego_node_ids(nodes, "p", radius=1), {"gp", "p", "c"})
        self.assertEqual(ego_node_ids(nodes, "p", radius=2), {"gp", "p", "c", "gc"})

    def test_ego_node_ids_unknown_center(self) -> None:
        with self.assertRaises(ValueError):
            ego_node_ids([], "nobody")


if __name__ == "__main__":
    unittest.main()
