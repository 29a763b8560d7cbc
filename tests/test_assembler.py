"""Tests for notegraph.assembler module."""

from __future__ import annotations

from notegraph.assembler import assemble_graph
from notegraph.document import Note


def _note(note_id, *links, distance=None):
    return Note(
        id=note_id,
        folder_id="f",
        title=note_id.upper(),
        links=set(links),
        distance_from_seed=distance,
    )


def _edges(graph):
    return {(edge.source, edge.target) for edge in graph.edges}


class TestAssembleGraph:
    def test_edges_to_unfetched_notes_dropped(self):
        notes = {
            "n1": _note("n1", "n2", distance=0),
            "n2": _note("n2", "n3", distance=1),
        }
        graph = assemble_graph(notes, ["n1"])

        assert [node.id for node in graph.nodes] == ["n1", "n2"]
        assert _edges(graph) == {("n1", "n2")}

    def test_anchor_suffix_resolves_to_note(self):
        notes = {
            "n1": _note("n1", "abc123#section"),
            "abc123": _note("abc123"),
        }
        graph = assemble_graph(notes, ["n1"])
        assert _edges(graph) == {("n1", "abc123")}

    def test_node_metadata(self):
        notes = {"n1": _note("n1", distance=0)}
        node = assemble_graph(notes, ["n1"]).nodes[0]
        assert node.title == "N1"
        assert node.folder_id == "f"
        assert node.distance_from_seed == 0

    def test_adjacency_flags(self):
        notes = {
            "seed": _note("seed", "out"),
            "out": _note("out", "far"),
            "in": _note("in", "seed"),
            "far": _note("far"),
        }
        graph = assemble_graph(notes, ["seed"])
        flags = {node.id: node.adjacent_to_seed for node in graph.nodes}

        assert flags == {"seed": False, "out": True, "in": True, "far": False}
        edge_flags = {(e.source, e.target): e.adjacent_to_seed for e in graph.edges}
        assert edge_flags == {
            ("seed", "out"): True,
            ("out", "far"): False,
            ("in", "seed"): True,
        }
        assert notes["out"].adjacent_to_seed is True

    def test_seed_ids_deduplicated(self):
        graph = assemble_graph({}, ["a", "a", "b"])
        assert graph.seed_ids == ["a", "b"]
        assert graph.nodes == []

    def test_self_link(self):
        notes = {"n1": _note("n1", "n1")}
        assert _edges(assemble_graph(notes, [])) == {("n1", "n1")}

    def test_to_dict(self):
        notes = {"n1": _note("n1", "n2", distance=0), "n2": _note("n2", distance=1)}
        data = assemble_graph(notes, ["n1"]).to_dict()
        assert data["seed_ids"] == ["n1"]
        assert data["edges"] == [
            {"source": "n1", "target": "n2", "adjacent_to_seed": True}
        ]
        assert data["nodes"][1] == {
            "id": "n2",
            "title": "N2",
            "folder_id": "f",
            "distance_from_seed": 1,
            "adjacent_to_seed": True,
        }
