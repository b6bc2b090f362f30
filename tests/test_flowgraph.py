# tests/test_flowgraph.py
"""
Tests for the flow graph of the main body, its textual rendering and the
linear step listing.
"""

import pytest

from pseudoflow.flowgraph import EdgeKind, NodeShape, build_flow_graph, build_flow_steps
from pseudoflow.parser import parse_program
from tests.conftest import ALL_VALID, ALL_VALID_IDS, FOR_SRC, NESTED_SRC, REPEAT_SRC


def _graph(src):
    return build_flow_graph(parse_program(src).model.main_body)


def _node(graph, label):
    matches = [n for n in graph.nodes if n.label == label]
    assert len(matches) == 1, f"expected one node labelled {label!r}"
    return matches[0]


def _edge(graph, source, target):
    return [e for e in graph.edges if e.source == source.id and e.target == target.id]


WHILE_ONLY = "inicio\n  mientras(x!=0)\n    leer x\n  finmientras\nfin\n"

ELSE_ONLY = (
    "inicio\n"
    "  si x>=18\n"
    "    entonces\n"
    "    sino\n"
    '      escribir "menor"\n'
    "  finsi\n"
    "fin\n"
)


class TestPreTestLoop:

    def test_decision_exit_and_back_edge(self):
        graph = _graph(WHILE_ONLY)
        decision = _node(graph, "Mientras (x!=0)")
        after = _node(graph, "Fin mientras")
        body = _node(graph, "Leer x")
        assert decision.shape is NodeShape.DECISION
        assert after.shape is NodeShape.TERMINAL
        assert [e.kind for e in _edge(graph, decision, body)] == [EdgeKind.YES]
        assert [e.kind for e in _edge(graph, decision, after)] == [EdgeKind.NO]
        back = graph.back_edges()
        assert len(back) == 1
        assert (back[0].source, back[0].target) == (body.id, decision.id)

    def test_rendering(self):
        assert _graph(WHILE_ONLY).to_mermaid() == "\n".join([
            "flowchart TD",
            'N0(["Inicio"])',
            'N1{"Mientras (x!=0)"}',
            'N2(["Fin mientras"])',
            'N3["Leer x"]',
            'N4(["Fin"])',
            "N0 --> N1",
            "N1 -- si --> N3",
            "N3 --> N1",
            "N1 -- no --> N2",
            "N2 --> N4",
        ])

    def test_empty_body_loops_on_decision(self):
        graph = _graph("inicio\n  mientras(x)\n  finmientras\nfin\n")
        decision = _node(graph, "Mientras (x)")
        edges = _edge(graph, decision, decision)
        assert len(edges) == 1
        assert edges[0].kind is EdgeKind.YES
        assert edges[0].back_edge

    def test_for_labels(self):
        graph = _graph(FOR_SRC)
        assert _node(graph, "Para i desde 1 hasta 3").shape is NodeShape.DECISION
        assert _node(graph, "Fin para").shape is NodeShape.TERMINAL


class TestConditional:

    def test_else_only_branch(self):
        graph = _graph(ELSE_ONLY)
        decision = _node(graph, "Si x>=18")
        join = _node(graph, "Fin si")
        write = _node(graph, 'Escribir "menor"')
        assert [e.kind for e in _edge(graph, decision, join)] == [EdgeKind.YES]
        assert [e.kind for e in _edge(graph, decision, write)] == [EdgeKind.NO]
        assert [e.kind for e in _edge(graph, write, join)] == [EdgeKind.FALL_THROUGH]

    def test_label_escaping(self):
        text = _graph(ELSE_ONLY).to_mermaid()
        assert 'N1{"Si x&gt;=18"}' in text
        assert '["Escribir &quot;menor&quot;"]' in text

    def test_loop_nested_in_branch_reaches_join(self):
        graph = _graph(NESTED_SRC)
        after = _node(graph, "Fin mientras")
        join = _node(graph, "Fin si")
        assert _edge(graph, after, join)

    def test_both_branches_join(self):
        src = (
            "inicio\n  si a\n    entonces\n      leer x\n"
            "    sino\n      leer y\n  finsi\nfin\n"
        )
        graph = _graph(src)
        join = _node(graph, "Fin si")
        assert _edge(graph, _node(graph, "Leer x"), join)
        assert _edge(graph, _node(graph, "Leer y"), join)


class TestPostTestLoop:

    def test_repeat_edges(self):
        graph = _graph("inicio\n  repetir\n    leer x\n  hasta(x > 0)\nfin\n")
        body = _node(graph, "Leer x")
        decision = _node(graph, "Hasta (x > 0)")
        after = _node(graph, "Fin repetir")
        assert _edge(graph, graph.start, body)
        assert _edge(graph, body, decision)
        back = _edge(graph, decision, body)
        assert [e.kind for e in back] == [EdgeKind.NO]
        assert back[0].back_edge
        assert [e.kind for e in _edge(graph, decision, after)] == [EdgeKind.YES]

    def test_empty_repeat_is_its_own_entry(self):
        graph = _graph("inicio\n  repetir\n  hasta(listo)\nfin\n")
        decision = _node(graph, "Hasta (listo)")
        assert [e.kind for e in _edge(graph, decision, decision)] == [EdgeKind.NO]

    def test_repeat_starting_with_nested_loop(self):
        src = (
            "inicio\n  repetir\n    mientras(a)\n      leer a\n"
            "    finmientras\n  hasta(b)\nfin\n"
        )
        graph = _graph(src)
        decision = _node(graph, "Hasta (b)")
        inner = _node(graph, "Mientras (a)")
        assert _edge(graph, decision, inner)[0].back_edge

    def test_body_precedes_condition(self):
        graph = _graph(REPEAT_SRC)
        declaration = _node(graph, "entero n")
        assert [n.label for n in graph.successors_of(declaration)] == ['Escribir "vuelta"']


class TestInvariants:

    @pytest.mark.parametrize("src", ALL_VALID, ids=ALL_VALID_IDS)
    def test_reachable_and_out_degree(self, src):
        graph = _graph(src)
        reachable = graph.reachable_from(graph.start)
        assert graph.end.id in reachable
        for node in graph.nodes:
            assert node.id in reachable, node
            if node is not graph.end:
                assert graph.out_edges(node), node

    @pytest.mark.parametrize("src", [
        "inicio\n  mientras(x)\n    leer x\nfin\n",
        "inicio\n  si a\n    entonces\n      leer x\nfin\n",
        "inicio\n  repetir\n    leer x\nfin\n",
    ], ids=["while", "if", "repeat"])
    def test_truncated_input_still_closed(self, src):
        graph = _graph(src)
        for node in graph.nodes:
            if node is not graph.end:
                assert graph.out_edges(node), node
        assert graph.end.id in graph.reachable_from(graph.start)

    def test_comments_skipped(self):
        graph = _graph("inicio\n  // nada\nfin\n")
        assert [n.label for n in graph.nodes] == ["Inicio", "Fin"]

    def test_json(self):
        data = _graph(WHILE_ONLY).to_json()
        assert data["nodes"][1] == {"id": "N1", "label": "Mientras (x!=0)", "shape": "decision"}
        assert {"from": "N3", "to": "N1", "label": None, "back_edge": True} in data["edges"]


class TestFlowSteps:

    def test_counted_loop(self):
        steps = build_flow_steps(parse_program(FOR_SRC).model.main_body)
        assert [s.label for s in steps] == [
            "Inicio",
            "Para i desde 1 hasta 3",
            'Escribir "i=", i',
            "Fin para",
            "Fin",
        ]
        assert steps[3].loop_back_to == 1
        assert steps[2].loop_back_to is None

    def test_repeat_points_back_to_repetir(self):
        steps = build_flow_steps(parse_program(REPEAT_SRC).model.main_body)
        labels = [s.label for s in steps]
        assert labels[2] == "Repetir"
        assert labels[4] == "Hasta (n == 0)"
        assert steps[4].loop_back_to == 2
