import pytest

from graphpipe.graph import (
    Edge,
    EdgeIndexNotFoundError,
    EdgeNotFoundError,
    Graph,
    GraphError,
    GraphvizParseError,
    Node,
    NodeIndexNotFoundError,
    NodeNotFoundError,
    Pos,
    UnsupportedEdgeNodeError,
)


@pytest.fixture
def graph():
    return Graph(creation_time=1234.5)


def test_add_node_and_get_node(graph):
    graph.add_node(Node("a", "Alpha"))
    assert graph.get_node("a") == Node("a", "Alpha", None)
    assert graph.resolve_node_index("a") == 0
    assert graph.resolve_node_id(0) == "a"
    assert len(graph) == 1
    assert graph.change_serial == 1


def test_adding_existing_node_keeps_first_but_bumps_serial(graph):
    graph.add_node(Node("a", "first"))
    graph.add_node(Node("a", "second"))
    assert graph.get_node("a").label == "first"
    assert len(graph) == 1
    assert graph.change_serial == 2


def test_ensure_node_uses_id_as_label(graph):
    graph.ensure_node("x")
    graph.ensure_node("x")
    assert graph.get_node("x") == Node("x", "x", None)
    assert graph.change_serial == 1


def test_generated_edge_ids(graph):
    graph.ensure_node("a")
    graph.ensure_node("b")
    graph.add_edge("a", "b")
    assert graph.resolve_edge_index("_gpe1") == 0
    assert graph.resolve_edge_id(0) == "_gpe1"


def test_generated_ids_skip_taken_ones(graph):
    graph.ensure_node("a")
    graph.ensure_node("b")
    graph.add_edge("a", "b", "_gpe1")
    graph.add_edge("b", "a")
    assert graph.resolve_edge_id(1) == "_gpe2"
    assert [edge.id for _, _, edge in graph.edges()] == ["_gpe1", "_gpe2"]


def test_add_edge_to_missing_node(graph):
    graph.ensure_node("a")
    serial = graph.change_serial
    with pytest.raises(NodeNotFoundError) as info:
        graph.add_edge("a", "missing")
    assert info.value.id == "missing"
    assert str(info.value) == "Node not found: missing"
    assert graph.change_serial == serial + 1
    assert list(graph.edges()) == []


def test_resolution_errors(graph):
    with pytest.raises(NodeIndexNotFoundError):
        graph.resolve_node_id(5)
    with pytest.raises(EdgeNotFoundError):
        graph.resolve_edge_index("nope")
    with pytest.raises(EdgeIndexNotFoundError):
        graph.resolve_edge_id(0)
    with pytest.raises(GraphError):
        graph.get_node("nope")


def test_reusing_edge_id_rebinds_it(graph):
    graph.ensure_node("a")
    graph.ensure_node("b")
    graph.add_edge("a", "b", "e")
    graph.add_edge("b", "a", "e")
    assert graph.resolve_edge_index("e") == 1
    with pytest.raises(EdgeIndexNotFoundError):
        graph.resolve_edge_id(0)
    assert len(list(graph.edges())) == 2


def test_node_neighbors_both_directions(graph):
    for name in "abcd":
        graph.ensure_node(name)
    graph.add_edge("a", "b")
    graph.add_edge("c", "a")
    neighbors = graph.node_neighbors("a")
    assert sorted(node.id for node in neighbors) == ["b", "c"]
    assert graph.node_neighbors("d") == []


def test_self_loop_neighbor_reported_once(graph):
    graph.ensure_node("a")
    graph.add_edge("a", "a")
    assert [node.id for node in graph.node_neighbors("a")] == ["a"]


def test_graph_response_filters_unpositioned(graph):
    graph.add_node(Node("a", "A", Pos(1.0, 2.0)))
    graph.add_node(Node("b", "B", Pos(3.0, 4.0)))
    graph.add_node(Node("c", "C"))
    graph.add_edge("a", "b", "ab")
    graph.add_edge("a", "c", "ac")
    response = graph.graph_response()
    assert [node.id for node in response.nodes] == ["a", "b"]
    assert response.edges == [("a", "b", Edge("ab"))]
    assert response.creation_time == 1234.5


def test_graph_response_is_a_snapshot(graph):
    graph.add_node(Node("a", "A", Pos(1.0, 2.0)))
    response = graph.graph_response()
    graph.get_node("a").set_pos(Pos(9.0, 9.0))
    assert response.nodes[0].pos == Pos(1.0, 2.0)
    assert graph.get_node("a").pos == Pos(9.0, 9.0)


def test_graph_response_json(graph):
    graph.add_node(Node("a", "A", Pos(1.0, 2.0)))
    graph.add_node(Node("b", "B", Pos(3.0, 4.0)))
    graph.add_edge("a", "b", "ab")
    assert graph.graph_response().to_json() == {
        "nodes": [
            {"id": "a", "data": {"label": "A"}, "pos": [1.0, 2.0]},
            {"id": "b", "data": {"label": "B"}, "pos": [3.0, 4.0]},
        ],
        "edges": [["a", "b", {"id": "ab"}]],
        "creation_time": 1234.5,
    }


def test_node_json_round_trip():
    node = Node("n", "label", Pos(0.5, -1.5))
    assert Node.from_json(node.to_json()) == node


def test_node_from_json_without_pos():
    assert Node.from_json({"id": "n", "data": {"label": "L"}}) == Node("n", "L", None)


@pytest.mark.parametrize(
    "data",
    [
        {"data": {"label": "L"}},
        {"id": "n"},
        {"id": 3, "data": {"label": "L"}},
        {"id": "n", "data": {"label": "L"}, "pos": [1.0]},
        {"id": "n", "data": {"label": "L"}, "pos": ["1", 2]},
        "not an object",
    ],
)
def test_node_from_json_rejects_malformed(data):
    with pytest.raises(ValueError):
        Node.from_json(data)


def test_parse_graphviz_nodes_and_edges(graph):
    graph.parse_graphviz('digraph { a [label="Alpha"]; a -> b; b -> c }')
    assert [(node.id, node.label) for node in graph.nodes()] == [
        ("a", "Alpha"),
        ("b", "b"),
        ("c", "c"),
    ]
    edges = [
        (graph.resolve_node_id(s), graph.resolve_node_id(t)) for s, t, _ in graph.edges()
    ]
    assert edges == [("a", "b"), ("b", "c")]
    assert graph.resolve_edge_index("_gpe1") == 0


def test_parse_graphviz_ignores_undirected(graph):
    graph.parse_graphviz("graph { a -- b }")
    assert len(graph) == 0


def test_parse_graphviz_reports_parse_error(graph):
    with pytest.raises(GraphvizParseError):
        graph.parse_graphviz("digraph { a -> ")


@pytest.mark.parametrize("text", ["digraph { a -> { b } }", "digraph { a -> b -> c }"])
def test_parse_graphviz_unsupported_edges(graph, text):
    with pytest.raises(UnsupportedEdgeNodeError):
        graph.parse_graphviz(text)
    assert list(graph.edges()) == []