import pytest

from graphpipe.dot import DotParseError, EdgeStatement, NodeStatement, parse_dot


def test_directed_graph_with_node_and_edge():
    graph = parse_dot('digraph G { a [label="Alpha"]; a -> b }')
    assert graph.directed is True
    assert graph.strict is False
    assert graph.name == "G"
    assert graph.statements == (
        NodeStatement("a", (("label", "Alpha"),)),
        EdgeStatement(("a", "b"), ()),
    )


def test_undirected_graph_without_name():
    graph = parse_dot("graph { a -- b }")
    assert graph.directed is False
    assert graph.name is None
    assert graph.statements == (EdgeStatement(("a", "b")),)


def test_keywords_are_case_insensitive():
    graph = parse_dot("STRICT DiGraph { x }")
    assert graph.strict is True
    assert graph.directed is True
    assert graph.statements == (NodeStatement("x"),)


@pytest.mark.parametrize("text", ["digraph { a -- b }", "graph { a -> b }"])
def test_wrong_edge_operator_is_rejected(text):
    with pytest.raises(DotParseError):
        parse_dot(text)


def test_edge_chain_with_attributes():
    graph = parse_dot("digraph { a -> b -> c [color=red, style=bold] }")
    assert graph.statements == (
        EdgeStatement(("a", "b", "c"), (("color", "red"), ("style", "bold"))),
    )


def test_quoted_string_escapes():
    graph = parse_dot(r'digraph { "say \"hi\""; "a\nb" }')
    assert [s.id for s in graph.statements] == ['say "hi"', "a\\nb"]


def test_quoted_string_concatenation():
    graph = parse_dot('digraph { "ab" + "cd" }')
    assert graph.statements == (NodeStatement("abcd"),)


def test_comments_are_skipped():
    text = "#preprocessor\n// line\ndigraph { a; /* block\n comment */ b // tail\n }"
    graph = parse_dot(text)
    assert graph.statements == (NodeStatement("a"), NodeStatement("b"))


def test_html_string_value():
    graph = parse_dot("digraph { a [label=<<b>x</b>>] }")
    assert graph.statements[0].attributes == (("label", "<b>x</b>"),)


def test_ports():
    graph = parse_dot("digraph { a:p:n -> b; c:q }")
    assert graph.statements[0] == EdgeStatement(("a", "b"))
    assert graph.statements[1] == NodeStatement("c", (), "q")


def test_numeric_identifiers():
    graph = parse_dot("digraph { 1 -> -2.5 }")
    assert graph.statements == (EdgeStatement(("1", "-2.5")),)


def test_subgraph_as_edge_endpoint():
    graph = parse_dot("digraph { a -> { b c } }")
    (edge,) = graph.statements
    assert edge.endpoints[0] == "a"
    assert edge.endpoints[1].statements == (NodeStatement("b"), NodeStatement("c"))


def test_named_subgraph_statement():
    graph = parse_dot("digraph { subgraph cluster { a } }")
    (subgraph,) = graph.statements
    assert subgraph.name == "cluster"
    assert subgraph.statements == (NodeStatement("a"),)


def test_assignments_and_attribute_statements():
    graph = parse_dot("digraph { rankdir=LR; node [shape=box]; a }")
    assert len(graph.statements) == 3
    nodes = [s for s in graph.statements if isinstance(s, NodeStatement)]
    assert nodes == [NodeStatement("a")]


@pytest.mark.parametrize(
    "text",
    [
        "",
        "digraph {",
        "digraph { a } extra",
        'digraph { "open }',
        "digraph { a [label] }",
        "foo { }",
        "digraph { /* x }",
        "digraph { node }",
        "digraph { a [label=<x] }",
        'digraph { "a" + b }',
    ],
)
def test_malformed_documents(text):
    with pytest.raises(DotParseError):
        parse_dot(text)


def test_parse_error_is_value_error_with_position():
    with pytest.raises(ValueError) as info:
        parse_dot("digraph { a } extra")
    assert info.value.position == len("digraph { a } ")