"""The node/edge graph store with stable indices and string identifiers."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Any, Iterator, NamedTuple

from .dot import DotParseError, EdgeStatement, NodeStatement, parse_dot


class GraphError(Exception):
    """Base class for graph errors."""


class NodeNotFoundError(GraphError):
    def __init__(self, node_id: str) -> None:
        self.id = node_id
        super().__init__(f"Node not found: {node_id}")


class EdgeNotFoundError(GraphError):
    def __init__(self, edge_id: str) -> None:
        self.id = edge_id
        super().__init__(f"Edge not found: {edge_id}")


class NodeIndexNotFoundError(GraphError):
    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Internal error: node index {index} not found")


class EdgeIndexNotFoundError(GraphError):
    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Internal error: edge index {index} not found")


class UnsupportedEdgeNodeError(GraphError):
    def __init__(self) -> None:
        super().__init__("Unsupported edge node type")


class GraphvizParseError(GraphError):
    """Raised when Graphviz input cannot be parsed."""


class Pos(NamedTuple):
    x: float
    y: float


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class Node:
    id: str
    label: str
    pos: Pos | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "data": {"label": self.label},
            "pos": None if self.pos is None else [self.pos.x, self.pos.y],
        }

    @staticmethod
    def from_json(data: Any) -> Node:
        """Build a node from its JSON form; raises ValueError if malformed."""
        try:
            node_id = data["id"]
            label = data["data"]["label"]
            raw_pos = data.get("pos")
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"invalid node: {exc!r}") from exc
        if not isinstance(node_id, str) or not isinstance(label, str):
            raise ValueError("invalid node: id and label must be strings")
        pos = None
        if raw_pos is not None:
            if not isinstance(raw_pos, (list, tuple)) or len(raw_pos) != 2:
                raise ValueError("invalid node position")
            x, y = raw_pos
            if not (_is_number(x) and _is_number(y)):
                raise ValueError("invalid node position")
            pos = Pos(float(x), float(y))
        return Node(node_id, label, pos)

    def set_pos(self, pos: Pos) -> None:
        self.pos = pos


@dataclass(frozen=True)
class Edge:
    id: str

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id}


@dataclass
class GraphResponse:
    nodes: list[Node]
    edges: list[tuple[str, str, Edge]]
    creation_time: float

    def to_json(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_json() for node in self.nodes],
            "edges": [[a, b, edge.to_json()] for a, b, edge in self.edges],
            "creation_time": self.creation_time,
        }


class Graph:
    """A directed multigraph whose nodes and edges are addressed by string ids."""

    def __init__(self, creation_time: float | None = None) -> None:
        self._nodes: list[Node] = []
        self._edges: list[tuple[int, int, Edge]] = []
        self._node_index_by_id: dict[str, int] = {}
        self._node_id_by_index: dict[int, str] = {}
        self._edge_index_by_id: dict[str, int] = {}
        self._edge_id_by_index: dict[int, str] = {}
        self._id_counter = 0
        self.creation_time = time.time() if creation_time is None else creation_time
        self._change_serial = 0

    @property
    def change_serial(self) -> int:
        """Counter bumped on every node or edge addition."""
        return self._change_serial

    def __len__(self) -> int:
        return len(self._nodes)

    def nodes(self) -> Iterator[Node]:
        """Nodes in index order."""
        return iter(self._nodes)

    def edges(self) -> Iterator[tuple[int, int, Edge]]:
        """Edges in index order as (source index, target index, edge)."""
        return iter(self._edges)

    def graph_response(self) -> GraphResponse:
        """Snapshot of positioned nodes and the edges between them."""
        positioned = {
            index for index, node in enumerate(self._nodes) if node.pos is not None
        }
        nodes = [replace(node) for node in self._nodes if node.pos is not None]
        edges = [
            (self.resolve_node_id(source), self.resolve_node_id(target), edge)
            for source, target, edge in self._edges
            if source in positioned and target in positioned
        ]
        return GraphResponse(nodes, edges, self.creation_time)

    def _new_edge_id(self) -> str:
        while True:
            self._id_counter += 1
            edge_id = f"_gpe{self._id_counter}"
            if edge_id not in self._edge_index_by_id:
                return edge_id

    def _bind_node(self, node_id: str, index: int) -> None:
        old_index = self._node_index_by_id.pop(node_id, None)
        if old_index is not None:
            self._node_id_by_index.pop(old_index, None)
        old_id = self._node_id_by_index.pop(index, None)
        if old_id is not None:
            self._node_index_by_id.pop(old_id, None)
        self._node_index_by_id[node_id] = index
        self._node_id_by_index[index] = node_id

    def _bind_edge(self, edge_id: str, index: int) -> None:
        old_index = self._edge_index_by_id.pop(edge_id, None)
        if old_index is not None:
            self._edge_id_by_index.pop(old_index, None)
        old_id = self._edge_id_by_index.pop(index, None)
        if old_id is not None:
            self._edge_index_by_id.pop(old_id, None)
        self._edge_index_by_id[edge_id] = index
        self._edge_id_by_index[index] = edge_id

    def add_node(self, node: Node) -> None:
        """Add a node; a node whose id is already present is left unchanged."""
        self._change_serial += 1
        index = self._node_index_by_id.get(node.id)
        if index is None:
            index = len(self._nodes)
            self._nodes.append(node)
        self._bind_node(node.id, index)

    def ensure_node(self, node_id: str) -> None:
        """Add a node labelled with its id unless it already exists."""
        if node_id not in self._node_index_by_id:
            self.add_node(Node(node_id, node_id))

    def get_node(self, node_id: str) -> Node:
        return self._nodes[self.resolve_node_index(node_id)]

    def node_neighbors(self, node_id: str) -> list[Node]:
        """Nodes adjacent in either direction, one entry per connecting edge."""
        index = self.resolve_node_index(node_id)
        outgoing = [t for s, t, _ in reversed(self._edges) if s == index]
        incoming = [s for s, t, _ in reversed(self._edges) if t == index and s != index]
        return [self._nodes[neighbor] for neighbor in outgoing + incoming]

    def resolve_node_index(self, node_id: str) -> int:
        try:
            return self._node_index_by_id[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def resolve_node_id(self, node_index: int) -> str:
        try:
            return self._node_id_by_index[node_index]
        except KeyError:
            raise NodeIndexNotFoundError(node_index) from None

    def resolve_edge_index(self, edge_id: str) -> int:
        try:
            return self._edge_index_by_id[edge_id]
        except KeyError:
            raise EdgeNotFoundError(edge_id) from None

    def resolve_edge_id(self, edge_index: int) -> str:
        try:
            return self._edge_id_by_index[edge_index]
        except KeyError:
            raise EdgeIndexNotFoundError(edge_index) from None

    def add_edge(self, a: str, b: str, edge_id: str | None = None) -> None:
        """Add an edge from a to b; both nodes must exist."""
        self._change_serial += 1
        if edge_id is None:
            edge_id = self._new_edge_id()
        source = self.resolve_node_index(a)
        target = self.resolve_node_index(b)
        index = len(self._edges)
        self._edges.append((source, target, Edge(edge_id)))
        self._bind_edge(edge_id, index)

    def parse_graphviz(self, data: str) -> None:
        """Add the nodes and edges of a DOT digraph; undirected graphs are ignored."""
        try:
            document = parse_dot(data)
        except DotParseError as exc:
            raise GraphvizParseError(str(exc)) from exc
        if not document.directed:
            return
        for statement in document.statements:
            if isinstance(statement, NodeStatement):
                attributes = dict(statement.attributes)
                self.add_node(Node(statement.id, attributes.get("label", statement.id)))
            elif isinstance(statement, EdgeStatement):
                edge_id = self._new_edge_id()
                endpoints = statement.endpoints
                if len(endpoints) != 2 or not all(isinstance(e, str) for e in endpoints):
                    raise UnsupportedEdgeNodeError()
                lhs, rhs = endpoints
                self.ensure_node(lhs)
                self.ensure_node(rhs)
                self.add_edge(lhs, rhs, edge_id)