"""Force-directed layout of a graph, stepped one tick at a time."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, replace
from typing import Iterable, Sequence

from .graph import Edge, Graph, Node, Pos

_INITIAL_RADIUS = 10.0
_INITIAL_ANGLE = math.pi * (3.0 - math.sqrt(5.0))
_DECAY_TICKS = 300


@dataclass
class _Body:
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0


class Simulation:
    """A velocity-Verlet force simulation with link and many-body forces.

    Nodes without a starting position are placed on a phyllotaxis spiral.
    The simulation cools from alpha 1 towards 0 and counts as finished once
    alpha drops below ``alpha_min``.
    """

    def __init__(
        self,
        positions: Iterable[Pos | None],
        links: Iterable[tuple[int, int]] = (),
        *,
        alpha_min: float = 0.001,
        velocity_decay: float = 0.6,
        link_strength: float | None = None,
        link_distance: float = 30.0,
        link_iterations: int = 1,
        charge_strength: float = -30.0,
        seed: int | None = None,
    ) -> None:
        self._rng = random.Random(seed)
        self._bodies = [
            self._initial_body(index, pos) for index, pos in enumerate(positions)
        ]
        self._links = list(links)
        for source, target in self._links:
            for index in (source, target):
                if not 0 <= index < len(self._bodies):
                    raise ValueError(f"link refers to missing node index {index}")

        counts = [0] * len(self._bodies)
        for source, target in self._links:
            counts[source] += 1
            counts[target] += 1
        self._bias = [
            counts[source] / (counts[source] + counts[target])
            for source, target in self._links
        ]
        self._strengths = [
            link_strength
            if link_strength is not None
            else 1.0 / min(counts[source], counts[target])
            for source, target in self._links
        ]
        self._link_distance = link_distance
        self._link_iterations = link_iterations
        self._charge_strength = charge_strength

        self.alpha = 1.0
        self.alpha_min = alpha_min
        self._alpha_decay = 1.0 - alpha_min ** (1.0 / _DECAY_TICKS)
        self._velocity_decay = velocity_decay

    @staticmethod
    def _initial_body(index: int, pos: Pos | None) -> _Body:
        if pos is not None:
            return _Body(float(pos[0]), float(pos[1]))
        radius = _INITIAL_RADIUS * math.sqrt(0.5 + index)
        angle = index * _INITIAL_ANGLE
        return _Body(radius * math.cos(angle), radius * math.sin(angle))

    def _jiggle(self) -> float:
        return (self._rng.random() - 0.5) * 1e-6

    def _apply_links(self) -> None:
        bodies = self._bodies
        for _ in range(self._link_iterations):
            for (source_index, target_index), bias, strength in zip(
                self._links, self._bias, self._strengths
            ):
                source = bodies[source_index]
                target = bodies[target_index]
                x = target.x + target.vx - source.x - source.vx or self._jiggle()
                y = target.y + target.vy - source.y - source.vy or self._jiggle()
                length = math.hypot(x, y)
                factor = (length - self._link_distance) / length * self.alpha * strength
                x *= factor
                y *= factor
                target.vx -= x * bias
                target.vy -= y * bias
                source.vx += x * (1.0 - bias)
                source.vy += y * (1.0 - bias)

    def _apply_charge(self) -> None:
        scale = self._charge_strength * self.alpha
        for body_index, body in enumerate(self._bodies):
            for other_index, other in enumerate(self._bodies):
                if other_index == body_index:
                    continue
                x = other.x - body.x or self._jiggle()
                y = other.y - body.y or self._jiggle()
                distance_sq = x * x + y * y
                if distance_sq < 1.0:
                    distance_sq = math.sqrt(distance_sq)
                body.vx += x * scale / distance_sq
                body.vy += y * scale / distance_sq

    def tick(self, iterations: int = 1) -> None:
        """Advance the simulation by the given number of steps."""
        for _ in range(iterations):
            self.alpha += (0.0 - self.alpha) * self._alpha_decay
            self._apply_links()
            self._apply_charge()
            for body in self._bodies:
                body.vx *= self._velocity_decay
                body.vy *= self._velocity_decay
                body.x += body.vx
                body.y += body.vy

    def positions(self) -> list[Pos]:
        """Current node positions in node order."""
        return [Pos(body.x, body.y) for body in self._bodies]

    def is_finished(self) -> bool:
        return self.alpha < self.alpha_min


@dataclass
class NodesEdges:
    """Nodes with their computed positions, and the edges between them."""

    nodes: list[Node]
    edges: list[tuple[str, str, Edge]]


class Layout:
    """A running layout computed from a snapshot of a graph."""

    def __init__(
        self,
        nodes: Sequence[Node],
        edges: Sequence[tuple[str, str, Edge]],
        sim: Simulation,
    ) -> None:
        self.nodes = list(nodes)
        self.edges = list(edges)
        self.sim = sim

    @staticmethod
    def from_graph(graph: Graph) -> Layout:
        """Build a layout; unplaced nodes start at the mean of placed neighbours."""
        nodes = [_with_initial_pos(replace(node), graph) for node in graph.nodes()]
        graph_edges = list(graph.edges())
        sim = Simulation(
            (node.pos for node in nodes),
            ((source, target) for source, target, _ in graph_edges),
            alpha_min=0.5,
            link_strength=0.1,
            link_distance=30.0,
            link_iterations=1,
        )
        edges = [
            (graph.resolve_node_id(source), graph.resolve_node_id(target), edge)
            for source, target, edge in graph_edges
        ]
        return Layout(nodes, edges, sim)

    def step(self) -> tuple[NodesEdges, bool]:
        """Run one tick; return the positioned nodes and whether layout is done."""
        self.sim.tick(1)
        nodes = [
            replace(node, pos=pos) for node, pos in zip(self.nodes, self.sim.positions())
        ]
        return NodesEdges(nodes, list(self.edges)), self.sim.is_finished()

    @staticmethod
    def apply(nodes_edges: NodesEdges, graph: Graph) -> None:
        """Copy positions from a layout step onto the graph's nodes."""
        for node in nodes_edges.nodes:
            graph_node = graph.get_node(node.id)
            if node.pos is not None:
                graph_node.set_pos(node.pos)


def _with_initial_pos(node: Node, graph: Graph) -> Node:
    if node.pos is not None:
        return node
    placed = [n.pos for n in graph.node_neighbors(node.id) if n.pos is not None]
    if placed:
        node.pos = Pos(
            sum(pos.x for pos in placed) / len(placed),
            sum(pos.y for pos in placed) / len(placed),
        )
    return node