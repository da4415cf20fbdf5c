"""The shared graph state and its cached layout."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from .graph import Graph
from .layout import Layout


@dataclass
class GraphData:
    """A graph, the layout computed for it, and the lock guarding both."""

    graph: Graph = field(default_factory=Graph)
    layout: Layout | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def reset_layout(self) -> None:
        """Drop the cached layout so that the next update rebuilds it."""
        self.layout = None

    def is_empty(self) -> bool:
        return len(self.graph) == 0

    def update_layout(self) -> Layout:
        """Return the cached layout, building it from the graph if needed."""
        if self.layout is None:
            self.layout = Layout.from_graph(self.graph)
        return self.layout