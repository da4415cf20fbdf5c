"""Background task that keeps laying out the graph and broadcasts updates."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from .graph import GraphResponse
from .graph_data import GraphData
from .layout import Layout

_CHANNEL_CAPACITY = 10
_CLOSED = object()


@dataclass
class Update:
    """A snapshot of the graph sent to subscribers."""

    graph: GraphResponse

    def to_json(self) -> dict[str, Any]:
        return {"graph": self.graph.to_json()}


class Subscription(AsyncIterator):
    """A receiver of updates; iteration ends when the broadcaster closes."""

    def __init__(self, broadcaster: _Broadcaster) -> None:
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue = asyncio.Queue()

    def _push(self, item: object) -> None:
        if item is not _CLOSED and self._queue.qsize() >= _CHANNEL_CAPACITY:
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Update:
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        self._broadcaster.unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class _Broadcaster:
    def __init__(self) -> None:
        self._subscribers: list[Subscription] = []
        self.closed = False

    def subscribe(self) -> Subscription:
        if self.closed:
            raise RuntimeError("background layout is not running")
        subscription = Subscription(self)
        self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def send(self, update: Update) -> int:
        for subscription in self._subscribers:
            subscription._push(update)
        return len(self._subscribers)

    def close(self) -> None:
        self.closed = True
        for subscription in self._subscribers:
            subscription._push(_CLOSED)
        self._subscribers.clear()


class BgControl:
    """Handle for a started background layout."""

    def __init__(
        self,
        graph_data: GraphData,
        exit_requested: threading.Event,
        broadcaster: _Broadcaster,
        task: asyncio.Task,
    ) -> None:
        self.graph_data = graph_data
        self.task = task
        self._exit_requested = exit_requested
        self._broadcaster = broadcaster

    def exit(self) -> None:
        """Ask the background task to stop after its current iteration."""
        self._exit_requested.set()

    def updates(self) -> Subscription:
        """Subscribe to graph updates; raises RuntimeError once stopped."""
        return self._broadcaster.subscribe()


class BgLayout:
    """Repeatedly steps the layout of the shared graph."""

    def __init__(self, graph_data: GraphData, interval: float = 0.1) -> None:
        self.graph_data = graph_data
        self.interval = interval
        self._exit_requested = threading.Event()
        self._layout_finished_serial: int | None = None

    def start(self) -> BgControl:
        """Run the layout loop as a task on the current event loop."""
        broadcaster = _Broadcaster()
        task = asyncio.get_running_loop().create_task(self._run(broadcaster))
        return BgControl(self.graph_data, self._exit_requested, broadcaster, task)

    async def do_layout(self) -> bool:
        """Advance the layout one step; return whether it has settled."""
        data = self.graph_data
        async with data.lock:
            serial = data.graph.change_serial
            if data.is_empty():
                self._layout_finished_serial = serial
                return True
            if serial == self._layout_finished_serial:
                return True
            nodes_edges, is_finished = data.update_layout().step()
            Layout.apply(nodes_edges, data.graph)
            if is_finished:
                self._layout_finished_serial = serial
            return is_finished

    async def _send_update(self, broadcaster: _Broadcaster) -> int:
        async with self.graph_data.lock:
            update = Update(self.graph_data.graph.graph_response())
        return broadcaster.send(update)

    async def _run(self, broadcaster: _Broadcaster) -> None:
        was_finished = False
        try:
            while not self._exit_requested.is_set():
                is_finished = await self.do_layout()
                await asyncio.sleep(self.interval)
                if not was_finished or not is_finished:
                    await self._send_update(broadcaster)
                was_finished = is_finished
        finally:
            broadcaster.close()