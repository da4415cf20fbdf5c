"""HTTP interface: graph queries, additions, DOT upload and update stream."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from aiohttp import web

from .assets import add_assets
from .bg_layout import BgControl, Subscription, Update
from .graph import GraphError, Node
from .graph_data import GraphData

KEEP_ALIVE_SECONDS = 5.0
INDEX_FILE_NAME = "index.html"


def _list_field(body: dict, key: str) -> list:
    value = body.get(key, [])
    if not isinstance(value, list):
        raise ValueError(f"field {key!r} must be a list")
    return value


def _parse_add_request(body: Any) -> tuple[list[Node], list[tuple[str, str, str | None]]]:
    if not isinstance(body, dict):
        raise ValueError("expected a JSON object")
    nodes = [Node.from_json(item) for item in _list_field(body, "nodes")]
    edges = []
    for item in _list_field(body, "edges"):
        if not isinstance(item, dict):
            raise ValueError("invalid edge request")
        a, b, edge_id = item.get("a"), item.get("b"), item.get("id")
        if not isinstance(a, str) or not isinstance(b, str):
            raise ValueError("invalid edge request: a and b must be strings")
        if edge_id is not None and not isinstance(edge_id, str):
            raise ValueError("invalid edge request: id must be a string")
        edges.append((a, b, edge_id))
    return nodes, edges


async def _next_update(subscription: Subscription) -> Update | None:
    async for update in subscription:
        return update
    return None


def create_app(
    data: GraphData,
    bg_control: BgControl,
    assets_dir: str | Path | None = None,
) -> web.Application:
    """Build the web application around the shared graph data."""

    async def list_graph(request: web.Request) -> web.Response:
        async with data.lock:
            response = data.graph.graph_response()
        return web.json_response(response.to_json())

    async def add(request: web.Request) -> web.Response:
        try:
            nodes, edges = _parse_add_request(await request.json())
        except ValueError as exc:
            raise web.HTTPBadRequest(text=f"Json deserialize error: {exc}") from exc
        async with data.lock:
            data.reset_layout()
            try:
                for node in nodes:
                    data.graph.add_node(node)
                for a, b, edge_id in edges:
                    data.graph.ensure_node(a)
                    data.graph.ensure_node(b)
                    data.graph.add_edge(a, b, edge_id)
            except GraphError as exc:
                return web.Response(
                    status=400, content_type="text/html", text=f"Graph error: {exc}"
                )
        return web.json_response(None)

    async def post_graphviz(request: web.Request) -> web.Response:
        body = await request.text()
        async with data.lock:
            data.reset_layout()
            try:
                data.graph.parse_graphviz(body)
            except GraphError as exc:
                raise web.HTTPBadRequest(text=f"Parse error: {exc!r}") from exc
        return web.Response(text="")

    async def stream(request: web.Request) -> web.StreamResponse:
        try:
            subscription = bg_control.updates()
        except RuntimeError as exc:
            raise web.HTTPServiceUnavailable(text=str(exc)) from exc
        response = web.StreamResponse(
            headers={"Content-Type": "text/event-stream", "Cache-Control": "no-cache"}
        )
        await response.prepare(request)
        with subscription:
            while True:
                try:
                    update = await asyncio.wait_for(
                        _next_update(subscription), KEEP_ALIVE_SECONDS
                    )
                except asyncio.TimeoutError:
                    chunk = b": keep-alive\n\n"
                else:
                    if update is None:
                        break
                    chunk = f"data: {json.dumps(update.to_json())}\n\n".encode()
                try:
                    await response.write(chunk)
                except ConnectionResetError:
                    break
        return response

    app = web.Application()
    app.router.add_get("/graph", list_graph)
    app.router.add_post("/graph", add)
    app.router.add_post("/graphviz", post_graphviz)
    app.router.add_get("/stream", stream)
    if assets_dir is not None:
        add_assets(app, "", INDEX_FILE_NAME, assets_dir)
    return app


async def start_server(
    listen_addr: tuple[str, int],
    data: GraphData,
    bg_control: BgControl,
    assets_dir: str | Path | None = None,
) -> tuple[web.AppRunner, list[tuple[str, int]]]:
    """Bind and start the server; return its runner and bound (host, port) pairs."""
    runner = web.AppRunner(create_app(data, bg_control, assets_dir))
    await runner.setup()
    host, port = listen_addr
    site = web.TCPSite(runner, host, port)
    try:
        await site.start()
    except BaseException:
        await runner.cleanup()
        raise
    addresses = [(address[0], address[1]) for address in runner.addresses]
    return runner, addresses