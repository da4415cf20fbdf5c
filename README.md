# graphpipe

graphpipe holds a graph in memory and serves it over HTTP. Nodes and edges
are pushed in as JSON or as Graphviz `dot` text. A background
force-directed layout gives each node a position, and the positions are
streamed to connected clients as server-sent events while they change.

## Installing

```sh
pip install graphpipe
```

## Working with a graph

```python
from graphpipe.graph import Graph

graph = Graph()
graph.parse_graphviz('digraph { a [label="Alpha"]; a -> b; }')
graph.add_edge("b", "a", None)
print([node.label for node in graph.nodes()])   # ['Alpha', 'b']
print(graph.graph_response().to_json())
```

`graphpipe.graph.Graph` stores nodes and edges under string ids.
`add_edge` needs both ends to exist; `ensure_node` creates a node labelled
with its own id if it is missing. An edge added without an id is given one
of the form `_gpe<n>`. Adding a node whose id is already present leaves the
existing node unchanged. Unknown ids raise `NodeNotFoundError` or
`EdgeNotFoundError`, both subclasses of `GraphError`.

`graph_response()` reports only nodes that have a position, and only the
edges between such nodes.

### Dot input

`parse_graphviz` reads only directed graphs (`digraph`); an undirected
`graph` is parsed but adds nothing. Node statements may carry a `label`
attribute. An edge statement must join exactly two plain node ids: edges
with a subgraph at either end, and chains such as `a -> b -> c`, raise
`UnsupportedEdgeNodeError`. Other statements (attribute defaults,
assignments, subgraphs) are ignored. Malformed text raises
`GraphvizParseError`. The parser itself is `graphpipe.dot.parse_dot`, which
returns a `DotGraph` and raises `DotParseError`.

### Layout

`graphpipe.layout.Layout.from_graph` builds a force simulation from a
snapshot of a graph. Nodes without a position start at the average position
of their placed neighbours, or on a spiral if none are placed. Each
`step()` advances one tick and returns the positioned nodes together with
whether the layout has settled; `Layout.apply` copies those positions back
onto the graph.

`graphpipe.graph_data.GraphData` bundles the graph, its cached layout and
an `asyncio.Lock`. `graphpipe.bg_layout.BgLayout(data).start()` runs the
layout loop as a task on the running event loop, stepping every 0.1
seconds, and returns a `BgControl`. `BgControl.updates()` gives a
subscription that yields `Update` snapshots as an async iterator;
`BgControl.exit()` stops the loop.

## Running the server

The package has no command-line program. Start the server from Python:

```python
import asyncio

from graphpipe.bg_layout import BgLayout
from graphpipe.graph_data import GraphData
from graphpipe.server import start_server


async def main():
    data = GraphData()
    control = BgLayout(data).start()
    runner, addresses = await start_server(("127.0.0.1", 8080), data, control)
    print("serving at", addresses)
    try:
        await asyncio.Event().wait()
    finally:
        control.exit()
        await runner.cleanup()


asyncio.run(main())
```

`start_server` returns the aiohttp `AppRunner` and the bound
`(host, port)` pairs; port `0` picks a free port.
`graphpipe.server.create_app` builds the same aiohttp application without
starting it, for embedding in a program of your own.

## HTTP interface

| Method and path  | Body                                    | Result                                              |
|------------------|-----------------------------------------|-----------------------------------------------------|
| `GET /graph`     | none                                    | JSON of the positioned nodes and their edges        |
| `POST /graph`    | JSON `{"nodes": [...], "edges": [...]}` | adds nodes and edges, returns `null`                |
| `POST /graphviz` | a `digraph { ... }` document            | adds its nodes and edges, returns an empty body     |
| `GET /stream`    | none                                    | server-sent events, one JSON update per layout step |

A node in `POST /graph` looks like
`{"id": "a", "data": {"label": "A"}, "pos": null}`; `pos` is optional and
otherwise a pair `[x, y]`. An edge is `{"a": "a", "b": "b", "id": null}`;
its endpoints are created if they do not exist yet. Both lists are
optional. A malformed body or dot text answers `400`.

`GET /graph` answers
`{"nodes": [...], "edges": [["a", "b", {"id": "_gpe1"}], ...], "creation_time": ...}`.
Each stream event carries `{"graph": ...}` in the same form; when no update
arrives for five seconds a keep-alive comment is sent.

Every addition drops the current layout, so the next step starts again from
the nodes' current positions.

```sh
curl -X POST http://127.0.0.1:8080/graph \
     -H 'Content-Type: application/json' \
     -d '{"edges": [{"a": "a", "b": "b"}, {"a": "b", "b": "c"}]}'

echo 'digraph { x [label="Start"]; x -> y; y -> z; }' |
    curl -X POST http://127.0.0.1:8080/graphviz --data-binary @-
```

## What it does not do

There is no command to start the server, and no browser front end ships
with the package. Passing `assets_dir` to `create_app` or `start_server`
serves the files of a directory of your own at the root path, with
`index.html` as the index page; without it, only the four routes above
exist.