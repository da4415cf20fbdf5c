"""Static file serving for the web front end."""

from __future__ import annotations

from pathlib import Path

from aiohttp import web


def _resolve_asset(root: Path, relative: str, index_file_name: str) -> Path | None:
    candidate = (root / relative).resolve() if relative else root
    if candidate != root and not candidate.is_relative_to(root):
        return None
    if candidate.is_dir():
        candidate = candidate / index_file_name
    return candidate if candidate.is_file() else None


def add_assets(
    app: web.Application,
    path_prefix: str,
    index_file_name: str,
    directory: str | Path,
) -> None:
    """Serve the files of ``directory`` under ``path_prefix``.

    A request for a directory, or for the prefix itself, gets that
    directory's ``index_file_name``. Missing files answer 404.
    """
    root = Path(directory).resolve()
    prefix = path_prefix.rstrip("/")

    async def handler(request: web.Request) -> web.StreamResponse:
        relative = request.match_info.get("path", "")
        target = _resolve_asset(root, relative, index_file_name)
        if target is None:
            raise web.HTTPNotFound(text="File not found")
        return web.FileResponse(target)

    app.router.add_get(f"{prefix}/{{path:.*}}", handler)