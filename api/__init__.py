from __future__ import annotations

from fastapi import FastAPI

from lm_platform.engine import SyncEngine

from .listsAPI import ListLookup, ListSink, build_router as build_lists_router


def create_app(engine: SyncEngine, lookup: ListLookup, on_change: ListSink | None = None) -> FastAPI:
    app = FastAPI(title="ListMirror")
    app.include_router(build_lists_router(engine, lookup, on_change))
    return app


__all__ = ["build_lists_router", "create_app"]
