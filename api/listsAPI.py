# /api/listsAPI.py
# ListMirror - JSON endpoints over the list synchronization engine
from __future__ import annotations

import dataclasses
from collections.abc import Callable
from typing import Any, Literal

from fastapi import APIRouter, Body, Path as FPath, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from lm_platform.engine import (
    AuthExpiredError,
    FilterSpec,
    MediaKind,
    RemoteCallError,
    RemoteList,
    SyncEngine,
    SyncCancelled,
    ValidationError,
)

ListLookup = Callable[[int], "RemoteList | None"]
ListSink = Callable[["RemoteList"], None]


class UnknownList(LookupError):
    pass


class FiltersIn(BaseModel):
    query: str = ""
    search_fields: list[str] = Field(default_factory=list)
    years: list[int | None] | None = None
    runtimes: list[int | None] | None = None
    ratings: list[int | None] | None = None
    genres: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    countries: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)


class CreateIn(BaseModel):
    name: str
    owner: str = ""
    kind: Literal["movie", "show"] = "movie"
    description: str | None = None
    filters: FiltersIn = Field(default_factory=FiltersIn)


class UpdateIn(BaseModel):
    name: str | None = None
    description: str | None = None
    filters: FiltersIn | None = None


class SearchIn(BaseModel):
    kind: Literal["movie", "show"] = "movie"
    user: str | None = None
    filters: FiltersIn = Field(default_factory=FiltersIn)
    sample: int = 10


def _err(status: int, e: Exception) -> JSONResponse:
    return JSONResponse({"ok": False, "error": str(e), "type": type(e).__name__}, status_code=status)


def _guarded(fn: Callable[[], Any]) -> Any:
    try:
        return fn()
    except UnknownList as e:
        return _err(404, e)
    except ValidationError as e:
        return _err(400, e)
    except AuthExpiredError as e:
        return _err(401, e)
    except SyncCancelled as e:
        return _err(409, e)
    except RemoteCallError as e:
        return _err(502, e)


def _filters(f: FiltersIn | None) -> FilterSpec:
    return FilterSpec.from_dict(f.model_dump() if f is not None else None)


def build_router(engine: SyncEngine, lookup: ListLookup, on_change: ListSink | None = None) -> APIRouter:
    """
    Routes over a caller-owned list store: lookup(id) resolves a list and
    on_change(list) receives every list the engine created or modified.
    """
    router = APIRouter(prefix="/api/lists", tags=["lists"])

    def _changed(lst: RemoteList) -> RemoteList:
        if on_change is not None:
            on_change(lst)
        return lst

    def _known(list_id: int) -> RemoteList:
        lst = lookup(list_id)
        if lst is None:
            raise UnknownList(f"unknown list id {list_id}")
        return lst

    @router.post("")
    def api_lists_create(payload: CreateIn = Body(...)) -> Any:
        def run() -> dict[str, Any]:
            lst = RemoteList(
                name=payload.name,
                owner=payload.owner,
                kind=MediaKind.parse(payload.kind),
                filters=_filters(payload.filters),
                description=payload.description,
            )
            return {"ok": True, "list": _changed(engine.create(lst)).to_dict()}

        return _guarded(run)

    @router.post("/search")
    def api_lists_search(payload: SearchIn = Body(...)) -> Any:
        def run() -> dict[str, Any]:
            kind = MediaKind.parse(payload.kind)
            spec = _filters(payload.filters)
            found = (engine.show_search if kind is MediaKind.SHOW else engine.movie_search)(spec, payload.user)
            return {
                "ok": True,
                "kind": kind.value,
                "count": len(found),
                "items": [it.minimal() for it in found[: max(0, payload.sample)]],
            }

        return _guarded(run)

    @router.get("/{list_id}")
    def api_lists_get(list_id: int = FPath(...), user: str | None = Query(None)) -> Any:
        return _guarded(lambda: {"ok": True, "list": engine.get(list_id, user).to_dict()})

    @router.put("/{list_id}")
    def api_lists_update(list_id: int = FPath(...), payload: UpdateIn = Body(...)) -> Any:
        def run() -> dict[str, Any]:
            lst = _known(list_id)
            draft = dataclasses.replace(
                lst,
                name=lst.name if payload.name is None else payload.name,
                description=lst.description if payload.description is None else payload.description,
                filters=lst.filters if payload.filters is None else _filters(payload.filters),
            )
            engine.update(draft)
            # the stored list only changes once the remote accepted the edit
            lst.name, lst.description, lst.filters = draft.name, draft.description, draft.filters
            return {"ok": True, "list": _changed(lst).to_dict()}

        return _guarded(run)

    @router.delete("/{list_id}")
    def api_lists_delete(list_id: int = FPath(...)) -> Any:
        return _guarded(lambda: {"ok": True, "list": _changed(engine.delete(_known(list_id))).to_dict()})

    @router.post("/{list_id}/sync")
    def api_lists_sync(list_id: int = FPath(...)) -> Any:
        def run() -> dict[str, Any]:
            lst = _known(list_id)
            rep = engine.reconcile(lst)
            return {"ok": True, "report": rep.as_dict(), "list": _changed(lst).to_dict()}

        return _guarded(run)

    return router


__all__ = ["build_router", "ListLookup", "ListSink", "UnknownList", "CreateIn", "UpdateIn", "SearchIn", "FiltersIn"]
