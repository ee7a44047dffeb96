# /listmirror.py
# ListMirror - keeps Trakt custom lists in line with a saved search
from __future__ import annotations

import threading
from typing import Any

import uvicorn

from _logging import configure
from api import create_app
from lm_platform.config_base import config_path, load_config
from lm_platform.engine import ListState, RemoteList, SyncEngine
from lm_platform.scheduling import ListRunner


class MemoryLists:
    """Process-lifetime list registry used when no external store is wired in."""

    def __init__(self) -> None:
        self._by_id: dict[int, RemoteList] = {}
        self._lock = threading.Lock()

    def get(self, list_id: int) -> RemoteList | None:
        with self._lock:
            return self._by_id.get(list_id)

    def put(self, lst: RemoteList) -> None:
        if lst.id is None:
            return
        with self._lock:
            if lst.state is ListState.DELETED:
                self._by_id.pop(lst.id, None)
                return
            self._by_id[lst.id] = lst

    def all(self) -> list[RemoteList]:
        with self._lock:
            return list(self._by_id.values())


def build_app(
    cfg: dict[str, Any] | None = None, lists: MemoryLists | None = None, engine: SyncEngine | None = None
):
    cfg = cfg or load_config()
    lists = lists or MemoryLists()
    engine = engine or SyncEngine.from_config(cfg)
    return create_app(engine, lists.get, lists.put)


def start_sweeper(
    runner: ListRunner, lists: MemoryLists, stop: threading.Event, every: float = 300.0
) -> threading.Thread:
    """Reconcile due lists every `every` seconds until stop is set."""
    def loop() -> None:
        while not stop.wait(every):
            runner.run_due(lists.all(), cancel=stop)

    t = threading.Thread(target=loop, name="listmirror-sweep", daemon=True)
    t.start()
    return t


def main(host: str = "0.0.0.0", port: int = 8788) -> None:
    cfg = load_config()
    rt = cfg.get("runtime") or {}
    debug = bool(rt.get("debug"))
    configure(cfg)
    lists = MemoryLists()
    engine = SyncEngine.from_config(cfg)
    stop = threading.Event()
    start_sweeper(ListRunner.from_config(engine, cfg), lists, stop)

    print("\nListMirror running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Bind:    {host}:{port}")
    print(f"  Config:  {config_path()} (JSON)\n")

    try:
        uvicorn.run(
            build_app(cfg, lists, engine),
            host=host,
            port=port,
            log_level=("debug" if debug else "warning"),
        )
    finally:
        stop.set()


if __name__ == "__main__":
    main()
