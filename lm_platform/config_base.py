# lm_platform/config_base.py
# ListMirror - configuration location, defaults and load/save
from __future__ import annotations

import copy
import json
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Dict

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in a container that mounts /config)
      3) Project root (one level up from this package)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]

# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Remote API ----------------------------------------------------------
    "trakt": {
        "client_id": "",                                # From your Trakt app
        "client_secret": "",                            # From your Trakt app
        "timeout": 10,                                  # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for transient failures (429/5xx/network)
        "page_size": 100,                               # Items per page for search and list-item paging
        "page_delay_ms": 500,                           # Pause between list-item pages
        "chunk_size": 0,                                # Max items per add/remove call; 0 = one batch
        "list_description": "Created and kept up to date by ListMirror.",
    },

    # --- Stored OAuth grants, keyed by remote username ------------------------
    # "users": {"alice": {"access_token": "", "refresh_token": "", "expires_at": 0,
    #                     "scope": "public", "token_type": "bearer"}}
    "users": {},

    # --- Runtime --------------------------------------------------------------
    "runtime": {
        "debug": False,                                 # Enable DEBUG lines in the console logger
        "workers": 2,                                   # Lists reconciled concurrently by the scheduler
        "min_interval_hours": 24,                       # A list is due again after this many hours
        "log_json": "",                                 # Optional JSON-lines log file
    },
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging
# ------------------------------------------------------------
def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"

def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.replace(tmp, p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)  # type: ignore[assignment]
        else:
            out[k] = v
    return out


def _num(v: Any, default: float, *, floor: float = 0) -> float:
    """Parsed number, or default when missing, unparsable or <= floor."""
    try:
        n = float(str(v).strip()) if v is not None else default
    except ValueError:
        return default
    return n if n > floor else default


def trakt_settings(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """The trakt block with defaults filled in and numeric fields coerced."""
    tr = _deep_merge(DEFAULT_CFG["trakt"], dict(cfg.get("trakt") or {}))
    tr["timeout"] = _num(tr.get("timeout"), 10.0)
    tr["max_retries"] = int(_num(tr.get("max_retries"), 3))
    tr["page_size"] = min(100, int(_num(tr.get("page_size"), 100)))
    # 0 is a valid setting for these two: no pause, single batch
    tr["page_delay_ms"] = int(_num(tr.get("page_delay_ms"), 500, floor=-1))
    tr["chunk_size"] = int(_num(tr.get("chunk_size"), 0, floor=-1))
    return tr


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """Read config.json merged over DEFAULT_CFG. A missing or unreadable file yields the defaults."""
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except (OSError, ValueError):
            user_cfg = {}
    return _deep_merge(DEFAULT_CFG, user_cfg)


def save_config(cfg: Dict[str, Any]) -> None:
    _write_json_atomic(_cfg_file(), dict(cfg or {}))
