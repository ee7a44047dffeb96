# /providers/sync/_log.py
# ListMirror - one line per remote call event, tagged [PROVIDER:feature]
from __future__ import annotations

import json
import os
import sys
import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, TextIO

from _logging import BLUE, DIM, GREEN, RED, RESET, YELLOW

_LEVELS: dict[str, int] = {"off": 99, "error": 40, "warn": 30, "info": 20, "debug": 10, "trace": 5}
_ALIASES: dict[str, str] = {"warning": "warn", "success": "info"}
_COLORS: dict[str, str] = {"error": RED, "warn": YELLOW, "info": BLUE, "debug": YELLOW, "trace": DIM}

# field names whose values never reach the log
_SECRET_MARKERS = ("token", "secret", "authorization", "password")

_lock = threading.Lock()
_stream: TextIO | None = None


def set_stream(stream: TextIO | None) -> None:
    """Redirect provider lines (None = current sys.stdout)."""
    global _stream
    _stream = stream


def _norm_level(level: str) -> str:
    s = str(level or "info").strip().lower()
    return _ALIASES.get(s, s if s in _LEVELS else "info")


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


def threshold(provider: str) -> int:
    p = provider.upper()
    explicit = os.getenv(f"LM_{p}_LOG_LEVEL") or os.getenv("LM_LOG_LEVEL")
    if explicit and explicit.strip():
        return _LEVELS[_norm_level(explicit)]
    return _LEVELS["debug" if _flag("LM_DEBUG") or _flag(f"LM_{p}_DEBUG") else "info"]


def _color_on(fmt: str) -> bool:
    if fmt == "json" or os.getenv("NO_COLOR") is not None:
        return False
    return (os.getenv("LM_LOG_COLOR") or "auto").strip().lower() not in ("0", "false", "no", "off")


def _clean(key: str, value: Any) -> Any:
    if any(m in key.lower() for m in _SECRET_MARKERS):
        return "***"
    if isinstance(value, Mapping):
        return {str(k): _clean(str(k), v) for k, v in value.items()}
    return value


def _kv_value(v: Any) -> str:
    s = json.dumps(v, ensure_ascii=False, default=str) if isinstance(v, (Mapping, list)) else str(v)
    s = " ".join(s.split())
    if s and (any(ch.isspace() for ch in s) or any(ch in s for ch in '"=')) and not s.startswith(("{", "[")):
        s = json.dumps(s, ensure_ascii=False)
    return s


def render(provider: str, feature: str, level: str, msg: str, fields: Mapping[str, Any], *, fmt: str = "kv",
           color: bool = False) -> str:
    lvl = _norm_level(level)
    clean = {k: _clean(k, v) for k, v in fields.items() if v is not None and v != ""}
    if fmt == "json":
        rec = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
            "provider": provider.upper(),
            "feature": feature.lower(),
            "level": lvl.upper(),
            "msg": " ".join(str(msg).split()),
            **clean,
        }
        return json.dumps(rec, ensure_ascii=False, default=str)

    head = f"[{provider.upper()}:{feature.lower()}]"
    tag = lvl.upper()
    if color:
        head = f"{DIM}{head}{RESET}"
        tag = f"{_COLORS.get(lvl, GREEN)}{tag}{RESET}"
    tail = " ".join(f"{k}={_kv_value(clean[k])}" for k in sorted(clean))
    line = f"{head} {tag} {' '.join(str(msg).split())}"
    return f"{line} {tail}" if tail else line


def log(provider: str, feature: str, level: str, msg: str, **fields: Any) -> None:
    if _LEVELS[_norm_level(level)] < threshold(str(provider)):
        return
    fmt = (os.getenv("LM_LOG_FORMAT") or "kv").strip().lower()
    line = render(str(provider), str(feature), level, msg, fields, fmt=fmt, color=_color_on(fmt))
    out = _stream or sys.stdout
    with _lock:
        out.write(line + "\n")
        out.flush()


__all__ = ["log", "render", "threshold", "set_stream"]
