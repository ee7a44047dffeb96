# _logging.py
# ListMirror - console logger with module tags, colour and an optional JSON sink.
from __future__ import annotations
import sys, datetime, json, threading, time
from typing import Any, Optional, TextIO, Mapping, Dict

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

# ── runtime debug gate (runtime.debug in config.json, cached briefly) ─────
_CFG_CACHE: Dict[str, Any] | None = None
_CFG_TS: float = 0.0

def _debug_enabled() -> bool:
    global _CFG_CACHE, _CFG_TS
    now = time.time()
    if _CFG_CACHE is None or (now - _CFG_TS) > 5.0:
        try:
            from lm_platform.config_base import config_path
            with open(config_path(), "r", encoding="utf-8") as f:
                _CFG_CACHE = json.load(f)
        except (OSError, ValueError):
            _CFG_CACHE = {}
        _CFG_TS = now
    rt = (_CFG_CACHE.get("runtime") or {})
    return bool(rt.get("debug"))

class Logger:
    def __init__(
        self,
        stream: TextIO = sys.stdout,
        level: str = "info",
        use_color: bool = True,
        show_time: bool = True,
        time_fmt: str = "%Y-%m-%d %H:%M:%S",
        *,
        _context: Optional[Dict[str, Any]] = None,
        _name: Optional[str] = None,
        _sinks: Optional[Dict[str, Optional[TextIO]]] = None,
        _lock: Optional[threading.Lock] = None,
    ):
        self.stream = stream
        self.level_no = LEVELS.get(level, 20)
        self.use_color = use_color
        self.show_time = show_time
        self.time_fmt = time_fmt
        self.level_colors = {
            "DEBUG": YELLOW,
            "INFO": BLUE,
            "WARN": YELLOW,
            "ERROR": RED,
            "SUCCESS": GREEN,
        }
        self._context: Dict[str, Any] = dict(_context or {})
        if _name:
            self._context.setdefault("module", _name)
        # shared by every logger derived through bind/child
        self._sinks: Dict[str, Optional[TextIO]] = _sinks if _sinks is not None else {"json": None}
        self._lock = _lock or threading.Lock()

    def set_level(self, level: str) -> None:
        self.level_no = LEVELS.get(level, self.level_no)

    def enable_json(self, file_path: str) -> None:
        old = self._sinks.get("json")
        self._sinks["json"] = open(file_path, "a", encoding="utf-8")
        if old is not None:
            old.close()

    def close_json(self) -> None:
        stream, self._sinks["json"] = self._sinks.get("json"), None
        if stream is not None:
            stream.close()

    def bind(self, **ctx: Any) -> "Logger":
        new_ctx = dict(self._context); new_ctx.update(ctx)
        return Logger(
            stream=self.stream,
            level=self.level_name,
            use_color=self.use_color,
            show_time=self.show_time,
            time_fmt=self.time_fmt,
            _context=new_ctx,
            _name=new_ctx.get("module"),
            _sinks=self._sinks,
            _lock=self._lock,
        )

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    @property
    def level_name(self) -> str:
        for k, v in LEVELS.items():
            if v == self.level_no:
                return k
        return "info"

    def _fmt_text(self, label: str, msg: str) -> str:
        # "[MODULE] LEVEL message key=value ..."
        mod = (self._context.get("module") or "").strip()
        col = self.level_colors.get(label) if self.use_color else None
        lvl = f"{col}{label}{RESET}" if col else label
        head = f"[{mod}]" if mod else ""
        extras = " ".join(f"{k}={v}" for k, v in self._context.items() if k != "module")
        line = f"{head} {lvl} {msg}".strip()
        if extras:
            line = f"{line} {extras}"
        if self.show_time:
            ts = datetime.datetime.now().strftime(self.time_fmt)
            prefix = f"{DIM}[{ts}]{RESET}" if self.use_color else f"[{ts}]"
            return f"{prefix} {line}"
        return line

    def _write_sinks(self, label: str, text: str, *, msg: str, extra: Optional[Mapping[str, Any]]) -> None:
        with self._lock:
            self.stream.write(text + "\n")
            self.stream.flush()
            sink = self._sinks.get("json")
            if sink is not None:
                payload = {
                    "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds"),
                    "level": label,
                    "msg": msg,
                    "ctx": self._context or {},
                }
                if extra:
                    payload["extra"] = dict(extra)
                sink.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
                sink.flush()

    def _emit(self, severity: str, label: str, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        if severity == "debug":
            if self.level_no > LEVELS["debug"] and not _debug_enabled():
                return
        elif self.level_no > LEVELS.get(severity, LEVELS["info"]):
            return
        msg = " ".join(str(p) for p in parts)
        self._write_sinks(label, self._fmt_text(label, msg), msg=msg, extra=extra)

    def debug(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("debug", "DEBUG", *parts, extra=extra)

    def info(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "INFO", *parts, extra=extra)

    def warn(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("warn", "WARN", *parts, extra=extra)

    def error(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("error", "ERROR", *parts, extra=extra)

    def success(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "SUCCESS", *parts, extra=extra)

    # logger("text", level="WARN", module="AUTH")
    def __call__(
        self,
        message: str,
        *,
        level: str = "INFO",
        module: Optional[str] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        target = self.bind(module=module) if module else self
        lvl = (level or "INFO").lower()
        if lvl == "debug":
            target.debug(message, extra=extra)
        elif lvl in ("warn", "warning"):
            target.warn(message, extra=extra)
        elif lvl == "error":
            target.error(message, extra=extra)
        elif lvl == "success":
            target.success(message, extra=extra)
        else:
            target.info(message, extra=extra)

# default instance
log = Logger()


def configure(cfg: Mapping[str, Any], logger: Optional[Logger] = None) -> Logger:
    """Apply runtime.debug and runtime.log_json (JSON lines file) to a logger."""
    target = logger or log
    rt = cfg.get("runtime") or {}
    target.set_level("debug" if rt.get("debug") else "info")
    path = str(rt.get("log_json") or "").strip()
    if path and target._sinks.get("json") is None:
        target.enable_json(path)
    return target

__all__ = ["Logger", "log", "LEVELS", "configure"]
