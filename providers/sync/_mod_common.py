# /providers/sync/_mod_common.py
# ListMirror common HTTP helpers for provider modules
from __future__ import annotations

import json
import time
from typing import Any, Callable, Mapping
from urllib.parse import urlparse

import requests

from ._log import log

__VERSION__ = "0.3.0"
__all__ = [
    "HitSession",
    "build_session",
    "parse_rate_limit",
    "safe_json",
    "request_with_retries",
    "label_trakt",
    "hdr_int",
]

FeatureLabelFn = Callable[[str, str, Mapping[str, Any]], str]


def default_feature_label(method: str, url: str, kw: Mapping[str, Any]) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    head = "/".join(segs[:3]) or "unknown"
    return head.lower()


def label_trakt(method: str, url: str, kw: Mapping[str, Any]) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    m = method.upper()
    if segs[:1] == ["search"]:
        return f"search:{segs[1]}" if len(segs) >= 2 else "search"
    if segs[:1] == ["oauth"]:
        return "oauth:token"
    if len(segs) >= 3 and segs[0] == "users" and segs[2] == "lists":
        if len(segs) >= 5 and segs[4] == "items":
            if len(segs) >= 6 and segs[5] == "remove":
                return "lists:items:remove"
            return "lists:items:add" if m == "POST" else "lists:items:index"
        if m == "POST":
            return "lists:create"
        if m == "PUT":
            return "lists:update"
        if m == "DELETE":
            return "lists:delete"
        return "lists:index"
    return default_feature_label(method, url, kw)


class HitSession(requests.Session):
    """requests.Session that logs one TRACE line per call, tagged by feature."""

    def __init__(self, provider: str, feature_label: FeatureLabelFn | None = None, user_agent: str | None = None):
        super().__init__()
        self._provider = provider
        self._label = feature_label or default_feature_label
        if user_agent:
            self.headers["User-Agent"] = user_agent

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        status: int | None = None
        try:
            resp = super().request(method, url, **kwargs)
            status = resp.status_code
            return resp
        finally:
            log(self._provider, self._label(method.upper(), url, kwargs), "trace", "api hit",
                method=method.upper(), status=status)


def build_session(provider: str, *, feature_label: FeatureLabelFn | None = None,
                  user_agent: str | None = None) -> HitSession:
    return HitSession(provider, feature_label, user_agent)


def parse_rate_limit(h: Mapping[str, Any]) -> dict[str, int | None]:
    def _i(x: Any) -> int | None:
        try:
            return int(x)
        except (TypeError, ValueError):
            return None

    return {
        "limit": _i(h.get("X-RateLimit-Limit") or h.get("RateLimit-Limit")),
        "remaining": _i(h.get("X-RateLimit-Remaining") or h.get("RateLimit-Remaining")),
        "reset": _i(h.get("X-RateLimit-Reset") or h.get("RateLimit-Reset")),
    }


def hdr_int(headers: Mapping[str, Any], name: str) -> int | None:
    for k, v in (headers or {}).items():
        if str(k).lower() == name.lower():
            try:
                return int(str(v).strip())
            except ValueError:
                return None
    return None


def safe_json(resp: requests.Response) -> Any:
    try:
        if not (resp.text or "").strip():
            return {}
        ctype = (resp.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            return resp.json()
        return json.loads(resp.text)
    except ValueError:
        return {}


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 10.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = (429, 500, 502, 503, 504),
    backoff_base: float = 0.5,
    **kwargs: Any,
) -> requests.Response:
    """
    One logical call with a bounded retry on transient failures only
    (status in retry_on, or a connection/timeout error). Any other response is
    returned as-is on the first attempt. Honours Retry-After on 429.
    """
    attempts = max(1, int(max_retries))
    last: requests.Response | None = None
    for i in range(attempts):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            if i >= attempts - 1:
                raise
            wait = backoff_base * (2**i)
            log("HTTP", "retry", "warn", f"{method} {url} failed: {e}", attempt=i + 1, wait=wait)
            time.sleep(wait)
            continue
        if resp.status_code in retry_on and i < attempts - 1:
            wait = backoff_base * (2**i)
            if resp.status_code == 429:
                ra = resp.headers.get("Retry-After")
                try:
                    if ra:
                        wait = max(wait, float(ra))
                except ValueError:
                    pass
            log("HTTP", "retry", "warn", f"{method} {url} -> {resp.status_code}", attempt=i + 1, wait=wait,
                **parse_rate_limit(resp.headers))
            time.sleep(wait)
            last = resp
            continue
        return resp
    if last is not None:
        return last
    raise requests.RequestException(f"request failed after retries: {method} {url}")
