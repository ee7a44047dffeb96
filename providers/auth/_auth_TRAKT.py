# providers/auth/_auth_TRAKT.py
# ListMirror - Trakt OAuth refresh-grant exchange
from __future__ import annotations

import time
from typing import Any

import requests

from ..sync._log import log

API = "https://api.trakt.tv"
OAUTH_TOKEN = f"{API}/oauth/token"
REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
DEFAULT_EXPIRES_IN = 24 * 3600

__VERSION__ = "1.1.0"


def _now() -> int:
    return int(time.time())


def _headers(client_id: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "trakt-api-version": "2",
        "trakt-api-key": client_id,
    }


class _TraktAuth:
    name = "TRAKT"
    label = "Trakt"

    def __init__(self, client_id: str, client_secret: str, *, session: requests.Session | None = None,
                 timeout: float = 30.0, token_url: str = OAUTH_TOKEN):
        self.client_id = (client_id or "").strip()
        self.client_secret = (client_secret or "").strip()
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token_url = token_url

    def refresh(self, refresh_token: str, *, fallback_scope: str = "public") -> dict[str, Any]:
        """
        Exchange a refresh token for a new access token.

        Returns {"ok": True, "access_token", "refresh_token", "expires_at", "scope", "token_type"}
        or {"ok": False, "status": <reason>, "error": <detail>}. Never raises for HTTP or
        network failures; the caller decides what a failed refresh means.
        """
        rt = (refresh_token or "").strip()
        if not (self.client_id and self.client_secret and rt):
            log("TRAKT", "oauth", "error", "missing client_id/client_secret/refresh_token for refresh")
            return {"ok": False, "status": "missing_refresh"}

        payload: dict[str, Any] = {
            "refresh_token": rt,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": REDIRECT_URI,
            "grant_type": "refresh_token",
        }

        try:
            r = self.session.post(self.token_url, json=payload, headers=_headers(self.client_id), timeout=self.timeout)
        except requests.RequestException as e:
            log("TRAKT", "oauth", "error", f"token refresh network error: {e}")
            return {"ok": False, "status": "network_error", "error": str(e)}

        if r.status_code >= 400:
            try:
                body = r.json() or {}
            except ValueError:
                body = {}
            err = (
                str(body.get("error") or "")
                or str(body.get("error_description") or "")
                or (r.text or "")[:400]
            )
            log("TRAKT", "oauth", "error", f"token refresh failed {r.status_code}: {err}")
            return {"ok": False, "status": f"refresh_failed:{r.status_code}", "error": err}

        try:
            tok: dict[str, Any] = r.json() or {}
        except ValueError as e:
            log("TRAKT", "oauth", "error", f"token refresh invalid JSON: {e}")
            return {"ok": False, "status": "bad_json"}

        acc = (tok.get("access_token") or "").strip()
        if not acc:
            log("TRAKT", "oauth", "error", "token refresh succeeded but no access_token in response")
            return {"ok": False, "status": "no_access_token"}

        exp_in = int(tok.get("expires_in") or 0) or DEFAULT_EXPIRES_IN
        created = int(tok.get("created_at") or _now())
        log("TRAKT", "oauth", "debug", "token refreshed")
        return {
            "ok": True,
            "access_token": acc,
            "refresh_token": (tok.get("refresh_token") or rt).strip(),
            "expires_at": created + exp_in,
            "scope": tok.get("scope") or fallback_scope,
            "token_type": tok.get("token_type") or "bearer",
        }


def make_provider(cfg: dict[str, Any], *, session: requests.Session | None = None) -> _TraktAuth:
    tr = cfg.get("trakt") or {}
    return _TraktAuth(str(tr.get("client_id") or ""), str(tr.get("client_secret") or ""), session=session)


__all__ = ["_TraktAuth", "make_provider", "OAUTH_TOKEN", "__VERSION__"]
