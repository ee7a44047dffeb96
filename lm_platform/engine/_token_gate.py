# lm_platform/engine/_token_gate.py
# resolves a fresh credential for a user right before a remote call.
from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Protocol

from _logging import log as _root_log

from ..errors import AuthExpiredError
from ._types import Credential

log = _root_log.child("AUTH")


class Refresher(Protocol):
    def refresh(self, refresh_token: str, *, fallback_scope: str = "public") -> dict[str, Any]: ...


class CredentialSource(Protocol):
    def load(self, user: str) -> Credential | None: ...
    def save(self, cred: Credential) -> None: ...


class TokenGate:
    """
    prepare(user) returns a credential that is not past its expiry, refreshing
    and persisting it first when needed. The credential is handed back to the
    caller and passed explicitly into each remote call; the gate never stores
    it on a shared client.
    """

    def __init__(
        self,
        store: CredentialSource,
        refresher: Refresher | None,
        *,
        current_user: Callable[[], str | None] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.refresher = refresher
        self.current_user = current_user
        self.clock = clock
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user: str) -> threading.Lock:
        with self._locks_guard:
            lk = self._locks.get(user)
            if lk is None:
                lk = self._locks[user] = threading.Lock()
            return lk

    def _resolve_user(self, user: str | None) -> str:
        name = user or (self.current_user() if self.current_user else None)
        if not name:
            raise AuthExpiredError("no user to authenticate this call as", status="no_user")
        return name

    def prepare(self, user: str | None = None) -> Credential:
        name = self._resolve_user(user)
        cred = self.store.load(name)
        if cred is None:
            raise AuthExpiredError(f"no stored credential for {name}", user=name, status="missing")
        if not cred.is_expired(self.clock()):
            return cred

        # one refresh per user at a time; a concurrent run may already have refreshed
        with self._lock_for(name):
            latest = self.store.load(name) or cred
            if not latest.is_expired(self.clock()):
                return latest
            return self._refresh(latest)

    def _refresh(self, cred: Credential) -> Credential:
        if self.refresher is None or not cred.refresh_token:
            log.warn(f"credential for {cred.user} expired and cannot be refreshed")
            raise AuthExpiredError(f"credential for {cred.user} expired", user=cred.user, status="no_refresh")

        log.info(f"access token for {cred.user} expired, refreshing")
        res = self.refresher.refresh(cred.refresh_token, fallback_scope=cred.scope)
        if not res.get("ok"):
            status = str(res.get("status") or "refresh_failed")
            log.error(f"refresh for {cred.user} failed: {status}")
            raise AuthExpiredError(f"token refresh failed for {cred.user}: {status}", user=cred.user, status=status)

        fresh = replace(
            cred,
            access_token=str(res["access_token"]),
            refresh_token=str(res.get("refresh_token") or cred.refresh_token),
            expires_at=int(res.get("expires_at") or 0),
            scope=str(res.get("scope") or cred.scope),
            token_type=str(res.get("token_type") or cred.token_type),
        )
        self.store.save(fresh)
        log.debug(f"refreshed credential for {cred.user} persisted")
        return fresh


__all__ = ["TokenGate", "Refresher", "CredentialSource"]
