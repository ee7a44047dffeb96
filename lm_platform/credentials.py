# lm_platform/credentials.py
# stored OAuth grants, one record per remote username under config["users"].
from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Protocol

from .config_base import load_config, save_config
from .engine._types import Credential


class CredentialStore(Protocol):
    def load(self, user: str) -> Credential | None: ...
    def save(self, cred: Credential) -> None: ...


def _to_credential(user: str, rec: dict[str, Any]) -> Credential | None:
    acc = str(rec.get("access_token") or "").strip()
    if not acc:
        return None
    return Credential(
        user=user,
        access_token=acc,
        refresh_token=str(rec.get("refresh_token") or "").strip(),
        expires_at=int(rec.get("expires_at") or 0),
        scope=str(rec.get("scope") or "public"),
        token_type=str(rec.get("token_type") or "bearer"),
    )


class ConfigCredentialStore:
    """Credential records kept in config.json; writes are serialized within the process."""

    def __init__(
        self,
        *,
        loader: Callable[[], dict[str, Any]] = load_config,
        saver: Callable[[dict[str, Any]], None] = save_config,
    ):
        self._load = loader
        self._save = saver
        self._lock = threading.Lock()

    def load(self, user: str) -> Credential | None:
        users = self._load().get("users") or {}
        rec = users.get(user)
        return _to_credential(user, rec) if isinstance(rec, dict) else None

    def save(self, cred: Credential) -> None:
        with self._lock:
            cfg = self._load()
            users = cfg.setdefault("users", {})
            rec = dict(users.get(cred.user) or {})
            rec.update(
                {
                    "access_token": cred.access_token,
                    "refresh_token": cred.refresh_token,
                    "expires_at": int(cred.expires_at),
                    "scope": cred.scope,
                    "token_type": cred.token_type,
                }
            )
            users[cred.user] = rec
            self._save(cfg)


__all__ = ["CredentialStore", "ConfigCredentialStore"]
