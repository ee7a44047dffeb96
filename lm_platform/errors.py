# lm_platform/errors.py
# error taxonomy shared by the engine and the provider adapters.
from __future__ import annotations

from typing import Any


class EngineError(RuntimeError): ...


class ValidationError(EngineError):
    """Input rejected before any remote call was made."""


class AuthExpiredError(EngineError):
    """Stored credential is stale and could not be refreshed."""

    def __init__(self, message: str, *, user: str | None = None, status: str | None = None):
        super().__init__(message)
        self.user = user
        self.status = status


class RemoteCallError(EngineError):
    """Non-success response (or transport failure) from the remote API."""

    def __init__(
        self,
        message: str,
        *,
        method: str = "",
        url: str = "",
        status: int | None = None,
        body: Any = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.method = method
        self.url = url
        self.status = status
        self.body = body
        self.cause = cause


class SyncCancelled(EngineError):
    """Caller asked to stop; raised only at a fetch boundary."""


__all__ = ["EngineError", "ValidationError", "AuthExpiredError", "RemoteCallError", "SyncCancelled"]
