"""Request-scoped values that log lines pick up without being passed around."""

from __future__ import annotations

from contextvars import ContextVar
from typing import Any

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
# "jwt:<user_name>" or "session:<user_name>" once the auth dependency has run.
principal_ctx_var: ContextVar[str | None] = ContextVar("principal", default=None)
owner_id_ctx_var: ContextVar[int | None] = ContextVar("owner_id", default=None)


def bind_owner(principal: str, owner_id: int) -> None:
    principal_ctx_var.set(principal)
    owner_id_ctx_var.set(owner_id)


def log_context() -> dict[str, Any]:
    """The context values that are currently set, keyed as they appear in log lines."""

    values = {
        "request_id": request_id_ctx_var.get(),
        "principal": principal_ctx_var.get(),
        "owner_id": owner_id_ctx_var.get(),
    }
    return {key: value for key, value in values.items() if value is not None}
