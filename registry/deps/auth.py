"""Resolve the current owner for a request.

Browser sessions carry ``owner_id`` in the signed session cookie; API clients
send ``Authorization: Bearer <access token>``. Either way the dependency
yields an ``Owner`` or raises 401.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.context import bind_owner
from ..core.security import decode_token
from ..crud.owners import get_owner
from ..db.session import get_db
from ..models.owner import Owner

SESSION_OWNER_KEY = "owner_id"


def _unauthorized(detail: str = "Authorization required") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _set_principal(request: Request, owner: Owner, scheme: str) -> None:
    principal = f"{scheme}:{owner.user_name}"
    bind_owner(principal, owner.id)
    request.state.principal = principal
    request.state.owner_id = owner.id


def session_owner_id(request: Request) -> int | None:
    session = request.scope.get("session")
    if not session:
        return None
    value = session.get(SESSION_OWNER_KEY)
    return value if isinstance(value, int) else None


async def require_owner(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> Owner:
    owner_id = session_owner_id(request)
    if owner_id is not None:
        owner = get_owner(db, owner_id)
        if owner is not None:
            _set_principal(request, owner, "session")
            return owner

    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer" and credentials:
            try:
                payload = decode_token(credentials, verify_type="access")
            except ValueError as exc:
                raise _unauthorized(str(exc)) from exc
            owner = get_owner(db, payload.owner_id) if payload.owner_id is not None else None
            if owner is None:
                raise _unauthorized("Unknown owner")
            _set_principal(request, owner, "jwt")
            return owner

    raise _unauthorized()
