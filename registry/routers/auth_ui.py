"""Form login for browsers. Stores the owner id in the signed session cookie."""

from __future__ import annotations

from html import escape

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from ..crud.owners import authenticate_owner
from ..db.session import get_db
from ..deps.auth import SESSION_OWNER_KEY

router = APIRouter(tags=["session"])


def _safe_next(target: str | None) -> str:
    # Only same-site relative paths; anything else falls back to the root.
    if not target or not target.startswith("/") or target.startswith("//"):
        return "/"
    return target


LOGIN_FORM = """<!doctype html>
<html lang="en">
<head><meta charset="utf-8"><title>Sign in</title></head>
<body>
<form method="post" action="/login">
  <input type="hidden" name="next" value="{next}">
  <label>User name <input name="user_name" maxlength="15" autofocus></label>
  <label>Password <input name="password" type="password"></label>
  <button type="submit">Sign in</button>
</form>
</body>
</html>
"""


@router.get("/login", response_class=HTMLResponse)
def login_form(next: str = "/"):
    return HTMLResponse(LOGIN_FORM.format(next=escape(_safe_next(next), quote=True)))


@router.post("/login")
def login_submit(
    request: Request,
    user_name: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
    db: Session = Depends(get_db),
):
    owner = authenticate_owner(db, user_name, password)
    if owner is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user name or password")
    request.session.clear()
    request.session[SESSION_OWNER_KEY] = owner.id
    return RedirectResponse(url=_safe_next(next), status_code=303)


@router.get("/logout")
def logout(request: Request, next: str = "/"):
    request.session.clear()
    return RedirectResponse(url=_safe_next(next), status_code=302)
