from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..core.security import decode_token, issue_token_pair
from ..crud.owners import authenticate_owner, get_owner
from ..db.session import get_db
from ..schemas.auth import RefreshRequest, TokenRequest, TokenResponse

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse, summary="Exchange owner credentials for JWTs")
def exchange_token(payload: TokenRequest, db: Session = Depends(get_db)):
    owner = authenticate_owner(db, payload.user_name, payload.password)
    if owner is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user name or password")
    pair = issue_token_pair(owner.id)
    return TokenResponse(**pair.model_dump())


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def refresh_token(payload: RefreshRequest, db: Session = Depends(get_db)):
    try:
        token = decode_token(payload.refresh_token, verify_type="refresh")
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    # The owner may have been removed since the refresh token was issued.
    if token.owner_id is None or get_owner(db, token.owner_id) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown owner")
    pair = issue_token_pair(token.owner_id)
    return TokenResponse(**pair.model_dump())
