from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud.components import list_owner_components
from ..crud.computers import list_owner_computers
from ..db.session import get_db
from ..deps.auth import require_owner
from ..models.owner import Owner
from ..schemas.inventory import ComponentOut, ComputerOut

router = APIRouter(prefix="/api/v1", tags=["inventory"])


@router.get("/computers", response_model=list[ComputerOut])
def api_list_computers(owner: Owner = Depends(require_owner), db: Session = Depends(get_db)):
    return list_owner_computers(db, owner.id)


@router.get("/components", response_model=list[ComponentOut])
def api_list_components(owner: Owner = Depends(require_owner), db: Session = Depends(get_db)):
    return list_owner_components(db, owner.id)
