"""Owner export/import endpoints. Always scoped to the authenticated owner."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import require_owner
from ..models.owner import Owner
from ..schemas.transfer import ImportResultOut
from ..services.owner_export import export_filename, export_owner_csv
from ..services.owner_import import ImportUpload, import_owner_csv

router = APIRouter(prefix="/api/v1/data-transfer", tags=["data-transfer"])


@router.get("/export", response_class=Response)
def api_export(owner: Owner = Depends(require_owner), db: Session = Depends(get_db)):
    body = export_owner_csv(db, owner)
    filename = export_filename(owner)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/import",
    response_model=ImportResultOut,
    responses={422: {"model": ImportResultOut}},
)
def api_import(
    file: UploadFile | None = File(default=None),
    owner: Owner = Depends(require_owner),
    db: Session = Depends(get_db),
):
    upload = None
    if file is not None and file.filename:
        upload = ImportUpload(
            filename=file.filename,
            content_type=file.content_type,
            stream=file.file,
            size=file.size,
        )
    result = import_owner_csv(db, owner, upload)
    if not result.success:
        return JSONResponse(result.to_dict(), status_code=422)
    return ImportResultOut(**result.to_dict())
