from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from airgen.application import get_studio_service
from airgen.core.errors import NotConnectedError
from airgen.domain import Attachments

router = APIRouter(prefix="/pending", tags=["review"])


def _image_url(record_id: str) -> str | None:
    service = get_studio_service()
    record = service.get_record(record_id)
    if record is None:
        return None
    config = service.active_config
    if config is not None and config.image_field:
        return record.attachment_url(config.image_field)
    for value in record.fields.values():
        if isinstance(value, Attachments) and value.first_url:
            return value.first_url
    return None


@router.get("")
async def list_pending() -> dict:
    service = get_studio_service()
    pending = service.status().pending_updates
    items = [
        {"record_id": record_id, "image_url": _image_url(record_id), **update.to_dict()}
        for record_id, update in pending.items()
    ]
    return {"count": len(items), "items": items}


@router.get("/export")
async def export_pending() -> FileResponse:
    service = get_studio_service()
    path = service.export_pending_csv()
    return FileResponse(path, media_type="text/csv", filename=path.name)


@router.post("/commit")
async def commit_all() -> dict:
    """Approve every pending draft and push it to the record store."""
    service = get_studio_service()
    try:
        await service.commit_all()
    except NotConnectedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    remaining = list(service.status().pending_updates)
    return {"remaining": remaining, "count": len(remaining)}


@router.post("/{record_id}/commit")
async def commit_one(record_id: str) -> dict:
    service = get_studio_service()
    if not service.has_pending(record_id):
        raise HTTPException(status_code=404, detail="no pending update for record")
    try:
        error = await service.commit_one(record_id)
    except NotConnectedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if error is not None:
        raise HTTPException(status_code=502, detail=str(error))
    return {"record_id": record_id, "committed": True}
