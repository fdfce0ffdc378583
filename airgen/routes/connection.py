from __future__ import annotations

from fastapi import APIRouter, HTTPException

from airgen.application import get_studio_service
from airgen.core.errors import AuthError, FetchError, RunInProgressError, StoreConnectionError
from airgen.core.schema import ConnectionCredentials

router = APIRouter(tags=["connection"])


@router.get("/connection")
async def get_connection() -> dict:
    service = get_studio_service()
    credentials = service.credentials
    if credentials is None:
        return {"connected": False}
    return {
        "connected": True,
        "base_id": credentials.base_id,
        "table_name": credentials.table_name,
        "records": len(service.list_records()),
    }


@router.post("/connection")
async def connect(payload: ConnectionCredentials) -> dict:
    """Connect to an Airtable table and load its first records."""
    service = get_studio_service()
    try:
        records = await service.connect(payload)
    except StoreConnectionError as exc:
        status_code = 401 if isinstance(exc.cause, AuthError) else 404
        raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    except FetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {
        "connected": True,
        "base_id": payload.base_id,
        "table_name": payload.table_name,
        "records": len(records or []),
    }


@router.delete("/connection")
async def disconnect() -> dict:
    service = get_studio_service()
    try:
        service.logout()
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"connected": False}


@router.get("/records")
async def list_records() -> dict:
    service = get_studio_service()
    if not service.is_connected:
        raise HTTPException(status_code=409, detail="not connected")
    return {
        "items": [record.to_api() for record in service.list_records()],
        "fields": service.available_fields(),
        "image_fields": service.image_fields(),
    }
