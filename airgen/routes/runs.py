from __future__ import annotations

from fastapi import APIRouter, HTTPException

from airgen.application import get_studio_service
from airgen.core.blueprints import WORKFLOW_BLUEPRINTS, get_blueprint
from airgen.core.errors import NotConnectedError, RunInProgressError
from airgen.core.schema import ProcessingConfig

router = APIRouter(tags=["runs"])


@router.get("/blueprints")
async def list_blueprints() -> dict:
    return {"items": [blueprint.model_dump(mode="json") for blueprint in WORKFLOW_BLUEPRINTS]}


@router.get("/blueprints/{blueprint_id}")
async def get_blueprint_detail(blueprint_id: str) -> dict:
    blueprint = get_blueprint(blueprint_id)
    if blueprint is None:
        raise HTTPException(status_code=404, detail="blueprint not found")
    return blueprint.model_dump(mode="json")


@router.post("/runs")
async def start_run(payload: ProcessingConfig) -> dict:
    """Run the batch over every loaded record and return the final status."""
    service = get_studio_service()
    try:
        status = await service.process(payload)
    except NotConnectedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except RunInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"status": status.to_dict(), "review_ready": service.review_ready}


@router.post("/runs/cancel")
async def cancel_run() -> dict:
    service = get_studio_service()
    return {"cancelled": service.cancel()}


@router.get("/runs/status")
async def get_run_status() -> dict:
    service = get_studio_service()
    return {"status": service.status().to_dict(), "review_ready": service.review_ready}
