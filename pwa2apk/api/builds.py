# FILE: pwa2apk/api/builds.py
# =========================================================
# Build sessions: start, poll status/logs, download, reset
# =========================================================

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse

from pwa2apk.api.deps import get_build_config, get_orchestrator
from pwa2apk.schemas.build import BuildLogsResponse, BuildSessionResponse, StartBuildRequest
from pwa2apk.schemas.config import RemoteBuildConfig
from pwa2apk.services.build_exceptions import (
    BuildConfigMissingError,
    BuildStateError,
    BuildValidationError,
)
from pwa2apk.services.build_service import BuildOrchestrator

router = APIRouter(prefix="/api/builds", tags=["builds"])


# ─────────────────────────────────────────────
# START
# ─────────────────────────────────────────────
@router.post("", status_code=202, response_model=BuildSessionResponse)
async def start_build(
    req: StartBuildRequest,
    background_tasks: BackgroundTasks,
    orchestrator: BuildOrchestrator = Depends(get_orchestrator),
    config: Optional[RemoteBuildConfig] = Depends(get_build_config),
):
    try:
        session = orchestrator.begin(req.url, config)
    except BuildConfigMissingError as e:
        raise HTTPException(
            status_code=428,
            detail={"code": "config_required", "show_config": True, "message": str(e)},
        )
    except BuildValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BuildStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    background_tasks.add_task(orchestrator.run, config)
    return session.snapshot()


# ─────────────────────────────────────────────
# POLL
# ─────────────────────────────────────────────
@router.get("/current", response_model=BuildSessionResponse)
async def get_current_build(orchestrator: BuildOrchestrator = Depends(get_orchestrator)):
    return orchestrator.session.snapshot()


@router.get("/current/logs", response_model=BuildLogsResponse)
async def get_current_logs(
    after: Optional[int] = Query(None, ge=0),
    orchestrator: BuildOrchestrator = Depends(get_orchestrator),
):
    logs, cursor = orchestrator.session.list_logs(after)
    return BuildLogsResponse(logs=logs, cursor=cursor)


@router.get("/current/download")
async def download_current_build(orchestrator: BuildOrchestrator = Depends(get_orchestrator)):
    download_url = orchestrator.session.download_url
    if not download_url:
        raise HTTPException(status_code=404, detail="No download available for this build")
    return RedirectResponse(url=download_url, status_code=307)


# ─────────────────────────────────────────────
# RESET
# ─────────────────────────────────────────────
@router.post("/current/reset", response_model=BuildSessionResponse)
async def reset_current_build(orchestrator: BuildOrchestrator = Depends(get_orchestrator)):
    try:
        session = orchestrator.reset()
    except BuildStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.snapshot()
