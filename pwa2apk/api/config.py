# FILE: pwa2apk/api/config.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from pwa2apk.api.deps import get_build_config
from pwa2apk.core.database import get_db
from pwa2apk.schemas.config import BuildConfigStatus, BuildConfigUpdate, RemoteBuildConfig
from pwa2apk.services.config_service import (
    clear_build_config,
    describe_build_config,
    save_build_config,
)

logger = logging.getLogger("pwa2apk.config")

router = APIRouter(prefix="/api/config", tags=["config"])


@router.get("", response_model=BuildConfigStatus)
async def get_config(config: Optional[RemoteBuildConfig] = Depends(get_build_config)):
    """Show which repository builds run in, without revealing the token."""
    return describe_build_config(config)


@router.put("", response_model=BuildConfigStatus)
async def update_config(body: BuildConfigUpdate, db: AsyncSession = Depends(get_db)):
    try:
        config = await save_build_config(db, body.token, body.owner, body.repo)
    except RuntimeError as e:
        logger.error(f"Saving build config failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return describe_build_config(config)


@router.delete("", response_model=BuildConfigStatus)
async def delete_config(db: AsyncSession = Depends(get_db)):
    await clear_build_config(db)
    return BuildConfigStatus(configured=False)
