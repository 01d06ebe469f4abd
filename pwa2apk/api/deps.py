# FILE: pwa2apk/api/deps.py

from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pwa2apk.core.database import get_db
from pwa2apk.schemas.config import RemoteBuildConfig
from pwa2apk.services.build_service import BuildOrchestrator, get_build_orchestrator
from pwa2apk.services.config_service import load_build_config


def get_orchestrator() -> BuildOrchestrator:
    return get_build_orchestrator()


async def get_build_config(db: AsyncSession = Depends(get_db)) -> Optional[RemoteBuildConfig]:
    """Persisted build target, read once per request."""
    return await load_build_config(db)
