# FILE: pwa2apk/services/config_service.py
import logging
from datetime import datetime
from typing import Optional

from cryptography.fernet import InvalidToken
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pwa2apk.models.build_config import BuildConfigRecord
from pwa2apk.schemas.config import BuildConfigStatus, RemoteBuildConfig
from pwa2apk.services.encryption_service import decrypt_secret, encrypt_secret, mask_secret

logger = logging.getLogger("pwa2apk.config")


async def _get_record(db: AsyncSession) -> Optional[BuildConfigRecord]:
    return (
        await db.execute(select(BuildConfigRecord).order_by(BuildConfigRecord.id).limit(1))
    ).scalar_one_or_none()


async def load_build_config(db: AsyncSession) -> Optional[RemoteBuildConfig]:
    """Load the persisted build target, or None when nothing was saved yet."""
    record = await _get_record(db)
    if not record:
        return None
    try:
        token = decrypt_secret(record.token_encrypted)
    except InvalidToken:
        # Key rotated since the token was saved; it has to be entered again.
        logger.warning(f"Stored token for {record.owner}/{record.repo} cannot be decrypted with ENCRYPTION_KEY")
        return None
    return RemoteBuildConfig(
        token=token,
        owner=record.owner,
        repo=record.repo,
    )


async def save_build_config(db: AsyncSession, token: str, owner: str, repo: str) -> RemoteBuildConfig:
    encrypted = encrypt_secret(token)
    record = await _get_record(db)
    if record:
        record.owner = owner
        record.repo = repo
        record.token_encrypted = encrypted
        record.updated_at = datetime.utcnow()
    else:
        db.add(BuildConfigRecord(owner=owner, repo=repo, token_encrypted=encrypted))
    await db.commit()

    logger.info(f"Saved build target {owner}/{repo}")
    return RemoteBuildConfig(token=token, owner=owner, repo=repo)


async def clear_build_config(db: AsyncSession) -> None:
    await db.execute(delete(BuildConfigRecord))
    await db.commit()
    logger.info("Cleared build target configuration")


def describe_build_config(config: Optional[RemoteBuildConfig]) -> BuildConfigStatus:
    if not config:
        return BuildConfigStatus(configured=False)
    return BuildConfigStatus(
        configured=config.is_complete,
        owner=config.owner,
        repo=config.repo,
        token_hint=mask_secret(config.token.get_secret_value()),
    )
