# =========================================================
# FILE: /pwa2apk/schemas/config.py
# =========================================================

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, SecretStr, validator


class RemoteBuildConfig(BaseModel):
    """GitHub repository that runs the APK workflow, plus the token to dispatch it."""
    model_config = ConfigDict(frozen=True)

    token: SecretStr
    owner: str
    repo: str

    @property
    def is_complete(self) -> bool:
        return bool(self.token.get_secret_value().strip() and self.owner.strip() and self.repo.strip())


class BuildConfigUpdate(BaseModel):
    token: str = Field(..., min_length=1)
    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)

    @validator("token", "owner", "repo")
    def not_blank(cls, value: str):
        value = (value or "").strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class BuildConfigStatus(BaseModel):
    configured: bool
    owner: Optional[str] = None
    repo: Optional[str] = None
    token_hint: Optional[str] = None
