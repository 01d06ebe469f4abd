# =========================================================
# FILE: /pwa2apk/schemas/build.py
# =========================================================

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from pwa2apk.schemas.metadata import AppMetadata


class BuildStatus(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    # MANIFEST and SIGNING are reserved for stages the remote workflow owns today.
    MANIFEST = "MANIFEST"
    BUILDING = "BUILDING"
    SIGNING = "SIGNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


LogLevel = Literal["info", "warn", "error", "success"]


class LogEntry(BaseModel):
    seq: int
    timestamp: str
    message: str
    level: LogLevel = "info"


class RunStatus:
    """GitHub Actions run status values."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RunConclusion:
    """GitHub Actions run conclusion values."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


class WorkflowRun(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    run_number: int
    created_at: datetime
    status: str
    conclusion: Optional[str] = None
    html_url: Optional[str] = None


class Artifact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    size_in_bytes: Optional[int] = None
    archive_download_url: Optional[str] = None
    expired: bool = False


class StartBuildRequest(BaseModel):
    url: str = Field(..., description="Web app URL (must start with http/https)")


class BuildSessionResponse(BaseModel):
    status: BuildStatus
    source_url: Optional[str] = None
    metadata: Optional[AppMetadata] = None
    progress: int = 0
    download_url: Optional[str] = None
    run_id: Optional[int] = None
    run_number: Optional[int] = None
    error: Optional[str] = None
    logs: List[LogEntry] = Field(default_factory=list)
    started_at: Optional[str] = None
    updated_at: Optional[str] = None


class BuildLogsResponse(BaseModel):
    logs: List[LogEntry]
    cursor: Optional[int] = None
