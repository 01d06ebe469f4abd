# =========================================================
# FILE: /pwa2apk/services/build_service.py
# =========================================================
"""
Build session orchestration:
URL -> metadata -> dispatch -> wait for run -> wait for completion -> artifact.

One session at a time. Each stage appends to the session log, which the API
exposes as a cursor so the UI only renders what it receives.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pwa2apk.schemas.build import BuildStatus, LogEntry, LogLevel
from pwa2apk.schemas.config import RemoteBuildConfig
from pwa2apk.schemas.metadata import AppMetadata
from pwa2apk.services import artifact_service, github_service
from pwa2apk.services.build_exceptions import (
    BuildConfigMissingError,
    BuildError,
    BuildStateError,
    BuildValidationError,
)
from pwa2apk.services.build_monitor import (
    PollSettings,
    await_completion,
    await_run_start,
    simulate_progress,
)
from pwa2apk.services.metadata_service import resolve_metadata

logger = logging.getLogger("pwa2apk.builds")

STARTABLE_STATES = {BuildStatus.IDLE, BuildStatus.FAILED}
TERMINAL_STATES = {BuildStatus.COMPLETED, BuildStatus.FAILED}

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


def validate_source_url(url: Optional[str]) -> str:
    url = url or ""
    if not url.startswith("http"):
        raise BuildValidationError("Please enter a valid URL starting with http/https")
    return url


@dataclass
class BuildSession:
    status: BuildStatus = BuildStatus.IDLE
    source_url: Optional[str] = None
    metadata: Optional[AppMetadata] = None
    logs: List[LogEntry] = field(default_factory=list)
    progress: int = 0
    download_url: Optional[str] = None
    run_id: Optional[int] = None
    run_number: Optional[int] = None
    error: Optional[str] = None
    started_at: Optional[str] = None
    updated_at: Optional[str] = None

    def add_log(self, message: str, level: LogLevel = "info") -> LogEntry:
        entry = LogEntry(seq=len(self.logs) + 1, timestamp=_now_iso(), message=message, level=level)
        self.logs.append(entry)
        self.updated_at = entry.timestamp
        logger.log(_LOG_LEVELS[level], message)
        return entry

    def set_progress(self, value: int) -> None:
        self.progress = max(0, min(100, value))
        self.updated_at = _now_iso()

    def list_logs(self, after: Optional[int] = None) -> Tuple[List[LogEntry], Optional[int]]:
        """Entries after the given sequence number, plus the cursor for the next call."""
        if not self.logs:
            return [], after
        start = after or 0
        sliced = [e for e in self.logs if e.seq > start]
        cursor = sliced[-1].seq if sliced else start
        return sliced, cursor

    def snapshot(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "source_url": self.source_url,
            "metadata": self.metadata,
            "progress": self.progress,
            "download_url": self.download_url,
            "run_id": self.run_id,
            "run_number": self.run_number,
            "error": self.error,
            "logs": list(self.logs),
            "started_at": self.started_at,
            "updated_at": self.updated_at,
        }


class BuildOrchestrator:
    """Owns the single active build session and drives it through each stage."""

    def __init__(self, poll_settings: Optional[PollSettings] = None) -> None:
        self.poll_settings = poll_settings or PollSettings()
        self.session = BuildSession()

    @property
    def is_active(self) -> bool:
        return self.session.status not in STARTABLE_STATES | TERMINAL_STATES

    # -------- Public API

    def begin(self, url: Optional[str], config: Optional[RemoteBuildConfig]) -> BuildSession:
        """
        Validate the request and open a fresh session in ANALYZING.
        Rejections leave the current session untouched.
        """
        if self.session.status not in STARTABLE_STATES:
            raise BuildStateError(
                f"Cannot start a build while the current session is {self.session.status.value}"
            )
        url = validate_source_url(url)
        if config is None or not config.is_complete:
            raise BuildConfigMissingError("Please configure GitHub credentials first.")

        now = _now_iso()
        self.session = BuildSession(
            status=BuildStatus.ANALYZING,
            source_url=url,
            progress=5,
            started_at=now,
            updated_at=now,
        )
        self.session.add_log(f"Initiating analysis of {url}...", "info")
        return self.session

    async def run(self, config: RemoteBuildConfig) -> BuildSession:
        """Run every stage of the session opened by begin(); stops on the first failure."""
        session = self.session
        if session.status != BuildStatus.ANALYZING or not session.source_url:
            raise BuildStateError("No build session is waiting to run")

        try:
            await self._run_stages(session, config)
        except BuildError as e:
            self._fail(session, str(e))
        except Exception as e:
            logger.exception("Unexpected build failure")
            self._fail(session, str(e) or e.__class__.__name__)
        return session

    async def start(self, url: Optional[str], config: Optional[RemoteBuildConfig]) -> BuildSession:
        self.begin(url, config)
        return await self.run(config)

    def reset(self) -> BuildSession:
        if self.is_active:
            raise BuildStateError("A build is in progress and cannot be reset")
        self.session = BuildSession()
        return self.session

    # -------- Stages

    async def _run_stages(self, session: BuildSession, config: RemoteBuildConfig) -> None:
        url = session.source_url

        # 1. Analyze
        metadata = await resolve_metadata(url)
        session.metadata = metadata
        session.add_log(f"Metadata extracted: {metadata.name} ({metadata.package_name})", "success")
        session.set_progress(15)

        # 2. Trigger build
        session.status = BuildStatus.BUILDING
        session.add_log("Triggering GitHub Action...", "info")
        await github_service.dispatch_build(config, metadata, url)
        session.add_log("Build triggered successfully. Waiting for workflow run...", "info")

        # 3. Wait for the run to start
        run = await await_run_start(
            lambda: github_service.get_latest_workflow_run(config),
            self.poll_settings,
        )
        session.run_id = run.id
        session.run_number = run.run_number
        session.add_log(f"Workflow run started: #{run.run_number}", "info")

        # 4. Wait for completion
        run = await await_completion(
            lambda: github_service.get_workflow_run(config, run.id),
            run,
            self.poll_settings,
            on_log=session.add_log,
            on_progress=lambda: session.set_progress(simulate_progress(session.progress)),
        )
        session.add_log("Workflow completed. Fetching artifacts...", "success")
        session.set_progress(95)

        # 5. Artifact
        download_url = await artifact_service.resolve_download_url(config, run.id)
        if download_url:
            session.download_url = download_url
            session.add_log("Artifact found! Ready to download.", "success")
        else:
            session.add_log("No APK artifact found in the completed run.", "warn")

        session.status = BuildStatus.COMPLETED
        session.set_progress(100)

    def _fail(self, session: BuildSession, message: str) -> None:
        session.error = message
        session.add_log(f"Build failed: {message}", "error")
        session.status = BuildStatus.FAILED


# Singleton access
_orchestrator_singleton: Optional[BuildOrchestrator] = None


def get_build_orchestrator() -> BuildOrchestrator:
    global _orchestrator_singleton
    if _orchestrator_singleton is None:
        _orchestrator_singleton = BuildOrchestrator()
    return _orchestrator_singleton
