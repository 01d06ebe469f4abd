import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography.fernet import Fernet

_TMP_DIR = Path(tempfile.mkdtemp(prefix="pwa2apk-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("GITHUB_API_URL", None)
os.environ.pop("GITHUB_WEB_URL", None)

from pwa2apk.schemas.build import Artifact, WorkflowRun  # noqa: E402
from pwa2apk.schemas.config import RemoteBuildConfig  # noqa: E402
from pwa2apk.services import build_service, github_service  # noqa: E402
from pwa2apk.services.build_monitor import PollSettings  # noqa: E402
from pwa2apk.services.metadata_service import fallback_metadata  # noqa: E402

START = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now


class RecordingSleep:
    """Advances the fake clock instead of waiting."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.now += timedelta(seconds=seconds)


@pytest.fixture
def build_config() -> RemoteBuildConfig:
    return RemoteBuildConfig(token="ghp_testtoken1234", owner="octo", repo="apk-builder")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def poll_settings(clock, sleep) -> PollSettings:
    return PollSettings(
        run_start_attempts=10,
        run_start_interval=3.0,
        match_window_seconds=60,
        completion_interval=5.0,
        completion_max_polls=None,
        sleep=sleep,
        clock=clock,
    )


@pytest.fixture
def make_run(clock):
    def _make(run_id=42, status="queued", conclusion=None, age_seconds=0.0, run_number=7):
        return WorkflowRun(
            id=run_id,
            run_number=run_number,
            created_at=clock.now - timedelta(seconds=age_seconds),
            status=status,
            conclusion=conclusion,
        )

    return _make


@pytest.fixture
def fake_github(monkeypatch, make_run):
    """Scriptable stand-in for the GitHub calls the orchestrator makes."""
    state = {
        "dispatch_error": None,
        "latest_run": make_run(run_id=42, run_number=7),
        "run_states": [make_run(run_id=42, status="completed", conclusion="success")],
        "artifacts": [Artifact(id=9, name="app-release.apk")],
        "dispatched": [],
        "run_polls": 0,
    }

    async def dispatch_build(config, metadata, url):
        if state["dispatch_error"]:
            raise state["dispatch_error"]
        state["dispatched"].append((config.owner, config.repo, metadata.package_name, url))

    async def get_latest_workflow_run(config):
        return state["latest_run"]

    async def get_workflow_run(config, run_id):
        index = min(state["run_polls"], len(state["run_states"]) - 1)
        state["run_polls"] += 1
        return state["run_states"][index]

    async def list_artifacts(config, run_id):
        return state["artifacts"]

    async def resolve(url):
        return fallback_metadata(url)

    monkeypatch.setattr(github_service, "dispatch_build", dispatch_build)
    monkeypatch.setattr(github_service, "get_latest_workflow_run", get_latest_workflow_run)
    monkeypatch.setattr(github_service, "get_workflow_run", get_workflow_run)
    monkeypatch.setattr(github_service, "list_artifacts", list_artifacts)
    monkeypatch.setattr(build_service, "resolve_metadata", resolve)
    return state
