import pytest

from pwa2apk.schemas.build import Artifact, BuildStatus
from pwa2apk.schemas.config import RemoteBuildConfig
from pwa2apk.services import github_service
from pwa2apk.services.build_exceptions import (
    BuildConfigMissingError,
    BuildStateError,
    BuildValidationError,
    GitHubAPIError,
)
from pwa2apk.services.build_service import BuildOrchestrator


@pytest.fixture
def orchestrator(poll_settings) -> BuildOrchestrator:
    return BuildOrchestrator(poll_settings=poll_settings)


def _levels(session):
    return [entry.level for entry in session.logs]


@pytest.mark.asyncio
async def test_successful_build_produces_download_url(orchestrator, fake_github, build_config):
    session = await orchestrator.start("https://www.example.com", build_config)

    assert session.status == BuildStatus.COMPLETED
    assert session.progress == 100
    assert session.metadata.package_name == "com.example.app"
    assert session.run_id == 42
    assert session.run_number == 7
    assert session.download_url == "https://github.com/octo/apk-builder/actions/runs/42/artifacts/9"
    assert fake_github["dispatched"] == [("octo", "apk-builder", "com.example.app", "https://www.example.com")]

    messages = [entry.message for entry in session.logs]
    assert messages[0] == "Initiating analysis of https://www.example.com..."
    assert "Metadata extracted: Example App (com.example.app)" in messages
    assert "Workflow run started: #7" in messages
    assert messages[-1] == "Artifact found! Ready to download."
    assert [entry.seq for entry in session.logs] == list(range(1, len(session.logs) + 1))


@pytest.mark.asyncio
async def test_build_without_matching_artifact_completes_with_warning(orchestrator, fake_github, build_config):
    fake_github["artifacts"] = [Artifact(id=3, name="build-logs")]

    session = await orchestrator.start("https://example.com", build_config)

    assert session.status == BuildStatus.COMPLETED
    assert session.download_url is None
    assert session.progress == 100
    assert session.logs[-1].level == "warn"
    assert session.logs[-1].message == "No APK artifact found in the completed run."


@pytest.mark.asyncio
async def test_failed_workflow_marks_session_failed(orchestrator, fake_github, build_config, make_run):
    fake_github["run_states"] = [
        make_run(run_id=42, status="in_progress"),
        make_run(run_id=42, status="completed", conclusion="failure"),
    ]

    session = await orchestrator.start("https://example.com", build_config)

    assert session.status == BuildStatus.FAILED
    assert session.download_url is None
    assert session.error == "Workflow failure"
    assert session.logs[-1].message == "Build failed: Workflow failure"
    assert session.logs[-1].level == "error"
    assert _levels(session).count("error") == 1
    # 15 after metadata, +5 for the in-progress poll
    assert session.progress == 20


@pytest.mark.asyncio
async def test_dispatch_error_fails_session(orchestrator, fake_github, build_config):
    fake_github["dispatch_error"] = GitHubAPIError(
        "Failed to trigger build: 401 Bad credentials", status_code=401, body="Bad credentials"
    )

    session = await orchestrator.start("https://example.com", build_config)

    assert session.status == BuildStatus.FAILED
    assert session.run_id is None
    assert "401 Bad credentials" in session.logs[-1].message


@pytest.mark.asyncio
async def test_run_start_timeout_fails_session(orchestrator, fake_github, build_config, sleep):
    fake_github["latest_run"] = None

    session = await orchestrator.start("https://example.com", build_config)

    assert session.status == BuildStatus.FAILED
    assert session.error == "Timed out waiting for workflow to start."
    assert sleep.calls == [3.0] * 10


@pytest.mark.asyncio
async def test_unexpected_errors_are_contained(orchestrator, fake_github, build_config, monkeypatch):
    async def broken(config, run_id):
        raise KeyError("artifacts")

    monkeypatch.setattr(github_service, "list_artifacts", broken)

    session = await orchestrator.start("https://example.com", build_config)

    assert session.status == BuildStatus.FAILED
    assert session.logs[-1].level == "error"


@pytest.mark.parametrize("url", ["", "   ", "ftp://example.com", "example.com", "www.example.com", "  https://example.com"])
def test_invalid_url_is_rejected_without_state_change(orchestrator, build_config, url):
    before = orchestrator.session

    with pytest.raises(BuildValidationError):
        orchestrator.begin(url, build_config)

    assert orchestrator.session is before
    assert orchestrator.session.status == BuildStatus.IDLE
    assert orchestrator.session.logs == []


@pytest.mark.parametrize(
    "config",
    [
        None,
        RemoteBuildConfig(token="", owner="octo", repo="apk-builder"),
        RemoteBuildConfig(token="ghp_x", owner="", repo="apk-builder"),
        RemoteBuildConfig(token="ghp_x", owner="octo", repo=" "),
    ],
)
def test_missing_config_is_rejected(orchestrator, config):
    with pytest.raises(BuildConfigMissingError):
        orchestrator.begin("https://example.com", config)
    assert orchestrator.session.status == BuildStatus.IDLE


def test_begin_opens_analyzing_session(orchestrator, build_config):
    session = orchestrator.begin("https://example.com", build_config)

    assert session.status == BuildStatus.ANALYZING
    assert session.progress == 5
    assert orchestrator.is_active
    with pytest.raises(BuildStateError):
        orchestrator.begin("https://example.com", build_config)
    with pytest.raises(BuildStateError):
        orchestrator.reset()


@pytest.mark.asyncio
async def test_completed_session_must_be_reset_before_restart(orchestrator, fake_github, build_config):
    await orchestrator.start("https://example.com", build_config)

    with pytest.raises(BuildStateError):
        orchestrator.begin("https://example.com", build_config)

    session = orchestrator.reset()
    assert session.status == BuildStatus.IDLE
    assert session.logs == []
    assert session.progress == 0
    assert session.metadata is None
    assert session.download_url is None

    again = await orchestrator.start("https://example.com", build_config)
    assert again.status == BuildStatus.COMPLETED


@pytest.mark.asyncio
async def test_failed_session_can_restart_directly(orchestrator, fake_github, build_config):
    fake_github["dispatch_error"] = GitHubAPIError("Failed to trigger build: 500 oops", status_code=500)
    failed = await orchestrator.start("https://example.com", build_config)
    assert failed.status == BuildStatus.FAILED

    fake_github["dispatch_error"] = None
    session = await orchestrator.start("https://example.com", build_config)

    assert session is not failed
    assert session.status == BuildStatus.COMPLETED
    assert all(entry.level != "error" for entry in session.logs)


@pytest.mark.asyncio
async def test_run_requires_begin(orchestrator, build_config):
    with pytest.raises(BuildStateError):
        await orchestrator.run(build_config)


def test_list_logs_cursor(orchestrator, build_config):
    session = orchestrator.begin("https://example.com", build_config)
    session.add_log("second", "info")
    session.add_log("third", "success")

    logs, cursor = session.list_logs()
    assert [e.message for e in logs][1:] == ["second", "third"]
    assert cursor == 3

    logs, cursor = session.list_logs(after=2)
    assert [e.message for e in logs] == ["third"]
    assert cursor == 3

    logs, cursor = session.list_logs(after=3)
    assert logs == []
    assert cursor == 3
