# FILE: pwa2apk/services/github_service.py
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx
from pydantic import ValidationError

from pwa2apk.core.config import (
    GITHUB_API_BASE,
    GITHUB_DISPATCH_EVENT,
    GITHUB_REQUEST_TIMEOUT_SECONDS,
    GITHUB_WEB_BASE,
)
from pwa2apk.schemas.build import Artifact, WorkflowRun
from pwa2apk.schemas.config import RemoteBuildConfig
from pwa2apk.schemas.metadata import AppMetadata
from pwa2apk.services.build_exceptions import GitHubAPIError

logger = logging.getLogger("pwa2apk.github")

T = TypeVar("T")


def _headers(config: RemoteBuildConfig) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {config.token.get_secret_value()}",
        "Accept": "application/vnd.github+json",
    }


def _repo_path(config: RemoteBuildConfig) -> str:
    return f"{GITHUB_API_BASE}/repos/{config.owner}/{config.repo}"


async def _request(
    method: str,
    url: str,
    config: RemoteBuildConfig,
    *,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    error_prefix: str = "GitHub API request failed",
) -> httpx.Response:
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.request(
                method,
                url,
                headers=_headers(config),
                json=json,
                params=params,
                timeout=GITHUB_REQUEST_TIMEOUT_SECONDS,
            )
    except httpx.HTTPError as e:
        raise GitHubAPIError(f"{error_prefix}: {e}") from e

    if not resp.is_success:
        body = resp.text
        raise GitHubAPIError(
            f"{error_prefix}: {resp.status_code} {body}",
            status_code=resp.status_code,
            body=body,
        )
    return resp


def _parse(resp: httpx.Response, parse: Callable[[Any], T], error_prefix: str) -> T:
    """Decode a 2xx body; malformed payloads surface as GitHubAPIError."""
    try:
        return parse(resp.json())
    except (ValueError, TypeError, AttributeError, ValidationError) as e:
        raise GitHubAPIError(f"{error_prefix}: unexpected response ({e})", status_code=resp.status_code) from e


async def dispatch_build(config: RemoteBuildConfig, metadata: AppMetadata, source_url: str) -> None:
    """Fire the repository_dispatch event that starts the APK workflow."""
    await _request(
        "POST",
        f"{_repo_path(config)}/dispatches",
        config,
        json={
            "event_type": GITHUB_DISPATCH_EVENT,
            "client_payload": {
                "url": source_url,
                "package_name": metadata.package_name,
                "name": metadata.name,
            },
        },
        error_prefix="Failed to trigger build",
    )
    logger.info(f"Dispatched {GITHUB_DISPATCH_EVENT} to {config.owner}/{config.repo} for {source_url}")


def _latest_run(payload: Dict[str, Any]) -> Optional[WorkflowRun]:
    runs = payload.get("workflow_runs") or []
    if not runs:
        return None
    return WorkflowRun(**runs[0])


async def get_latest_workflow_run(config: RemoteBuildConfig) -> Optional[WorkflowRun]:
    """Most recent dispatch-triggered run, or None when the repository has none."""
    error_prefix = "Failed to fetch workflow runs"
    resp = await _request(
        "GET",
        f"{_repo_path(config)}/actions/runs",
        config,
        params={"event": "repository_dispatch", "per_page": 1},
        error_prefix=error_prefix,
    )
    return _parse(resp, _latest_run, error_prefix)


async def get_workflow_run(config: RemoteBuildConfig, run_id: int) -> WorkflowRun:
    error_prefix = "Failed to fetch workflow run"
    resp = await _request(
        "GET",
        f"{_repo_path(config)}/actions/runs/{run_id}",
        config,
        error_prefix=error_prefix,
    )
    return _parse(resp, lambda payload: WorkflowRun(**payload), error_prefix)


async def list_artifacts(config: RemoteBuildConfig, run_id: int) -> List[Artifact]:
    error_prefix = "Failed to fetch artifacts"
    resp = await _request(
        "GET",
        f"{_repo_path(config)}/actions/runs/{run_id}/artifacts",
        config,
        error_prefix=error_prefix,
    )
    return _parse(
        resp,
        lambda payload: [Artifact(**a) for a in payload.get("artifacts") or []],
        error_prefix,
    )


def build_artifact_url(owner: str, repo: str, run_id: int, artifact_id: int) -> str:
    """Browser link to an artifact on the run summary page."""
    return f"{GITHUB_WEB_BASE}/{owner}/{repo}/actions/runs/{run_id}/artifacts/{artifact_id}"
