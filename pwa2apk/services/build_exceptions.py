"""Exceptions raised while starting and running an APK build session."""

from __future__ import annotations

from typing import Optional


class BuildError(Exception):
    """Base exception for build session failures."""


class BuildValidationError(BuildError):
    """Raised when a build cannot start because its input is invalid."""


class BuildConfigMissingError(BuildValidationError):
    """Raised when the GitHub token, owner or repository is not configured."""


class BuildStateError(BuildError):
    """Raised when the current session state does not allow the request."""


class GitHubAPIError(BuildError):
    """Raised when the GitHub REST API answers outside the 2xx range."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RunStartTimeoutError(BuildError):
    """Raised when no freshly dispatched workflow run shows up in time."""


class WorkflowConclusionError(BuildError):
    """Raised when the workflow run concludes as failed or cancelled."""

    def __init__(self, conclusion: str):
        super().__init__(f"Workflow {conclusion}")
        self.conclusion = conclusion


class CompletionTimeoutError(BuildError):
    """Raised when a configured completion poll limit is exhausted."""
