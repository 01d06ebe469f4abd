# FILE: pwa2apk/services/artifact_service.py
from typing import Iterable, Optional

from pwa2apk.schemas.build import Artifact
from pwa2apk.schemas.config import RemoteBuildConfig
from pwa2apk.services import github_service

INSTALLABLE_NAME_MARKERS = ("app", "release")


def select_installable_artifact(artifacts: Iterable[Artifact]) -> Optional[Artifact]:
    """First artifact whose name contains "app" or "release"."""
    return next(
        (a for a in artifacts if any(marker in a.name for marker in INSTALLABLE_NAME_MARKERS)),
        None,
    )


async def resolve_download_url(config: RemoteBuildConfig, run_id: int) -> Optional[str]:
    artifacts = await github_service.list_artifacts(config, run_id)
    artifact = select_installable_artifact(artifacts)
    if not artifact:
        return None
    return github_service.build_artifact_url(config.owner, config.repo, run_id, artifact.id)
