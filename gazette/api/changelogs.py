"""
Changelog generation API endpoints.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from gazette.config import Settings, settings
from gazette.models import Repo, RepoResult, TimeWindow
from gazette.models.models import (
    BatchChangelogRequest,
    BatchChangelogResponse,
    ChangelogRequest,
    ChangelogResponse,
    RepoResultResponse,
    RepositoryListResponse,
)
from gazette.services import ChangelogService, GazetteError, create_changelog_service

logger = logging.getLogger(__name__)

router = APIRouter()


def get_settings() -> Settings:
    return settings


def get_changelog_service(config: Settings = Depends(get_settings)) -> ChangelogService:
    """Dependency building the pipeline; missing credentials become a 503."""
    try:
        return create_changelog_service(config)
    except GazetteError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


def _resolve_window(value: Optional[str], config: Settings) -> TimeWindow:
    if not value:
        return config.get_time_window()
    try:
        return TimeWindow.parse(value)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _resolve_repo(value: str) -> Repo:
    try:
        return Repo.from_full_name(value)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _result_response(result: RepoResult) -> RepoResultResponse:
    if result.ok:
        return RepoResultResponse(
            repository=result.repo.full_name,
            status="success",
            path=str(result.path),
        )
    return RepoResultResponse(
        repository=result.repo.full_name,
        status="failed",
        error=str(result.error),
        error_type=getattr(result.error, "error_type", None) or "unexpected_error",
    )


@router.get("/repositories", response_model=RepositoryListResponse)
async def list_repositories(config: Settings = Depends(get_settings)):
    """List subscribed repositories from the config file."""
    repos = config.get_repositories()
    return RepositoryListResponse(
        repositories=[repo.full_name for repo in repos],
        total=len(repos),
    )


@router.post("/changelogs", response_model=ChangelogResponse, status_code=status.HTTP_201_CREATED)
async def generate_changelog(
    request: ChangelogRequest,
    config: Settings = Depends(get_settings),
    service: ChangelogService = Depends(get_changelog_service),
):
    """
    Generate a changelog for one repository.

    Args:
        request: Repository ("owner/name") and optional window ("24h", "HH:MM:SS")

    Returns:
        ChangelogResponse: Path of the written changelog
    """
    repo = _resolve_repo(request.repository)
    window = _resolve_window(request.time_window, config)

    try:
        path = await service.generate_for_repo(repo, window)
    except GazetteError as e:
        logger.error(f"Changelog generation failed for {repo.full_name}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return ChangelogResponse(
        repository=repo.full_name,
        path=str(path),
        time_window=window.description(),
    )


@router.post("/changelogs/batch", response_model=BatchChangelogResponse)
async def generate_changelogs(
    request: BatchChangelogRequest,
    config: Settings = Depends(get_settings),
    service: ChangelogService = Depends(get_changelog_service),
):
    """
    Generate changelogs for several repositories concurrently.

    An empty repository list means every subscribed repository. Failures are
    reported per repository and never fail the request as a whole.
    """
    if request.repositories:
        repos: List[Repo] = [_resolve_repo(name) for name in request.repositories]
    else:
        repos = config.get_repositories()

    if not repos:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No subscribed repos. Subscribe to a repo first.",
        )

    window = _resolve_window(request.time_window, config)
    results = await service.generate_for_all(repos, window)
    succeeded = sum(1 for result in results if result.ok)

    return BatchChangelogResponse(
        time_window=window.description(),
        results=[_result_response(result) for result in results],
        succeeded=succeeded,
        failed=len(results) - succeeded,
    )
