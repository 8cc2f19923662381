"""
GitHub API integration service for fetching merged pull requests.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from gazette.config import Settings
from gazette.models import PullRequest, Repo, TimeWindow
from gazette.services.errors import ConfigurationError, DecodeError, UpstreamError

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
PER_PAGE = 100  # GitHub API max per page


class GitHubService:
    """Service for interacting with the GitHub REST API."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30,
        user_agent: str = "gazette",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise ConfigurationError("GITHUB_TOKEN not found in environment")

        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

        # Setup headers for GitHub API
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": user_agent,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitHubService":
        return cls(
            token=settings.GITHUB_TOKEN,
            api_url=settings.GITHUB_API_URL,
            timeout=settings.TIMEOUT_SECONDS,
            user_agent=f"{settings.APP_NAME}/{settings.APP_VERSION}",
        )

    async def fetch_merged(
        self,
        repo: Repo,
        window: TimeWindow,
        now: Optional[datetime] = None,
    ) -> List[PullRequest]:
        """
        Fetch pull requests merged within the given time window.

        Only the first page of recently updated closed PRs is read; a
        repository closing more than a page of PRs per window may miss
        older merges.

        Args:
            repo: Repository to query
            window: Trailing window the merge must fall into
            now: Reference instant, defaults to the current UTC time

        Returns:
            List[PullRequest]: PRs with merged_at strictly after the cutoff

        Raises:
            UpstreamError: If GitHub answers with a non-success status or is unreachable
            DecodeError: If the response is not a list of pull requests
        """
        url = f"{self.api_url}/repos/{repo.owner}/{repo.name}/pulls"
        params = {
            "state": "closed",
            "sort": "updated",
            "direction": "desc",
            "per_page": PER_PAGE,
        }

        logger.info(f"Fetching closed PRs for {repo.full_name}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=self.headers, params=params)
        except httpx.RequestError as e:
            logger.error(f"Network error fetching PRs for {repo.full_name}: {e}")
            raise UpstreamError("GitHub", f"Failed to fetch PRs from GitHub: {e}")

        if not response.is_success:
            logger.error(f"GitHub API error fetching PRs for {repo.full_name}: {response.status_code}")
            raise UpstreamError("GitHub", response.text, upstream_status=response.status_code, body=response.text)

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError("GitHub PR", str(e))
        if not isinstance(payload, list):
            raise DecodeError("GitHub PR", "expected a list of pull requests")

        prs = [self._parse_pull_request_data(item) for item in payload]

        if len(payload) >= PER_PAGE:
            logger.warning(
                f"{repo.full_name} returned a full page of {PER_PAGE} closed PRs; "
                f"older merges in the {window.description()} may be missing"
            )

        cutoff = window.cutoff(now)
        merged = [pr for pr in prs if pr.is_merged_after(cutoff)]

        logger.info(f"Found {len(merged)} PRs merged in the {window.description()} for {repo.full_name}")
        return merged

    def _parse_pull_request_data(self, data: Dict[str, Any]) -> PullRequest:
        """
        Parse one GitHub API pull request into a PullRequest.

        Raises:
            DecodeError: If required fields are missing or malformed
        """
        try:
            merged_at = None
            if data.get("merged_at"):
                merged_at = datetime.fromisoformat(data["merged_at"].replace("Z", "+00:00"))

            author = None
            if data.get("user") and data["user"].get("login"):
                author = data["user"]["login"]

            return PullRequest(
                number=int(data["number"]),
                title=data["title"],
                body=data.get("body"),
                merged_at=merged_at,
                author=author,
                html_url=data["html_url"],
            )

        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Error parsing GitHub pull request data: {e}")
            raise DecodeError("GitHub PR", f"unexpected pull request shape ({e})")

    async def get_rate_limit_info(self) -> Dict[str, Any]:
        """
        Get current GitHub API rate limit information.

        Returns:
            Dict containing rate limit information, empty on failure
        """
        try:
            url = f"{self.api_url}/rate_limit"

            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=self.headers)

                if response.status_code == 200:
                    return response.json()
                else:
                    logger.warning(f"Failed to get rate limit info: {response.status_code}")
                    return {}

        except Exception as e:
            logger.warning(f"Error getting rate limit info: {e}")
            return {}
