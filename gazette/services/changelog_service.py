"""
Changelog generation pipeline: fetch, enrich, format, generate and persist.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from gazette.config import Settings
from gazette.models import PRContext, PullRequest, Repo, RepoResult, TimeWindow
from gazette.services.errors import ConfigurationError, EmptyOutputError, NoMergesError
from gazette.services.github_service import GitHubService
from gazette.services.jira_service import JiraService, extract_keys
from gazette.services.llm_service import LLMClient, create_llm_client

logger = logging.getLogger(__name__)

TICKET_DETAILS_LIMIT = 500


class ChangelogService:
    """Service responsible for generating changelogs."""

    def __init__(
        self,
        github: GitHubService,
        llm: LLMClient,
        jira: Optional[JiraService] = None,
        output_dir: str = ".",
    ):
        self.github = github
        self.llm = llm
        self.jira = jira
        self.output_dir = Path(output_dir)

    async def generate_for_repo(self, repo: Repo, window: TimeWindow) -> Path:
        """
        Generate and save a changelog for a single repository.

        Args:
            repo: Repository to summarize
            window: Trailing window of merges to include

        Returns:
            Path: Location of the written markdown file

        Raises:
            NoMergesError: If no PR was merged in the window
            EmptyOutputError: If the AI backend returned blank output
            UpstreamError, DecodeError: From the GitHub or AI backend calls
        """
        prs = await self.github.fetch_merged(repo, window)
        if not prs:
            raise NoMergesError(repo.full_name, window.description())

        contexts = await self.enrich_with_tickets(prs)
        context_text = self.format_pr_context(contexts)

        changelog = await self.llm.generate_changelog(repo.full_name, context_text, window.description())

        # Refuse to write a useless file
        if not changelog.strip():
            raise EmptyOutputError(repo.full_name)

        path = self.save_changelog(repo, changelog)
        logger.info(f"Changelog for {repo.full_name} saved to {path}")
        return path

    async def generate_for_all(self, repos: Sequence[Repo], window: TimeWindow) -> List[RepoResult]:
        """
        Run the pipeline for every repository concurrently.

        Each repository's outcome is captured separately; results follow the
        order of ``repos``.
        """
        logger.info(f"Generating changelogs for {len(repos)} repositories ({window.description()})")
        names = Counter(repo.name for repo in repos)
        for name, count in names.items():
            if count > 1:
                logger.warning(f"{count} repositories are named '{name}'; their changelogs share one output file")
        return list(await asyncio.gather(*(self._generate_captured(repo, window) for repo in repos)))

    async def _generate_captured(self, repo: Repo, window: TimeWindow) -> RepoResult:
        try:
            path = await self.generate_for_repo(repo, window)
        except Exception as e:
            logger.error(f"Changelog generation failed for {repo.full_name}: {e}")
            return RepoResult(repo=repo, error=e)
        return RepoResult(repo=repo, path=path)

    async def enrich_with_tickets(self, prs: Sequence[PullRequest]) -> List[PRContext]:
        """
        Attach Jira tickets referenced in each PR's title or body.

        Lookups are best-effort: a missing Jira client, an unknown key or a
        failed request all leave that key without a ticket.
        """
        contexts = []

        for pr in prs:
            tickets = []

            keys = extract_keys(pr.title)
            if pr.body:
                keys.extend(extract_keys(pr.body))

            if self.jira is not None:
                for key in sorted(set(keys)):
                    try:
                        ticket = await self.jira.get_issue(key)
                    except Exception as e:
                        logger.warning(f"Skipping Jira context for {key} (PR #{pr.number}): {e}")
                        continue
                    if ticket is not None:
                        tickets.append(ticket)

            contexts.append(PRContext(pr=pr, tickets=tickets))

        return contexts

    def format_pr_context(self, contexts: Sequence[PRContext]) -> str:
        """Render PR contexts as the text block handed to the AI backend."""
        output = []

        for ctx in contexts:
            pr = ctx.pr
            output.append(f"## PR #{pr.number}: {pr.title}\n")
            output.append(f"URL: {pr.html_url}\n")

            if pr.merged_at is not None:
                merged = pr.merged_at.astimezone(timezone.utc)
                output.append(f"Merged at: {merged:%Y-%m-%d %H:%M} UTC\n")

            if pr.body and pr.body.strip():
                output.append(f"Description:\n{pr.body}\n")

            if ctx.tickets:
                output.append("\nTicket Context:\n")
                for ticket in ctx.tickets:
                    if self.jira is not None:
                        output.append(f"- {ticket.key} ({self.jira.browse_url(ticket.key)}): {ticket.summary}\n")
                    else:
                        output.append(f"- {ticket.key}: {ticket.summary}\n")
                    if ticket.status:
                        output.append(f"  Status: {ticket.status}\n")
                    details = ticket.description_text()
                    if details and details.strip():
                        output.append(f"  Details: {details[:TICKET_DETAILS_LIMIT]}\n")

            output.append("\n---\n\n")

        return "".join(output)

    def save_changelog(self, repo: Repo, content: str) -> Path:
        """
        Write the changelog, replacing any file from earlier the same day.

        The file name uses only the repository name, so repositories from
        different owners with the same name overwrite each other.
        """
        filename = f"changelog_{repo.name}_{datetime.now():%Y-%m-%d}.md"
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(content, encoding="utf-8")
        return path


def create_changelog_service(settings: Settings) -> ChangelogService:
    """
    Build the pipeline from settings.

    GitHub and the AI provider are required; Jira is enabled only when all
    of its credentials are present.

    Raises:
        ConfigurationError: If GitHub or AI provider credentials are missing
    """
    github = GitHubService.from_settings(settings)
    llm = create_llm_client(settings.get_ai_provider(), settings.get_ai_model(), settings)

    jira = None
    try:
        jira = JiraService.from_settings(settings)
    except ConfigurationError:
        logger.info("Jira credentials not configured - changelogs will not include ticket context")

    return ChangelogService(github=github, llm=llm, jira=jira, output_dir=settings.OUTPUT_DIR)
