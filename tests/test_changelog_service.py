"""
Tests for the changelog pipeline and batch fan-out.
"""

import asyncio
import logging
from datetime import date, datetime, timezone

import pytest

from gazette.models import PRContext, PullRequest, Repo, Ticket, TimeWindow
from gazette.services import (
    ChangelogService,
    ConfigurationError,
    EmptyOutputError,
    NoMergesError,
    UpstreamError,
    create_changelog_service,
)
from gazette.services.llm_service import GeminiClient, OllamaClient

MERGED = datetime(2025, 1, 6, 9, 30, 45, tzinfo=timezone.utc)


def make_pr(number=1, title="Add feature", body=None, merged_at=MERGED) -> PullRequest:
    return PullRequest(
        number=number,
        title=title,
        body=body,
        merged_at=merged_at,
        html_url=f"https://github.com/acme/widgets/pull/{number}",
    )


class FakeGitHub:
    """Returns canned PRs per repository, or raises the configured error."""

    def __init__(self, prs_by_repo=None, errors=None):
        self.prs_by_repo = prs_by_repo or {}
        self.errors = errors or {}
        self.calls = []

    async def fetch_merged(self, repo, window):
        self.calls.append(repo)
        await asyncio.sleep(0)
        if repo.full_name in self.errors:
            raise self.errors[repo.full_name]
        return self.prs_by_repo.get(repo.full_name, [])


class FakeLLM:
    def __init__(self, output="# Changelog\n"):
        self.output = output
        self.calls = []

    async def generate_changelog(self, repo_name, prs_context, time_period):
        self.calls.append((repo_name, prs_context, time_period))
        return self.output


class FakeJira:
    def __init__(self, tickets=None, errors=None):
        self.tickets = tickets or {}
        self.errors = errors or {}
        self.lookups = []

    async def get_issue(self, key):
        self.lookups.append(key)
        if key in self.errors:
            raise self.errors[key]
        return self.tickets.get(key)

    def browse_url(self, key):
        return f"https://jira.example.com/browse/{key}"


@pytest.fixture
def repo():
    return Repo("acme", "widgets")


class TestGenerateForRepo:
    """Single repository pipeline"""

    @pytest.mark.asyncio
    async def test_writes_changelog(self, tmp_path, repo):
        github = FakeGitHub({"acme/widgets": [make_pr()]})
        llm = FakeLLM("# widgets changelog\n")
        service = ChangelogService(github=github, llm=llm, output_dir=str(tmp_path))

        path = await service.generate_for_repo(repo, TimeWindow.last_6_hours())

        assert path == tmp_path / f"changelog_widgets_{date.today():%Y-%m-%d}.md"
        assert path.read_text(encoding="utf-8") == "# widgets changelog\n"
        repo_name, context, period = llm.calls[0]
        assert repo_name == "acme/widgets"
        assert "## PR #1: Add feature" in context
        assert period == "last 6 hours"

    @pytest.mark.asyncio
    async def test_no_merges(self, tmp_path, repo):
        jira = FakeJira()
        llm = FakeLLM()
        service = ChangelogService(github=FakeGitHub(), llm=llm, jira=jira, output_dir=str(tmp_path))

        with pytest.raises(NoMergesError, match="last 24 hours"):
            await service.generate_for_repo(repo, TimeWindow())

        assert jira.lookups == []
        assert llm.calls == []
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("output", ["", "   \n\t  "])
    async def test_blank_output(self, tmp_path, repo, output):
        github = FakeGitHub({"acme/widgets": [make_pr()]})
        service = ChangelogService(github=github, llm=FakeLLM(output), output_dir=str(tmp_path))

        with pytest.raises(EmptyOutputError):
            await service.generate_for_repo(repo, TimeWindow())

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_same_day_output_is_overwritten(self, tmp_path, repo):
        github = FakeGitHub({"acme/widgets": [make_pr()]})
        llm = FakeLLM("first")
        service = ChangelogService(github=github, llm=llm, output_dir=str(tmp_path))

        await service.generate_for_repo(repo, TimeWindow())
        llm.output = "second"
        path = await service.generate_for_repo(repo, TimeWindow())

        assert path.read_text(encoding="utf-8") == "second"
        assert len(list(tmp_path.iterdir())) == 1

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, tmp_path, repo):
        github = FakeGitHub(errors={"acme/widgets": UpstreamError("GitHub", "boom", upstream_status=500)})
        service = ChangelogService(github=github, llm=FakeLLM(), output_dir=str(tmp_path))

        with pytest.raises(UpstreamError):
            await service.generate_for_repo(repo, TimeWindow())


class TestEnrichment:
    """Best-effort ticket lookups"""

    @pytest.mark.asyncio
    async def test_duplicate_keys_resolved_once(self):
        jira = FakeJira({"ABC-1": Ticket(key="ABC-1", summary="Login")})
        service = ChangelogService(github=FakeGitHub(), llm=FakeLLM(), jira=jira)

        contexts = await service.enrich_with_tickets([make_pr(title="ABC-1: login", body="Fixes ABC-1")])

        assert jira.lookups == ["ABC-1"]
        assert [t.key for t in contexts[0].tickets] == ["ABC-1"]

    @pytest.mark.asyncio
    async def test_failures_and_missing_tickets_are_skipped(self):
        jira = FakeJira(
            tickets={"OK-1": Ticket(key="OK-1", summary="fine")},
            errors={"BAD-2": UpstreamError("Jira", "down", upstream_status=503)},
        )
        service = ChangelogService(github=FakeGitHub(), llm=FakeLLM(), jira=jira)

        contexts = await service.enrich_with_tickets([make_pr(title="OK-1 BAD-2 GONE-3")])

        assert sorted(jira.lookups) == ["BAD-2", "GONE-3", "OK-1"]
        assert [t.key for t in contexts[0].tickets] == ["OK-1"]

    @pytest.mark.asyncio
    async def test_without_jira_every_pr_has_no_tickets(self):
        service = ChangelogService(github=FakeGitHub(), llm=FakeLLM())

        contexts = await service.enrich_with_tickets([make_pr(title="ABC-1"), make_pr(2, body="XYZ-9")])

        assert [ctx.tickets for ctx in contexts] == [[], []]


class TestFormatContext:
    """Context text handed to the AI backend"""

    def test_full_block(self):
        ticket = Ticket(
            key="ABC-1",
            summary="Login page",
            status="In Review",
            description={"content": [{"type": "paragraph", "content": [{"type": "text", "text": "x" * 600}]}]},
        )
        service = ChangelogService(github=FakeGitHub(), llm=FakeLLM(), jira=FakeJira())

        text = service.format_pr_context([PRContext(pr=make_pr(body="Adds the page"), tickets=[ticket])])

        assert text == (
            "## PR #1: Add feature\n"
            "URL: https://github.com/acme/widgets/pull/1\n"
            "Merged at: 2025-01-06 09:30 UTC\n"
            "Description:\nAdds the page\n"
            "\nTicket Context:\n"
            "- ABC-1 (https://jira.example.com/browse/ABC-1): Login page\n"
            "  Status: In Review\n"
            f"  Details: {'x' * 500}\n"
            "\n---\n\n"
        )

    def test_minimal_blocks_separated(self):
        service = ChangelogService(github=FakeGitHub(), llm=FakeLLM())
        contexts = [
            PRContext(pr=make_pr(1, body="   ", merged_at=None)),
            PRContext(pr=make_pr(2, title="Second")),
        ]

        text = service.format_pr_context(contexts)

        assert "Description" not in text
        assert text.count("\n---\n\n") == 2
        assert text.startswith("## PR #1: Add feature\nURL: https://github.com/acme/widgets/pull/1\n\n---\n\n")


class TestGenerateForAll:
    """Concurrent fan-out with isolated failures"""

    @pytest.mark.asyncio
    async def test_failure_isolated_and_order_preserved(self, tmp_path):
        repos = [Repo("acme", "one"), Repo("acme", "two"), Repo("acme", "three")]
        github = FakeGitHub(
            prs_by_repo={"acme/one": [make_pr()], "acme/three": [make_pr()]},
            errors={"acme/two": UpstreamError("GitHub", "server error", upstream_status=500)},
        )
        service = ChangelogService(github=github, llm=FakeLLM(), output_dir=str(tmp_path))

        results = await service.generate_for_all(repos, TimeWindow())

        assert [r.repo for r in results] == repos
        assert [r.ok for r in results] == [True, False, True]
        assert isinstance(results[1].error, UpstreamError)
        assert results[0].path.name.startswith("changelog_one_")
        assert results[2].path.exists()

    @pytest.mark.asyncio
    async def test_no_merges_reported_per_repo(self, tmp_path):
        repos = [Repo("acme", "quiet"), Repo("acme", "busy")]
        github = FakeGitHub(prs_by_repo={"acme/busy": [make_pr()]})
        service = ChangelogService(github=github, llm=FakeLLM(), output_dir=str(tmp_path))

        results = await service.generate_for_all(repos, TimeWindow())

        assert isinstance(results[0].error, NoMergesError)
        assert results[1].ok


class TestCreateChangelogService:
    """Building the pipeline from settings"""

    def test_requires_github_token(self, make_settings):
        with pytest.raises(ConfigurationError):
            create_changelog_service(make_settings(GEMINI_API_KEY="key"))

    def test_jira_optional(self, make_settings):
        service = create_changelog_service(make_settings(GITHUB_TOKEN="tkn", GEMINI_API_KEY="key"))

        assert service.jira is None
        assert isinstance(service.llm, GeminiClient)

    def test_jira_enabled_with_all_credentials(self, make_settings):
        service = create_changelog_service(make_settings(
            GITHUB_TOKEN="tkn",
            AI_PROVIDER="ollama",
            JIRA_URL="https://jira.example.com",
            JIRA_EMAIL="dev@example.com",
            JIRA_API_TOKEN="secret",
        ))

        assert service.jira is not None
        assert isinstance(service.llm, OllamaClient)


class TestDuplicateRepositoryNames:
    """Same-named repositories from different owners"""

    @pytest.mark.asyncio
    async def test_warns_about_shared_output_file(self, tmp_path, caplog):
        repos = [Repo("a", "widgets"), Repo("b", "widgets")]
        github = FakeGitHub(prs_by_repo={"a/widgets": [make_pr()], "b/widgets": [make_pr()]})
        service = ChangelogService(github=github, llm=FakeLLM(), output_dir=str(tmp_path))

        with caplog.at_level(logging.WARNING, logger="gazette.services.changelog_service"):
            results = await service.generate_for_all(repos, TimeWindow())

        assert results[0].path == results[1].path
        assert any("named 'widgets'" in record.getMessage() for record in caplog.records)
