"""
Services package for external API integrations and the changelog pipeline.
"""

from .changelog_service import ChangelogService, create_changelog_service
from .errors import (
    ConfigurationError,
    DecodeError,
    EmptyOutputError,
    GazetteError,
    NoMergesError,
    UpstreamError,
)
from .github_service import GitHubService
from .jira_service import JiraService, extract_keys
from .llm_service import LLMClient, create_llm_client

__all__ = [
    "ChangelogService",
    "ConfigurationError",
    "DecodeError",
    "EmptyOutputError",
    "GazetteError",
    "GitHubService",
    "JiraService",
    "LLMClient",
    "NoMergesError",
    "UpstreamError",
    "create_changelog_service",
    "create_llm_client",
    "extract_keys",
]
