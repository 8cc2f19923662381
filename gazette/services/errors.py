"""
Error taxonomy shared by the external clients and the changelog pipeline.
"""

from typing import Optional

from fastapi import status


class GazetteError(Exception):
    """Base exception carrying an HTTP status for API mapping and a short error tag."""

    def __init__(self, message: str, status_code: int = 500, error_type: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        super().__init__(self.message)


class UpstreamError(GazetteError):
    """Non-success response or embedded error payload from GitHub, Jira or an AI provider."""

    def __init__(
        self,
        service: str,
        message: str,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.service = service
        self.upstream_status = upstream_status
        self.body = body
        if upstream_status is not None:
            message = f"{service} API error ({upstream_status}): {message}"
        else:
            message = f"{service} API error: {message}"
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY, error_type="upstream_error")


class DecodeError(GazetteError):
    """Response body does not match the expected shape."""

    def __init__(self, service: str, detail: str):
        self.service = service
        super().__init__(
            f"Failed to parse {service} response: {detail}",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_type="decode_error",
        )


class NoMergesError(GazetteError):
    """No pull requests were merged in the requested window."""

    def __init__(self, repo_name: str, window_description: str):
        self.repo_name = repo_name
        super().__init__(
            f"No PRs merged in the {window_description} for {repo_name}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="no_merges",
        )


class EmptyOutputError(GazetteError):
    """The generation backend returned blank output."""

    def __init__(self, repo_name: str):
        self.repo_name = repo_name
        super().__init__(
            "AI-generated changelog is empty; please try again or check the AI provider configuration",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_type="empty_output",
        )


class ConfigurationError(GazetteError):
    """Missing credentials or settings, raised before any network call."""

    def __init__(self, message: str):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, error_type="configuration_error")
