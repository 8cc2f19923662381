"""
Jira integration: ticket key extraction and issue lookup.
"""

import base64
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from gazette.config import Settings
from gazette.models import Ticket
from gazette.services.errors import ConfigurationError, DecodeError, UpstreamError

logger = logging.getLogger(__name__)

TICKET_KEY_PATTERN = re.compile(r"[A-Z][A-Z0-9]+-\d+")


def extract_keys(text: str) -> List[str]:
    """
    Extract Jira issue keys (e.g. "PROJECT-123") from free text.

    Matches are returned in order of appearance; duplicates are kept.
    """
    return TICKET_KEY_PATTERN.findall(text)


class JiraService:
    """Service for reading issues from the Jira Cloud REST API."""

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not (base_url and email and api_token):
            raise ConfigurationError("JIRA_URL, JIRA_EMAIL and JIRA_API_TOKEN must all be set")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

        auth = base64.b64encode(f"{email}:{api_token}".encode("utf-8")).decode("ascii")
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Basic {auth}",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "JiraService":
        return cls(
            base_url=settings.JIRA_URL,
            email=settings.JIRA_EMAIL,
            api_token=settings.JIRA_API_TOKEN,
            timeout=settings.TIMEOUT_SECONDS,
        )

    def browse_url(self, key: str) -> str:
        return f"{self.base_url}/browse/{key}"

    async def get_issue(self, key: str) -> Optional[Ticket]:
        """
        Fetch a Jira issue by key.

        Returns:
            Optional[Ticket]: The issue, or None if Jira reports it does not exist

        Raises:
            UpstreamError: On any non-success status other than 404
            DecodeError: If the issue payload has an unexpected shape
        """
        url = f"{self.base_url}/rest/api/3/issue/{key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=self.headers)
        except httpx.RequestError as e:
            raise UpstreamError("Jira", f"Failed to fetch Jira issue {key}: {e}")

        if response.status_code == 404:
            logger.debug(f"Jira issue {key} not found")
            return None

        if not response.is_success:
            raise UpstreamError("Jira", response.text, upstream_status=response.status_code, body=response.text)

        try:
            return self._parse_issue_data(response.json())
        except ValueError as e:
            raise DecodeError("Jira issue", str(e))

    def _parse_issue_data(self, data: Dict[str, Any]) -> Ticket:
        try:
            fields = data["fields"]
            status = fields.get("status") or {}
            issue_type = fields.get("issuetype") or {}
            description = fields.get("description")
            if description is not None and not isinstance(description, dict):
                raise TypeError("description is not a document")

            return Ticket(
                key=data["key"],
                summary=fields["summary"],
                status=status.get("name"),
                issue_type=issue_type.get("name"),
                description=description,
            )

        except (KeyError, TypeError, AttributeError) as e:
            raise DecodeError("Jira issue", f"unexpected issue shape ({e})")
