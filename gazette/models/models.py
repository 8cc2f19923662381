"""
Domain models for the changelog pipeline and API schemas.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class AIProvider(str, Enum):
    """Supported text-generation backends."""

    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"

    @property
    def default_model(self) -> str:
        return _DEFAULT_MODELS[self]

    @property
    def api_key_env_var(self) -> Optional[str]:
        """Environment variable holding the API key, None for local backends."""
        return _API_KEY_ENV_VARS[self]

    @property
    def short_name(self) -> str:
        return _SHORT_NAMES[self]


_DEFAULT_MODELS = {
    AIProvider.GEMINI: "gemini-2.0-flash",
    AIProvider.OPENAI: "gpt-4o-mini",
    AIProvider.ANTHROPIC: "claude-sonnet-4-20250514",
    AIProvider.OLLAMA: "llama3.2",
}

_API_KEY_ENV_VARS = {
    AIProvider.GEMINI: "GEMINI_API_KEY",
    AIProvider.OPENAI: "OPENAI_API_KEY",
    AIProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    AIProvider.OLLAMA: None,
}

_SHORT_NAMES = {
    AIProvider.GEMINI: "Gemini",
    AIProvider.OPENAI: "OpenAI",
    AIProvider.ANTHROPIC: "Claude",
    AIProvider.OLLAMA: "Ollama",
}


@dataclass(frozen=True)
class Repo:
    """A GitHub repository identified by owner and name."""
    owner: str
    name: str

    @classmethod
    def from_full_name(cls, full_name: str) -> "Repo":
        """
        Parse an "owner/name" string.

        Raises:
            ValueError: If the string is not exactly two non-empty parts
        """
        parts = full_name.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(
                f"Invalid repository '{full_name}'. Use 'owner/name' (e.g., rust-lang/rust)"
            )
        return cls(owner=parts[0], name=parts[1])

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


class TimeWindowKind(str, Enum):
    """Preset and custom time window kinds, named as they are serialized."""

    LAST_HOUR = "LastHour"
    LAST_6_HOURS = "Last6Hours"
    LAST_12_HOURS = "Last12Hours"
    LAST_24_HOURS = "Last24Hours"
    CUSTOM = "Custom"


_PRESET_HOURS = {
    TimeWindowKind.LAST_HOUR: 1,
    TimeWindowKind.LAST_6_HOURS: 6,
    TimeWindowKind.LAST_12_HOURS: 12,
    TimeWindowKind.LAST_24_HOURS: 24,
}

_PRESET_SHORTHANDS = {
    "1h": TimeWindowKind.LAST_HOUR,
    "6h": TimeWindowKind.LAST_6_HOURS,
    "12h": TimeWindowKind.LAST_12_HOURS,
    "24h": TimeWindowKind.LAST_24_HOURS,
}


def _format_hms(seconds: int) -> str:
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{secs:02}"


@dataclass(frozen=True)
class TimeWindow:
    """
    Trailing time span used to decide which merged PRs are recent.

    Presets carry no seconds; custom windows must be strictly positive.
    """
    kind: TimeWindowKind = TimeWindowKind.LAST_24_HOURS
    seconds: Optional[int] = None

    def __post_init__(self):
        if self.kind == TimeWindowKind.CUSTOM:
            if self.seconds is None or int(self.seconds) <= 0:
                raise ValueError("Time period must be greater than 0")
        elif self.seconds is not None:
            raise ValueError(f"Preset window {self.kind.value} does not take seconds")

    @classmethod
    def last_hour(cls) -> "TimeWindow":
        return cls(TimeWindowKind.LAST_HOUR)

    @classmethod
    def last_6_hours(cls) -> "TimeWindow":
        return cls(TimeWindowKind.LAST_6_HOURS)

    @classmethod
    def last_12_hours(cls) -> "TimeWindow":
        return cls(TimeWindowKind.LAST_12_HOURS)

    @classmethod
    def last_24_hours(cls) -> "TimeWindow":
        return cls(TimeWindowKind.LAST_24_HOURS)

    @classmethod
    def custom(cls, seconds: int) -> "TimeWindow":
        return cls(TimeWindowKind.CUSTOM, seconds)

    @classmethod
    def parse(cls, value: str) -> "TimeWindow":
        """
        Parse user input: a preset shorthand ("1h", "6h", "12h", "24h")
        or a custom "HH:MM:SS" duration.

        Raises:
            ValueError: On unknown formats or non-positive durations
        """
        text = value.strip().lower()
        if text in _PRESET_SHORTHANDS:
            return cls(_PRESET_SHORTHANDS[text])

        parts = text.split(":")
        if len(parts) != 3:
            raise ValueError("Invalid format. Use 1h, 6h, 12h, 24h or HH:MM:SS (e.g., 01:30:00)")
        try:
            hours, minutes, secs = (int(part) for part in parts)
        except ValueError:
            raise ValueError(f"Invalid duration '{value}'. Use HH:MM:SS (e.g., 01:30:00)")
        if hours < 0 or not 0 <= minutes < 60 or not 0 <= secs < 60:
            raise ValueError(f"Invalid duration '{value}'. Hours must be non-negative and minutes and seconds 0-59")
        return cls.custom(hours * 3600 + minutes * 60 + secs)

    def duration(self) -> timedelta:
        if self.kind == TimeWindowKind.CUSTOM:
            return timedelta(seconds=self.seconds)
        return timedelta(hours=_PRESET_HOURS[self.kind])

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        """Absolute UTC instant after which a merge counts as recent."""
        if now is None:
            now = datetime.now(timezone.utc)
        return now - self.duration()

    def description(self) -> str:
        """Lower-case description used in prompts and progress messages."""
        if self.kind == TimeWindowKind.CUSTOM:
            return f"last {_format_hms(self.seconds)}"
        if self.kind == TimeWindowKind.LAST_HOUR:
            return "last hour"
        return f"last {_PRESET_HOURS[self.kind]} hours"

    def to_dict(self) -> Dict[str, Any]:
        if self.kind == TimeWindowKind.CUSTOM:
            return {"type": self.kind.value, "value": {"seconds": self.seconds}}
        return {"type": self.kind.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeWindow":
        """
        Build a window from its serialized form.

        Raises:
            ValueError: If the type is unknown or the custom value is malformed
        """
        try:
            kind = TimeWindowKind(data["type"])
            if kind == TimeWindowKind.CUSTOM:
                return cls.custom(int(data["value"]["seconds"]))
            return cls(kind)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid time period data: {data!r}") from e

    def __str__(self) -> str:
        if self.kind == TimeWindowKind.CUSTOM:
            return f"Custom ({_format_hms(self.seconds)})"
        return self.description().capitalize()


@dataclass(frozen=True)
class PullRequest:
    """A closed pull request as returned by the GitHub API."""
    number: int
    title: str
    html_url: str
    body: Optional[str] = None
    merged_at: Optional[datetime] = None
    author: Optional[str] = None

    def is_merged_after(self, cutoff: datetime) -> bool:
        return self.merged_at is not None and self.merged_at > cutoff


@dataclass(frozen=True)
class Ticket:
    """A Jira issue with its description kept in Atlassian Document Format."""
    key: str
    summary: str
    status: Optional[str] = None
    issue_type: Optional[str] = None
    description: Optional[Dict[str, Any]] = None

    def description_text(self) -> Optional[str]:
        """
        Flatten the rich-text description to plain text.

        Text fragments inside each top-level block are concatenated in
        document order; blocks are joined with newlines. Returns None when
        the issue has no description.
        """
        if self.description is None:
            return None
        blocks = self.description.get("content") or []
        return "\n".join(_collect_text(block) for block in blocks)


def _collect_text(node: Any) -> str:
    if not isinstance(node, dict):
        return ""
    text = node.get("text") if isinstance(node.get("text"), str) else ""
    children = node.get("content") or []
    return text + "".join(_collect_text(child) for child in children)


@dataclass
class PRContext:
    """A pull request together with the tickets it references."""
    pr: PullRequest
    tickets: List[Ticket] = field(default_factory=list)


@dataclass
class RepoResult:
    """Outcome of one repository's pipeline in a batch run."""
    repo: Repo
    path: Optional[Path] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# Pydantic models for API serialization
class ChangelogRequest(BaseModel):
    """Single-repository changelog request."""
    repository: str
    time_window: Optional[str] = None


class BatchChangelogRequest(BaseModel):
    """Batch request; an empty repository list means all subscriptions."""
    repositories: List[str] = []
    time_window: Optional[str] = None


class ChangelogResponse(BaseModel):
    """Location of a generated changelog."""
    repository: str
    path: str
    time_window: str


class RepoResultResponse(BaseModel):
    """One entry of a batch response."""
    repository: str
    status: str  # "success" or "failed"
    path: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class BatchChangelogResponse(BaseModel):
    """Per-repository results in request order."""
    time_window: str
    results: List[RepoResultResponse]
    succeeded: int
    failed: int


class RepositoryListResponse(BaseModel):
    """Subscribed repositories."""
    repositories: List[str]
    total: int
