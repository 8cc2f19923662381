"""
Shared fixtures for the Gazette test suite.
"""

import json
from typing import Callable, List

import httpx
import pytest

from gazette.config import Settings


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


@pytest.fixture
def make_transport():
    """Build a recording transport from a request handler."""
    return RecordingTransport


@pytest.fixture
def config_file(tmp_path):
    """Write a config.json and return its path."""

    def write(data) -> str:
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)

    return write


@pytest.fixture
def make_settings(tmp_path):
    """Settings isolated from the developer's .env and config.json."""

    def build(**overrides) -> Settings:
        values = {
            "CONFIG_FILE": str(tmp_path / "missing-config.json"),
            "OUTPUT_DIR": str(tmp_path / "out"),
            "GITHUB_TOKEN": "",
            "JIRA_URL": "",
            "JIRA_EMAIL": "",
            "JIRA_API_TOKEN": "",
            "AI_PROVIDER": None,
            "AI_MODEL": "",
            "OPENAI_API_KEY": "",
            "ANTHROPIC_API_KEY": "",
            "GEMINI_API_KEY": "",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return build
