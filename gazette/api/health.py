"""
Health check API endpoints.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel
import logging

from gazette.api.changelogs import get_settings
from gazette.config import Settings
from gazette.models import AIProvider
from gazette.services import GazetteError, GitHubService, create_llm_client

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    version: str
    uptime: float
    services: Dict[str, Any]


class ServiceStatus(BaseModel):
    """Individual service status model."""
    status: str
    response_time: float
    details: Dict[str, Any] = {}


# Store application start time for uptime calculation
app_start_time = time.time()


async def check_github(config: Settings) -> ServiceStatus:
    """Check GitHub credentials and remaining rate limit."""
    start_time = time.time()
    try:
        github = GitHubService.from_settings(config)
    except GazetteError as e:
        return ServiceStatus(status="unconfigured", response_time=0.0, details={"error": e.message})

    info = await github.get_rate_limit_info()
    response_time = (time.time() - start_time) * 1000  # Convert to milliseconds
    core = info.get("resources", {}).get("core", {})
    if not core:
        return ServiceStatus(
            status="unhealthy",
            response_time=response_time,
            details={"error": "Rate limit information unavailable"},
        )
    return ServiceStatus(
        status="healthy",
        response_time=response_time,
        details={"remaining": core.get("remaining"), "limit": core.get("limit")},
    )


async def check_ai_provider(config: Settings) -> ServiceStatus:
    """Check that the selected provider is configured; for Ollama, that it answers."""
    start_time = time.time()
    provider = config.get_ai_provider()
    details = {"provider": provider.value, "model": config.get_ai_model()}
    try:
        client = create_llm_client(provider, config.get_ai_model(), config)
    except GazetteError as e:
        details["error"] = e.message
        return ServiceStatus(status="unconfigured", response_time=0.0, details=details)

    if provider != AIProvider.OLLAMA:
        return ServiceStatus(status="configured", response_time=0.0, details=details)

    try:
        models = await client.list_models()
        details["models"] = models[:5]  # Show first 5
        return ServiceStatus(status="healthy", response_time=(time.time() - start_time) * 1000, details=details)
    except Exception as e:
        logger.error(f"Ollama health check error: {e}")
        details["error"] = str(e)
        return ServiceStatus(status="unhealthy", response_time=(time.time() - start_time) * 1000, details=details)


def check_jira(config: Settings) -> ServiceStatus:
    """Jira is optional; report whether ticket context is enabled."""
    if config.jira_configured:
        return ServiceStatus(status="configured", response_time=0.0, details={"url": config.JIRA_URL})
    return ServiceStatus(status="disabled", response_time=0.0)


@router.get("/health", response_model=HealthResponse)
async def health_check(config: Settings = Depends(get_settings)):
    """
    Comprehensive health check endpoint.

    Reports GitHub reachability, the AI provider configuration and whether
    Jira enrichment is enabled.
    """
    services = {
        "github": await check_github(config),
        "ai_provider": await check_ai_provider(config),
        "jira": check_jira(config),
    }

    required = (services["github"].status, services["ai_provider"].status)
    overall = "healthy" if all(s in ("healthy", "configured") for s in required) else "degraded"

    return HealthResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc),
        version=config.APP_VERSION,
        uptime=time.time() - app_start_time,
        services={name: service.model_dump() for name, service in services.items()},
    )
