"""Integration test fixtures for Voice Notes.

Wires the real summarization stack (provider registry, fallback service,
telemetry, operation registry) with mocked LLM clients and a fake
transcriber, and exposes it through an async HTTP client.
"""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from voicenotes.api.app import create_app
from voicenotes.core.models import ProviderType
from voicenotes.services.llm.base import BaseLLM
from voicenotes.services.orchestrator import OperationRegistry
from voicenotes.services.summarization import (
    LLMSummaryProvider,
    ProviderRegistry,
    SummaryService,
)
from voicenotes.services.telemetry import LoggingTelemetryCollector


@pytest.fixture
def llm_clients():
    """One mock LLM client per provider, each answering with a small summary."""
    clients = {}
    for provider_type in ProviderType:
        llm = AsyncMock(spec=BaseLLM)
        llm.generate.return_value = f"## Summary\n- produced by {provider_type.value}"
        llm.validate.return_value = True
        clients[provider_type] = llm
    return clients


@pytest.fixture
def settings(make_settings):
    """Keep finished operations around long enough to read them back."""
    return make_settings(operation_cleanup_delay=5.0)


@pytest.fixture
def telemetry():
    return LoggingTelemetryCollector()


@pytest.fixture
async def registry(llm_clients, credentials, settings, telemetry, fake_transcriber):
    """Operation registry over the real fallback chain."""
    providers = {
        p: LLMSummaryProvider(
            p, credentials, client_factory=lambda key, p=p: llm_clients[p], settings=settings
        )
        for p in ProviderType
    }
    summary_service = SummaryService(
        ProviderRegistry(providers, credentials), telemetry=telemetry, settings=settings
    )
    reg = OperationRegistry(
        summary_service, cloud_transcriber=fake_transcriber, settings=settings
    )
    yield reg
    await reg.shutdown(timeout=1.0)


@pytest.fixture
def app(registry):
    """Create a FastAPI application bound to the test registry."""
    return create_app(registry)


@pytest.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
