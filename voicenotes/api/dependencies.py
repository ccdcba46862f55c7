"""Request dependencies resolving the objects built by the app lifespan."""

from fastapi import Request

from voicenotes.services.orchestrator import OperationRegistry
from voicenotes.services.summarization.registry import ProviderRegistry


def get_registry(request: Request) -> OperationRegistry:
    return request.app.state.registry


def get_provider_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry.summary_service.registry
