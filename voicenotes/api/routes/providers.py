"""
Summarization provider REST endpoints.

Reports which providers are configured and validates API keys.
"""

from fastapi import APIRouter, Depends

from voicenotes.api.dependencies import get_provider_registry
from voicenotes.core.config import get_settings
from voicenotes.core.models import (
    ProviderStatusResponse,
    ProviderType,
    ValidateKeyRequest,
    ValidateKeyResponse,
)
from voicenotes.services.summarization.registry import ProviderRegistry

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=list[ProviderStatusResponse])
async def list_providers(registry: ProviderRegistry = Depends(get_provider_registry)):
    """List every provider with its key status, in fallback order."""
    selected = get_settings().summary_provider
    return [
        ProviderStatusResponse(
            provider=provider,
            display_name=provider.display_name,
            requires_api_key=provider.requires_api_key,
            configured=registry.is_configured(provider),
            selected=provider.value == selected,
        )
        for provider in ProviderType
    ]


@router.post("/{provider}/validate", response_model=ValidateKeyResponse)
async def validate_provider(
    provider: ProviderType,
    body: ValidateKeyRequest,
    registry: ProviderRegistry = Depends(get_provider_registry),
):
    """Validate a candidate key, or the stored one when none is given."""
    valid = await registry.validate_provider(provider, api_key=body.api_key)
    return ValidateKeyResponse(provider=provider, valid=valid)
