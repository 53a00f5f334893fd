"""
Central AI manager: picks a provider adapter and normalizes its failures.
"""
import asyncio
import time
from typing import Dict, List, Optional, Tuple

import structlog

from core.config import settings
from core.exceptions import AIServiceException, ProviderCapabilityException
from schemas.generation import GenerationRequest, GenerationResult, ProviderInfo
from services.ai_providers import (
    AIProvider,
    ClaudeProvider,
    GeminiProvider,
    MockProvider,
    OpenAIProvider,
)

logger = structlog.get_logger("ai_manager")

MOCK_PROVIDER = "mock"


class AIManager:
    """
    Registry of provider adapters keyed by name.

    This class handles:
    - Registering providers that have credentials configured (mock always)
    - Resolving the requested provider, substituting mock for unknown names
    - Refusing image requests on text-only providers
    - Bounding each provider call with a timeout and wrapping its failures
    """

    def __init__(
        self,
        providers: Optional[Dict[str, AIProvider]] = None,
        default_provider: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.providers: Dict[str, AIProvider] = dict(providers or {})
        self.providers.setdefault(MOCK_PROVIDER, MockProvider())
        self.default_provider = default_provider or settings.default_ai_provider
        self.timeout_seconds = timeout_seconds or settings.ai_request_timeout_seconds

    @classmethod
    def from_settings(cls) -> "AIManager":
        providers: Dict[str, AIProvider] = {}
        if settings.openai_api_key:
            providers["openai"] = OpenAIProvider(settings.openai_api_key)
        if settings.claude_api_key:
            providers["claude"] = ClaudeProvider(settings.claude_api_key)
        if settings.gemini_api_key:
            providers["gemini"] = GeminiProvider(settings.gemini_api_key)
        manager = cls(providers)
        logger.info("AI providers registered", providers=manager.available_providers())
        return manager

    def available_providers(self) -> List[str]:
        return list(self.providers.keys())

    def is_available(self, name: str) -> bool:
        return name in self.providers

    def describe_providers(self) -> List[ProviderInfo]:
        return [
            ProviderInfo(
                name=name,
                available=True,
                supports_image=provider.supports_image,
                default=name == self.default_provider,
            )
            for name, provider in self.providers.items()
        ]

    def resolve(self, requested: Optional[str]) -> Tuple[str, AIProvider]:
        name = requested or self.default_provider
        if name not in self.providers:
            logger.warning("Requested provider unavailable, using mock", requested=name)
            name = MOCK_PROVIDER
        return name, self.providers[name]

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run one generation request against the resolved provider.

        Raises:
            ProviderCapabilityException: Image requested from a text-only provider
            AIServiceException: The provider call failed or timed out
        """
        name, provider = self.resolve(request.provider)

        if request.type == "image":
            if not provider.supports_image:
                raise ProviderCapabilityException(name, request.type)
            call = provider.generate_image(request)
        else:
            call = provider.generate_text(request)

        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error("AI request timeout", provider=name, timeout=self.timeout_seconds)
            raise AIServiceException(
                detail=f"Content generation failed for provider {name}", provider=name
            ) from e
        except Exception as e:  # adapter boundary: every client error becomes a provider error
            logger.error(
                "AI provider call failed",
                provider=name,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise AIServiceException(
                detail=f"Content generation failed for provider {name}", provider=name
            ) from e

        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "AI content generated",
            provider=name,
            model=result.model,
            content_type=request.type,
            total_tokens=result.usage.total_tokens,
            latency_ms=latency_ms,
        )
        return result


_ai_manager: Optional[AIManager] = None


def get_ai_manager() -> AIManager:
    """FastAPI dependency returning the process-wide manager."""
    global _ai_manager
    if _ai_manager is None:
        _ai_manager = AIManager.from_settings()
    return _ai_manager
