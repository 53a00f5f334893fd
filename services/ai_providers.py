"""
Provider adapters for content generation.

Each adapter turns a :class:`GenerationRequest` into one provider call and
normalizes the reply into a :class:`GenerationResult`. Adapters raise
whatever their client raises; the dispatcher in ``services.ai_manager``
converts those failures into API errors.
"""
import asyncio
import time
from typing import Optional

import httpx

from core.config import settings
from core.logging import get_logger
from schemas.generation import GenerationMetadata, GenerationRequest, GenerationResult, TokenUsage

logger = get_logger("ai_providers")

OPENAI_IMAGE_SIZES = ("256x256", "512x512", "1024x1024", "1536x1024", "1024x1536", "1792x1024", "1024x1792")

# Placeholder image returned by the mock provider.
MOCK_IMAGE_DATA_URI = (
    "data:image/svg+xml;base64,PHN2ZyB3aWR0aD0iNTEyIiBoZWlnaHQ9IjUxMiIgeG1sbnM9Imh0dHA6Ly93d3cudzMub3Jn"
    "LzIwMDAvc3ZnIj4KICA8cmVjdCB3aWR0aD0iMTAwJSIgaGVpZ2h0PSIxMDAlIiBmaWxsPSIjZjBmMGYwIi8+CiAgPHRleHQg"
    "eD0iNTAlIiB5PSI1MCUiIGZvbnQtZmFtaWx5PSJBcmlhbCwgc2Fucy1zZXJpZiIgZm9udC1zaXplPSIyNCIgZmlsbD0iIzMz"
    "MyIgdGV4dC1hbmNob3I9Im1pZGRsZSIgZHk9Ii4zZW0iPk1vY2sgSW1hZ2U8L3RleHQ+Cjwvc3ZnPg=="
)


def now_ms() -> int:
    return int(time.time() * 1000)


def build_system_prompt(request: GenerationRequest) -> str:
    """System instruction shared by the text providers."""
    lines = [
        "You are a professional educational content assistant helping teachers "
        "and students create high-quality teaching resources."
    ]
    if request.education_level:
        lines.append(f"Target education level: {request.education_level}")
    if request.subject:
        lines.append(f"Subject: {request.subject}")
    if request.language:
        lines.append(f"Language: {request.language}")
    if request.tone:
        lines.append(f"Tone: {request.tone}")
    if request.additional_instructions:
        lines.append(f"Additional requirements: {request.additional_instructions}")
    lines.append(
        "\nMake sure the content is:\n"
        "1. Accurate and educationally valuable\n"
        "2. Suited to the audience's level\n"
        "3. Clearly structured and easy to follow\n"
        "4. Focused on practical learning points"
    )
    return "\n".join(lines)


class AIProvider:
    """Base adapter. ``supports_image`` gates image requests in the dispatcher."""

    name = ""
    supports_image = False

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        raise NotImplementedError

    async def generate_image(self, request: GenerationRequest) -> GenerationResult:
        raise NotImplementedError


class OpenAIProvider(AIProvider):
    name = "openai"
    supports_image = True

    def __init__(self, api_key: str):
        import openai

        self._client = openai.AsyncOpenAI(api_key=api_key, timeout=settings.ai_request_timeout_seconds)

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        model = request.model or settings.openai_default_text_model
        response = await self._client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": build_system_prompt(request)},
                {"role": "user", "content": request.prompt},
            ],
            max_tokens=request.max_tokens or settings.ai_default_max_tokens,
            temperature=request.temperature if request.temperature is not None else settings.ai_default_temperature,
            top_p=request.top_p if request.top_p is not None else 1,
            frequency_penalty=request.frequency_penalty or 0,
            presence_penalty=request.presence_penalty or 0,
        )
        choice = response.choices[0] if response.choices else None
        usage = response.usage
        return GenerationResult(
            id=f"openai_{now_ms()}",
            content=(choice.message.content if choice and choice.message else "") or "",
            provider=self.name,
            model=model,
            usage=TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            ),
            metadata=GenerationMetadata(
                finish_reason=(choice.finish_reason if choice else None) or "stop",
                response_time=now_ms(),
            ),
        )

    async def generate_image(self, request: GenerationRequest) -> GenerationResult:
        model = request.model or settings.openai_default_image_model
        size = request.image_size if request.image_size in OPENAI_IMAGE_SIZES else "1024x1024"
        quality = "hd" if request.image_quality == "hd" else "standard"
        style = "natural" if request.image_style == "natural" else "vivid"
        response = await self._client.images.generate(
            model=model, prompt=request.prompt, n=1, size=size, quality=quality, style=style,
        )
        url = response.data[0].url if response.data else ""
        return GenerationResult(
            id=f"openai_img_{now_ms()}",
            content=url or "",
            provider=self.name,
            model=model,
            metadata=GenerationMetadata(
                finish_reason="stop",
                response_time=now_ms(),
                imageSize=size,
                imageQuality=quality,
                imageStyle=style,
            ),
        )


class ClaudeProvider(AIProvider):
    """Anthropic Messages API over plain HTTP."""

    name = "claude"

    def __init__(self, api_key: str, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._api_key = api_key
        self._base_url = (base_url or settings.claude_base_url).rstrip("/")
        self._transport = transport

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        model = request.model or settings.claude_default_model
        payload = {
            "model": model,
            "max_tokens": request.max_tokens or settings.ai_default_max_tokens,
            "temperature": min(request.temperature if request.temperature is not None else settings.ai_default_temperature, 1.0),
            "system": build_system_prompt(request),
            "messages": [{"role": "user", "content": request.prompt}],
        }
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        async with httpx.AsyncClient(
            timeout=settings.ai_request_timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(f"{self._base_url}/messages", json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()

        blocks = data.get("content") or []
        text = "".join(block.get("text", "") for block in blocks if block.get("type", "text") == "text")
        usage = data.get("usage") or {}
        input_tokens = usage.get("input_tokens", 0) or 0
        output_tokens = usage.get("output_tokens", 0) or 0
        return GenerationResult(
            id=f"claude_{now_ms()}",
            content=text,
            provider=self.name,
            model=data.get("model") or model,
            usage=TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            metadata=GenerationMetadata(
                finish_reason=data.get("stop_reason") or "stop",
                response_time=now_ms(),
            ),
        )


class GeminiProvider(AIProvider):
    name = "gemini"

    def __init__(self, api_key: str):
        from google import genai

        self._client = genai.Client(api_key=api_key)

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        from google.genai import types

        model = request.model or settings.gemini_default_model
        config = types.GenerateContentConfig(
            system_instruction=build_system_prompt(request),
            max_output_tokens=request.max_tokens or settings.ai_default_max_tokens,
            temperature=request.temperature if request.temperature is not None else settings.ai_default_temperature,
            top_p=request.top_p,
        )
        response = await self._client.aio.models.generate_content(
            model=model, contents=request.prompt, config=config,
        )
        usage = response.usage_metadata
        finish_reason = None
        if response.candidates and response.candidates[0].finish_reason is not None:
            finish_reason = str(response.candidates[0].finish_reason.value).lower()
        return GenerationResult(
            id=f"gemini_{now_ms()}",
            content=response.text or "",
            provider=self.name,
            model=model,
            usage=TokenUsage(
                prompt_tokens=getattr(usage, "prompt_token_count", 0) or 0,
                completion_tokens=getattr(usage, "candidates_token_count", 0) or 0,
                total_tokens=getattr(usage, "total_token_count", 0) or 0,
            ),
            metadata=GenerationMetadata(finish_reason=finish_reason or "stop", response_time=now_ms()),
        )


class MockProvider(AIProvider):
    """Always available; produces placeholder content for demos and tests."""

    name = "mock"
    supports_image = True

    def __init__(self, delay_seconds: Optional[float] = None):
        self.delay_seconds = settings.mock_provider_delay_seconds if delay_seconds is None else delay_seconds

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        await asyncio.sleep(self.delay_seconds)
        if request.type == "text":
            content = (
                f'This is mock AI-generated content based on your prompt: "{request.prompt}".\n\n'
                "It stands in for a real teaching resource while no provider API key is configured.\n\n"
                f"- Education level: {request.education_level or 'general'}\n"
                f"- Subject: {request.subject or 'general'}\n"
                f"- Language: {request.language or 'zh-cn'}\n"
                f"- Tone: {request.tone or 'professional'}"
            )
        else:
            content = f"Mock {request.type} content generated"
        return GenerationResult(
            id=f"mock_{now_ms()}",
            content=content,
            provider=self.name,
            model="mock-model",
            usage=TokenUsage(
                prompt_tokens=len(request.prompt),
                completion_tokens=len(content),
                total_tokens=len(request.prompt) + len(content),
            ),
            metadata=GenerationMetadata(finish_reason="stop", response_time=now_ms(), is_mock=True),
        )

    async def generate_image(self, request: GenerationRequest) -> GenerationResult:
        await asyncio.sleep(self.delay_seconds * 1.5)
        return GenerationResult(
            id=f"mock_img_{now_ms()}",
            content=MOCK_IMAGE_DATA_URI,
            provider=self.name,
            model="mock-image-model",
            usage=TokenUsage(prompt_tokens=len(request.prompt), total_tokens=len(request.prompt)),
            metadata=GenerationMetadata(
                finish_reason="stop",
                response_time=now_ms(),
                is_mock=True,
                imageSize=request.image_size or "512x512",
            ),
        )
