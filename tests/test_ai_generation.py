"""
Tests for the generation dispatcher, provider adapters and the /api/ai routes.
"""
import json

import httpx
import pytest

from core.exceptions import AIServiceException, ProviderCapabilityException
from schemas.generation import GenerationRequest
from services.ai_manager import AIManager, get_ai_manager
from services.ai_providers import ClaudeProvider, MockProvider, build_system_prompt


def claude_transport(status_code=200, captured=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(request)
        if status_code != 200:
            return httpx.Response(status_code, json={"error": {"message": "overloaded"}})
        return httpx.Response(
            200,
            json={
                "model": "claude-3-sonnet-20240229",
                "content": [{"type": "text", "text": "Photosynthesis converts light into energy."}],
                "stop_reason": "end_turn",
                "usage": {"input_tokens": 12, "output_tokens": 8},
            },
        )

    return httpx.MockTransport(handler)


class TestSystemPrompt:
    def test_includes_requested_context(self):
        prompt = build_system_prompt(GenerationRequest(
            type="text",
            prompt="Explain fractions",
            educationLevel="elementary",
            subject="math",
            tone="friendly",
            additionalInstructions="Use pizza examples",
        ))

        assert "Target education level: elementary" in prompt
        assert "Subject: math" in prompt
        assert "Tone: friendly" in prompt
        assert "Additional requirements: Use pizza examples" in prompt
        assert "Language:" not in prompt


class TestAIManager:
    async def test_unknown_provider_falls_back_to_mock(self):
        manager = AIManager(default_provider="openai")

        result = await manager.generate(GenerationRequest(type="text", prompt="Explain gravity", provider="nonexistent"))

        assert result.provider == "mock"
        assert result.metadata.is_mock is True
        assert "Explain gravity" in result.content
        assert result.usage.total_tokens == result.usage.prompt_tokens + result.usage.completion_tokens

    async def test_mock_image(self):
        manager = AIManager(providers={"mock": MockProvider(delay_seconds=0)})

        result = await manager.generate(GenerationRequest(type="image", prompt="A cell diagram", provider="mock"))

        assert result.content.startswith("data:image/svg+xml;base64,")
        assert result.model == "mock-image-model"
        assert result.to_api()["metadata"]["imageSize"] == "512x512"

    async def test_image_on_text_only_provider_is_rejected(self):
        manager = AIManager(providers={"claude": ClaudeProvider("key", transport=claude_transport())})

        with pytest.raises(ProviderCapabilityException) as exc_info:
            await manager.generate(GenerationRequest(type="image", prompt="A cell", provider="claude"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Provider 'claude' does not support image generation"

    async def test_claude_request_and_response_mapping(self):
        captured = []
        provider = ClaudeProvider("secret-key", base_url="https://claude.test/v1", transport=claude_transport(captured=captured))
        manager = AIManager(providers={"claude": provider})

        result = await manager.generate(GenerationRequest(type="text", prompt="Photosynthesis?", provider="claude", temperature=1.5))

        sent = captured[0]
        body = json.loads(sent.content)
        assert str(sent.url) == "https://claude.test/v1/messages"
        assert sent.headers["x-api-key"] == "secret-key"
        assert body["temperature"] == 1.0
        assert body["messages"] == [{"role": "user", "content": "Photosynthesis?"}]
        assert result.content == "Photosynthesis converts light into energy."
        assert result.usage.total_tokens == 20
        assert result.metadata.finish_reason == "end_turn"

    async def test_provider_failure_becomes_service_error(self):
        manager = AIManager(providers={"claude": ClaudeProvider("key", transport=claude_transport(status_code=529))})

        with pytest.raises(AIServiceException) as exc_info:
            await manager.generate(GenerationRequest(type="text", prompt="Hi", provider="claude"))

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail == "Content generation failed for provider claude"

    async def test_timeout_becomes_service_error(self):
        manager = AIManager(providers={"mock": MockProvider(delay_seconds=1)}, timeout_seconds=0.01)

        with pytest.raises(AIServiceException):
            await manager.generate(GenerationRequest(type="text", prompt="Hi", provider="mock"))

    def test_describe_providers(self):
        manager = AIManager(providers={"claude": ClaudeProvider("key")}, default_provider="claude")

        described = {info.name: info for info in manager.describe_providers()}

        assert set(described) == {"claude", "mock"}
        assert described["claude"].default is True
        assert described["claude"].supports_image is False
        assert described["mock"].supports_image is True


class TestGenerationRoutes:
    def test_generate_and_read_history(self, client, register):
        _, headers = register("teacher1", role="teacher")

        response = client.post(
            "/api/ai/generate",
            json={"type": "text", "prompt": "Explain fractions", "subject": "math"},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == "generation_1"
        assert data["result"]["provider"] == "mock"
        assert data["result"]["metadata"]["isMock"] is True

        history = client.get("/api/ai/history", headers=headers).json()["data"]
        assert history["pagination"]["total"] == 1
        record = history["results"][0]
        assert record["prompt"] == "Explain fractions"
        assert record["status"] == "completed"
        assert record["metadata"]["resultId"] == data["result"]["id"]

    def test_history_is_private_and_filterable(self, client, register):
        _, alice = register("alice")
        _, bob = register("bob")
        client.post("/api/ai/generate", json={"type": "text", "prompt": "Text please"}, headers=alice)
        client.post("/api/ai/generate", json={"type": "image", "prompt": "Image please"}, headers=alice)
        generated = client.post("/api/ai/generate", json={"type": "text", "prompt": "Bob's"}, headers=bob)

        images = client.get("/api/ai/history", params={"type": "image"}, headers=alice).json()["data"]
        bobs_record = client.get(f"/api/ai/{generated.json()['data']['id']}", headers=alice)

        assert [r["prompt"] for r in images["results"]] == ["Image please"]
        assert bobs_record.status_code == 404

    def test_delete_generation(self, client, register):
        _, headers = register("alice")
        record_id = client.post(
            "/api/ai/generate", json={"type": "text", "prompt": "Temporary"}, headers=headers
        ).json()["data"]["id"]

        deleted = client.delete(f"/api/ai/{record_id}", headers=headers)
        again = client.get(f"/api/ai/{record_id}", headers=headers)

        assert deleted.status_code == 200
        assert again.status_code == 404

    def test_providers_listing(self, client, register):
        _, headers = register("alice")

        data = client.get("/api/ai/providers", headers=headers).json()["data"]

        assert [p["name"] for p in data["providers"]] == ["mock"]
        assert data["providers"][0]["supportsImage"] is True

    def test_capability_and_failure_errors(self, app, client, register):
        _, headers = register("alice")
        app.dependency_overrides[get_ai_manager] = lambda: AIManager(
            providers={"claude": ClaudeProvider("key", transport=claude_transport(status_code=500))}
        )

        image = client.post("/api/ai/generate", json={"type": "image", "prompt": "x", "provider": "claude"}, headers=headers)
        failed = client.post("/api/ai/generate", json={"type": "text", "prompt": "x", "provider": "claude"}, headers=headers)

        assert image.status_code == 400
        assert image.json()["message"] == "Provider 'claude' does not support image generation"
        assert failed.status_code == 503
        assert failed.json() == {"success": False, "message": "Content generation failed for provider claude"}
        assert client.get("/api/ai/history", headers=headers).json()["data"]["pagination"]["total"] == 0

    def test_invalid_generation_request(self, client, register):
        _, headers = register("alice")

        response = client.post("/api/ai/generate", json={"type": "hologram", "prompt": ""}, headers=headers)

        assert response.status_code == 400
        assert {error["field"] for error in response.json()["errors"]} == {"type", "prompt"}
