from unittest.mock import AsyncMock, patch

import httpx
import pytest

from boq_extraction.core.config import LLMSettings
from boq_extraction.core.exceptions import APIClientError, ConfigurationError
from boq_extraction.core.llm_client import BaseLLMClient, OpenRouterClient, create_llm_client


def llm_settings(**overrides) -> LLMSettings:
    return LLMSettings().model_copy(update=overrides)


class TestCreateLLMClient:

    def test_disabled_provider(self):
        assert create_llm_client(llm_settings(provider="none")) is None

    def test_missing_key_disables_client(self):
        assert create_llm_client(llm_settings(provider="openrouter", openrouter_api_key="")) is None

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            create_llm_client(llm_settings(provider="mystery"))

    def test_openrouter_client(self):
        client = create_llm_client(llm_settings(provider="openrouter", openrouter_api_key="sk-test"))
        assert isinstance(client, OpenRouterClient)
        assert client.model == "google/gemini-2.0-flash-001"


class TestOpenRouterClient:

    @pytest.fixture
    def client(self):
        return OpenRouterClient(api_key="sk-test", model="test-model", base_url="https://llm.example.test")

    @pytest.mark.asyncio
    async def test_generate_content_builds_chat_payload(self, client):
        with patch.object(client.client, "call_api", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = {"choices": [{"message": {"content": "[]"}}]}

            result = await client.generate_content(
                "Extract items",
                system_instruction="Be precise",
                generation_config={"temperature": 0.1, "max_output_tokens": 1024},
            )

        assert result == "[]"
        payload = mock_call.call_args.kwargs["payload"]
        assert payload["model"] == "test-model"
        assert payload["messages"] == [
            {"role": "system", "content": "Be precise"},
            {"role": "user", "content": "Extract items"},
        ]
        assert payload["temperature"] == 0.1
        assert payload["max_tokens"] == 1024

    @pytest.mark.asyncio
    async def test_missing_choices_raise(self, client):
        with patch.object(client.client, "call_api", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = {"error": "overloaded"}
            with pytest.raises(APIClientError):
                await client.generate_content("Extract items")

    @pytest.mark.asyncio
    async def test_empty_content_returns_empty_string(self, client):
        with patch.object(client.client, "call_api", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = {"choices": [{"message": {"content": None}}]}
            assert await client.generate_content("Extract items") == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [{"choices": ["not a dict"]}, ["choices"]])
    async def test_malformed_choices_raise_client_error(self, client, response):
        with patch.object(client.client, "call_api", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = response
            with pytest.raises(APIClientError):
                await client.generate_content("Extract items")


class TestBaseLLMClient:

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, text="unauthorized")

        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        def client_factory(*args, **kwargs):
            return real_client(transport=transport)

        base = BaseLLMClient(api_key="k", base_url="https://llm.example.test", max_retries=3, retry_delay=0)
        with patch("boq_extraction.core.llm_client.httpx.AsyncClient", side_effect=client_factory):
            with pytest.raises(APIClientError):
                await base.call_api(payload={"x": 1})

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self):
        responses = iter([httpx.Response(503), httpx.Response(200, json={"ok": True})])
        transport = httpx.MockTransport(lambda request: next(responses))
        real_client = httpx.AsyncClient

        base = BaseLLMClient(api_key="k", base_url="https://llm.example.test", max_retries=2, retry_delay=0)
        with patch(
            "boq_extraction.core.llm_client.httpx.AsyncClient",
            side_effect=lambda *args, **kwargs: real_client(transport=transport),
        ):
            assert await base.call_api(payload={"x": 1}) == {"ok": True}

    @pytest.mark.asyncio
    async def test_non_json_body_raises_client_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        real_client = httpx.AsyncClient

        base = BaseLLMClient(api_key="k", base_url="https://llm.example.test", max_retries=2, retry_delay=0)
        with patch(
            "boq_extraction.core.llm_client.httpx.AsyncClient",
            side_effect=lambda *args, **kwargs: real_client(transport=transport),
        ):
            with pytest.raises(APIClientError, match="Non-JSON response"):
                await base.call_api(payload={"x": 1})
