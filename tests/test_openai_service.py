"""Tests for the OpenAI-backed completion service."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import openai
import pytest

from chad.exceptions import CompletionServiceError, MacroEstimateError
from chad.services.openai_service import OpenAIService


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_service(*replies):
    client = Mock()
    client.chat.completions.create = AsyncMock(side_effect=list(replies))
    return OpenAIService(api_key="test", model="test-model", client=client), client


class TestComplete:

    @pytest.mark.asyncio
    async def test_request_shape(self):
        service, client = make_service(completion("hey||| there"))

        text = await service.complete("SYSTEM", [{"role": "user", "content": "hi"}],
                                      temperature=0.7, max_tokens=300)

        assert text == "hey||| there"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"] == [
            {"role": "system", "content": "SYSTEM"},
            {"role": "user", "content": "hi"},
        ]
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 300
        assert "response_format" not in kwargs

    @pytest.mark.asyncio
    async def test_json_mode(self):
        service, client = make_service(completion('{"preferences": []}'))

        await service.complete("SYSTEM", [], temperature=0.3, max_tokens=300, json_mode=True)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self):
        service, _ = make_service(openai.OpenAIError("connection reset"))

        with pytest.raises(CompletionServiceError):
            await service.complete("SYSTEM", [], temperature=0.7, max_tokens=300)

    @pytest.mark.asyncio
    async def test_empty_completion(self):
        service, _ = make_service(completion("   "))

        with pytest.raises(CompletionServiceError):
            await service.complete("SYSTEM", [], temperature=0.7, max_tokens=300)

    @pytest.mark.asyncio
    async def test_no_choices(self):
        service, _ = make_service(SimpleNamespace(choices=[]))

        with pytest.raises(CompletionServiceError):
            await service.complete("SYSTEM", [], temperature=0.7, max_tokens=300)


class TestEstimateMacros:

    @pytest.mark.asyncio
    async def test_parsed_and_rounded(self):
        service, client = make_service(
            completion('{"calories": 248.6, "protein": 46.54, "carbs": 0, "fats": 5.35}')
        )

        macros = await service.estimate_macros("chicken breast", 200, "g")

        assert macros == {"calories": 249, "protein": 46.5, "carbs": 0, "fats": 5.3}
        kwargs = client.chat.completions.create.call_args.kwargs
        assert "Food: chicken breast" in kwargs["messages"][1]["content"]
        assert "Amount: 200 g" in kwargs["messages"][1]["content"]
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 150

    @pytest.mark.asyncio
    async def test_code_fences_stripped(self):
        service, _ = make_service(
            completion('```json\n{"calories": 100, "protein": 1, "carbs": 25, "fats": 0.3}\n```')
        )
        macros = await service.estimate_macros("banana", 1, "serving")
        assert macros["calories"] == 100

    @pytest.mark.asyncio
    async def test_not_json(self):
        service, _ = make_service(completion("about 300 calories"))

        with pytest.raises(MacroEstimateError):
            await service.estimate_macros("pizza", 1, "serving")

    @pytest.mark.asyncio
    async def test_non_numeric_field(self):
        service, _ = make_service(
            completion('{"calories": "300", "protein": 10, "carbs": 30, "fats": 12}')
        )

        with pytest.raises(MacroEstimateError):
            await service.estimate_macros("pizza", 1, "serving")

    @pytest.mark.asyncio
    async def test_boolean_field(self):
        service, _ = make_service(
            completion('{"calories": 300, "protein": true, "carbs": 30, "fats": 12}')
        )

        with pytest.raises(MacroEstimateError):
            await service.estimate_macros("pizza", 1, "serving")

    @pytest.mark.asyncio
    async def test_missing_field(self):
        service, _ = make_service(completion('{"calories": 300, "protein": 10, "carbs": 30}'))

        with pytest.raises(MacroEstimateError):
            await service.estimate_macros("pizza", 1, "serving")
