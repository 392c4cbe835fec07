"""Tests for AI backends (mocked API calls)."""

import json
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from glutenpeek.ai import Classifier, Extractor, create_backend, create_classifier
from glutenpeek.ai.claude import ClaudeBackend
from glutenpeek.ai.gemini import GeminiBackend
from glutenpeek.config import load_config
from glutenpeek.models import CONTAINS_GLUTEN, GLUTEN_FREE, ImageBlob

IMAGES = [ImageBlob(data=b"\xff\xd8\xff\xe0fake-jpeg", filename=f"{i}.jpg") for i in range(4)]


class TestCreateBackend:
    def test_default_is_gemini(self):
        backend = create_backend(load_config())
        assert isinstance(backend, GeminiBackend)
        assert isinstance(backend, Extractor)
        assert isinstance(backend, Classifier)

    def test_claude(self):
        config = load_config()
        config.ai.backend = "claude"
        assert isinstance(create_classifier(config), ClaudeBackend)

    def test_unknown_backend(self):
        config = load_config()
        config.ai.backend = "oracle"
        with pytest.raises(ValueError, match="Unknown AI backend"):
            create_backend(config)


def _mock_anthropic(text: str):
    mock_response = MagicMock()
    mock_response.content = [MagicMock(text=text)]

    mock_client = AsyncMock()
    mock_client.messages.create = AsyncMock(return_value=mock_response)

    mock_anthropic = MagicMock()
    mock_anthropic.AsyncAnthropic.return_value = mock_client
    return mock_anthropic, mock_client


class TestClaudeBackend:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        backend = ClaudeBackend(api_key="")
        with pytest.raises(ValueError, match="API key"):
            await backend.check_status("Bread", ["wheat"], "unknown")

    @pytest.mark.asyncio
    async def test_extract_product_info(self):
        mock_anthropic, mock_client = _mock_anthropic(
            json.dumps({"name": "Granola Bar", "ingredients": ["oats", "honey"]})
        )
        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            backend = ClaudeBackend(api_key="test-key")
            info = await backend.extract_product_info(IMAGES, "0001")

        assert info.name == "Granola Bar"
        assert info.ingredients == ["oats", "honey"]

        content = mock_client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert sum(1 for block in content if block["type"] == "image") == 4
        assert "0001" in content[-1]["text"]

    @pytest.mark.asyncio
    async def test_check_status(self):
        mock_anthropic, mock_client = _mock_anthropic(
            '```json\n{"glutenFreeStatus": "contains-gluten", "explanation": "wheat"}\n```'
        )
        with patch.dict(sys.modules, {"anthropic": mock_anthropic}):
            backend = ClaudeBackend(api_key="test-key")
            result = await backend.check_status("Bread", ["wheat flour"], "unknown")

        assert result.label == CONTAINS_GLUTEN
        prompt = mock_client.messages.create.call_args.kwargs["messages"][0]["content"][0]["text"]
        assert "wheat flour" in prompt
        assert "Bread" in prompt


class TestGeminiBackend:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        backend = GeminiBackend(api_key="")
        with pytest.raises(ValueError, match="API key"):
            await backend.extract_product_info(IMAGES, "0001")

    @pytest.mark.asyncio
    async def test_check_status(self):
        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(
            return_value=MagicMock(text='{"glutenFreeStatus": "gluten-free", "explanation": "rice"}')
        )
        mock_genai = MagicMock()
        mock_genai.GenerativeModel.return_value = mock_model
        mock_google = MagicMock()
        mock_google.generativeai = mock_genai

        with patch.dict(
            sys.modules, {"google": mock_google, "google.generativeai": mock_genai}
        ):
            backend = GeminiBackend(api_key="test-key")
            result = await backend.check_status("Rice Crackers", ["rice"], "unknown")

        assert result.label == GLUTEN_FREE
        assert result.explanation == "rice"
        mock_genai.configure.assert_called_once_with(api_key="test-key")

    @pytest.mark.asyncio
    async def test_extract_sends_all_images(self):
        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(
            return_value=MagicMock(text='{"name": "Muesli", "ingredients": ["oats"]}')
        )
        mock_genai = MagicMock()
        mock_genai.GenerativeModel.return_value = mock_model
        mock_google = MagicMock()
        mock_google.generativeai = mock_genai

        with patch.dict(
            sys.modules, {"google": mock_google, "google.generativeai": mock_genai}
        ):
            info = await GeminiBackend(api_key="k").extract_product_info(IMAGES, "0001")

        assert info.name == "Muesli"
        parts = mock_model.generate_content_async.call_args.args[0]
        assert len(parts) == 5
        assert parts[1]["mime_type"] == "image/jpeg"
