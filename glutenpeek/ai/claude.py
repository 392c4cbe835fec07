"""Claude API backend for product extraction and gluten classification."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

from . import Classifier, ExtractedProduct, Extractor, GlutenAssessment
from .parsing import parse_gluten_assessment, parse_product_info
from .prompts import EXTRACT_PROMPT, format_classify_prompt

if TYPE_CHECKING:
    from ..models import ImageBlob


class ClaudeBackend(Extractor, Classifier):
    """Extract and classify products using Claude."""

    def __init__(self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929") -> None:
        self._api_key = api_key
        self._model = model

    def _client(self):
        if not self._api_key:
            raise ValueError(
                "Anthropic API key is not configured. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        return anthropic.AsyncAnthropic(api_key=self._api_key)

    async def _complete(self, content: list[dict], max_tokens: int) -> str:
        client = self._client()
        response = await client.messages.create(
            model=self._model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": content}],
        )
        return response.content[0].text

    async def extract_product_info(
        self, images: list[ImageBlob], barcode: str
    ) -> ExtractedProduct:
        content: list[dict] = []
        for image in images:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image.content_type,
                        "data": base64.standard_b64encode(image.data).decode(),
                    },
                }
            )
        content.append({"type": "text", "text": EXTRACT_PROMPT.format(barcode=barcode)})

        text = await self._complete(content, max_tokens=2048)
        return parse_product_info(text)

    async def check_status(
        self, name: str, ingredients: list[str], current_label: str
    ) -> GlutenAssessment:
        prompt = format_classify_prompt(name, ingredients, current_label)
        text = await self._complete([{"type": "text", "text": prompt}], max_tokens=1024)
        return parse_gluten_assessment(text)
