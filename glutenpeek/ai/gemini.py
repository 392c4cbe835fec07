"""Gemini API backend for product extraction and gluten classification."""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import Classifier, ExtractedProduct, Extractor, GlutenAssessment
from .parsing import parse_gluten_assessment, parse_product_info
from .prompts import EXTRACT_PROMPT, format_classify_prompt

if TYPE_CHECKING:
    from ..models import ImageBlob


class GeminiBackend(Extractor, Classifier):
    """Extract and classify products using Google Gemini."""

    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash") -> None:
        self._api_key = api_key
        self._model = model

    def _model_client(self, temperature: float, max_output_tokens: int):
        if not self._api_key:
            raise ValueError(
                "Gemini API key is not configured. "
                "Check the config file or the GEMINI_API_KEY environment variable."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        return genai.GenerativeModel(
            self._model,
            generation_config={
                "temperature": temperature,
                "top_k": 32,
                "top_p": 1,
                "max_output_tokens": max_output_tokens,
            },
        )

    async def extract_product_info(
        self, images: list[ImageBlob], barcode: str
    ) -> ExtractedProduct:
        model = self._model_client(temperature=0.4, max_output_tokens=2048)

        parts: list = [EXTRACT_PROMPT.format(barcode=barcode)]
        for image in images:
            parts.append({"mime_type": image.content_type, "data": image.data})

        response = await model.generate_content_async(parts)
        return parse_product_info(response.text)

    async def check_status(
        self, name: str, ingredients: list[str], current_label: str
    ) -> GlutenAssessment:
        model = self._model_client(temperature=0.2, max_output_tokens=1024)
        prompt = format_classify_prompt(name, ingredients, current_label)
        response = await model.generate_content_async(prompt)
        return parse_gluten_assessment(response.text)
