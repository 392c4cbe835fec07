"""Tests for AI response parsing."""

import json

import pytest

from glutenpeek.ai.parsing import parse_gluten_assessment, parse_product_info, strip_fences
from glutenpeek.errors import ClassificationError
from glutenpeek.models import CONTAINS_GLUTEN, GLUTEN_FREE, UNKNOWN


def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences('  {"a": 1} ') == '{"a": 1}'


class TestParseProductInfo:
    def test_json(self):
        text = json.dumps({"name": "Granola Bar", "ingredients": ["oats", "honey"]})
        info = parse_product_info(text)
        assert info.name == "Granola Bar"
        assert info.ingredients == ["oats", "honey"]

    def test_fenced_json_with_string_ingredients(self):
        text = '```json\n{"name": "Crackers", "ingredients": "rice flour, salt."}\n```'
        info = parse_product_info(text)
        assert info.name == "Crackers"
        assert info.ingredients == ["rice flour", "salt"]

    def test_json_embedded_in_prose(self):
        text = 'Here you go: {"productName": "Muesli", "ingredients": []} Hope it helps.'
        assert parse_product_info(text).name == "Muesli"

    def test_text_fallback(self):
        text = "Product name: **Oat Cookies**\nIngredients: oats, sugar, butter (milk)"
        info = parse_product_info(text)
        assert info.name == "Oat Cookies"
        assert info.ingredients == ["oats", "sugar", "butter (milk)"]

    def test_unreadable_gives_empty_result(self):
        info = parse_product_info("I cannot read these images.")
        assert info.name == ""
        assert info.ingredients == []


class TestParseGlutenAssessment:
    def test_json(self):
        text = json.dumps({
            "glutenFreeStatus": "contains-gluten",
            "explanation": "Contains barley malt.",
        })
        result = parse_gluten_assessment(text)
        assert result.label == CONTAINS_GLUTEN
        assert result.explanation == "Contains barley malt."

    def test_json_unknown_label(self):
        result = parse_gluten_assessment('{"label": "unknown", "explanation": "unclear"}')
        assert result.label == UNKNOWN

    def test_text_fallback_gluten_free(self):
        text = "This product is gluten-free.\nExplanation: only rice and salt."
        result = parse_gluten_assessment(text)
        assert result.label == GLUTEN_FREE
        assert result.explanation == "only rice and salt."

    def test_text_fallback_not_gluten_free(self):
        result = parse_gluten_assessment("It is not gluten-free; it contains gluten from wheat.")
        assert result.label == CONTAINS_GLUTEN

    @pytest.mark.parametrize("text", [
        "This contains gluten (wheat flour) and is unsuitable for a gluten-free diet.",
        "It isn't gluten-free: wheat flour is listed.",
        "Not suitable for anyone who needs gluten free food.",
    ])
    def test_text_fallback_negated_gluten_free(self, text):
        assert parse_gluten_assessment(text).label == CONTAINS_GLUTEN

    def test_no_label_raises(self):
        with pytest.raises(ClassificationError):
            parse_gluten_assessment("I'm not sure what this is.")

    def test_json_with_bad_label_and_no_phrase_raises(self):
        with pytest.raises(ClassificationError):
            parse_gluten_assessment('{"label": "perhaps"}')
