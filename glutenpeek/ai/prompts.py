"""Prompt templates shared by the AI backends."""

EXTRACT_PROMPT = """\
Analyze these images to identify the product name and ingredients.
The product has barcode: {barcode}.

Return only a JSON object of this form (no other text):
{{"name": "product name", "ingredients": ["ingredient 1", "ingredient 2"]}}

List ingredients in the order printed on the package. If a field cannot be
read, use an empty string or an empty list.
"""

CLASSIFY_PROMPT = """\
You are a gluten analysis expert. Analyze this product to determine if it contains gluten.

Product name: {name}
Ingredients: {ingredients}
Current gluten status: {current_label}

Return a JSON object with these fields:
- glutenFreeStatus: One of "gluten-free", "contains-gluten", or "unknown"
- explanation: A brief explanation for your assessment

If ingredients contain wheat, barley, rye, or their derivatives, classify as "contains-gluten".
If you're uncertain, classify as "unknown".
"""


def format_classify_prompt(name: str, ingredients: list[str], current_label: str) -> str:
    return CLASSIFY_PROMPT.format(
        name=name,
        ingredients=", ".join(ingredients) if ingredients else "(not listed)",
        current_label=current_label or "unknown",
    )
