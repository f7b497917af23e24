from collections.abc import Sequence

LANGUAGE_NAMES = {
    "en": "English",
    "nl": "Dutch",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
}

ITEM_SHAPE = """{{
      "name": "Item name",
      "description": "{description_hint}",
      "estimated_value": 25.50,
      "quantity": 1,
      "accuracy": 0.95,
      "item_type": "wine" or "vinyl" or "general",
      "tags": ["relevant", "tags"],
      "collector_details": {{
        "winery": "Château Name" or null,
        "vintage": 2015 or null,
        "wine_name": "Full wine name" or null,
        "artist": "Artist Name" or null,
        "album": "Album Title" or null,
        "release_year": 1973 or null
      }}
    }}"""

COMMON_RULES = """- Prices in euros as numbers (no currency symbol).
- accuracy: 0.0-1.0 (confidence in identification).
- quantity: whole number, at least 1.
- Do NOT include any bounding boxes or coordinates.
- item_type: Use "wine" for wine bottles, "vinyl" for vinyl records/LPs, "general" for other items.
- tags: Array of relevant tags assigned to this item{tags_instruction}
- collector_details: ALWAYS include this object with all six keys.
  - For WINE: set winery, vintage, wine_name (set others to null)
  - For VINYL: set artist, album, release_year (set others to null)
  - For GENERAL: set ALL fields to null{language_instruction}"""

MULTI_ITEM_PROMPT = """You are an expert in visually analyzing household scenes, with special attention to collectible items. Return ONLY a JSON object with an 'items' array. For each clearly visible and identifiable household item, include:

{{
  "items": [
    {item_shape}
  ]
}}

Strict rules:
- Output must be ONLY a JSON object with key 'items' (no prose).
{rules}

Analyze this image and return the JSON object."""

SINGLE_ITEM_PROMPT = """You are an expert in visually analyzing household items, with special attention to collectible items. {focus} Return ONLY a JSON object with a single 'item' object:

{{
  "item": {item_shape}
}}

Strict rules:
- Output must be ONLY a JSON object with key 'item' (no prose).
{focus_rules}- Include ALL details (condition, brand, model, materials, etc.) in the description field.
{rules}

Analyze this image and return the JSON object."""

DETAILED_DESCRIPTION = (
    "Detailed description including: condition (Good/Excellent/Fair/Poor), "
    "brand (if visible), model (if identifiable), and any other relevant details"
)


def language_instruction(language: str | None) -> str:
    if not language or language.lower() == "en":
        return ""
    # Unknown codes go to the model as-is.
    name = LANGUAGE_NAMES.get(language.lower(), language)
    return f"\n- IMPORTANT: All text fields (name and description) MUST be in {name}."


def tags_instruction(tags: Sequence[str]) -> str:
    if not tags:
        return ""
    return (
        f"\n- Available tags: {', '.join(tags)}"
        '\n- Assign relevant tags using semantic matching (e.g., "bottle" → "wine", "LP" → "vinyl")'
        '\n- Add assigned tags to the "tags" array field'
    )


def _rules(language: str | None, tags: Sequence[str]) -> str:
    return COMMON_RULES.format(
        tags_instruction=tags_instruction(tags),
        language_instruction=language_instruction(language),
    )


def build_multi_item_prompt(language: str | None, tags: Sequence[str]) -> str:
    return MULTI_ITEM_PROMPT.format(
        item_shape=ITEM_SHAPE.format(description_hint="Brief description"),
        rules=_rules(language, tags),
    )


def build_single_item_prompt(item_name: str | None, language: str | None, tags: Sequence[str]) -> str:
    if item_name:
        focus = f'Focus ONLY on this item: "{item_name}".'
        focus_rules = (
            f'- Focus exclusively on "{item_name}".\n'
            "- If the item is not found or unclear, set accuracy to 0 and provide best estimate.\n"
        )
    else:
        focus = "Identify and analyze the MOST PROMINENT or VALUABLE item in this image."
        focus_rules = "- Choose the most prominent, valuable, or significant item in the image.\n"
    return SINGLE_ITEM_PROMPT.format(
        focus=focus,
        focus_rules=focus_rules,
        item_shape=ITEM_SHAPE.format(description_hint=DETAILED_DESCRIPTION),
        rules=_rules(language, tags),
    )
