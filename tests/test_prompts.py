from prompts import (
    build_multi_item_prompt,
    build_single_item_prompt,
    language_instruction,
)
from tags import resolve_tags


def test_english_needs_no_language_instruction():
    assert language_instruction("en") == ""
    assert language_instruction(None) == ""


def test_known_and_unknown_language_codes():
    assert "Dutch" in language_instruction("nl")
    assert "MUST be in sv" in language_instruction("sv")


def test_multi_item_prompt_lists_vocabulary():
    prompt = build_multi_item_prompt("nl", resolve_tags(["Books"]))
    assert "Available tags: wine, wijn" in prompt
    assert "Books" in prompt
    assert "Dutch" in prompt
    assert "'items' array" in prompt
    assert '"collector_details": {' in prompt


def test_multi_item_prompt_without_tags():
    prompt = build_multi_item_prompt("en", [])
    assert "Available tags" not in prompt
    assert "{" in prompt and "{{" not in prompt


def test_single_item_prompt_focuses_on_named_item():
    prompt = build_single_item_prompt("blue vase", "en", resolve_tags([]))
    assert 'Focus ONLY on this item: "blue vase"' in prompt
    assert "'item' object" in prompt


def test_single_item_prompt_without_name_picks_most_prominent():
    prompt = build_single_item_prompt(None, "fr", [])
    assert "MOST PROMINENT" in prompt
    assert "French" in prompt
