from tags import (
    SYSTEM_TAGS,
    all_system_tags,
    enrichment_type_for_tags,
    has_enrichable_tag,
    resolve_tags,
)


def test_resolve_without_caller_tags_returns_system_vocabulary_in_order():
    assert resolve_tags([]) == all_system_tags()
    assert resolve_tags([])[:5] == ["wine", "wijn", "vin", "vino", "wein"]


def test_resolve_is_idempotent():
    once = resolve_tags([])
    assert resolve_tags(once) == once


def test_caller_duplicate_of_system_tag_collapses_case_insensitively():
    merged = resolve_tags(["Wine"])
    assert [t for t in merged if t.lower() == "wine"] == ["wine"]
    assert len(merged) == len(all_system_tags())


def test_caller_tags_follow_system_tags_keeping_first_casing():
    merged = resolve_tags(["Books", "books", "Whisky"])
    assert merged[-2:] == ["Books", "Whisky"]


def test_non_sequence_input_counts_as_empty():
    assert resolve_tags(None) == all_system_tags()
    assert resolve_tags("wine") == all_system_tags()


def test_system_vocabulary_is_read_only():
    try:
        SYSTEM_TAGS["beer"] = ("beer",)
    except TypeError:
        pass
    else:
        raise AssertionError("SYSTEM_TAGS accepted a new category")


def test_enrichment_type_from_tags():
    assert has_enrichable_tag(["LP"], "vinyl")
    assert not has_enrichable_tag(["LP"], "wine")
    assert enrichment_type_for_tags(["Vino", "kitchen"]) == "wine"
    assert enrichment_type_for_tags(["plaat"]) == "vinyl"
    assert enrichment_type_for_tags(["lamp"]) is None
