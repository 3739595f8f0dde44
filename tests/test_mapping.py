"""Tests for the category mapping cascade."""

import pytest

from household_finance.services.importer.mapping import (
    SOURCE_FUZZY,
    SOURCE_KEYWORD,
    SOURCE_SAVED,
    KeywordRule,
    load_keyword_rules,
    load_keyword_rules_asset,
    match_by_name,
    normalize_text,
    observation_key,
    propose_mapping_details,
    propose_mappings,
)

TREE = [
    {"id": "cat-super", "name": "Supermercado", "subcategories": [
        {"id": "sub-ropa", "name": "Ropa"},
        {"id": "sub-alim", "name": "Alimentación"},
    ]},
    {"id": "cat-ocio", "name": "Ocio", "subcategories": [
        {"id": "sub-rest", "name": "Restaurantes"},
        {"id": "sub-bares", "name": "Bares"},
    ]},
    {"id": "cat-seguros", "name": "Seguros", "subcategories": [
        {"id": "sub-coche", "name": "Coche"},
        {"id": "sub-vida", "name": "Vida"},
    ]},
    {"id": "cat-mascotas", "name": "Mascotas", "subcategories": [
        {"id": "sub-vet", "name": "Veterinario"},
    ]},
    {"id": "cat-vacia", "name": "Sin subcategorías", "subcategories": []},
]


def obs(category, subcategory=""):
    return {"category": category, "subcategory": subcategory}


def propose_one(observation, saved=(), tree=TREE, rules=None):
    return propose_mapping_details([observation], list(saved), tree, rules)[0]


def test_normalize_text_strips_accents_and_case():
    assert normalize_text("  Alimentación ") == "alimentacion"
    assert normalize_text(None) == ""


def test_observation_key():
    assert observation_key("Ocio", "Bares") == "Ocio|Bares"
    assert observation_key("Ocio", None) == "Ocio|"


def test_rule_asset_is_versioned_and_ordered():
    asset = load_keyword_rules_asset()
    rules = load_keyword_rules()

    assert asset["version"] == 1
    assert len(rules) == len(asset["rules"])
    # The bare "compras" catch-all must come last
    assert rules[-1].keywords == ("compras",)
    assert rules[-1].subcategory is None


class TestPriority:
    def test_saved_mapping_beats_keyword_rule(self):
        saved = [{"bank_category": "Ocio", "bank_subcategory": "Restaurantes", "subcategory_id": "sub-bares"}]
        result = propose_one(obs("Ocio", "Restaurantes"), saved)

        assert result["subcategory_id"] == "sub-bares"
        assert result["source"] == SOURCE_SAVED

    def test_saved_mapping_needs_exact_pair(self):
        saved = [{"bank_category": "Ocio", "bank_subcategory": "Cenas", "subcategory_id": "sub-bares"}]
        result = propose_one(obs("Ocio", "Restaurantes"), saved)
        assert result["source"] == SOURCE_KEYWORD

    def test_null_saved_mapping_falls_through(self):
        saved = [{"bank_category": "Ocio", "bank_subcategory": "Restaurantes", "subcategory_id": None}]
        result = propose_one(obs("Ocio", "Restaurantes"), saved)
        assert result["subcategory_id"] == "sub-rest"

    def test_keyword_rule_beats_fuzzy_names(self):
        # Fuzzy would find the "Ropa" subcategory by name; the keyword table
        # sends "mercadona" to alimentación first
        result = propose_one(obs("Ropa", "Mercadona"))
        assert result["subcategory_id"] == "sub-alim"
        assert result["source"] == SOURCE_KEYWORD


class TestKeywordRules:
    def test_accent_insensitive_keywords(self):
        result = propose_one(obs("ALIMENTACIÓN", ""))
        assert result["subcategory_id"] == "sub-alim"

    def test_earliest_rule_wins_over_generic_catch_all(self):
        # "compras" alone would resolve to the first Supermercado subcategory (Ropa)
        result = propose_one(obs("Compras", "Supermercado"))
        assert result["subcategory_id"] == "sub-alim"

    def test_generic_catch_all_uses_first_subcategory(self):
        result = propose_one(obs("Compras", "Varias"))
        assert result["subcategory_id"] == "sub-ropa"

    def test_category_only_rule_resolves_first_subcategory(self):
        result = propose_one(obs("Seguros", "Mapfre"))
        assert result["subcategory_id"] == "sub-coche"
        assert result["source"] == SOURCE_KEYWORD

    def test_rule_for_missing_category_is_passed_over(self):
        # "hogar" points at vivienda, which this account lacks; "seguro" comes later
        result = propose_one(obs("Seguro", "Hogar"))
        assert result["subcategory_id"] == "sub-coche"

    def test_custom_rules(self):
        rules = [KeywordRule(keywords=("veterinaria",), category="mascotas")]
        result = propose_one(obs("Clínica veterinaria", ""), rules=rules)
        assert result["subcategory_id"] == "sub-vet"


class TestFuzzyNames:
    def test_category_and_subcategory_names(self):
        result = propose_one(obs("Mascotas", "Veterinario"))
        assert result["subcategory_id"] == "sub-vet"
        assert result["source"] == SOURCE_FUZZY

    def test_searches_all_subcategories_without_category_match(self):
        assert match_by_name("Animales", "Veterinario", TREE) == "sub-vet"

    def test_containment_either_way(self):
        assert match_by_name("Otros", "Gastos veterinarios", TREE) == "sub-vet"

    def test_empty_strings_never_match(self):
        assert match_by_name("", "", TREE) is None


def test_unmatched_observation_is_unassigned():
    result = propose_one(obs("Zzz", "Qqq"))
    assert result["subcategory_id"] is None
    assert result["source"] is None


def test_propose_mappings_returns_keyed_dict():
    saved = [{"bank_category": "Ocio", "bank_subcategory": "Restaurantes", "subcategory_id": "sub-bares"}]
    mappings = propose_mappings(
        [obs("Ocio", "Restaurantes"), obs("Mascotas", "Veterinario"), obs("Zzz", "")],
        saved,
        TREE,
    )
    assert mappings == {
        "Ocio|Restaurantes": "sub-bares",
        "Mascotas|Veterinario": "sub-vet",
        "Zzz|": None,
    }


@pytest.mark.parametrize("tree", [[], [{"id": "c", "name": "Ocio", "subcategories": []}]])
def test_trees_without_subcategories_yield_none(tree):
    assert propose_one(obs("Ocio", "Restaurantes"), tree=tree)["subcategory_id"] is None
