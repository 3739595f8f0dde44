"""
Priority Cascade Category Mapping

Proposes which of the account's subcategories each bank (category,
subcategory) pair should land in:

Tier 1: Saved mappings — what the user confirmed on earlier imports
Tier 2: Keyword rules — ordered table in data/keyword_rules.json
Tier 3: Fuzzy names — accent/case-insensitive equality or containment
        against the account's own category and subcategory names

The first tier that resolves wins. Nothing matched → None (unassigned);
the proposal is advisory and the user can override any entry.
"""

import json
import logging
import unicodedata
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

KEYWORD_RULES_PATH = Path(__file__).resolve().parent.parent.parent / "data" / "keyword_rules.json"

SOURCE_SAVED = "saved"
SOURCE_KEYWORD = "keyword"
SOURCE_FUZZY = "fuzzy"


@dataclass(frozen=True)
class KeywordRule:
    keywords: tuple[str, ...]
    category: str
    subcategory: Optional[str] = None


@lru_cache(maxsize=1)
def load_keyword_rules_asset() -> dict:
    """Raw {"version", "rules"} asset, as served to the front end."""
    with open(KEYWORD_RULES_PATH, encoding="utf-8") as f:
        return json.load(f)


def load_keyword_rules() -> list[KeywordRule]:
    asset = load_keyword_rules_asset()
    return [
        KeywordRule(
            keywords=tuple(rule["keywords"]),
            category=rule["category"],
            subcategory=rule.get("subcategory"),
        )
        for rule in asset["rules"]
    ]


def normalize_text(text: Optional[str]) -> str:
    """Lower-case, trim and strip accents ("Alimentación" → "alimentacion")."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower().strip())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def observation_key(bank_category: Optional[str], bank_subcategory: Optional[str]) -> str:
    return f"{bank_category or ''}|{bank_subcategory or ''}"


def propose_mappings(
    observations: Iterable[dict],
    saved_mappings: Iterable[dict],
    category_tree: list[dict],
    rules: Optional[list[KeywordRule]] = None,
) -> dict[str, Optional[str]]:
    """
    Map each observation key ("category|subcategory") to a subcategory id or None.

    observations: [{"category", "subcategory"}]
    saved_mappings: [{"bank_category", "bank_subcategory", "subcategory_id"}]
    category_tree: [{"id", "name", "subcategories": [{"id", "name"}]}]
    """
    details = propose_mapping_details(observations, saved_mappings, category_tree, rules)
    return {
        observation_key(d["bank_category"], d["bank_subcategory"]): d["subcategory_id"]
        for d in details
    }


def propose_mapping_details(
    observations: Iterable[dict],
    saved_mappings: Iterable[dict],
    category_tree: list[dict],
    rules: Optional[list[KeywordRule]] = None,
) -> list[dict]:
    """Same as propose_mappings, but keeps order and reports which tier matched."""
    if rules is None:
        rules = load_keyword_rules()

    saved_lookup = {
        observation_key(m.get("bank_category"), m.get("bank_subcategory")): m.get("subcategory_id")
        for m in saved_mappings
    }

    results = []
    for obs in observations:
        category = obs.get("category") or ""
        subcategory = obs.get("subcategory") or ""
        subcategory_id, source = resolve_observation(
            category, subcategory, saved_lookup, category_tree, rules
        )
        results.append({
            "bank_category": category,
            "bank_subcategory": subcategory,
            "subcategory_id": subcategory_id,
            "source": source,
        })

    matched = sum(1 for r in results if r["subcategory_id"])
    logger.info(f"Proposed mappings: {matched}/{len(results)} bank categories resolved")
    return results


def resolve_observation(
    bank_category: str,
    bank_subcategory: str,
    saved_lookup: dict[str, Optional[str]],
    category_tree: list[dict],
    rules: list[KeywordRule],
) -> tuple[Optional[str], Optional[str]]:
    """Run one bank pair through the cascade → (subcategory_id, source)."""
    # ── TIER 1: Saved mappings ──
    saved = saved_lookup.get(observation_key(bank_category, bank_subcategory))
    if saved:
        return saved, SOURCE_SAVED

    # ── TIER 2: Keyword rules ──
    result = match_keyword_rules(bank_category, bank_subcategory, category_tree, rules)
    if result:
        return result, SOURCE_KEYWORD

    # ── TIER 3: Fuzzy name containment ──
    result = match_by_name(bank_category, bank_subcategory, category_tree)
    if result:
        return result, SOURCE_FUZZY

    return None, None


def match_keyword_rules(
    bank_category: str,
    bank_subcategory: str,
    category_tree: list[dict],
    rules: list[KeywordRule],
) -> Optional[str]:
    """
    First rule with a keyword inside the bank text, resolved against the tree.

    A rule naming only a category resolves to that category's first
    subcategory. A rule whose category the account doesn't have is passed
    over so later rules still get a chance.
    """
    bank_text = normalize_text(f"{bank_category} {bank_subcategory}")
    if not bank_text:
        return None

    for rule in rules:
        if not any(normalize_text(kw) in bank_text for kw in rule.keywords):
            continue

        target = normalize_text(rule.category)
        app_category = next(
            (c for c in category_tree if target in normalize_text(c["name"])),
            None,
        )
        if not app_category or not app_category.get("subcategories"):
            continue

        subcategories = app_category["subcategories"]
        if rule.subcategory:
            wanted = normalize_text(rule.subcategory)
            sub = next((s for s in subcategories if wanted in normalize_text(s["name"])), None)
            if sub:
                return sub["id"]
        return subcategories[0]["id"]

    return None


def match_by_name(
    bank_category: str,
    bank_subcategory: str,
    category_tree: list[dict],
) -> Optional[str]:
    """Match bank strings against the account's own category/subcategory names."""
    bank_cat = normalize_text(bank_category)
    bank_sub = normalize_text(bank_subcategory)

    # Subcategory within a category whose name matches
    for category in category_tree:
        if not _names_match(bank_cat, normalize_text(category["name"])):
            continue
        for sub in category.get("subcategories", []):
            if _names_match(bank_sub, normalize_text(sub["name"])):
                return sub["id"]

    # No category-level hit: search every subcategory
    all_subs = [s for c in category_tree for s in c.get("subcategories", [])]
    for needle in (bank_sub, bank_cat):
        for sub in all_subs:
            if _names_match(needle, normalize_text(sub["name"])):
                return sub["id"]

    return None


def _names_match(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a == b or a in b or b in a
