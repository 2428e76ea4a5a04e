from __future__ import annotations

import pytest

from spendwise.classifier.fallback import (
    DEFAULT_CONFIDENCE,
    DEFAULT_REASON,
    EXPENSE_CONFIDENCE,
    INCOME_CONFIDENCE,
    classify_with_keywords,
    default_category,
)
from spendwise.default_categories import default_taxonomy
from spendwise.schemas.category import Category, CategoryTaxonomy


def test_coffee_is_food(taxonomy):
    result = classify_with_keywords("星巴克咖啡85元", taxonomy)
    assert result.type == "expense"
    assert result.category_id == "food"
    assert result.confidence >= 60
    assert result.confidence == EXPENSE_CONFIDENCE
    assert result.explanation.startswith("關鍵字比對")
    assert result.error_message == DEFAULT_REASON


def test_salary_is_income(taxonomy):
    result = classify_with_keywords("三月薪水入帳", taxonomy)
    assert result.type == "income"
    assert result.category_ids == ("salary",)
    assert result.confidence == INCOME_CONFIDENCE


def test_english_keywords_are_case_insensitive(taxonomy):
    result = classify_with_keywords("UBER ride home", taxonomy)
    assert result.category_id == "transport"


def test_reason_is_carried_as_error_message(taxonomy):
    result = classify_with_keywords("捷運", taxonomy, reason="LLM request failed: HTTP 503")
    assert result.error_message == "LLM request failed: HTTP 503"


def test_group_without_matching_category_is_skipped():
    taxonomy = CategoryTaxonomy(
        [
            Category(id="misc", name="雜項", direction="expense"),
            Category(id="transport", name="交通", direction="expense"),
        ]
    )
    # "咖啡" would be food, which this taxonomy lacks
    result = classify_with_keywords("咖啡和計程車", taxonomy)
    assert result.category_id == "transport"


def test_alternate_ids_are_resolved():
    taxonomy = CategoryTaxonomy([Category(id="dining", name="餐飲", direction="expense")])
    assert classify_with_keywords("午餐便當", taxonomy).category_id == "dining"


@pytest.mark.parametrize("description", ["", "   ", "🙂🙂🙂", "zzzz qqq", None])
def test_unmatched_input_gets_default_result(taxonomy, description):
    result = classify_with_keywords(description, taxonomy)
    assert result.type == "expense"
    assert result.category_id == "food"
    assert result.confidence == DEFAULT_CONFIDENCE
    assert len(result.category_ids) == 1


def test_empty_taxonomy_still_yields_a_result():
    result = classify_with_keywords("星巴克咖啡", CategoryTaxonomy())
    assert result.type == "expense"
    assert result.category_id == "other"
    assert result.confidence == DEFAULT_CONFIDENCE


def test_default_category_is_first_expense(taxonomy):
    assert default_category(taxonomy).id == "food"
    assert default_category(CategoryTaxonomy()).id == "other"


def test_long_description_is_truncated(taxonomy):
    result = classify_with_keywords("咖啡 " * 300, taxonomy)
    assert len(result.description) <= 200


def test_default_taxonomy_covers_keyword_groups():
    taxonomy = default_taxonomy()
    assert len(taxonomy.expense) == 19
    assert len(taxonomy.income) == 6
    assert classify_with_keywords("電費帳單", taxonomy).category_id == "utility"
    assert classify_with_keywords("看牙醫", taxonomy).category_id == "health"
    assert classify_with_keywords("年終獎金", taxonomy).category_id == "bonus"


@pytest.mark.parametrize("description", ["interesting book", "pineapple cake", "training shoes"])
def test_english_keywords_need_word_boundaries(description):
    result = classify_with_keywords(description, default_taxonomy())
    assert result.type == "expense"
    assert result.category_id == "food"
    assert result.confidence == DEFAULT_CONFIDENCE


@pytest.mark.parametrize(
    ("description", "category_id"),
    [
        ("uber ride", "transport"),
        ("two trains home", "transport"),
        ("mcdonalds lunch", "food"),
        ("星巴克coffee", "food"),
        ("7-11買水", "food"),
        ("bank interest", "interest"),
    ],
)
def test_english_keywords_still_match_whole_words(description, category_id):
    result = classify_with_keywords(description, default_taxonomy())
    assert result.category_id == category_id
    assert result.confidence > DEFAULT_CONFIDENCE
