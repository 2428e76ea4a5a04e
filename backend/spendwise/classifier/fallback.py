"""Offline keyword classifier.

Used whenever the LLM path is unavailable or its answer cannot be trusted.
It is a total function: any description and any taxonomy (even an empty
one) yields a structurally valid result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from spendwise.schemas.category import Category, CategoryTaxonomy
from spendwise.schemas.classification import (
    ClassificationResult,
    normalize_description,
)

INCOME_CONFIDENCE = 60
EXPENSE_CONFIDENCE = 70
DEFAULT_CONFIDENCE = 25

DEFAULT_REASON = "LLM classification unavailable, keyword fallback used"

PLACEHOLDER_CATEGORY = Category(id="other", name="其他", direction="expense")


def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # Latin keywords must stand alone, plural allowed: "interesting" is not "interest"
    parts = []
    for kw in keywords:
        escaped = re.escape(kw)
        if kw.isascii():
            escaped = rf"(?<![a-z0-9]){escaped}(?=s?(?![a-z0-9]))"
        parts.append(escaped)
    return re.compile("|".join(parts))


@dataclass(frozen=True)
class KeywordGroup:
    direction: str
    # Taxonomy ids this group may resolve to, most specific first
    category_ids: tuple[str, ...]
    keywords: tuple[str, ...]
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_pattern", _keyword_pattern(self.keywords))

    def find(self, text: str) -> str | None:
        """First keyword of this group found in lowercased ``text``."""
        match = self._pattern.search(text)
        return match.group(0) if match else None


# Checked in order; the first group whose keyword appears and whose
# category exists in the taxonomy wins. Income groups come first.
KEYWORD_GROUPS: tuple[KeywordGroup, ...] = (
    KeywordGroup(
        "income",
        ("salary",),
        ("薪水", "薪資", "月薪", "工資", "salary", "payroll", "wage", "paycheck"),
    ),
    KeywordGroup(
        "income",
        ("bonus",),
        ("獎金", "年終", "分紅", "bonus"),
    ),
    KeywordGroup(
        "income",
        ("investment", "dividend"),
        ("股利", "股息", "配息", "投資收益", "dividend"),
    ),
    KeywordGroup(
        "income",
        ("interest",),
        ("利息", "interest"),
    ),
    KeywordGroup(
        "income",
        ("refund",),
        ("退款", "退費", "refund"),
    ),
    KeywordGroup(
        "expense",
        ("food", "dining"),
        (
            "早餐", "午餐", "晚餐", "宵夜", "餐廳", "便當", "火鍋", "拉麵", "小吃",
            "咖啡", "奶茶", "飲料", "零食", "水果", "外送",
            "麥當勞", "肯德基", "星巴克", "必勝客", "摩斯", "全家", "7-11",
            "restaurant", "breakfast", "lunch", "dinner", "coffee", "meal",
            "snack", "mcdonald", "kfc", "starbucks",
        ),
    ),
    KeywordGroup(
        "expense",
        ("transport", "transportation"),
        (
            "計程車", "公車", "捷運", "高鐵", "火車", "台鐵", "加油", "停車",
            "機票", "悠遊卡", "uber", "taxi", "bus fare", "train", "metro",
            "gasoline", "parking",
        ),
    ),
    KeywordGroup(
        "expense",
        ("shopping",),
        (
            "購物", "網購", "衣服", "鞋", "包包", "超市", "百貨", "盲盒", "家電",
            "家樂福", "宜家", "蘋果", "三星", "小米", "ikea", "apple", "samsung",
            "shop", "mall", "amazon",
        ),
    ),
    KeywordGroup(
        "expense",
        ("entertainment",),
        (
            "電影", "遊戲", "唱歌", "ktv", "演唱會", "展覽", "門票", "串流",
            "netflix", "spotify", "steam", "nintendo", "switch", "playstation",
            "movie", "game", "concert",
        ),
    ),
    KeywordGroup(
        "expense",
        ("health", "healthcare", "medical"),
        (
            "醫院", "診所", "看病", "掛號", "藥", "牙醫", "健檢", "健保",
            "doctor", "hospital", "clinic", "pharmacy", "medicine", "dental",
        ),
    ),
    KeywordGroup(
        "expense",
        ("utility", "utilities", "housing"),
        (
            "水費", "電費", "瓦斯", "網路費", "電話費", "管理費", "房租", "租金",
            "台電", "自來水", "中華電信", "electricity", "water bill",
            "internet", "utility",
        ),
    ),
)


def _resolve_group(
    group: KeywordGroup, taxonomy: CategoryTaxonomy
) -> Category | None:
    for cid in group.category_ids:
        if taxonomy.contains(cid, group.direction):
            return taxonomy[cid]
    return None


def default_category(taxonomy: CategoryTaxonomy) -> Category:
    expense = taxonomy.expense
    if expense:
        return expense[0]
    return PLACEHOLDER_CATEGORY


def default_result(
    taxonomy: CategoryTaxonomy,
    *,
    description: str = "",
    confidence: int = DEFAULT_CONFIDENCE,
    explanation: str = "無法辨識類別，使用預設分類",
    error_message: str | None = None,
) -> ClassificationResult:
    cat = default_category(taxonomy)
    return ClassificationResult(
        type=cat.direction,
        category_id=cat.id,
        category_ids=(cat.id,),
        confidence=confidence,
        description=description,
        explanation=explanation,
        error_message=error_message,
    )


def classify_with_keywords(
    description: str | None,
    taxonomy: CategoryTaxonomy,
    reason: str | None = None,
) -> ClassificationResult:
    text = normalize_description(description if isinstance(description, str) else "")
    lowered = text.lower()
    error_message = reason or DEFAULT_REASON

    if lowered:
        for group in KEYWORD_GROUPS:
            hit = group.find(lowered)
            if hit is None:
                continue
            cat = _resolve_group(group, taxonomy)
            if cat is None:
                continue
            tier = INCOME_CONFIDENCE if group.direction == "income" else EXPENSE_CONFIDENCE
            return ClassificationResult(
                type=cat.direction,
                category_id=cat.id,
                category_ids=(cat.id,),
                confidence=tier,
                description=text,
                explanation=f"關鍵字比對：{hit}",
                error_message=error_message,
            )

    return default_result(taxonomy, description=text, error_message=error_message)
