from __future__ import annotations

from spendwise.schemas.category import Category, CategoryTaxonomy
from spendwise.schemas.classification import MAX_CATEGORY_IDS, ClassificationRequest

SYSTEM_PROMPT = "你是一個協助記帳分類的財務助理，只回傳 JSON。"

ANSWER_SHAPE = """{
  "type": "income 或 expense",
  "categoryIds": ["主要類別ID", "次要類別ID(可省略)", "第三類別ID(可省略)"],
  "categoryId": "與 categoryIds 第一個相同",
  "confidence": 0-100 的數字,
  "confidences": [與 categoryIds 一一對應的 0-100 數字],
  "description": "消費行為詞 + 主體關鍵字 + 金額",
  "explanation": "選擇類別的理由"
}"""

RULES = (
    "type 只能是 income 或 expense，並依描述判斷這是收入還是支出",
    f"categoryIds 最多 {MAX_CATEGORY_IDS} 個，只能使用與 type 相同方向清單中的 ID，主要類別放第一個",
    "description 需簡短，同時包含消費行為詞（如午餐、交通、飲料、娛樂、薪資）與主體關鍵字（品牌、地點、商品名）及金額",
    "自動修正常見品牌錯字（如 三猩→三星、星巴客→星巴克），不要保留動詞、形容詞或無關詞語",
    "金額必須與描述一致；描述有多個重點時只取最主要的",
    "嚴格只回傳 JSON，不要加上任何說明文字或 markdown",
)

EXAMPLES = (
    (
        "今天午餐吃麥當勞120元",
        '{"type": "expense", "categoryIds": ["food"], "categoryId": "food", '
        '"confidence": 95, "confidences": [95], "description": "午餐 麥當勞 120元", '
        '"explanation": "速食午餐屬於飲食"}',
    ),
    (
        "搭計程車去機場450",
        '{"type": "expense", "categoryIds": ["transport", "travel"], '
        '"categoryId": "transport", "confidence": 88, "confidences": [88, 40], '
        '"description": "交通 計程車 450元", "explanation": "計程車車資屬於交通"}',
    ),
    (
        "公司發年終獎金60000",
        '{"type": "income", "categoryIds": ["bonus"], "categoryId": "bonus", '
        '"confidence": 96, "confidences": [96], "description": "獎金 年終 60000元", '
        '"explanation": "年終獎金屬於獎金收入"}',
    ),
)


def _render_categories(categories: list[Category]) -> str:
    if not categories:
        return "（無）"
    return "\n".join(f"{c.id}: {c.name}" for c in categories)


def build_classification_prompt(
    request: ClassificationRequest, taxonomy: CategoryTaxonomy
) -> str:
    """Render the classification instruction for one description.

    Deterministic: the same request and taxonomy always give the same text.
    The worked examples only steer the model toward the answer shape;
    parsing does not depend on them.
    """
    if not taxonomy:
        raise ValueError("Cannot build a classification prompt without categories")

    sections = [
        "你是一個財務記帳AI，請判斷下列描述是收入還是支出，"
        "並嚴格從可用類別中選出最適合的類別。",
        f'描述: "{request.description}"',
        "收入類別 (type=income，僅限以下 ID):\n"
        + _render_categories(taxonomy.income),
        "支出類別 (type=expense，僅限以下 ID):\n"
        + _render_categories(taxonomy.expense),
    ]

    hints = []
    if request.income_hints:
        hints.append("收入: " + ", ".join(request.income_hints))
    if request.expense_hints:
        hints.append("支出: " + ", ".join(request.expense_hints))
    if hints:
        sections.append("使用者提示的候選類別（僅供參考）:\n" + "\n".join(hints))

    sections.append("請只回傳下列 JSON 格式:\n" + ANSWER_SHAPE)
    sections.append(
        "規則:\n" + "\n".join(f"{i}. {rule}" for i, rule in enumerate(RULES, 1))
    )
    sections.append(
        "範例:\n"
        + "\n".join(f'描述: "{text}"\n→ {answer}' for text, answer in EXAMPLES)
    )
    return "\n\n".join(sections) + "\n"
