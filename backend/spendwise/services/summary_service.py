"""Spending summaries: quick local insight plus an LLM-written analysis.

The quick insight is always computed locally. The detailed analysis comes
from the configured LLM provider when one is available and its answer
validates; otherwise it is computed locally from the same transactions.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from typing import Any

from spendwise.classifier.errors import ClassifierError, ValidationError
from spendwise.classifier.extractor import parse_provider_response
from spendwise.classifier.validator import coerce_number, is_number, round_half_up
from spendwise.config import Settings
from spendwise.plugins import registry
from spendwise.plugins.base import LLMProviderPlugin
from spendwise.schemas.category import CategoryTaxonomy
from spendwise.schemas.summary import (
    BudgetOptimization,
    CategoryBreakdown,
    DetailedAnalysis,
    ExpensiveItems,
    LuxurySpending,
    MostExpensiveItem,
    PersonalizedAdvice,
    QuickInsight,
    RiskAssessment,
    SmartAnswer,
    SpendingPatterns,
    SummaryReport,
    TopExpense,
    TransactionRecord,
    WeekdayVsWeekend,
)
from spendwise.services.retry import RetryConfig, retry_with_backoff

logger = logging.getLogger(__name__)

ESSENTIALS_SHARE = 0.60
DISCRETIONARY_SHARE = 0.25
SAVINGS_SHARE = 0.15
LUXURY_SHARE = 0.15
HEAVY_CATEGORY_SHARE = 0.30
LOW_SAVINGS_RATE = 10.0
TREND_THRESHOLD = 0.10

UNKNOWN_CATEGORY = "其他"

ANALYSIS_SYSTEM_PROMPT = """你是專業財務顧問，請只回傳下列結構的 JSON，不要有其他文字：
{
  "financialHealthScore": 1-100 的整數,
  "spendingPatterns": {
    "categories": [{"name": "類別名", "amount": 金額, "percentage": 百分比, "trend": "up/down/stable", "recommendation": "建議"}],
    "topExpenses": [{"description": "商品描述", "amount": 金額, "category": "類別", "date": "日期", "insight": "消費洞察"}],
    "expensiveItems": {
      "mostExpensive": {"item": "最貴商品名稱", "amount": 金額, "reason": "購買原因分析"},
      "luxurySpending": {"total": 總奢侈消費, "items": ["奢侈品列表"], "advice": "建議"}
    },
    "seasonality": "季節性分析",
    "weekdayVsWeekend": {"weekday": 平日支出, "weekend": 假日支出, "insight": "洞察"}
  },
  "budgetOptimization": {
    "essentials": 必要支出建議金額,
    "discretionary": 可自由支配金額,
    "savings": 建議儲蓄金額,
    "explanation": "預算分配說明",
    "quickWins": ["快速改善建議"]
  },
  "personalizedAdvice": {"immediate": ["立即建議"], "shortTerm": ["短期建議"], "longTerm": ["長期建議"]},
  "riskAssessment": {"level": "low/medium/high", "factors": ["風險因子"], "mitigation": ["緩解策略"]}
}
budgetOptimization 的數值必須是依實際收入計算的具體金額，不可為 0。"""

QUESTION_SYSTEM_PROMPT = (
    "請提供簡潔明確的回答，並建議後續問題和行動項目。"
    '只以 JSON 回應：{"answer": "回答", "followUpQuestions": ["後續問題"], '
    '"actionItems": ["行動項目"]}'
)


def _expenses(transactions: list[TransactionRecord]) -> list[TransactionRecord]:
    return [t for t in transactions if t.type == "expense"]


def _totals(transactions: list[TransactionRecord]) -> tuple[float, float]:
    income = sum(t.amount for t in transactions if t.type == "income")
    expense = sum(t.amount for t in transactions if t.type == "expense")
    return income, expense


def category_label(
    txn: TransactionRecord, taxonomy: CategoryTaxonomy | None = None
) -> str:
    if txn.category_name:
        return txn.category_name
    cid = txn.primary_category_id
    if taxonomy is not None and cid in taxonomy:
        return taxonomy[cid].name
    return UNKNOWN_CATEGORY


def expense_by_category(
    transactions: list[TransactionRecord], taxonomy: CategoryTaxonomy | None = None
) -> list[tuple[str, float, int]]:
    """(label, total, count) per expense category, largest total first."""
    totals: dict[str, float] = defaultdict(float)
    counts: dict[str, int] = defaultdict(int)
    for txn in _expenses(transactions):
        label = category_label(txn, taxonomy)
        totals[label] += txn.amount
        counts[label] += 1
    return sorted(
        ((label, total, counts[label]) for label, total in totals.items()),
        key=lambda row: row[1],
        reverse=True,
    )


def spending_trend(transactions: list[TransactionRecord]) -> str:
    """Compare spending in the earlier and later half of the covered dates."""
    expenses = _expenses(transactions)
    if len(expenses) < 2:
        return "stable"
    first_day = min(t.date for t in expenses)
    last_day = max(t.date for t in expenses)
    if first_day == last_day:
        return "stable"
    midpoint = first_day + (last_day - first_day) / 2
    earlier = sum(t.amount for t in expenses if t.date <= midpoint)
    later = sum(t.amount for t in expenses if t.date > midpoint)
    if earlier == 0:
        return "increasing" if later > 0 else "stable"
    change = (later - earlier) / earlier
    if change > TREND_THRESHOLD:
        return "increasing"
    if change < -TREND_THRESHOLD:
        return "decreasing"
    return "stable"


def generate_quick_insight(
    transactions: list[TransactionRecord], taxonomy: CategoryTaxonomy | None = None
) -> QuickInsight:
    if not transactions:
        return QuickInsight(
            monthly_balance=0,
            top_spending_category="暫無資料",
            spending_trend="stable",
            savings_rate=0,
            urgent_alerts=["還沒有交易記錄喔！開始記帳來獲得個人化的理財建議吧"],
        )

    income, expense = _totals(transactions)
    balance = income - expense
    by_category = expense_by_category(transactions, taxonomy)
    savings_rate = balance / income * 100 if income > 0 else 0.0

    alerts = []
    if balance < 0:
        alerts.append("本月支出超過收入，需要注意一下！")
    if income > 0 and savings_rate < LOW_SAVINGS_RATE:
        alerts.append("儲蓄率偏低，建議提升到 20% 以上")

    return QuickInsight(
        monthly_balance=balance,
        top_spending_category=by_category[0][0] if by_category else "無支出記錄",
        spending_trend=spending_trend(transactions),
        savings_rate=savings_rate,
        urgent_alerts=alerts,
    )


def _money(amount: float) -> str:
    return f"{amount:,.0f}元"


def build_summary_context(
    transactions: list[TransactionRecord],
    start_date: dt.date,
    end_date: dt.date,
    question: str | None = None,
    taxonomy: CategoryTaxonomy | None = None,
) -> str:
    income, expense = _totals(transactions)
    top_categories = "\n".join(
        f"{label}: {_money(total)}"
        for label, total, _count in expense_by_category(transactions, taxonomy)[:5]
    )
    largest = sorted(_expenses(transactions), key=lambda t: t.amount, reverse=True)[:10]
    largest_lines = "\n".join(
        f"• {t.description or '消費'} - {_money(t.amount)} "
        f"({category_label(t, taxonomy)}) [{t.date.isoformat()}]"
        for t in largest
    )

    return f"""你是專業的個人財務顧問，請基於以下資料提供精準的財務分析與建議。

時間範圍: {start_date.isoformat()} 至 {end_date.isoformat()}
收入總額: {_money(income)}
支出總額: {_money(expense)}
收支餘額: {_money(income - expense)}

主要支出項目:
{top_categories or "（無）"}

具體消費明細（前10筆最高支出）:
{largest_lines or "（無）"}

參考預算建議基準:
- 生活必需品建議額度: {_money(round(income * ESSENTIALS_SHARE))}
- 娛樂享受建議額度: {_money(round(income * DISCRETIONARY_SHARE))}
- 儲蓄建議額度: {_money(round(income * SAVINGS_SHARE))}

使用者問題: {question or "請提供整體財務分析"}

請分析使用者的具體消費行為：找出最貴的購買項目並判斷是否合理、識別奢侈消費模式、
依實際收入提供預算優化建議（使用上述參考額度，不要回傳 0），並評估每筆大額消費的必要性。"""


def _risk_level(balance: float, savings_rate: float) -> str:
    if balance < 0:
        return "high"
    if savings_rate < LOW_SAVINGS_RATE:
        return "medium"
    return "low"


def generate_local_analysis(
    transactions: list[TransactionRecord], taxonomy: CategoryTaxonomy | None = None
) -> DetailedAnalysis:
    """Rule-based analysis used when no LLM answer is available."""
    income, expense = _totals(transactions)
    balance = income - expense
    savings_rate = balance / income * 100 if income > 0 else 0.0
    expenses = sorted(_expenses(transactions), key=lambda t: t.amount, reverse=True)

    categories = [
        CategoryBreakdown(
            name=label,
            amount=total,
            percentage=total / expense * 100 if expense > 0 else 0.0,
            trend="stable",
            recommendation=(
                f"{label}支出較多，可考慮減少"
                if total > expense * HEAVY_CATEGORY_SHARE
                else f"{label}支出合理"
            ),
        )
        for label, total, _count in expense_by_category(transactions, taxonomy)
    ]

    top_expenses = [
        TopExpense(
            description=t.description or "消費記錄",
            amount=t.amount,
            category=category_label(t, taxonomy),
            date=t.date.isoformat(),
            insight=(
                "這筆消費佔總支出比例較高"
                if t.amount > expense * 0.1
                else "這筆消費金額適中"
            ),
        )
        for t in expenses[:5]
    ]

    luxury = [t for t in expenses if t.amount > expense * LUXURY_SHARE]
    most = expenses[0] if expenses else None
    weekend = sum(t.amount for t in expenses if t.date.weekday() >= 5)

    risk = _risk_level(balance, savings_rate)
    if risk == "high":
        factors = ["支出超過收入", "缺乏預算控制"]
        mitigation = ["立即減少非必要支出", "尋找增收機會"]
    elif risk == "medium":
        factors = ["儲蓄率偏低", "預算管理需要改善"]
        mitigation = ["提高儲蓄目標", "建立投資計劃"]
    else:
        factors = ["財務狀況良好"]
        mitigation = ["提高儲蓄目標", "建立投資計劃"]

    return DetailedAnalysis(
        financial_health_score=max(0, min(100, round_half_up(50 + savings_rate * 2))),
        spending_patterns=SpendingPatterns(
            categories=categories,
            top_expenses=top_expenses,
            expensive_items=ExpensiveItems(
                most_expensive=MostExpensiveItem(
                    item=(most.description or "消費記錄") if most else "尚未有消費記錄",
                    amount=most.amount if most else 0,
                    reason="這是您最大筆的消費支出" if most else "開始記帳後就能追蹤大額消費",
                ),
                luxury_spending=LuxurySpending(
                    total=sum(t.amount for t in luxury),
                    items=[t.description or "大額消費" for t in luxury[:3]],
                    advice="建議檢視大額消費的必要性",
                ),
            ),
            seasonality="需要更長時間的資料來分析季節性模式",
            weekday_vs_weekend=WeekdayVsWeekend(
                weekday=expense - weekend,
                weekend=weekend,
                insight=(
                    "假日支出偏高，留意休閒娛樂花費"
                    if weekend > expense - weekend
                    else "平日支出較多，假日支出集中在娛樂和餐飲"
                ),
            ),
        ),
        budget_optimization=BudgetOptimization(
            essentials=round(income * ESSENTIALS_SHARE),
            discretionary=round(income * DISCRETIONARY_SHARE),
            savings=round(income * SAVINGS_SHARE),
            explanation=(
                "您的收支平衡良好，建議維持現狀並略微增加儲蓄"
                if balance > 0
                else "支出超過收入，需要調整預算分配"
            ),
            quick_wins=(
                ["繼續保持記帳習慣", "考慮增加儲蓄比例"]
                if balance > 0
                else ["檢視不必要支出", "尋找增加收入的機會"]
            ),
        ),
        personalized_advice=PersonalizedAdvice(
            immediate=(
                [f"控制{categories[0].name}支出", "每週檢視預算執行情況"]
                if categories
                else ["開始分類記錄支出", "設定每月預算目標"]
            ),
            short_term=["建立緊急備用金", "優化支出結構"],
            long_term=["規劃投資組合", "設定長期理財目標"],
        ),
        risk_assessment=RiskAssessment(level=risk, factors=factors, mitigation=mitigation),
    )


def generate_fallback_analysis(has_data: bool = False) -> DetailedAnalysis:
    """Static guidance shown when there is nothing to analyse."""
    if has_data:
        return DetailedAnalysis(
            financial_health_score=75,
            spending_patterns=SpendingPatterns(
                categories=[],
                top_expenses=[],
                seasonality="資料不足",
                weekday_vs_weekend=WeekdayVsWeekend(
                    weekday=0, weekend=0, insight="需要更多資料"
                ),
            ),
            budget_optimization=BudgetOptimization(
                essentials=15000,
                discretionary=8000,
                savings=5000,
                explanation="建議檢視您的收支記錄，這裡是基於平均收入的預算建議",
                quick_wins=["記錄每日支出", "設定預算目標"],
            ),
            personalized_advice=PersonalizedAdvice(
                immediate=["持續記錄支出", "分析現有數據找出改善空間"],
                short_term=["建立預算計劃", "優化大額支出"],
                long_term=["培養儲蓄習慣", "檢討投資規劃"],
            ),
            risk_assessment=RiskAssessment(
                level="medium",
                factors=["需要更詳細的支出分析"],
                mitigation=["增加記錄頻率", "細化支出類別"],
            ),
        )

    return DetailedAnalysis(
        financial_health_score=50,
        spending_patterns=SpendingPatterns(
            categories=[],
            expensive_items=ExpensiveItems(
                most_expensive=MostExpensiveItem(
                    item="尚未有消費記錄",
                    amount=0,
                    reason="開始記帳後就能追蹤你的大額消費囉！",
                ),
                luxury_spending=LuxurySpending(
                    total=0, items=[], advice="記錄消費習慣是理財的第一步"
                ),
            ),
            seasonality="還沒有消費記錄",
            weekday_vs_weekend=WeekdayVsWeekend(
                weekday=0, weekend=0, insight="開始記帳後就能看到你的消費模式囉！"
            ),
        ),
        budget_optimization=BudgetOptimization(
            essentials=25000,
            discretionary=10000,
            savings=8000,
            explanation="建議預算分配：生活必需 58%，娛樂 23%，儲蓄 19%（以月收入43,000元為例）",
            quick_wins=["開始記錄日常支出", "設定月度預算目標", "建立每日記帳習慣"],
        ),
        personalized_advice=PersonalizedAdvice(
            immediate=["開始記錄每一筆消費", "下載記帳APP或準備記帳本"],
            short_term=["設定各類別的月度預算", "觀察自己的消費習慣"],
            long_term=["建立緊急備用金", "設定理財目標", "培養長期投資概念"],
        ),
        risk_assessment=RiskAssessment(
            level="low",
            factors=["理財意識剛起步"],
            mitigation=["養成記帳習慣", "學習基礎理財知識"],
        ),
    )


def _as_amount(value: Any) -> Any:
    """Numeric strings become numbers, unparseable strings become 0."""
    if isinstance(value, str):
        number = coerce_number(value)
        return number if is_number(number) else 0
    return value


def coerce_analysis_numbers(parsed: dict[str, Any]) -> dict[str, Any]:
    """Fix the numeric fields models most often return as strings."""
    score = _as_amount(parsed.get("financialHealthScore"))
    if is_number(score):
        parsed["financialHealthScore"] = max(0, min(100, round_half_up(score)))

    budget = parsed.get("budgetOptimization")
    if isinstance(budget, dict):
        for field in ("essentials", "discretionary", "savings"):
            if field in budget:
                budget[field] = _as_amount(budget[field])

    patterns = parsed.get("spendingPatterns")
    if isinstance(patterns, dict):
        items = patterns.get("expensiveItems")
        if isinstance(items, dict):
            most = items.get("mostExpensive")
            if isinstance(most, dict) and "amount" in most:
                most["amount"] = _as_amount(most["amount"])
            luxury = items.get("luxurySpending")
            if isinstance(luxury, dict) and "total" in luxury:
                luxury["total"] = _as_amount(luxury["total"])
        top_expenses = patterns.get("topExpenses")
        for expense in top_expenses if isinstance(top_expenses, list) else []:
            if isinstance(expense, dict) and "amount" in expense:
                expense["amount"] = _as_amount(expense["amount"])
    return parsed


class SummaryService:
    def __init__(
        self,
        provider: LLMProviderPlugin | None,
        settings: Settings,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.retry_config = retry_config or RetryConfig.from_settings(settings)

    @property
    def llm_available(self) -> bool:
        return self.provider is not None and self.provider.is_configured

    async def _ask_llm(self, prompt: str, system_prompt: str) -> Any:
        envelope = await retry_with_backoff(
            lambda: self.provider.generate_within(
                self.settings.SUMMARY_TIMEOUT_SECONDS,
                prompt,
                system_prompt=system_prompt,
                temperature=self.settings.LLM_TEMPERATURE,
                max_output_tokens=self.settings.SUMMARY_MAX_OUTPUT_TOKENS,
            ),
            self.retry_config,
        )
        return parse_provider_response(envelope)

    async def analyze(
        self,
        transactions: list[TransactionRecord],
        start_date: dt.date,
        end_date: dt.date,
        question: str | None = None,
        taxonomy: CategoryTaxonomy | None = None,
    ) -> SummaryReport:
        insight = generate_quick_insight(transactions, taxonomy)

        if not transactions:
            return SummaryReport(
                quick_insight=insight,
                detailed_analysis=generate_fallback_analysis(has_data=False),
            )

        if not self.llm_available:
            logger.info("No LLM provider configured, using local analysis")
            return SummaryReport(
                quick_insight=insight,
                detailed_analysis=generate_local_analysis(transactions, taxonomy),
                used_fallback=True,
                error_message="No LLM provider credential configured",
            )

        context = build_summary_context(
            transactions, start_date, end_date, question, taxonomy
        )
        try:
            raw = await self._ask_llm(context, ANALYSIS_SYSTEM_PROMPT)
            if not isinstance(raw, dict):
                raise ValidationError(["analysis must be a JSON object"], str(raw))
            analysis = DetailedAnalysis.model_validate(coerce_analysis_numbers(raw))
        except (ClassifierError, TypeError, ValueError) as exc:
            # pydantic.ValidationError is a ValueError
            logger.warning("LLM analysis failed, switching to local analysis: %s", exc)
            return SummaryReport(
                quick_insight=insight,
                detailed_analysis=generate_local_analysis(transactions, taxonomy),
                used_fallback=True,
                error_message=str(exc),
            )

        return SummaryReport(quick_insight=insight, detailed_analysis=analysis)

    async def ask(
        self,
        question: str,
        transactions: list[TransactionRecord],
        start_date: dt.date,
        end_date: dt.date,
        taxonomy: CategoryTaxonomy | None = None,
    ) -> SmartAnswer:
        if not self.llm_available:
            return _unanswered()

        context = build_summary_context(
            transactions, start_date, end_date, question, taxonomy
        )
        try:
            raw = await self._ask_llm(context, QUESTION_SYSTEM_PROMPT)
        except ClassifierError as exc:
            logger.warning("Smart question failed: %s", exc)
            return _unanswered()

        if not isinstance(raw, dict):
            return _unanswered()
        return SmartAnswer(
            answer=str(raw.get("answer") or "無法回答此問題"),
            follow_up_questions=_strings(raw.get("followUpQuestions")),
            action_items=_strings(raw.get("actionItems")),
        )


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def _unanswered() -> SmartAnswer:
    return SmartAnswer(
        answer="抱歉，目前無法回答此問題",
        follow_up_questions=["您想了解什麼樣的財務資訊？"],
        action_items=["檢查網路連線", "稍後再試"],
    )


def build_summary_service(
    settings: Settings, provider_name: str | None = None
) -> SummaryService:
    if not registry.get_all():
        registry.discover()
    provider = registry.create(provider_name or settings.DEFAULT_AI_PROVIDER, settings)
    return SummaryService(provider, settings)
