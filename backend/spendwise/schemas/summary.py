from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import Field

from spendwise.schemas.common import CamelModel, Direction

Trend = Literal["up", "down", "stable"]
SpendingTrend = Literal["increasing", "decreasing", "stable"]
RiskLevel = Literal["low", "medium", "high"]


class TransactionRecord(CamelModel):
    id: str | None = None
    amount: float = 0.0
    type: Direction
    category_id: str | None = None
    category_ids: list[str] = []
    category_name: str | None = None
    date: dt.date
    description: str | None = None

    @property
    def primary_category_id(self) -> str | None:
        if self.category_ids:
            return self.category_ids[0]
        return self.category_id


class QuickInsight(CamelModel):
    monthly_balance: float
    top_spending_category: str
    spending_trend: SpendingTrend = "stable"
    savings_rate: float
    urgent_alerts: list[str] = []


class CategoryBreakdown(CamelModel):
    name: str
    amount: float
    percentage: float
    trend: Trend = "stable"
    recommendation: str = ""


class TopExpense(CamelModel):
    description: str
    amount: float
    category: str
    date: str
    insight: str = ""


class MostExpensiveItem(CamelModel):
    item: str
    amount: float
    reason: str = ""


class LuxurySpending(CamelModel):
    total: float
    items: list[str] = []
    advice: str = ""


class ExpensiveItems(CamelModel):
    most_expensive: MostExpensiveItem
    luxury_spending: LuxurySpending


class WeekdayVsWeekend(CamelModel):
    weekday: float
    weekend: float
    insight: str = ""


class SpendingPatterns(CamelModel):
    categories: list[CategoryBreakdown] = []
    top_expenses: list[TopExpense] | None = None
    expensive_items: ExpensiveItems | None = None
    seasonality: str = ""
    weekday_vs_weekend: WeekdayVsWeekend


class BudgetOptimization(CamelModel):
    essentials: float
    discretionary: float
    savings: float
    explanation: str = ""
    quick_wins: list[str] = []


class PersonalizedAdvice(CamelModel):
    immediate: list[str] = []
    short_term: list[str] = []
    long_term: list[str] = []


class RiskAssessment(CamelModel):
    level: RiskLevel
    factors: list[str] = []
    mitigation: list[str] = []


class DetailedAnalysis(CamelModel):
    financial_health_score: int = Field(ge=0, le=100)
    spending_patterns: SpendingPatterns
    budget_optimization: BudgetOptimization
    personalized_advice: PersonalizedAdvice
    risk_assessment: RiskAssessment


class SummaryReport(CamelModel):
    quick_insight: QuickInsight
    detailed_analysis: DetailedAnalysis
    used_fallback: bool = False
    error_message: str | None = None


class SmartAnswer(CamelModel):
    answer: str
    relevant_data: dict[str, Any] | None = None
    follow_up_questions: list[str] = []
    action_items: list[str] = []
