from __future__ import annotations

import datetime as dt

import pytest

from spendwise.classifier.errors import TransportError
from spendwise.schemas.summary import TransactionRecord
from spendwise.services.summary_service import (
    SummaryService,
    build_summary_context,
    build_summary_service,
    coerce_analysis_numbers,
    generate_fallback_analysis,
    generate_local_analysis,
    generate_quick_insight,
    spending_trend,
)

from conftest import FakeProvider

START = dt.date(2025, 3, 1)
END = dt.date(2025, 3, 31)


def _txn(amount, type="expense", category="food", day=3, description=None, name=None):
    return TransactionRecord(
        amount=amount,
        type=type,
        category_id=category,
        category_name=name,
        date=dt.date(2025, 3, day),
        description=description,
    )


@pytest.fixture()
def transactions():
    return [
        _txn(50000, type="income", category="salary", day=5, description="三月薪水"),
        _txn(120, day=3, description="午餐 麥當勞"),
        _txn(15000, category="shopping", day=8, description="手機"),  # Saturday
        _txn(800, category="transport", day=12, description="高鐵"),
        _txn(2400, category="entertainment", day=22, description="演唱會"),  # Saturday
    ]


def _llm_analysis():
    return {
        "financialHealthScore": "150",
        "spendingPatterns": {
            "categories": [{"name": "購物", "amount": 15000, "percentage": 82.8}],
            "topExpenses": [
                {"description": "手機", "amount": "15000", "category": "購物", "date": "2025-03-08"}
            ],
            "expensiveItems": {
                "mostExpensive": {"item": "手機", "amount": "15,000", "reason": "換新機"},
                "luxurySpending": {"total": "15000", "items": ["手機"], "advice": "三思"},
            },
            "seasonality": "無明顯季節性",
            "weekdayVsWeekend": {"weekday": 920, "weekend": 17400, "insight": "假日花比較多"},
        },
        "budgetOptimization": {
            "essentials": "30000",
            "discretionary": 12500,
            "savings": "7500",
            "explanation": "60/25/15",
            "quickWins": ["減少衝動購物"],
        },
        "personalizedAdvice": {"immediate": ["記帳"], "shortTerm": [], "longTerm": []},
        "riskAssessment": {"level": "low", "factors": [], "mitigation": []},
    }


def test_quick_insight_with_no_transactions():
    insight = generate_quick_insight([])
    assert insight.monthly_balance == 0
    assert insight.top_spending_category == "暫無資料"
    assert insight.urgent_alerts


def test_quick_insight_totals(transactions, taxonomy):
    insight = generate_quick_insight(transactions, taxonomy)
    assert insight.monthly_balance == 50000 - 18320
    assert insight.top_spending_category == "購物"
    assert insight.savings_rate == pytest.approx(63.36)
    assert insight.urgent_alerts == []


def test_quick_insight_alerts_on_overspending():
    insight = generate_quick_insight(
        [_txn(1000, type="income", category="salary"), _txn(3000, name="旅遊")]
    )
    assert insight.monthly_balance == -2000
    assert insight.top_spending_category == "旅遊"
    assert len(insight.urgent_alerts) == 2


def test_unknown_category_label():
    insight = generate_quick_insight([_txn(100, category="mystery")])
    assert insight.top_spending_category == "其他"


def test_spending_trend():
    assert spending_trend([_txn(100, day=1), _txn(500, day=30)]) == "increasing"
    assert spending_trend([_txn(500, day=1), _txn(100, day=30)]) == "decreasing"
    assert spending_trend([_txn(100, day=1), _txn(105, day=30)]) == "stable"
    assert spending_trend([_txn(100)]) == "stable"


def test_summary_context(transactions, taxonomy):
    context = build_summary_context(transactions, START, END, "我該省哪裡？", taxonomy)
    assert "2025-03-01 至 2025-03-31" in context
    assert "收入總額: 50,000元" in context
    assert "購物: 15,000元" in context
    assert "• 手機 - 15,000元 (購物) [2025-03-08]" in context
    assert "生活必需品建議額度: 30,000元" in context
    assert "我該省哪裡？" in context


def test_local_analysis(transactions, taxonomy):
    analysis = generate_local_analysis(transactions, taxonomy)

    assert analysis.financial_health_score == 100
    assert analysis.risk_assessment.level == "low"
    assert analysis.spending_patterns.categories[0].name == "購物"
    assert analysis.spending_patterns.top_expenses[0].description == "手機"
    assert analysis.spending_patterns.expensive_items.most_expensive.amount == 15000
    assert analysis.spending_patterns.expensive_items.luxury_spending.items == ["手機"]
    assert analysis.spending_patterns.weekday_vs_weekend.weekend == 17400
    assert analysis.spending_patterns.weekday_vs_weekend.weekday == 920
    assert analysis.budget_optimization.essentials == 30000
    assert analysis.budget_optimization.discretionary == 12500
    assert analysis.budget_optimization.savings == 7500


def test_local_analysis_flags_overspending():
    analysis = generate_local_analysis(
        [_txn(1000, type="income", category="salary"), _txn(3000)]
    )
    assert analysis.risk_assessment.level == "high"
    assert analysis.financial_health_score == 0


def test_fallback_analysis_variants():
    assert generate_fallback_analysis(False).financial_health_score == 50
    assert generate_fallback_analysis(True).risk_assessment.level == "medium"


def test_coerce_analysis_numbers():
    fixed = coerce_analysis_numbers(_llm_analysis())
    assert fixed["financialHealthScore"] == 100
    assert fixed["budgetOptimization"]["essentials"] == 30000
    items = fixed["spendingPatterns"]["expensiveItems"]
    # "15,000" does not parse and becomes 0
    assert items["mostExpensive"]["amount"] == 0
    assert items["luxurySpending"]["total"] == 15000
    assert fixed["spendingPatterns"]["topExpenses"][0]["amount"] == 15000


async def test_analyze_with_llm(settings, transactions, taxonomy, fake_provider, envelope):
    fake_provider.generate.return_value = envelope(_llm_analysis())
    service = SummaryService(fake_provider, settings)

    report = await service.analyze(transactions, START, END, taxonomy=taxonomy)

    assert report.used_fallback is False
    assert report.detailed_analysis.financial_health_score == 100
    assert report.detailed_analysis.spending_patterns.weekday_vs_weekend.insight == "假日花比較多"
    assert report.quick_insight.top_spending_category == "購物"
    kwargs = fake_provider.generate.await_args.kwargs
    assert kwargs["max_output_tokens"] == settings.SUMMARY_MAX_OUTPUT_TOKENS


async def test_analyze_invalid_llm_answer_uses_local(settings, transactions, fake_provider, envelope):
    broken = _llm_analysis()
    broken["riskAssessment"]["level"] = "catastrophic"
    fake_provider.generate.return_value = envelope(broken)
    service = SummaryService(fake_provider, settings)

    report = await service.analyze(transactions, START, END)

    assert report.used_fallback is True
    assert report.error_message
    assert report.detailed_analysis.risk_assessment.level == "low"


async def test_analyze_transport_failure_uses_local(settings, transactions, fake_provider):
    fake_provider.generate.side_effect = TransportError.from_status(403, "forbidden")
    service = SummaryService(fake_provider, settings)

    report = await service.analyze(transactions, START, END)

    assert report.used_fallback is True
    assert "403" in report.error_message


async def test_analyze_without_credential(settings, transactions):
    provider = FakeProvider(settings, configured=False)
    report = await SummaryService(provider, settings).analyze(transactions, START, END)
    provider.generate.assert_not_awaited()
    assert report.used_fallback is True


async def test_analyze_without_transactions(settings, fake_provider):
    report = await SummaryService(fake_provider, settings).analyze([], START, END)
    fake_provider.generate.assert_not_awaited()
    assert report.used_fallback is False
    assert report.detailed_analysis.financial_health_score == 50


async def test_ask(settings, transactions, fake_provider, envelope):
    fake_provider.generate.return_value = envelope(
        {"answer": "購物花最多", "followUpQuestions": ["要設定預算嗎？"], "actionItems": ["少買手機"]}
    )
    service = SummaryService(fake_provider, settings)

    answer = await service.ask("哪裡花最多？", transactions, START, END)

    assert answer.answer == "購物花最多"
    assert answer.follow_up_questions == ["要設定預算嗎？"]
    assert answer.action_items == ["少買手機"]
    assert "哪裡花最多？" in fake_provider.generate.await_args.args[0]


async def test_ask_failure_returns_canned_answer(settings, transactions, fake_provider, envelope):
    fake_provider.generate.return_value = envelope("not json at all")
    answer = await SummaryService(fake_provider, settings).ask("?", transactions, START, END)
    assert answer.answer == "抱歉，目前無法回答此問題"
    assert answer.action_items


def test_coerce_ignores_non_list_top_expenses():
    fixed = coerce_analysis_numbers({"spendingPatterns": {"topExpenses": 5}})
    assert fixed["spendingPatterns"]["topExpenses"] == 5


async def test_analyze_wrongly_typed_fields_use_local(settings, transactions, fake_provider, envelope):
    fake_provider.generate.return_value = envelope(
        {"financialHealthScore": 60, "spendingPatterns": {"topExpenses": 5}}
    )
    service = SummaryService(fake_provider, settings)

    report = await service.analyze(transactions, START, END)

    assert report.used_fallback is True
    assert report.error_message
    assert report.detailed_analysis.spending_patterns.top_expenses[0].description == "手機"


async def test_analyze_huge_score_uses_clamp(settings, transactions, fake_provider, envelope):
    answer = _llm_analysis()
    answer["financialHealthScore"] = int("9" * 400)
    fake_provider.generate.return_value = envelope(answer)

    report = await SummaryService(fake_provider, settings).analyze(transactions, START, END)

    assert report.used_fallback is False
    assert report.detailed_analysis.financial_health_score == 100


async def test_ask_ignores_non_list_suggestions(settings, transactions, fake_provider, envelope):
    fake_provider.generate.return_value = envelope(
        {"answer": "ok", "followUpQuestions": 3, "actionItems": "存錢"}
    )

    answer = await SummaryService(fake_provider, settings).ask("?", transactions, START, END)

    assert answer.answer == "ok"
    assert answer.follow_up_questions == []
    assert answer.action_items == []


def test_build_summary_service_picks_provider(settings):
    service = build_summary_service(settings)
    assert service.provider.name == "gemini"
    assert service.llm_available

    service = build_summary_service(settings, "openai")
    assert service.provider.name == "openai"
    assert not service.llm_available


def test_build_summary_service_unknown_provider(settings):
    with pytest.raises(ValueError, match="not found"):
        build_summary_service(settings, "nope")
