import datetime
from decimal import Decimal

import pytest

from books_core.services.accounts import create_account
from books_core.services.metrics import get_financial_metrics, totals_by_type
from books_core.services.posting import post_journal_entry


def post(company, user, debit, credit, amount):
    return post_journal_entry(
        company,
        {"date": datetime.date(2024, 6, 1), "description": "test"},
        [
            {"account_id": debit.pk, "debit_amount": amount},
            {"account_id": credit.pk, "credit_amount": amount},
        ],
        user=user,
    )


@pytest.mark.django_db
def test_metrics_for_empty_company_are_zero(company):
    assert get_financial_metrics(company) == {
        "totalRevenue": "0.00",
        "totalExpenses": "0.00",
        "netProfit": "0.00",
        "cashBalance": "0.00",
    }


@pytest.mark.django_db
def test_metrics_follow_posted_activity(company, chart, user):
    post(company, user, chart["cash"], chart["equity"], "5000.00")
    post(company, user, chart["cash"], chart["revenue"], "1200.50")
    post(company, user, chart["ar"], chart["revenue"], "300.00")
    post(company, user, chart["rent"], chart["cash"], "800.00")

    metrics = get_financial_metrics(company)

    assert metrics == {
        "totalRevenue": "1500.50",
        "totalExpenses": "800.00",
        "netProfit": "700.50",
        # Receivables are not cash
        "cashBalance": "5400.50",
    }


@pytest.mark.django_db
def test_net_loss_is_negative(company, chart, user):
    post(company, user, chart["rent"], chart["cash"], "250.00")
    assert get_financial_metrics(company)["netProfit"] == "-250.00"


@pytest.mark.django_db
def test_cash_balance_uses_flag_not_name(company, user, chart):
    vault = create_account(
        company,
        {"code": "1050", "name": "Vault", "type": "asset", "is_cash_account": True},
    )
    post(company, user, vault, chart["equity"], "40.00")
    assert get_financial_metrics(company)["cashBalance"] == "40.00"


@pytest.mark.django_db
def test_metrics_ignore_other_companies(company, other_company, chart, user, other_user):
    cash = create_account(other_company, {"code": "1000", "name": "Cash", "type": "asset"})
    sales = create_account(other_company, {"code": "4000", "name": "Sales", "type": "revenue"})
    post(other_company, other_user, cash, sales, "999.00")
    assert get_financial_metrics(company)["totalRevenue"] == "0.00"


@pytest.mark.django_db
def test_totals_by_type_covers_every_type(company, chart, user):
    post(company, user, chart["cash"], chart["ap"], "10.00")
    totals = totals_by_type(company)
    assert set(totals) == {"asset", "liability", "equity", "revenue", "expense"}
    assert totals["asset"] == Decimal("10.00")
    assert totals["liability"] == Decimal("10.00")
    assert totals["equity"] == Decimal("0.00")
