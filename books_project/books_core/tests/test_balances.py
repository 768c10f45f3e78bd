from decimal import Decimal

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext

from books_core.exceptions import NotFoundError
from books_core.models import Account
from books_core.services.accounts import update_account_balance
from books_core.services.balances import (apply_balance_delta, apply_line,
                                          balance_delta, rebuild_balances,
                                          to_money)
from books_core.services.posting import post_journal_entry


@pytest.mark.parametrize(
    "ac_type, debit, credit, expected",
    [
        ("asset", "100.00", "0", "100.00"),
        ("asset", "0", "40.00", "-40.00"),
        ("expense", "25.50", "0", "25.50"),
        ("liability", "0", "100.00", "100.00"),
        ("liability", "30.00", "0", "-30.00"),
        ("equity", "0", "10.00", "10.00"),
        ("revenue", "0", "500.00", "500.00"),
        ("revenue", "20.00", "0", "-20.00"),
    ],
)
def test_balance_delta_follows_normal_side(ac_type, debit, credit, expected):
    assert balance_delta(ac_type, Decimal(debit), Decimal(credit)) == Decimal(expected)


def test_apply_line_adds_delta_and_rounds_half_up():
    assert apply_line("asset", Decimal("1000.00"), Decimal("500.00"), 0) == Decimal("1500.00")
    assert apply_line("revenue", "0.00", "0", "0.005") == Decimal("0.01")
    result = apply_line("expense", "10", "0.10", "0")
    assert result == Decimal("10.10")
    assert result.as_tuple().exponent == -2


def test_to_money_never_goes_through_float():
    assert to_money("0.1") + to_money("0.2") == Decimal("0.30")


@pytest.mark.django_db
def test_apply_balance_delta_is_cumulative(chart):
    cash = chart["cash"]
    apply_balance_delta(cash.pk, Decimal("100.00"))
    apply_balance_delta(cash.pk, Decimal("-30.25"))
    cash.refresh_from_db()
    assert cash.balance == Decimal("69.75")


@pytest.mark.django_db
def test_apply_balance_delta_unknown_account():
    with pytest.raises(NotFoundError):
        apply_balance_delta(999999, Decimal("1.00"))


@pytest.mark.django_db
def test_rebuild_balances_repairs_drifted_accounts(company, chart, user):
    post_journal_entry(
        company,
        {"date": "2024-02-01", "description": "Owner investment"},
        [
            {"account_id": chart["cash"].pk, "debit_amount": "800.00"},
            {"account_id": chart["equity"].pk, "credit_amount": "800.00"},
        ],
        user=user,
    )
    # Corrupt two cached balances behind the ledger's back
    update_account_balance(chart["cash"].pk, "1.00")
    update_account_balance(chart["rent"].pk, "55.00")

    changed = rebuild_balances(company)

    assert changed == 2
    balances = dict(
        Account.objects.for_company(company).values_list("code", "balance")
    )
    assert balances["1000"] == Decimal("800.00")
    assert balances["3000"] == Decimal("800.00")
    assert balances["5000"] == Decimal("0.00")


@pytest.mark.django_db
def test_rebuild_locks_accounts_in_pk_order(company, chart):
    with CaptureQueriesContext(connection) as ctx:
        rebuild_balances(company)
    account_selects = [
        q["sql"] for q in ctx.captured_queries
        if q["sql"].startswith("SELECT") and 'FROM "books_core_account"' in q["sql"]
    ]
    assert account_selects
    assert 'ORDER BY "books_core_account"."id" ASC' in account_selects[0]
