from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db.models.deletion import ProtectedError

from books_core.exceptions import NotFoundError
from books_core.models import Account
from books_core.services.accounts import (create_account, get_account,
                                          get_accounts_by_company,
                                          update_account_balance)
from books_core.services.posting import post_journal_entry


@pytest.mark.django_db
class TestCreateAccount:

    def test_new_account_starts_at_zero(self, company):
        account = create_account(
            company, {"code": "1000", "name": "Petty Cash", "type": "asset"}
        )
        assert account.balance == Decimal("0.00")
        assert account.normal_balance == "debit"
        assert account.company == company

    @pytest.mark.parametrize("missing", ["code", "name", "type"])
    def test_required_fields(self, company, missing):
        data = {"code": "1000", "name": "Cash", "type": "asset"}
        data.pop(missing)
        with pytest.raises(ValidationError) as exc:
            create_account(company, data)
        assert missing in exc.value.message_dict

    def test_unknown_type_is_rejected(self, company):
        with pytest.raises(ValidationError) as exc:
            create_account(company, {"code": "9", "name": "X", "type": "income"})
        assert "type" in exc.value.message_dict

    def test_code_is_unique_per_company(self, company, other_company):
        create_account(company, {"code": "1000", "name": "Cash", "type": "asset"})
        with pytest.raises(ValidationError):
            create_account(company, {"code": "1000", "name": "Till", "type": "asset"})
        # Same code in another company is fine
        create_account(other_company, {"code": "1000", "name": "Cash", "type": "asset"})

    @pytest.mark.parametrize(
        "name, ac_type, expected",
        [
            ("Cash on Hand", "asset", True),
            ("Bank - Checking", "asset", True),
            ("Equipment", "asset", False),
            ("Bank Fees", "expense", False),
        ],
    )
    def test_cash_flag_defaults_from_name(self, company, name, ac_type, expected):
        account = create_account(company, {"code": "1", "name": name, "type": ac_type})
        assert account.is_cash_account is expected

    def test_explicit_cash_flag_wins(self, company):
        account = create_account(
            company,
            {"code": "1", "name": "Cash Clearing", "type": "asset", "is_cash_account": False},
        )
        assert account.is_cash_account is False

    def test_cash_flag_only_for_assets(self, company):
        with pytest.raises(ValidationError):
            create_account(
                company,
                {"code": "1", "name": "Loan", "type": "liability", "is_cash_account": True},
            )

    def test_parent_must_be_in_same_company(self, company, other_company):
        foreign = create_account(
            other_company, {"code": "1", "name": "Assets", "type": "asset"}
        )
        with pytest.raises(NotFoundError):
            create_account(
                company,
                {"code": "2", "name": "Cash", "type": "asset", "parent_id": foreign.pk},
            )


@pytest.mark.django_db
def test_accounts_are_listed_by_code(company):
    for code in ("4000", "1000", "2000"):
        create_account(company, {"code": code, "name": f"A{code}", "type": "asset"})
    assert [a.code for a in get_accounts_by_company(company)] == ["1000", "2000", "4000"]


@pytest.mark.django_db
def test_empty_chart_is_an_empty_list(company):
    assert get_accounts_by_company(company) == []


@pytest.mark.django_db
def test_get_account_hides_other_companies(chart, other_company):
    with pytest.raises(NotFoundError):
        get_account(other_company, chart["cash"].pk)


@pytest.mark.django_db
def test_update_account_balance_overwrites_and_quantizes(chart):
    update_account_balance(chart["cash"].pk, "1234.565")
    chart["cash"].refresh_from_db()
    assert chart["cash"].balance == Decimal("1234.57")


@pytest.mark.django_db
def test_used_account_cannot_be_deactivated_or_deleted(company, chart, user):
    post_journal_entry(
        company,
        {"date": "2024-01-05", "description": "Rent"},
        [
            {"account_id": chart["rent"].pk, "debit_amount": "100"},
            {"account_id": chart["cash"].pk, "credit_amount": "100"},
        ],
        user=user,
    )
    rent = Account.objects.get(pk=chart["rent"].pk)
    rent.is_active = False
    with pytest.raises(ValidationError):
        rent.save()
    # journal_lines.account is PROTECT
    with pytest.raises(ProtectedError):
        rent.delete()
