from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command

from books_core.models import Account, AuditLog, Company, JournalEntry
from books_core.services.accounts import update_account_balance
from books_core.services.metrics import get_financial_metrics
from books_core.tasks import rebuild_account_balances


@pytest.mark.django_db
def test_create_demo_company_command():
    out = StringIO()
    call_command("create_demo_company", "--opening-capital", "2500.00", stdout=out)

    company = Company.objects.get(name="Demo Company")
    assert company.memberships.get().user.username == "demo"
    assert Account.objects.for_company(company).count() == 8

    je = JournalEntry.objects.for_company(company).get()
    assert je.status == "posted"
    assert je.total_amount == Decimal("2500.00")
    assert get_financial_metrics(company)["cashBalance"] == "2500.00"
    assert "Posted JE" in out.getvalue()


@pytest.mark.django_db
def test_create_demo_company_is_rerunnable():
    call_command("create_demo_company", stdout=StringIO())
    out = StringIO()
    call_command("create_demo_company", stdout=out)
    assert Company.objects.filter(name="Demo Company").count() == 1
    assert "nothing to do" in out.getvalue()


@pytest.mark.django_db
def test_rebuild_task_repairs_balances():
    call_command("create_demo_company", stdout=StringIO())
    company = Company.objects.get(name="Demo Company")
    bank = Account.objects.get(company=company, code="1010")
    update_account_balance(bank.pk, "0.00")

    # CELERY_TASK_ALWAYS_EAGER runs the task inline under test
    result = rebuild_account_balances.delay(company.pk)

    assert result.get() == 1
    bank.refresh_from_db()
    assert bank.balance == Decimal("10000.00")
    assert AuditLog.objects.filter(company=company, action="rebuild").exists()


@pytest.mark.django_db
def test_rebuild_task_unknown_company():
    assert rebuild_account_balances(424242) == 0
