import datetime
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import transaction

from books_core.exceptions import ConflictError, NotFoundError
from books_core.models import Account, AuditLog, JournalEntry
from books_core.services.posting import post_journal_entry, reverse_journal_entry


@pytest.fixture
def rent_payment(company, chart, user):
    return post_journal_entry(
        company,
        {"date": datetime.date(2024, 5, 1), "description": "May rent", "reference": "R-5"},
        [
            {"account_id": chart["rent"].pk, "debit_amount": "900.00", "description": "rent"},
            {"account_id": chart["cash"].pk, "credit_amount": "900.00"},
        ],
        user=user,
    )


def balances_of(company):
    return dict(Account.objects.for_company(company).values_list("code", "balance"))


@pytest.mark.django_db
def test_reversal_posts_a_mirror_entry(company, chart, user, rent_payment):
    mirror = reverse_journal_entry(
        company, rent_payment.pk, user=user, date=datetime.date(2024, 5, 3)
    )

    assert mirror.entry_number == "JE2024-0002"
    assert mirror.status == "posted"
    assert mirror.reversal_of_id == rent_payment.pk
    assert mirror.description == "Reversal of JE2024-0001"
    assert mirror.reference == "JE2024-0001"
    assert mirror.total_amount == Decimal("900.00")

    lines = {line.account_id: line for line in mirror.lines.all()}
    assert lines[chart["rent"].pk].credit_amount == Decimal("900.00")
    assert lines[chart["cash"].pk].debit_amount == Decimal("900.00")

    rent_payment.refresh_from_db()
    assert rent_payment.status == "reversed"


@pytest.mark.django_db
def test_reversal_restores_balances(company, chart, user, rent_payment):
    before = {code: Decimal("0.00") for code in balances_of(company)}
    reverse_journal_entry(company, rent_payment.pk, user=user)
    assert balances_of(company) == before


@pytest.mark.django_db
def test_entry_can_only_be_reversed_once(company, user, rent_payment):
    reverse_journal_entry(company, rent_payment.pk, user=user)
    with pytest.raises(ValidationError):
        reverse_journal_entry(company, rent_payment.pk, user=user)
    assert JournalEntry.objects.for_company(company).count() == 2


@pytest.mark.django_db
def test_reversing_unknown_or_foreign_entry(company, other_company, user, rent_payment):
    with pytest.raises(NotFoundError):
        reverse_journal_entry(company, 424242, user=user)
    with pytest.raises(NotFoundError):
        reverse_journal_entry(other_company, rent_payment.pk)


@pytest.mark.django_db
def test_reversal_is_audited(company, user, rent_payment):
    mirror = reverse_journal_entry(company, rent_payment.pk, user=user)
    log = AuditLog.objects.get(action="reverse")
    assert log.object_id == str(rent_payment.pk)
    assert log.changes == {"reversed_by": mirror.entry_number}


@pytest.mark.django_db
def test_posted_and_reversed_entries_cannot_be_deleted(company, user, rent_payment):
    # delete() runs its signals inside an atomic block; isolate each failure
    with pytest.raises(ValidationError), transaction.atomic():
        rent_payment.delete()
    mirror = reverse_journal_entry(company, rent_payment.pk, user=user)
    with pytest.raises(ValidationError), transaction.atomic():
        mirror.delete()


@pytest.mark.django_db
def test_status_cannot_move_backwards(rent_payment):
    rent_payment.status = "draft"
    with pytest.raises(ValidationError):
        rent_payment.save()


@pytest.mark.django_db
def test_reversal_with_impossible_date_changes_nothing(company, user, rent_payment):
    with pytest.raises(ValidationError) as exc:
        reverse_journal_entry(company, rent_payment.pk, user=user, date="2024-02-30")
    assert "date" in exc.value.message_dict
    rent_payment.refresh_from_db()
    assert rent_payment.status == "posted"
    assert JournalEntry.objects.for_company(company).count() == 1


@pytest.mark.django_db
def test_reversal_can_be_retried_after_number_conflict(company, user, rent_payment):
    JournalEntry.objects.create(
        company=company,
        entry_number="JE2024-0002",
        date=datetime.date(2024, 5, 2),
        description="imported",
        total_amount=Decimal("0.00"),
        status="posted",
    )
    when = datetime.date(2024, 5, 3)
    with pytest.raises(ConflictError):
        reverse_journal_entry(company, rent_payment.pk, user=user, date=when)
    rent_payment.refresh_from_db()
    assert rent_payment.status == "posted"

    mirror = reverse_journal_entry(company, rent_payment.pk, user=user, date=when)

    assert mirror.entry_number == "JE2024-0003"
