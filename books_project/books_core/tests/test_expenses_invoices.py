import datetime
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from books_core.exceptions import NotFoundError
from books_core.models import (Account, Customer, Expense, Invoice,
                               JournalEntry, Vendor)
from books_core.services.accounts import create_account
from books_core.services.expenses import create_expense, get_expenses_by_company
from books_core.services.invoices import create_invoice, get_invoices_by_company


@pytest.fixture
def vendor(company):
    return Vendor.objects.create(company=company, name="Landlord Inc")


@pytest.fixture
def customer(company):
    return Customer.objects.create(company=company, name="Big Client")


def expense_data(account, **overrides):
    data = {
        "account_id": account.pk,
        "date": datetime.date(2024, 4, 1),
        "amount": Decimal("900.00"),
        "description": "April rent",
    }
    data.update(overrides)
    return data


@pytest.mark.django_db
class TestExpenses:

    def test_record_expense(self, company, chart, user, vendor):
        expense = create_expense(
            company, user, expense_data(chart["rent"], vendor_id=vendor.pk)
        )
        assert expense.status == "recorded"
        assert expense.vendor == vendor
        assert expense.created_by == user

    def test_expense_does_not_touch_the_ledger(self, company, chart, user):
        create_expense(company, user, expense_data(chart["rent"]))
        chart["rent"].refresh_from_db()
        assert chart["rent"].balance == Decimal("0.00")
        assert not JournalEntry.objects.for_company(company).exists()

    def test_account_must_be_an_expense_account(self, company, chart, user):
        with pytest.raises(ValidationError) as exc:
            create_expense(company, user, expense_data(chart["cash"]))
        assert "account" in exc.value.message_dict

    def test_amount_must_be_positive(self, company, chart, user):
        with pytest.raises(ValidationError):
            create_expense(company, user, expense_data(chart["rent"], amount=Decimal("0")))

    def test_inactive_expense_account_is_rejected(self, company, chart, user):
        Account.objects.filter(pk=chart["rent"].pk).update(is_active=False)
        with pytest.raises(ValidationError) as exc:
            create_expense(company, user, expense_data(chart["rent"]))
        assert "account" in exc.value.message_dict
        assert not Expense.objects.for_company(company).exists()

    def test_foreign_vendor_is_not_found(self, company, other_company, chart, user):
        foreign = Vendor.objects.create(company=other_company, name="Elsewhere")
        with pytest.raises(NotFoundError):
            create_expense(
                company, user, expense_data(chart["rent"], vendor_id=foreign.pk)
            )

    def test_listing_is_newest_first_and_limited(self, company, chart, user):
        for day in (3, 1, 2):
            create_expense(
                company,
                user,
                expense_data(chart["rent"], date=datetime.date(2024, 4, day)),
            )
        listed = get_expenses_by_company(company)
        assert [e.date.day for e in listed] == [3, 2, 1]
        assert len(get_expenses_by_company(company, limit=1)) == 1


def invoice_header(customer, **overrides):
    header = {
        "customer_id": customer.pk,
        "invoice_number": "INV-2024-001",
        "date": datetime.date(2024, 5, 1),
        "due_date": datetime.date(2024, 5, 31),
        "subtotal": Decimal("300.00"),
        "tax_amount": Decimal("30.00"),
        "total_amount": Decimal("330.00"),
    }
    header.update(overrides)
    return header


def invoice_lines(revenue):
    return [
        {
            "description": "Consulting",
            "quantity": Decimal("2"),
            "unit_price": Decimal("100.00"),
            "total_amount": Decimal("200.00"),
            "account_id": revenue.pk,
        },
        {
            "description": "Support",
            "quantity": Decimal("1"),
            "unit_price": Decimal("100.00"),
            "total_amount": Decimal("100.00"),
        },
    ]


@pytest.mark.django_db
class TestInvoices:

    def test_create_invoice_with_lines(self, company, chart, customer, user):
        invoice = create_invoice(
            company, invoice_header(customer), invoice_lines(chart["revenue"]), user=user
        )
        assert invoice.status == "draft"
        assert invoice.total_amount == Decimal("330.00")
        assert invoice.outstanding_amount == Decimal("330.00")
        assert invoice.lines.count() == 2
        # Amounts are stored as given
        assert invoice.lines.first().account == chart["revenue"]

    def test_invoice_number_is_unique_per_company(self, company, chart, customer):
        create_invoice(company, invoice_header(customer), invoice_lines(chart["revenue"]))
        with pytest.raises(ValidationError):
            create_invoice(company, invoice_header(customer), [])

    def test_foreign_customer_is_not_found(self, company, other_company):
        outsider = Customer.objects.create(company=other_company, name="Outsider")
        with pytest.raises(NotFoundError):
            create_invoice(company, invoice_header(outsider), [])

    def test_foreign_line_account_writes_nothing(self, company, other_company, customer):
        foreign = create_account(
            other_company, {"code": "4000", "name": "Sales", "type": "revenue"}
        )
        with pytest.raises(NotFoundError):
            create_invoice(company, invoice_header(customer), invoice_lines(foreign))
        assert not Invoice.objects.for_company(company).exists()

    def test_listing_is_newest_first(self, company, chart, customer):
        create_invoice(
            company,
            invoice_header(customer, invoice_number="A", date=datetime.date(2024, 1, 1),
                           due_date=datetime.date(2024, 2, 1)),
            [],
        )
        create_invoice(
            company,
            invoice_header(customer, invoice_number="B", date=datetime.date(2024, 3, 1),
                           due_date=datetime.date(2024, 4, 1)),
            [],
        )
        assert [i.invoice_number for i in get_invoices_by_company(company)] == ["B", "A"]
