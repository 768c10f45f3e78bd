import pytest

from books_core.services.accounts import create_account
from books_core.services.companies import create_company


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username="alice", password="pw")


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(username="bob", password="pw")


@pytest.fixture
def company(user):
    return create_company(user, {"name": "Acme Ltd"})


@pytest.fixture
def other_company(other_user):
    return create_company(other_user, {"name": "Globex"})


@pytest.fixture
def chart(company):
    """A small chart of accounts keyed by short name."""
    rows = [
        ("cash", "1000", "Cash", "asset"),
        ("ar", "1200", "Accounts Receivable", "asset"),
        ("ap", "2000", "Accounts Payable", "liability"),
        ("equity", "3000", "Owner's Equity", "equity"),
        ("revenue", "4000", "Sales Revenue", "revenue"),
        ("rent", "5000", "Rent Expense", "expense"),
    ]
    return {
        key: create_account(company, {"code": code, "name": name, "type": ac_type})
        for key, code, name, ac_type in rows
    }
