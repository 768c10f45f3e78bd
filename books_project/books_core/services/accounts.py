import logging

from django.core.exceptions import ValidationError

from ..exceptions import NotFoundError
from ..models import Account
from ..models.account import AC_TYPE_VALUES
from .balances import to_money

logger = logging.getLogger(__name__)

CASH_NAME_HINTS = ("cash", "bank")


def looks_like_cash(ac_type: str, name: str) -> bool:
    """Asset accounts named like 'Cash on Hand' or 'Bank - Checking'."""
    lowered = (name or "").lower()
    return ac_type == "asset" and any(h in lowered for h in CASH_NAME_HINTS)


def get_accounts_by_company(company):
    return list(Account.objects.for_company(company).order_by("code"))


def get_account(company, account_id) -> Account:
    # Another company's id is reported as missing
    account = Account.objects.for_company(company).filter(pk=account_id).first()
    if account is None:
        raise NotFoundError(f"Account {account_id} not found")
    return account


def create_account(company, data: dict) -> Account:
    """
    Add an account to the company's chart with a zero balance.

    `data` keys: code, name, type (required); subtype, description,
    parent_id, is_active, is_cash_account (optional).
    """
    errors = {}
    for field in ("code", "name", "type"):
        if not data.get(field):
            errors[field] = ["This field is required."]
    ac_type = data.get("type")
    if ac_type and ac_type not in AC_TYPE_VALUES:
        errors["type"] = [
            f"'{ac_type}' is not one of: {', '.join(AC_TYPE_VALUES)}."
        ]
    if errors:
        raise ValidationError(errors)

    parent = None
    if data.get("parent_id"):
        parent = get_account(company, data["parent_id"])

    is_cash = data.get("is_cash_account")
    if is_cash is None:
        is_cash = looks_like_cash(ac_type, data["name"])

    account = Account(
        company=company,
        code=data["code"],
        name=data["name"],
        ac_type=ac_type,
        subtype=data.get("subtype") or "",
        description=data.get("description") or "",
        parent=parent,
        is_active=data.get("is_active", True),
        is_cash_account=is_cash,
    )
    # Runs clean() and the (company, code) unique check
    account.full_clean()
    account.save()

    logger.info(
        "Account created",
        extra={"company_id": company.pk, "account_code": account.code},
    )
    return account


def update_account_balance(account_id, new_balance) -> None:
    """
    Overwrite the stored balance. Journal posting never calls this;
    it applies deltas through balances.apply_balance_delta.
    """
    updated = Account.objects.filter(pk=account_id).update(
        balance=to_money(new_balance)
    )
    if not updated:
        raise NotFoundError(f"Account {account_id} not found")
