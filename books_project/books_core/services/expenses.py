import logging

from django.conf import settings
from django.db import transaction

from ..exceptions import NotFoundError, ValidationError
from ..models import Account, Expense, Vendor
from .accounts import get_account
from .audit_helper import log_action

logger = logging.getLogger(__name__)


def create_expense(company, user, data: dict) -> Expense:
    """
    Record a spend against one of the company's expense accounts.
    No journal entry is posted for it.
    """
    account = get_account(company, data.get("account_id"))
    if not Account.objects.active(company).filter(pk=account.pk).exists():
        raise ValidationError(
            {"account": [f"Account {account.code} is inactive."]}
        )
    vendor = None
    if data.get("vendor_id"):
        vendor = Vendor.objects.for_company(company).filter(
            pk=data["vendor_id"]
        ).first()
        if vendor is None:
            raise NotFoundError(f"Vendor {data['vendor_id']} not found")

    with transaction.atomic():
        # save() runs full_clean: positive amount, expense-type account
        expense = Expense.objects.create(
            company=company,
            vendor=vendor,
            account=account,
            date=data.get("date"),
            amount=data.get("amount"),
            description=data.get("description") or "",
            reference=data.get("reference") or None,
            status=data.get("status") or "recorded",
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        log_action(
            action="create",
            instance=expense,
            user=user,
            company=company,
            changes={"amount": str(expense.amount), "account": account.code},
        )

    logger.info(
        "Expense recorded",
        extra={"company_id": company.pk, "expense_id": expense.pk},
    )
    return expense


def get_expenses_by_company(company, limit=None):
    if limit is None:
        limit = settings.BOOKS_DEFAULT_LIST_LIMIT
    return list(
        Expense.objects.for_company(company)
        .select_related("account", "vendor")
        .order_by("-date", "-id")[:limit]
    )
