import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import F, Sum

from ..exceptions import NotFoundError
from ..models import Account, JournalLine
from ..models.account import DEBIT_NORMAL_TYPES

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Quantize to cents; strings go through Decimal, never float."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def balance_delta(account_type: str, debit, credit) -> Decimal:
    """
    Change a line makes to its account balance.
    Debit-normal (asset, expense): debit - credit
    Credit-normal (liability, equity, revenue): credit - debit
    """
    debit = to_money(debit or ZERO)
    credit = to_money(credit or ZERO)
    if account_type in DEBIT_NORMAL_TYPES:
        return debit - credit
    return credit - debit


def apply_line(account_type: str, current_balance, debit, credit) -> Decimal:
    return to_money(
        to_money(current_balance) + balance_delta(account_type, debit, credit)
    )


def apply_balance_delta(account_id, delta) -> None:
    """
    Add `delta` to the stored balance in one UPDATE statement.
    Concurrent postings to the same account cannot lose each other's change.
    """
    updated = Account.objects.filter(pk=account_id).update(
        balance=F("balance") + to_money(delta)
    )
    if not updated:
        raise NotFoundError(f"Account {account_id} not found")


def rebuild_balances(company) -> int:
    """
    Recompute every account balance of `company` from its journal lines.
    Posted and reversed entries both count: a reversal is itself a posted
    mirror entry. Returns the number of accounts whose balance changed.
    """
    changed = 0
    with transaction.atomic():
        accounts = list(
            Account.objects.for_company(company)
            .select_for_update()
            .order_by("pk")
        )
        sums = {
            row["account_id"]: row
            for row in JournalLine.objects.for_company(company)
            .filter(journal__status__in=["posted", "reversed"])
            .values("account_id")
            .annotate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
        }
        for account in accounts:
            row = sums.get(account.pk)
            expected = (
                apply_line(account.ac_type, ZERO, row["debit"], row["credit"])
                if row
                else ZERO
            )
            if account.balance != expected:
                logger.warning(
                    "Account balance drifted from journal lines",
                    extra={
                        "company_id": company.pk,
                        "account_code": account.code,
                        "stored": account.balance,
                        "expected": expected,
                    },
                )
                Account.objects.filter(pk=account.pk).update(balance=expected)
                changed += 1
    return changed
