from django.db.models import Sum

from ..models import Account
from ..models.account import AC_TYPE_VALUES
from .balances import ZERO, to_money


def totals_by_type(company) -> dict:
    """Summed balances per account type; missing types are 0.00."""
    totals = dict.fromkeys(AC_TYPE_VALUES, ZERO)
    rows = (
        Account.objects.for_company(company)
        .values("ac_type")
        .annotate(total=Sum("balance"))
    )
    for row in rows:
        totals[row["ac_type"]] = to_money(row["total"] or ZERO)
    return totals


def cash_balance(company):
    total = (
        Account.objects.for_company(company)
        .filter(ac_type="asset", is_cash_account=True)
        .aggregate(total=Sum("balance"))["total"]
    )
    return to_money(total or ZERO)


def get_financial_metrics(company) -> dict:
    """Dashboard figures as 2-decimal strings."""
    totals = totals_by_type(company)
    revenue = totals["revenue"]
    expenses = totals["expense"]
    return {
        "totalRevenue": f"{revenue:.2f}",
        "totalExpenses": f"{expenses:.2f}",
        "netProfit": f"{to_money(revenue - expenses):.2f}",
        "cashBalance": f"{cash_balance(company):.2f}",
    }
