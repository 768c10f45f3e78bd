import logging
from datetime import date as date_cls
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Prefetch
from django.utils import timezone
from django.utils.dateparse import parse_date

from ..exceptions import ConflictError, NotFoundError, UnbalancedEntryError
from ..models import Account, JournalEntry, JournalLine
from .audit_helper import log_action
from .balances import ZERO, apply_balance_delta, balance_delta, to_money
from .numbering import next_entry_number, skip_taken_numbers

logger = logging.getLogger(__name__)


def _tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "BOOKS_BALANCE_TOLERANCE", "0.01")))


def _amount(raw, key: str, errors: dict):
    try:
        value = to_money(raw if raw not in (None, "") else ZERO)
    except (InvalidOperation, ValueError, TypeError):
        errors[key] = ["Enter a number."]
        return ZERO
    if not value.is_finite():
        errors[key] = ["Enter a number."]
        return ZERO
    if value < 0:
        errors[key] = ["Amount must be >= 0."]
    return value


def _account_id(raw, key: str, errors: dict):
    if raw in (None, ""):
        errors[key] = ["This field is required."]
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        errors[key] = ["Enter a whole number."]
        return None


def _entry_date(entry: dict):
    value = entry.get("date")
    if isinstance(value, str):
        try:
            value = parse_date(value)
        except ValueError:
            # Well formed but impossible, e.g. "2024-02-30"
            value = None
    if not isinstance(value, date_cls):
        raise ValidationError({"date": ["Enter a valid date."]})
    return value


# ----------------------------
# Validation (no writes)
# ----------------------------
def validate_journal_lines(company, lines) -> list[dict]:
    """
    Check a set of lines before anything is written.

    Returns the lines with amounts quantized and `account` resolved.
    Raises ValidationError (shape, amounts, inactive accounts),
    UnbalancedEntryError or NotFoundError (unknown / foreign account).
    """
    lines = list(lines or [])
    if len(lines) < 2:
        raise ValidationError(
            {"lines": ["A journal entry requires at least 2 lines."]}
        )

    errors = {}
    cleaned = []
    for i, line in enumerate(lines):
        debit = _amount(line.get("debit_amount"), f"lines[{i}].debit_amount", errors)
        credit = _amount(line.get("credit_amount"), f"lines[{i}].credit_amount", errors)
        if debit > 0 and credit > 0:
            errors[f"lines[{i}]"] = ["A line cannot carry both a debit and a credit."]
        elif debit == 0 and credit == 0:
            errors[f"lines[{i}]"] = ["A line needs a non-zero debit or credit."]
        account_id = _account_id(line.get("account_id"), f"lines[{i}].account_id", errors)
        cleaned.append(
            {
                "account_id": account_id,
                "description": line.get("description") or "",
                "debit_amount": debit,
                "credit_amount": credit,
            }
        )
    if errors:
        raise ValidationError(errors)

    total_debit = sum((line["debit_amount"] for line in cleaned), ZERO)
    total_credit = sum((line["credit_amount"] for line in cleaned), ZERO)
    if abs(total_debit - total_credit) > _tolerance():
        raise UnbalancedEntryError(total_debit, total_credit)

    # Resolve every account up front; ids of other companies count as missing
    wanted = {line["account_id"] for line in cleaned}
    accounts = Account.objects.for_company(company).in_bulk(wanted)
    for i, line in enumerate(cleaned):
        account = accounts.get(line["account_id"])
        if account is None:
            raise NotFoundError(f"Account {line['account_id']} not found")
        if not account.is_active:
            errors[f"lines[{i}].account_id"] = [
                f"Account {account.code} is inactive."
            ]
        line["account"] = account
    if errors:
        raise ValidationError(errors)

    return cleaned


# ----------------------------
# Journal-related workflows
# ----------------------------
def post_journal_entry(company, entry: dict, lines, user=None, reversal_of=None):
    """
    Validate, number, persist and apply a balanced journal entry.

    `entry`: {"date", "description", "reference"?}
    `lines`: [{"account_id", "description"?, "debit_amount", "credit_amount"}]

    Numbering, persistence and balance updates share one transaction;
    a failure in any of them leaves no trace.
    """
    entry_date = _entry_date(entry)
    description = (entry.get("description") or "").strip()
    if not description:
        raise ValidationError({"description": ["This field is required."]})

    cleaned = validate_journal_lines(company, lines)
    total = sum((line["debit_amount"] for line in cleaned), ZERO)

    try:
        with transaction.atomic():
            number = next_entry_number(company, entry_date.year)
            je = JournalEntry.objects.create(
                company=company,
                entry_number=number,
                date=entry_date,
                description=description,
                reference=entry.get("reference") or None,
                total_amount=total,
                status="posted",
                posted_at=timezone.now(),
                created_by=user if getattr(user, "is_authenticated", False) else None,
                reversal_of=reversal_of,
            )
            for line in cleaned:
                JournalLine.objects.create(
                    company=company,
                    journal=je,
                    account=line["account"],
                    description=line["description"] or None,
                    debit_amount=line["debit_amount"],
                    credit_amount=line["credit_amount"],
                )
            # Row locks are taken in account pk order, as rebuild_balances does
            for line in sorted(cleaned, key=lambda line: line["account"].pk):
                account = line["account"]
                apply_balance_delta(
                    account.pk,
                    balance_delta(
                        account.ac_type,
                        line["debit_amount"],
                        line["credit_amount"],
                    ),
                )
            log_action(
                action="post",
                instance=je,
                user=user,
                company=company,
                changes={"entry_number": number, "total_amount": str(total)},
            )
    except IntegrityError as exc:
        logger.warning(
            "Entry number collision",
            extra={"company_id": company.pk, "year": entry_date.year},
        )
        # The counter increment was rolled back with the rest; move it past
        # the numbers already on file so a retry gets a free one
        skip_taken_numbers(company, entry_date.year)
        raise ConflictError(
            "Entry number already taken, retry the posting"
        ) from exc

    logger.info(
        "Journal entry posted",
        extra={
            "company_id": company.pk,
            "entry_number": je.entry_number,
            "total_amount": je.total_amount,
        },
    )
    return je


def reverse_journal_entry(company, entry_id, user=None, date=None):
    """
    Cancel a posted entry with a mirror entry (debits and credits swapped).
    The original is marked "reversed"; the mirror points back to it.
    """
    mirror_date = _entry_date({"date": date or timezone.localdate()})
    try:
        with transaction.atomic():
            original = (
                JournalEntry.objects.select_for_update()
                .for_company(company)
                .filter(pk=entry_id)
                .first()
            )
            if original is None:
                raise NotFoundError(f"Journal entry {entry_id} not found")
            if original.status != "posted":
                raise ValidationError(
                    f"Only posted entries can be reversed ({original.entry_number} is {original.status})."
                )

            mirror_lines = [
                {
                    "account_id": line.account_id,
                    "description": line.description,
                    "debit_amount": line.credit_amount,
                    "credit_amount": line.debit_amount,
                }
                for line in original.lines.all()
            ]
            mirror = post_journal_entry(
                company,
                {
                    "date": mirror_date,
                    "description": f"Reversal of {original.entry_number}",
                    "reference": original.entry_number,
                },
                mirror_lines,
                user=user,
                reversal_of=original,
            )

            original.status = "reversed"
            original.save(update_fields=["status"])
            log_action(
                action="reverse",
                instance=original,
                user=user,
                company=company,
                changes={"reversed_by": mirror.entry_number},
            )
    except ConflictError:
        # The counter resync made by the mirror posting was rolled back here
        skip_taken_numbers(company, mirror_date.year)
        raise

    logger.info(
        "Journal entry reversed",
        extra={
            "company_id": company.pk,
            "entry_number": original.entry_number,
            "reversal_number": mirror.entry_number,
        },
    )
    return mirror


# ----------------------------
# Query side
# ----------------------------
def _with_lines(qs):
    return qs.prefetch_related(
        Prefetch("lines", queryset=JournalLine.objects.select_related("account"))
    )


def get_journal_entries_by_company(company, limit=None):
    if limit is None:
        limit = settings.BOOKS_DEFAULT_LIST_LIMIT
    qs = JournalEntry.objects.for_company(company).order_by("-date", "-id")
    return list(_with_lines(qs)[:limit])


def get_journal_entry(company, entry_id) -> JournalEntry:
    entry = _with_lines(
        JournalEntry.objects.for_company(company).filter(pk=entry_id)
    ).first()
    if entry is None:
        raise NotFoundError(f"Journal entry {entry_id} not found")
    return entry
