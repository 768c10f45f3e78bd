from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .account import Account
from .entitymembership import Company

JOURNAL_STATUS = [
    ("draft", "Draft"),  # stored value only, posting never produces it
    ("posted", "Posted"),  # balances applied
    ("reversed", "Reversed"),  # cancelled by a mirror entry
]

# Allowed status changes for a saved entry
STATUS_TRANSITIONS = {
    "draft": ["posted"],
    "posted": ["reversed"],
    "reversed": [],
}


# ---------- Journal (Header) & JournalLine ----------
class JournalEntry(models.Model):  # Represents one accounting transaction
    # Multi-tenant: every entry belongs to a company
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="journal_entries"
    )
    # "JE2024-0001", unique per company
    entry_number = models.CharField(max_length=32)

    # Business metadata
    date = models.DateField()
    description = models.TextField()
    reference = models.CharField(max_length=200, null=True, blank=True)

    # Sum of debits (== sum of credits)
    total_amount = models.DecimalField(max_digits=15, decimal_places=2)
    status = models.CharField(max_length=10, choices=JOURNAL_STATUS, default="draft")
    posted_at = models.DateTimeField(null=True, blank=True)

    # Track user who created it
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # Set on the mirror entry produced by a reversal
    reversal_of = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversals",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # Speed up listing & filtering
        indexes = [
            models.Index(
                fields=["company", "date"], name="je_company_date_idx"
            ),
            models.Index(
                fields=["company", "status"], name="je_company_status_idx"
            ),
        ]

        constraints = [
            # Within one company, each entry number must be unique
            # Across companies, duplicates are allowed
            models.UniqueConstraint(
                fields=["company", "entry_number"], name="uq_je_company_number"
            )
        ]

    def __str__(self):
        return f"{self.entry_number} {self.date} [{self.status}]"

    # Aggregate all debit and credit amounts across entry’s lines
    def compute_totals(self):
        """Return debits, credits sums for lines"""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    def save(self, *args, **kwargs):
        if self.pk:  # Does this row already exist in DB?
            orig_status = (
                JournalEntry.objects.filter(pk=self.pk)
                .values_list("status", flat=True)
                .first()
            )
            if (
                orig_status
                and orig_status != self.status
                and self.status not in STATUS_TRANSITIONS.get(orig_status, [])
            ):
                raise ValidationError(
                    f"Cannot go from {orig_status} to {self.status}")
        super().save(*args, **kwargs)


class JournalLine(models.Model):  # Stores Lines ( credits / debits )
    """
    Each line belongs to a journal entry and to one GL account.
    Exactly one of debit_amount / credit_amount is non-zero.
    """

    # Belongs to company & a journal entry
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    journal = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    # Must point to one Account (can’t delete account if lines exist → PROTECT)
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="journal_lines"
    )
    description = models.CharField(max_length=400, null=True, blank=True)

    debit_amount = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00"))
    credit_amount = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00"))

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # Lines keep the order they were posted in
        ordering = ["id"]
        indexes = [
            models.Index(
                fields=["company", "account"], name="jl_company_account_idx"
            ),
            models.Index(
                fields=["company", "journal"], name="jl_company_journal_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(debit_amount__gte=0) &
                    models.Q(credit_amount__gte=0)
                ),
                name="jl_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"{self.journal_id} | {self.account_id} | D:{self.debit_amount} C:{self.credit_amount}"

    def clean(self):
        # (redundant with CheckConstraint but useful at app-level)
        if self.debit_amount < 0 or self.credit_amount < 0:
            raise ValidationError("Debit and credit must be >= 0")

        if (self.debit_amount > 0) and (self.credit_amount > 0):
            raise ValidationError(
                "JournalLine should not have both debit and credit > 0"
            )
        if (self.debit_amount == 0) and (self.credit_amount == 0):
            raise ValidationError(
                "JournalLine requires a non-0 amount on either debit or credit"
            )

        # Every line must belong to same company as its journal & account
        if self.journal_id and self.company_id != self.journal.company_id:
            raise ValidationError(
                "JournalLine.company must equal JournalEntry.company"
            )
        if self.account_id and self.account.company_id != self.company_id:
            raise ValidationError(
                "JournalLine.account must belong to the same company."
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class EntrySequence(models.Model):
    """
    Per-company, per-year counter for journal entry numbers.
    The row is locked with select_for_update while the next value is taken.
    """

    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="entry_sequences"
    )
    year = models.PositiveIntegerField()
    next_value = models.PositiveIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "year"], name="uq_company_entry_sequence_year"
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.year}={self.next_value}"
