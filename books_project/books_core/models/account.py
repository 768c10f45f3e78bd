from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company

# Choice Lists
AC_TYPES = [
    # Used in Account model to classify general ledger accounts
    ("asset", "Asset"),
    ("liability", "Liability"),
    ("equity", "Equity"),
    ("revenue", "Revenue"),
    ("expense", "Expense"),
]
AC_TYPE_VALUES = tuple(value for value, _ in AC_TYPES)

# Account types whose balance increases on the debit side.
# Liability, equity and revenue increase on the credit side.
DEBIT_NORMAL_TYPES = frozenset({"asset", "expense"})


class Account(models.Model):
    """
    Actual ledger account entry in Chart of Accounts.
    - code is unique per company
    - ac_type decides the normal balance side and the report section
    - balance is a running total kept up to date by journal posting only
    """

    company = models.ForeignKey(  # Each account belongs to one company
        Company,  # All reports must filter by company_id to prevent data leaks
        on_delete=models.CASCADE,
        related_name="accounts",
    )
    # Every account has a code
    # which lets you sort/group accounts consistently in reports.
    code = models.CharField(max_length=10)
    name = models.CharField(
        max_length=200
    )  # Human-readable name → "Cash on Hand", "Accounts Payable".

    ac_type = models.CharField(max_length=10, choices=AC_TYPES)
    # Free-form refinement: current_asset, fixed_asset, current_liability ...
    subtype = models.CharField(max_length=50, blank=True)
    description = models.TextField(blank=True)

    # Optional hierarchy:
    # (e.g. 1000 Cash, 1001 Petty Cash, 1002 Bank Account)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        # you can’t delete a parent if children exist
        related_name="children",
    )

    # “soft deactivate” accounts (hide in UI, stop new postings)
    # without deleting history
    is_active = models.BooleanField(default=True)

    # Counted in the dashboard cash balance (asset accounts only)
    is_cash_account = models.BooleanField(default=False)

    balance = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00")
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            # For reports grouped by ac_type (P&L, Balance Sheet, metrics)
            models.Index(
                fields=["company", "ac_type"], name="acct_company_type_idx"
            ),
            models.Index(
                fields=["company", "parent"], name="acct_company_parent_idx"
            ),
        ]

        """ Each company defines its own chart of accounts.
               Codes repeat across companies but must be unique within one. """
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"], name="uq_company_account_code"
            )
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"
        # Example: "1000 – Cash on Hand".

    @property
    def normal_balance(self):
        return "debit" if self.ac_type in DEBIT_NORMAL_TYPES else "credit"

    def clean(self):
        """Enforce company consistency (multi-tenancy)"""
        if self.parent_id:
            if self.pk and self.parent_id == self.pk:
                raise ValidationError({"parent": "An account cannot be its own parent."})
            if self.parent.company_id != self.company_id:
                raise ValidationError(
                    {"parent": "Parent & child accounts must belong to the same company"}
                )

        if self.is_cash_account and self.ac_type != "asset":
            raise ValidationError(
                {"is_cash_account": "Only asset accounts can be cash accounts."}
            )

    def save(self, *args, **kwargs):
        """Block deactivating accounts used in journal lines"""
        if not self.pk:
            return super().save(*args, **kwargs)
        old = Account.objects.filter(pk=self.pk).only("is_active").first()

        # If account was active before, but now being set to inactive
        if old and old.is_active and not self.is_active:
            from .journal import JournalLine

            if JournalLine.objects.filter(account_id=self.pk).exists():
                raise ValidationError(
                    "Cannot disable an account that is used in journal lines."
                )
        return super().save(*args, **kwargs)
