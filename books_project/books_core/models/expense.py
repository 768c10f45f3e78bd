from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .account import Account
from .entitymembership import Company
from .vendor import Vendor

EXPENSE_STATUS_CHOICES = [
    ("recorded", "Recorded"),
    ("paid", "Paid"),
]


class Expense(models.Model):
    """
    A spend record against an expense account.
    Recording an expense does not post to the ledger.
    """

    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="expenses"
    )
    vendor = models.ForeignKey(
        Vendor,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="expenses",
    )
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="expenses"
    )

    date = models.DateField()
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    description = models.TextField()
    reference = models.CharField(max_length=200, null=True, blank=True)
    status = models.CharField(
        max_length=10, choices=EXPENSE_STATUS_CHOICES, default="recorded"
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "date"], name="exp_company_date_idx"
            ),
            models.Index(
                fields=["company", "account"], name="exp_company_account_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="exp_positive_amount",
            ),
        ]

    def __str__(self):
        return f"{self.date} {self.description} ({self.amount})"

    def clean(self):
        if self.amount is not None and self.amount <= Decimal("0"):
            raise ValidationError({"amount": "Amount must be greater than 0."})

        if self.account_id:
            if self.account.company_id != self.company_id:
                raise ValidationError(
                    {"account": "Account must belong to the same company."})
            if self.account.ac_type != "expense":
                raise ValidationError(
                    {"account": "Expenses must be booked to an expense account."})

        if self.vendor_id and self.vendor.company_id != self.company_id:
            raise ValidationError(
                {"vendor": "Vendor must belong to the same company."})

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
