from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .account import Account
from .customer import Customer
from .entitymembership import Company

INV_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("cancelled", "Cancelled"),
]


class Invoice(models.Model):  # Represents a customer invoice

    # Invoice belongs to one company (multi-tenant)
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="invoices"
    )

    customer = models.ForeignKey(
        Customer,
        # prevent deleting customer who has an invoice
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    # Identifiers and key dates
    # human-readable (e.g. "INV-2025-001")
    invoice_number = models.CharField(max_length=64)
    date = models.DateField()  # issue date
    due_date = models.DateField()  # payment deadline

    # Amounts are supplied by the caller, not computed from lines
    subtotal = models.DecimalField(max_digits=15, decimal_places=2)
    tax_amount = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(max_digits=15, decimal_places=2)
    paid_amount = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00")
    )

    status = models.CharField(
        max_length=10, choices=INV_STATUS_CHOICES, default="draft"
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # Optimize for fast lookups by invoice number or customer
        indexes = [
            models.Index(
                fields=["company", "date"], name="inv_company_date_idx"
            ),
            models.Index(
                fields=["company", "customer"], name="inv_company_customer_idx"
            ),
        ]

        constraints = [
            # Within one company, each invoice number must be unique
            # Across companies, duplicates are allowed
            models.UniqueConstraint(
                fields=["company", "invoice_number"],
                name="uq_invoice_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(subtotal__gte=0) &
                models.Q(tax_amount__gte=0) &
                models.Q(total_amount__gte=0) &
                models.Q(paid_amount__gte=0),
                name="inv_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"Inv {self.invoice_number}"

    @property
    def outstanding_amount(self):
        # if payments overshoot for any reason, it caps at 0, not negative
        return max(self.total_amount - self.paid_amount, Decimal("0.00"))

    def clean(self):
        # Ensure customer chosen belongs to the same company
        if self.customer_id and self.customer.company_id != self.company_id:
            raise ValidationError(
                {"customer": "Customer must belong to the same company."}
            )
        if self.due_date and self.date and self.due_date < self.date:
            raise ValidationError(
                {"due_date": "Due date cannot be before the invoice date."}
            )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class InvoiceLine(models.Model):  # One billed item/service on an invoice

    # Belongs to both a company and its parent invoice
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="lines"
    )
    description = models.TextField()

    quantity = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("1.00")
    )
    unit_price = models.DecimalField(max_digits=15, decimal_places=2)
    total_amount = models.DecimalField(max_digits=15, decimal_places=2)

    # Sales / revenue account for this line
    account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        # You can’t delete an account if lines still point to it
        on_delete=models.PROTECT,
        related_name="invoice_lines",
    )

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(
                fields=["company", "invoice"], name="invl_company_invoice_idx"
            ),
            models.Index(
                fields=["company", "account"], name="invl_company_account_idx"
            ),
        ]

        # Ensure quantity & unit_price are never negative
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0) &
                models.Q(unit_price__gte=0),
                name="invl_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"{self.invoice_id}: {self.description} ({self.total_amount})"

    def clean(self):
        # Tenant safety for parent invoice and revenue account
        if self.invoice_id and self.invoice.company_id != self.company_id:
            raise ValidationError(
                "InvoiceLine.company must match Invoice.company")
        if self.account_id and self.account.company_id != self.company_id:
            raise ValidationError(
                {"account": "InvoiceLine.company must match Account.company"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
