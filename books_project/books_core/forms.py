from decimal import Decimal

from django import forms
from django.core.validators import RegexValidator

from .models.account import AC_TYPES
from .models.expense import EXPENSE_STATUS_CHOICES
from .models.invoice import INV_STATUS_CHOICES

# -----------------------------
# Request payload forms (JSON API)
# -----------------------------


def money_field(required=True, min_value=Decimal("0")):
    return forms.DecimalField(
        required=required, max_digits=15, decimal_places=2, min_value=min_value
    )


class PayloadForm(forms.Form):
    """Form bound to a decoded JSON object instead of request.POST."""

    def payload(self) -> dict:
        # Drop fields the client left out so model defaults apply
        return {
            key: value
            for key, value in self.cleaned_data.items()
            if value not in (None, "")
        }


class CompanyForm(PayloadForm):
    name = forms.CharField(max_length=200)
    industry = forms.CharField(max_length=100, required=False)
    address = forms.CharField(required=False)
    phone = forms.CharField(max_length=32, required=False)
    email = forms.EmailField(required=False)
    tax_id = forms.CharField(max_length=50, required=False)
    fiscal_year_end = forms.CharField(
        required=False,
        validators=[
            RegexValidator(
                r"^(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$", "Use MM-DD."
            )
        ],
    )
    base_currency = forms.CharField(min_length=3, max_length=3, required=False)

    def clean_base_currency(self):
        return (self.cleaned_data.get("base_currency") or "").upper()


class AccountForm(PayloadForm):
    code = forms.CharField(max_length=10)
    name = forms.CharField(max_length=200)
    type = forms.ChoiceField(choices=AC_TYPES)
    subtype = forms.CharField(max_length=50, required=False)
    description = forms.CharField(required=False)
    parent_id = forms.IntegerField(required=False)
    # Three states: omitted (None) lets the name decide
    is_cash_account = forms.NullBooleanField(required=False)


class JournalEntryForm(PayloadForm):
    date = forms.DateField()
    description = forms.CharField()
    reference = forms.CharField(max_length=200, required=False)


class JournalLineForm(PayloadForm):
    account_id = forms.IntegerField()
    description = forms.CharField(max_length=400, required=False)
    debit_amount = money_field(required=False)
    credit_amount = money_field(required=False)

    def clean(self):
        cleaned = super().clean()
        debit = cleaned.get("debit_amount") or Decimal("0")
        credit = cleaned.get("credit_amount") or Decimal("0")
        if debit > 0 and credit > 0:
            raise forms.ValidationError(
                "A line cannot carry both a debit and a credit."
            )
        if debit == 0 and credit == 0 and not self.errors:
            raise forms.ValidationError(
                "A line needs a non-zero debit or credit."
            )
        return cleaned


class ReversalForm(PayloadForm):
    date = forms.DateField(required=False)


class ExpenseForm(PayloadForm):
    account_id = forms.IntegerField()
    vendor_id = forms.IntegerField(required=False)
    date = forms.DateField()
    amount = money_field(min_value=Decimal("0.01"))
    description = forms.CharField()
    reference = forms.CharField(max_length=200, required=False)
    status = forms.ChoiceField(choices=EXPENSE_STATUS_CHOICES, required=False)


class InvoiceForm(PayloadForm):
    customer_id = forms.IntegerField()
    invoice_number = forms.CharField(max_length=64)
    date = forms.DateField()
    due_date = forms.DateField()
    subtotal = money_field()
    tax_amount = money_field(required=False)
    total_amount = money_field()
    paid_amount = money_field(required=False)
    status = forms.ChoiceField(choices=INV_STATUS_CHOICES, required=False)
    notes = forms.CharField(required=False)

    def clean(self):
        cleaned = super().clean()
        date, due = cleaned.get("date"), cleaned.get("due_date")
        if date and due and due < date:
            self.add_error("due_date", "Due date cannot be before the invoice date.")
        return cleaned


class InvoiceLineForm(PayloadForm):
    description = forms.CharField()
    quantity = forms.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    unit_price = money_field()
    total_amount = money_field()
    account_id = forms.IntegerField(required=False)
