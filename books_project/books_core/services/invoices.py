import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import NotFoundError
from ..models import Customer, Invoice, InvoiceLine
from .accounts import get_account
from .audit_helper import log_action

logger = logging.getLogger(__name__)


def create_invoice(company, header: dict, lines, user=None) -> Invoice:
    """
    Persist an invoice and its lines in one transaction.
    Amounts are stored as given; nothing is recomputed from the lines.
    """
    customer = Customer.objects.for_company(company).filter(
        pk=header.get("customer_id")
    ).first()
    if customer is None:
        raise NotFoundError(f"Customer {header.get('customer_id')} not found")

    number = header.get("invoice_number")
    if Invoice.objects.for_company(company).filter(invoice_number=number).exists():
        raise ValidationError(
            {"invoice_number": [f"Invoice {number} already exists."]}
        )

    # Resolve line accounts before writing anything
    accounts = [
        get_account(company, line["account_id"]) if line.get("account_id") else None
        for line in lines
    ]

    with transaction.atomic():
        invoice = Invoice.objects.create(
            company=company,
            customer=customer,
            invoice_number=number,
            date=header.get("date"),
            due_date=header.get("due_date"),
            subtotal=header.get("subtotal"),
            tax_amount=header.get("tax_amount") or 0,
            total_amount=header.get("total_amount"),
            paid_amount=header.get("paid_amount") or 0,
            status=header.get("status") or "draft",
            notes=header.get("notes") or "",
        )
        for line, account in zip(lines, accounts):
            InvoiceLine.objects.create(
                company=company,
                invoice=invoice,
                description=line.get("description"),
                quantity=line.get("quantity"),
                unit_price=line.get("unit_price"),
                total_amount=line.get("total_amount"),
                account=account,
            )
        log_action(
            action="create",
            instance=invoice,
            user=user,
            company=company,
            changes={"invoice_number": number, "total_amount": str(invoice.total_amount)},
        )

    logger.info(
        "Invoice created",
        extra={"company_id": company.pk, "invoice_number": number},
    )
    return invoice


def get_invoices_by_company(company):
    return list(
        Invoice.objects.for_company(company)
        .select_related("customer")
        .prefetch_related("lines")
        .order_by("-date", "-id")
    )
