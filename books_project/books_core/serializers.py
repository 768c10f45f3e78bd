"""
Model -> JSON-ready dict converters for the API views.
Money is rendered as 2-decimal strings, dates as ISO strings.
"""


def money(value):
    return None if value is None else f"{value:.2f}"


def _iso(value):
    return value.isoformat() if value else None


def company_to_dict(company):
    data = {
        "id": company.pk,
        "name": company.name,
        "slug": company.slug,
        "industry": company.industry,
        "address": company.address,
        "phone": company.phone,
        "email": company.email,
        "taxId": company.tax_id,
        "fiscalYearEnd": company.fiscal_year_end,
        "baseCurrency": company.base_currency,
    }
    # Set by get_companies_for_user
    if hasattr(company, "role"):
        data["role"] = company.role
    return data


def account_to_dict(account):
    return {
        "id": account.pk,
        "code": account.code,
        "name": account.name,
        "type": account.ac_type,
        "subtype": account.subtype,
        "description": account.description,
        "parentId": account.parent_id,
        "isActive": account.is_active,
        "isCashAccount": account.is_cash_account,
        "normalBalance": account.normal_balance,
        "balance": money(account.balance),
    }


def journal_line_to_dict(line):
    return {
        "id": line.pk,
        "accountId": line.account_id,
        "accountCode": line.account.code,
        "accountName": line.account.name,
        "description": line.description,
        "debitAmount": money(line.debit_amount),
        "creditAmount": money(line.credit_amount),
    }


def journal_entry_to_dict(entry, with_lines=True):
    data = {
        "id": entry.pk,
        "entryNumber": entry.entry_number,
        "date": _iso(entry.date),
        "description": entry.description,
        "reference": entry.reference,
        "totalAmount": money(entry.total_amount),
        "status": entry.status,
        "postedAt": _iso(entry.posted_at),
        "createdBy": entry.created_by_id,
        "reversalOf": entry.reversal_of_id,
    }
    if with_lines:
        data["lines"] = [journal_line_to_dict(line) for line in entry.lines.all()]
    return data


def expense_to_dict(expense):
    return {
        "id": expense.pk,
        "accountId": expense.account_id,
        "vendorId": expense.vendor_id,
        "date": _iso(expense.date),
        "amount": money(expense.amount),
        "description": expense.description,
        "reference": expense.reference,
        "status": expense.status,
        "createdBy": expense.created_by_id,
    }


def invoice_line_to_dict(line):
    return {
        "id": line.pk,
        "description": line.description,
        "quantity": money(line.quantity),
        "unitPrice": money(line.unit_price),
        "totalAmount": money(line.total_amount),
        "accountId": line.account_id,
    }


def invoice_to_dict(invoice):
    return {
        "id": invoice.pk,
        "customerId": invoice.customer_id,
        "customerName": invoice.customer.name,
        "invoiceNumber": invoice.invoice_number,
        "date": _iso(invoice.date),
        "dueDate": _iso(invoice.due_date),
        "subtotal": money(invoice.subtotal),
        "taxAmount": money(invoice.tax_amount),
        "totalAmount": money(invoice.total_amount),
        "paidAmount": money(invoice.paid_amount),
        "outstandingAmount": money(invoice.outstanding_amount),
        "status": invoice.status,
        "notes": invoice.notes,
        "lines": [invoice_line_to_dict(line) for line in invoice.lines.all()],
    }
