import json
import logging
from functools import wraps

from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from . import serializers
from .exceptions import (AuthorizationError, ConflictError, NotFoundError,
                         UnbalancedEntryError)
from .forms import (AccountForm, CompanyForm, ExpenseForm, InvoiceForm,
                    InvoiceLineForm, JournalEntryForm, JournalLineForm,
                    ReversalForm)
from .services.accounts import create_account, get_accounts_by_company
from .services.companies import (create_company, get_companies_for_user,
                                 require_company_access)
from .services.expenses import create_expense, get_expenses_by_company
from .services.invoices import create_invoice, get_invoices_by_company
from .services.metrics import get_financial_metrics
from .services.posting import (get_journal_entries_by_company,
                               get_journal_entry, post_journal_entry,
                               reverse_journal_entry)

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 500


# ----------------------------------------------
# Plumbing: error mapping & payload parsing
# ----------------------------------------------
def _error(message, status, errors=None):
    body = {"message": message}
    if errors is not None:
        body["errors"] = errors
    return JsonResponse(body, status=status)


def _error_dict(exc: ValidationError) -> dict:
    if hasattr(exc, "error_dict"):
        return exc.message_dict
    return {"__all__": exc.messages}


def api_view(methods, company_scoped=True):
    """
    Wrap a JSON view: method check, authentication, company membership
    and the exception -> status code mapping, in that order.
    Company-scoped views receive `company` instead of `company_id`.
    """

    def decorator(view):
        @require_http_methods(methods)
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _error("Authentication required", 401)
            try:
                if company_scoped:
                    kwargs["company"] = require_company_access(
                        request.user, kwargs.pop("company_id")
                    )
                return view(request, *args, **kwargs)
            except UnbalancedEntryError as exc:
                return _error(str(exc), 400, {"lines": [str(exc)]})
            except ValidationError as exc:
                return _error("Validation failed", 400, _error_dict(exc))
            except NotFoundError as exc:
                return _error(str(exc), 404)
            except AuthorizationError as exc:
                return _error(str(exc), 403)
            except ConflictError as exc:
                return _error(str(exc), 409)
            except Exception:
                logger.exception(
                    "Unhandled API error",
                    extra={"path": request.path, "method": request.method},
                )
                return _error("Internal server error", 500)

        return wrapper

    return decorator


def _json_body(request) -> dict:
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError({"body": ["Request body must be valid JSON."]})
    if not isinstance(data, dict):
        raise ValidationError({"body": ["Request body must be a JSON object."]})
    return data


def _bind(form_class, data, prefix=None) -> dict:
    """Validate `data` with `form_class`; return its payload or raise."""
    if not isinstance(data, dict):
        key = prefix or "body"
        raise ValidationError({key: ["Expected a JSON object."]})
    form = form_class(data)
    if form.is_valid():
        return form.payload()
    if prefix is None:
        raise ValidationError(form.errors.as_data())
    errors = {}
    for field, field_errors in form.errors.as_data().items():
        key = prefix if field == "__all__" else f"{prefix}.{field}"
        errors[key] = field_errors
    raise ValidationError(errors)


def _bind_lines(form_class, lines) -> list[dict]:
    if not isinstance(lines, list):
        raise ValidationError({"lines": ["Expected a list of lines."]})
    cleaned, errors = [], {}
    for i, line in enumerate(lines):
        try:
            cleaned.append(_bind(form_class, line, prefix=f"lines[{i}]"))
        except ValidationError as exc:
            errors.update(exc.message_dict)
    if errors:
        raise ValidationError(errors)
    return cleaned


def _limit(request) -> int:
    raw = request.GET.get("limit")
    if raw in (None, ""):
        return settings.BOOKS_DEFAULT_LIST_LIMIT
    try:
        limit = int(raw)
    except ValueError:
        raise ValidationError({"limit": ["Enter a whole number."]})
    if not 1 <= limit <= MAX_LIST_LIMIT:
        raise ValidationError(
            {"limit": [f"Must be between 1 and {MAX_LIST_LIMIT}."]}
        )
    return limit


# ----------------------------------------------
# Companies
# ----------------------------------------------
@api_view(["GET", "POST"], company_scoped=False)
def companies_view(request):
    if request.method == "POST":
        data = _bind(CompanyForm, _json_body(request))
        company = create_company(request.user, data)
        company.role = "admin"
        return JsonResponse(serializers.company_to_dict(company), status=201)
    companies = get_companies_for_user(request.user)
    return JsonResponse(
        [serializers.company_to_dict(c) for c in companies], safe=False
    )


# ----------------------------------------------
# Chart of accounts
# ----------------------------------------------
@api_view(["GET", "POST"])
def accounts_view(request, company):
    if request.method == "POST":
        data = _bind(AccountForm, _json_body(request))
        account = create_account(company, data)
        return JsonResponse(serializers.account_to_dict(account), status=201)
    accounts = get_accounts_by_company(company)
    return JsonResponse(
        [serializers.account_to_dict(a) for a in accounts], safe=False
    )


# ----------------------------------------------
# Journal entries
# ----------------------------------------------
@api_view(["GET", "POST"])
def journal_entries_view(request, company):
    if request.method == "POST":
        body = _json_body(request)
        entry = _bind(JournalEntryForm, body.get("entry"), prefix="entry")
        lines = _bind_lines(JournalLineForm, body.get("lines"))
        je = post_journal_entry(company, entry, lines, user=request.user)
        je = get_journal_entry(company, je.pk)
        return JsonResponse(serializers.journal_entry_to_dict(je), status=201)
    entries = get_journal_entries_by_company(company, limit=_limit(request))
    return JsonResponse(
        [serializers.journal_entry_to_dict(e) for e in entries], safe=False
    )


@api_view(["GET"])
def journal_entry_detail_view(request, company, entry_id):
    je = get_journal_entry(company, entry_id)
    return JsonResponse(serializers.journal_entry_to_dict(je))


@api_view(["POST"])
def journal_entry_reverse_view(request, company, entry_id):
    data = _bind(ReversalForm, _json_body(request))
    mirror = reverse_journal_entry(
        company, entry_id, user=request.user, date=data.get("date")
    )
    mirror = get_journal_entry(company, mirror.pk)
    return JsonResponse(serializers.journal_entry_to_dict(mirror), status=201)


# ----------------------------------------------
# Expenses & invoices
# ----------------------------------------------
@api_view(["GET", "POST"])
def expenses_view(request, company):
    if request.method == "POST":
        data = _bind(ExpenseForm, _json_body(request))
        expense = create_expense(company, request.user, data)
        return JsonResponse(serializers.expense_to_dict(expense), status=201)
    expenses = get_expenses_by_company(company, limit=_limit(request))
    return JsonResponse(
        [serializers.expense_to_dict(e) for e in expenses], safe=False
    )


@api_view(["GET", "POST"])
def invoices_view(request, company):
    if request.method == "POST":
        body = _json_body(request)
        header = _bind(InvoiceForm, body.get("invoice"), prefix="invoice")
        lines = _bind_lines(InvoiceLineForm, body.get("lines") or [])
        invoice = create_invoice(company, header, lines, user=request.user)
        return JsonResponse(serializers.invoice_to_dict(invoice), status=201)
    invoices = get_invoices_by_company(company)
    return JsonResponse(
        [serializers.invoice_to_dict(i) for i in invoices], safe=False
    )


# ----------------------------------------------
# Dashboard
# ----------------------------------------------
@api_view(["GET"])
def metrics_view(request, company):
    return JsonResponse(get_financial_metrics(company))
