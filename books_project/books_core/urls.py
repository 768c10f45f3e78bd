from django.urls import path

from . import views

company = "companies/<int:company_id>"

urlpatterns = [
    path("companies/", views.companies_view, name="companies"),
    path(f"{company}/accounts/", views.accounts_view, name="accounts"),
    path(
        f"{company}/journal-entries/",
        views.journal_entries_view,
        name="journal-entries",
    ),
    path(
        f"{company}/journal-entries/<int:entry_id>/",
        views.journal_entry_detail_view,
        name="journal-entry-detail",
    ),
    path(
        f"{company}/journal-entries/<int:entry_id>/reverse/",
        views.journal_entry_reverse_view,
        name="journal-entry-reverse",
    ),
    path(f"{company}/expenses/", views.expenses_view, name="expenses"),
    path(f"{company}/invoices/", views.invoices_view, name="invoices"),
    path(f"{company}/metrics/", views.metrics_view, name="metrics"),
]
