import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from books_core.models import Company
from books_core.services.accounts import create_account
from books_core.services.companies import create_company
from books_core.services.posting import post_journal_entry

User = get_user_model()

# code, name, type
STARTER_CHART = [
    ("1000", "Cash", "asset"),
    ("1010", "Bank - Checking", "asset"),
    ("1200", "Accounts Receivable", "asset"),
    ("2000", "Accounts Payable", "liability"),
    ("3000", "Owner's Equity", "equity"),
    ("4000", "Sales Revenue", "revenue"),
    ("5000", "Rent Expense", "expense"),
    ("5100", "Office Supplies", "expense"),
]


class Command(BaseCommand):
    help = (
        "Create a demo user and company with a starter chart of accounts "
        "and an opening journal entry."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",
            default="Demo Company",
            help="Name of the demo company to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )
        parser.add_argument(
            "--opening-capital",
            default="10000.00",
            help="Amount of the opening Cash / Owner's Equity entry.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        company_name = options["company_name"]
        username = options["username"]
        capital = Decimal(options["opening_capital"])

        # 1. Create user
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:
            user.set_password(options["password"])
            user.save()
            self.stdout.write(self.style.SUCCESS(f"Created user: {username}"))

        existing = Company.objects.filter(
            name=company_name, memberships__user=user
        ).first()
        if existing:
            self.stdout.write(
                self.style.WARNING(
                    f"{username} already belongs to {existing} (id={existing.pk}); nothing to do"
                )
            )
            return

        # 2. Create company (creator becomes admin member)
        company = create_company(user, {"name": company_name})
        self.stdout.write(
            self.style.SUCCESS(f"Created company: {company} (id={company.pk})")
        )

        # 3. Starter chart of accounts
        accounts = {
            code: create_account(company, {"code": code, "name": name, "type": ac_type})
            for code, name, ac_type in STARTER_CHART
        }
        self.stdout.write(
            self.style.SUCCESS(f"Created {len(accounts)} accounts")
        )

        # 4. Opening balance through the regular posting path
        je = post_journal_entry(
            company,
            {
                "date": datetime.date.today(),
                "description": "Opening capital contribution",
                "reference": "OPENING",
            },
            [
                {"account_id": accounts["1010"].pk, "debit_amount": capital},
                {"account_id": accounts["3000"].pk, "credit_amount": capital},
            ],
            user=user,
        )
        self.stdout.write(
            self.style.SUCCESS(f"Posted {je.entry_number} for {je.total_amount}")
        )
