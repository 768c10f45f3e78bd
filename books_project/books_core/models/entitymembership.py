from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.text import slugify

from ..managers import TenantManager


# ---------- Tenant / Company ----------
class Company(models.Model):
    """Tenant / Organization"""

    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )
    industry = models.CharField(max_length=100, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    tax_id = models.CharField(max_length=50, blank=True)

    # "MM-DD" of the last day of the fiscal year
    fiscal_year_end = models.CharField(max_length=5, default="12-31")
    # All amounts of this company are booked in its base currency
    base_currency = models.CharField(max_length=3, default="USD")

    # Creator of the company
    # if the user is deleted, the company stays and owner is set to NULL
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="owned_companies",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name

    def _unique_slug(self, max_tries=100):
        # "Test Ltd" → "test-ltd" → "test-ltd-1" → "test-ltd-2" ...
        base = slugify(self.name) or "company"
        slug = base
        i = 1
        while Company.objects.filter(slug=slug).exclude(pk=self.pk).exists():
            slug = f"{base}-{i}"
            i += 1
            if i > max_tries:
                raise ValidationError("Couldn't generate unique slug")
        return slug

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = self._unique_slug()
        return super().save(*args, **kwargs)


# ---------- Custom User ----------
class User(AbstractUser):
    """
    Keeps all AbstractUser fields.
    'AUTH_USER_MODEL = "books_core.User"' is set in settings.py
    """
    # Optional contact number field, can be left empty in forms
    phone = models.CharField(max_length=32, blank=True)

    objects = UserManager()

    def __str__(self):
        # Fall back to username if no name is set
        return self.get_full_name() or self.username


# ---------- EntityMembership ----------
class EntityMembership(models.Model):
    """Bridge table between User and Company; the only source of company access."""

    ROLE_CHOICES = [
        ("admin", "Admin"),  # manage company settings & users
        ("accountant", "Accountant"),  # post journals, record expenses & invoices
        ("user", "User"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        # If user is deleted, their memberships go too
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    company = models.ForeignKey(
        "Company", on_delete=models.CASCADE, related_name="memberships"
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="user")

    # Suspend someone's access without deleting the record
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # one user can only have one membership per company
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"], name="uq_user_company_membership"
            ),
        ]
        indexes = [
            models.Index(
                fields=["company", "user"], name="mem_company_user_idx"
            ),
        ]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
