from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company

AUDIT_ACTIONS = [
    ("create", "Create"),
    ("post", "Post"),
    ("reverse", "Reverse"),
    ("rebuild", "Rebuild"),
]


# ---------- Audit / Event log ----------
class AuditLog(models.Model):
    """Who did what to which ledger object, and when."""

    company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="audit_logs",
    )
    # Null for automated actions (Celery task, management command)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    action = models.CharField(max_length=20, choices=AUDIT_ACTIONS)
    # e.g. "JournalEntry", "Expense", "Invoice"
    object_type = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    # Free-form JSON payload: entry number, totals, reversed entry ...
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["company", "created_at"], name="audit_company_created_idx"
            ),
            models.Index(
                fields=["company", "object_type", "object_id"], name="audit_company_object_idx"
            ),
        ]

    def __str__(self):
        when = self.created_at
        return f"[{when:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"

    def clean(self):
        # The acting user must be a member of the company being logged
        if self.user_id and self.company_id:
            if not self.user.memberships.filter(
                company_id=self.company_id, is_active=True
            ).exists():
                raise ValidationError(
                    "AuditLog.user must be a member of AuditLog.company"
                )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
