from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


class Vendor(models.Model):  # Mirrors Customer but for the payable side

    # Multi-tenant
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="vendors"
    )

    # Same fields as Customer, but now for suppliers/vendors
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.TextField(blank=True)
    tax_id = models.CharField(max_length=50, blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "name"], name="vend_company_name_idx"
            ),
        ]

        # Vendor names must be unique per company
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_vendor_name"
            ),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
