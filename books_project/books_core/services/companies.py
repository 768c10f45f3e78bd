import logging

from django.db import transaction
from django.db.models import F

from ..exceptions import AuthorizationError
from ..models import Company, EntityMembership

logger = logging.getLogger(__name__)


# ----------------------------------------------
# Tenant / membership workflows
# ----------------------------------------------
def create_company(user, data: dict) -> Company:
    """Create a company and make its creator an admin member."""
    with transaction.atomic():
        company = Company(owner=user, **data)
        company.full_clean(exclude=["slug"])
        company.save()
        EntityMembership.objects.create(
            user=user, company=company, role="admin"
        )
    logger.info(
        "Company created",
        extra={"company_id": company.pk, "user_id": user.pk},
    )
    return company


def get_companies_for_user(user):
    """Companies the user is an active member of, annotated with `role`."""
    return (
        Company.objects.filter(
            memberships__user=user, memberships__is_active=True
        )
        .annotate(role=F("memberships__role"))
        .order_by("name", "id")
    )


def add_user_to_company(company: Company, user, role: str = "user"):
    return EntityMembership.objects.create(
        user=user, company=company, role=role
    )


def require_company_access(user, company_id) -> Company:
    """
    Return the company if `user` has an active membership in it.
    A missing company is reported the same way as a foreign one.
    """
    if user is None or not user.is_authenticated:
        raise AuthorizationError("Access denied to this company")

    company = Company.objects.filter(
        pk=company_id,
        memberships__user=user,
        memberships__is_active=True,
    ).first()
    if company is None:
        logger.warning(
            "Company access denied",
            extra={"company_id": company_id, "user_id": user.pk},
        )
        raise AuthorizationError("Access denied to this company")
    return company
