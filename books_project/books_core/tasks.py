import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def rebuild_account_balances(company_id):
    """Recompute a company's account balances from its journal lines."""
    # import lazily to avoid circular imports at module import time
    from .models import AuditLog, Company
    from .services.balances import rebuild_balances

    company = Company.objects.filter(pk=company_id).first()
    if company is None:
        logger.warning(
            "Balance rebuild skipped: company not found",
            extra={"company_id": company_id},
        )
        return 0

    changed = rebuild_balances(company)
    AuditLog.objects.create(
        company=company,
        action="rebuild",
        object_type="Company",
        object_id=str(company.pk),
        changes={"accounts_changed": changed},
    )
    logger.info(
        "Balances rebuilt",
        extra={"company_id": company_id, "accounts_changed": changed},
    )
    return changed
