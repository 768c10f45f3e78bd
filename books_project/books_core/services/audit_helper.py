from typing import Optional
from ..models import AuditLog, Company


def log_action(
    *,
    action: str,
    instance,
    user=None,
    company: Optional[Company] = None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Writes one AuditLog row; runs inside the caller's transaction,
    so a rolled-back posting leaves no audit trail either.
    """

    if company is None:
        company = getattr(instance, "company", None)

    # AnonymousUser is recorded as a system action
    if user is not None and not getattr(user, "is_authenticated", False):
        user = None

    return AuditLog.objects.create(
        company=company,
        user=user,
        action=action,
        object_type=type(instance).__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
