from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import JournalEntry

"""Posted history is corrected by reversal, never by deletion."""


@receiver(pre_delete, sender=JournalEntry)
def prevent_delete_posted_journal_entry(sender, instance, **kwargs):
    if instance.status in ("posted", "reversed"):
        raise ValidationError(
            f"Cannot delete {instance.status} journal entry "
            f"{instance.entry_number}; reverse it instead."
        )
