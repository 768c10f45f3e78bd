import logging
import re

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from ..models import EntrySequence, JournalEntry

logger = logging.getLogger(__name__)

ENTRY_NUMBER_PREFIX = "JE"
# Four digits minimum; sequences past 9999 simply grow wider
ENTRY_NUMBER_RE = re.compile(r"^JE(?P<year>\d{4})-(?P<seq>\d{4,})$")


def format_entry_number(year: int, seq: int) -> str:
    """(2024, 1) -> 'JE2024-0001'"""
    return f"{ENTRY_NUMBER_PREFIX}{year}-{seq:04d}"


def parse_entry_number(number: str) -> tuple[int, int]:
    """'JE2024-0001' -> (2024, 1)"""
    match = ENTRY_NUMBER_RE.match(number or "")
    if not match:
        raise ValidationError(f"Malformed entry number: {number!r}")
    return int(match["year"]), int(match["seq"])


def _highest_issued_sequence(company, year: int) -> int:
    """
    Largest sequence already used by the company's entries for `year`.
    Compared as integers, so JE2024-10000 ranks above JE2024-9999.
    """
    numbers = JournalEntry.objects.for_company(company).filter(
        entry_number__startswith=f"{ENTRY_NUMBER_PREFIX}{year}-"
    ).values_list("entry_number", flat=True)

    highest = 0
    for number in numbers:
        match = ENTRY_NUMBER_RE.match(number)
        if match and int(match["year"]) == year:
            highest = max(highest, int(match["seq"]))
    return highest


def _locked_sequence(company, year: int) -> EntrySequence:
    seq = (
        EntrySequence.objects.select_for_update()
        .filter(company=company, year=year)
        .first()
    )
    if seq is not None:
        return seq

    # First number of the year: seed from entries already on file
    try:
        with transaction.atomic():
            seq = EntrySequence.objects.create(
                company=company,
                year=year,
                next_value=_highest_issued_sequence(company, year) + 1,
            )
    except IntegrityError:
        # Another transaction created the row first; lock theirs
        seq = EntrySequence.objects.select_for_update().get(
            company=company, year=year
        )
    return seq


def skip_taken_numbers(company, year: int) -> int:
    """
    Move the (company, year) counter past every number already on file,
    e.g. after entries were imported with numbers ahead of the counter.
    Returns the counter's next value.
    """
    with transaction.atomic():
        seq = _locked_sequence(company, year)
        floor = _highest_issued_sequence(company, year) + 1
        if seq.next_value < floor:
            logger.warning(
                "Entry counter behind issued numbers",
                extra={
                    "company_id": company.pk,
                    "year": year,
                    "next_value": seq.next_value,
                    "resynced_to": floor,
                },
            )
            seq.next_value = floor
            seq.save(update_fields=["next_value", "updated_at"])
    return seq.next_value


def next_entry_number(company, year: int) -> str:
    """
    Allocate the next entry number for (company, year).

    Must run inside the caller's transaction.atomic() block: the counter
    row stays locked until that transaction ends, and rolling it back
    gives the number back.
    """
    seq = _locked_sequence(company, year)
    value = seq.next_value
    seq.next_value = value + 1
    seq.save(update_fields=["next_value", "updated_at"])

    number = format_entry_number(year, value)
    logger.debug(
        "Allocated entry number",
        extra={"company_id": company.pk, "entry_number": number},
    )
    return number
