# core/services/numbering.py

"""
DOCUMENT NUMBERING

Atomic per-tenant sequences used to build human-readable document numbers
such as GRV-202610-000001.

Concurrency:
- The counter row is locked (select_for_update) before it is read, and the
  increment is written with an F() expression inside the same transaction.
- The very first allocation for a (tenant, key) may race on row creation;
  the loser hits the unique constraint and simply re-reads the winner's row.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.conf import ledger_setting
from core.models import DocumentCounter

logger = logging.getLogger("numbering")

_NUMBER_RE = re.compile(r"^(?P<prefix>[A-Z]+)-(?P<year>\d{4})(?P<month>\d{2})?-(?P<sequence>\d+)$")


@dataclass(frozen=True)
class ParsedDocumentNumber:
    prefix: str
    year: int
    month: int | None
    sequence: int


def _normalize_key(document_key: str) -> str:
    key = (document_key or "").strip().upper()
    if not key:
        raise ValueError("document_key is required")
    return key


def _get_or_create_counter(*, tenant, key: str) -> DocumentCounter:
    try:
        with transaction.atomic():
            counter, _ = DocumentCounter.objects.get_or_create(tenant=tenant, key=key)
    except IntegrityError:
        # Another request created the row between our lookup and insert.
        counter = DocumentCounter.objects.get(tenant=tenant, key=key)
    return counter


@transaction.atomic
def next_sequence(*, tenant, document_key: str) -> int:
    """
    Allocate the next integer for (tenant, document_key).

    Never returns the same number twice for the same key, and keys/tenants
    are fully independent.
    """
    key = _normalize_key(document_key)
    counter = _get_or_create_counter(tenant=tenant, key=key)

    locked = DocumentCounter.objects.select_for_update().get(pk=counter.pk)
    allocated = int(locked.next_number)

    DocumentCounter.objects.filter(pk=locked.pk).update(
        next_number=F("next_number") + 1,
        updated_at=timezone.now(),
    )

    logger.debug(
        "Allocated document sequence",
        extra={"tenant_id": str(getattr(tenant, "id", tenant)), "key": key, "sequence": allocated},
    )
    return allocated


def format_document_number(*, prefix: str, sequence: int, when: datetime, padding: int | None = None) -> str:
    """PREFIX-YYYYMM-000123"""
    if sequence < 1:
        raise ValueError("sequence must be >= 1")
    width = ledger_setting("DOCUMENT_NUMBER_PADDING") if padding is None else padding
    return f"{prefix}-{when.year:04d}{when.month:02d}-{str(sequence).zfill(width)}"


def generate_document_number(*, tenant, document_key: str, prefix: str | None = None, when=None) -> str:
    key = _normalize_key(document_key)
    when = when or timezone.localtime()
    sequence = next_sequence(tenant=tenant, document_key=key)
    return format_document_number(prefix=(prefix or key), sequence=sequence, when=when)


def parse_document_number(text: str) -> ParsedDocumentNumber | None:
    """
    Accepts both PREFIX-YYYYMM-NNNNNN (receipts) and PREFIX-YYYY-NNNNNN.
    Returns None for anything else.
    """
    match = _NUMBER_RE.match((text or "").strip())
    if not match:
        return None

    month = match.group("month")
    return ParsedDocumentNumber(
        prefix=match.group("prefix"),
        year=int(match.group("year")),
        month=int(month) if month else None,
        sequence=int(match.group("sequence")),
    )
