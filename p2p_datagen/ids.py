"""
Identifier formats for generated P2P documents.

Document numbers carry the year of the document's own date and a 1-based
sequence that restarts per year, e.g. ``PO2024-00017``. SequenceCounters
keeps those per-year buckets and is threaded through chunked generation so
numbers never repeat across chunks.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Callable, Dict, List, Sequence, Tuple, TypeVar

T = TypeVar("T")

VENDOR_PREFIX = "VND"
USER_PREFIX = "USER"
PR_PREFIX = "PR"
PR_LINE_PREFIX = "PRL"
PO_PREFIX = "PO"
GRN_PREFIX = "GRN"
INVOICE_PREFIX = "INV"
PAYMENT_PREFIX = "PAY"
QUOTATION_PREFIX = "QUO"
CONTRACT_PREFIX = "CNT"
CONTRACT_NUMBER_PREFIX = "CONTRACT"
ROLE_PREFIX = "ROL"
PR_WORKFLOW_PREFIX = "PRW"
PO_WORKFLOW_PREFIX = "POW"
PAYMENT_WORKFLOW_PREFIX = "PAYW"
VENDOR_BANK_CHANGE_PREFIX = "VBC"
PO_CHANGE_PREFIX = "POC"
ANOMALY_PREFIX = "ANOM"


def vendor_id(sequence: int) -> str:
    return f"{VENDOR_PREFIX}{sequence:06d}"


def user_id(sequence: int) -> str:
    return f"{USER_PREFIX}{sequence:06d}"


def document_number(prefix: str, year: int, sequence: int) -> str:
    """PO2024-00001 style number shared by PR, PO, GRN, INV, PAY, QUO and CNT."""
    return f"{prefix}{year}-{sequence:05d}"


def pr_line_id(year: int, pr_sequence: int, line_number: int) -> str:
    return f"{PR_LINE_PREFIX}{year}-{pr_sequence:05d}-{line_number:03d}"


def role_assignment_id(year: int, sequence: int) -> str:
    return f"{ROLE_PREFIX}{year}-{sequence:06d}"


def log_id(prefix: str, year: int, sequence: int) -> str:
    """Workflow and change log ids use an 8 digit sequence."""
    return f"{prefix}{year}-{sequence:08d}"


def contract_number(year: int, sequence: int) -> str:
    return f"{CONTRACT_NUMBER_PREFIX}-{year}-{sequence:04d}"


def anomaly_id(sequence: int) -> str:
    return f"{ANOMALY_PREFIX}-{sequence:06d}"


def parse_sequence(document_no: str) -> int:
    """Sequence part of a ``PREFIXyyyy-nnnnn`` number."""
    return int(document_no.rsplit("-", 1)[1])


class SequenceCounters:
    """Running per-(prefix, year) sequence counters."""

    def __init__(self) -> None:
        self._counters: Dict[Tuple[str, int], int] = defaultdict(int)

    def next(self, prefix: str, year: int) -> int:
        self._counters[(prefix, year)] += 1
        return self._counters[(prefix, year)]

    def current(self, prefix: str, year: int) -> int:
        return self._counters.get((prefix, year), 0)

    def snapshot(self) -> Dict[str, int]:
        return {f"{prefix}{year}": value for (prefix, year), value in sorted(self._counters.items())}


def number_by_date(
    records: Sequence[T],
    date_attr: str,
    id_attr: str,
    prefix: str,
    counters: SequenceCounters,
    formatter: Callable[[str, int, int], str] = document_number,
) -> List[T]:
    """
    Sort records by their date (stable) and assign per-year numbers.

    Numbering after sorting keeps sequence numbers increasing with date
    within each year of a batch.
    """
    ordered = sorted(records, key=lambda record: getattr(record, date_attr))
    for record in ordered:
        record_date: date = getattr(record, date_attr)
        year = record_date.year
        setattr(record, id_attr, formatter(prefix, year, counters.next(prefix, year)))
    return ordered
