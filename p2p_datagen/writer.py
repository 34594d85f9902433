"""
CSV and manifest output.

Every table goes to ``<stem>.csv`` with a header row in record field order
and every value quoted. Missing values are written as empty strings.

Usage:
    with CSVWriter(path, Vendor) as writer:
        writer.write_rows(vendors)
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Type, Union

from .manifest import MANIFEST_FILE, TRUTH_FILE, csv_name
from .models import AnomalyTruthRecord, P2PDataset, Record

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CSVWriter:
    """Append-only CSV sink for one record type."""

    def __init__(self, path: PathLike, record_cls: Type[Record]):
        self.path = Path(path)
        self.columns = record_cls.columns()
        self.rows_written = 0
        self._file = open(self.path, "w", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(self._file, fieldnames=self.columns, quoting=csv.QUOTE_ALL)
        self._writer.writeheader()

    def write_rows(self, records: Iterable[Record]) -> int:
        written = 0
        for record in records:
            self._writer.writerow(record.to_row())
            written += 1
        self.rows_written += written
        return written

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> "CSVWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def write_table(path: PathLike, record_cls: Type[Record], records: Iterable[Record]) -> int:
    with CSVWriter(path, record_cls) as writer:
        return writer.write_rows(records)


def write_dataset(
    dataset: P2PDataset,
    truth_records: List[AnomalyTruthRecord],
    output_dir: PathLike,
) -> Dict[str, Path]:
    """Write every table plus the truth file; returns file name -> path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written: Dict[str, Path] = {}
    for stem, record_cls, records in dataset.tables():
        path = output_dir / csv_name(stem)
        count = write_table(path, record_cls, records)
        logger.debug("Wrote %s (%d rows)", path, count)
        written[path.name] = path

    truth_path = output_dir / TRUTH_FILE
    count = write_table(truth_path, AnomalyTruthRecord, truth_records)
    logger.debug("Wrote %s (%d rows)", truth_path, count)
    written[truth_path.name] = truth_path
    return written


def write_manifest(manifest: Dict[str, Any], output_dir: PathLike) -> Path:
    path = Path(output_dir) / MANIFEST_FILE
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, sort_keys=True)
        f.write("\n")
    return path
