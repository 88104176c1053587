"""
One-shot CSV bulk loader, run at startup before the HTTP listener opens.

File format:
- no header row
- columns in order: cid, name, image
- rows with fewer than 3 fields are skipped (logged with their line number)
- extra columns are ignored
- blank lines are ignored

Loading is idempotent: a row whose cid already exists is a silent no-op, so
re-running against the same file inserts nothing new.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from recordserve.core.errors import StartupError

from .schemas import Record

REQUIRED_FIELDS = 3

logger = logging.getLogger(__name__)


class RecordWriter(Protocol):
    async def insert(self, record: Record) -> bool: ...


@dataclass(frozen=True)
class LoadStats:
    path: str
    found: bool = True
    rows: int = 0
    inserted: int = 0
    duplicates: int = 0
    invalid: int = 0
    failed: int = 0


def read_rows(path: Path) -> list[tuple[int, list[str]]]:
    """
    Parse the whole file up front and return (line_number, fields) pairs.

    Raises StartupError when the file cannot be opened, decoded or parsed.
    """
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f, strict=True)
            rows: list[tuple[int, list[str]]] = []
            for fields in reader:
                if not fields:
                    continue
                rows.append((reader.line_num, fields))
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise StartupError(f"Unable to read CSV file {path}: {exc}") from exc
    return rows


async def load_csv(path: str | Path, store: RecordWriter) -> LoadStats:
    """
    Upsert every valid row of the CSV file at `path` into `store`.

    A missing file is not an error: the service just serves whatever the
    table already holds. A present but unreadable file raises StartupError
    before anything is inserted.
    """
    path = Path(path)
    if not path.exists():
        logger.info("csv_not_found path=%s skipping data insertion", path)
        return LoadStats(path=str(path), found=False)

    rows = read_rows(path)

    inserted = duplicates = invalid = failed = 0
    for line, fields in rows:
        if len(fields) < REQUIRED_FIELDS:
            invalid += 1
            logger.warning("csv_row_invalid line=%s fields=%s", line, fields)
            continue

        if len(fields) > REQUIRED_FIELDS:
            logger.debug("csv_row_extra_fields line=%s ignored=%s", line, len(fields) - REQUIRED_FIELDS)

        record = Record(cid=fields[0], name=fields[1], image=fields[2])
        try:
            written = await store.insert(record)
        except Exception:
            failed += 1
            logger.exception("csv_row_insert_failed line=%s cid=%s", line, record.cid)
            continue

        if written:
            inserted += 1
        else:
            duplicates += 1

    stats = LoadStats(
        path=str(path),
        rows=len(rows),
        inserted=inserted,
        duplicates=duplicates,
        invalid=invalid,
        failed=failed,
    )
    logger.info(
        "csv_load_complete path=%s rows=%s inserted=%s duplicates=%s invalid=%s failed=%s",
        stats.path,
        stats.rows,
        stats.inserted,
        stats.duplicates,
        stats.invalid,
        stats.failed,
    )
    return stats
