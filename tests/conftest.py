"""
Pytest configuration for recordserve.

Provides:
- an in-memory record store for loader and HTTP tests
- a fake asyncpg pool that understands the few statements the service issues
- helpers for writing CSV fixtures
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from recordserve.core import db
from recordserve.core.config import DatabaseConfig, RetryPolicy, Settings
from recordserve.records.schemas import Record


class InMemoryRecordStore:
    """Dict-backed stand-in for RecordStore keyed by cid."""

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.insert_calls: list[str] = []
        for row in rows or []:
            self.rows[row["cid"]] = dict(row)

    async def insert(self, record: Record) -> bool:
        self.insert_calls.append(record.cid)
        if record.cid in self.rows:
            return False
        self.rows[record.cid] = record.model_dump()
        return True

    async def list_all(self) -> list[dict[str, Any]]:
        return list(self.rows.values())


class FakePool:
    """
    Minimal asyncpg.Pool double.

    Supports the liveness ping, the schema DDL, the upsert and the full scan.
    """

    def __init__(self, *, fail_ping: bool = False, fail_execute: bool = False) -> None:
        self.fail_ping = fail_ping
        self.fail_execute = fail_execute
        self.rows: list[dict[str, Any]] = []
        self.executed: list[str] = []
        self.closed = False

    async def fetchval(self, sql: str, *args: Any) -> Any:
        del args
        if self.fail_ping:
            raise ConnectionResetError("server closed the connection")
        assert "SELECT 1" in sql
        return 1

    async def execute(self, sql: str, *args: Any) -> str:
        del args
        if self.fail_execute:
            raise PermissionError("permission denied for schema public")
        self.executed.append(sql)
        return "CREATE TABLE"

    async def fetchrow(self, sql: str, *args: Any) -> dict[str, Any] | None:
        assert "INSERT INTO records" in sql
        assert "ON CONFLICT (cid) DO NOTHING" in sql
        cid, name, image = args
        if any(row["cid"] == cid for row in self.rows):
            return None
        row_id = len(self.rows) + 1
        self.rows.append({"id": row_id, "cid": cid, "name": name, "image": image})
        return {"id": row_id}

    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        del args
        assert "FROM records" in sql
        return [
            {"cid": row["cid"], "name": row["name"], "image": row["image"] or ""}
            for row in self.rows
        ]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture
def patch_create_pool(monkeypatch) -> Callable[..., list[dict[str, Any]]]:
    """
    Replace asyncpg.create_pool with a scripted sequence of outcomes.

    Each outcome is either a FakePool (returned) or an exception (raised).
    The last outcome repeats once the script runs out. Returns the call log.
    """

    def install(*outcomes: Any) -> list[dict[str, Any]]:
        calls: list[dict[str, Any]] = []

        async def fake_create_pool(*args: Any, **kwargs: Any) -> FakePool:
            del args
            calls.append(kwargs)
            outcome = outcomes[min(len(calls), len(outcomes)) - 1]
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome

        monkeypatch.setattr(db.asyncpg, "create_pool", fake_create_pool)
        return calls

    return install


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(attempts=3, interval_s=0.0)


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[[str], Path]:
    def write(content: str, name: str = "data.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return write


@pytest.fixture
def make_settings(tmp_path: Path, fast_retry: RetryPolicy) -> Callable[..., Settings]:
    def make(csv_path: Path | None = None) -> Settings:
        return Settings(
            database=DatabaseConfig(host="db.test", password="secret"),
            retry=fast_retry,
            csv_path=str(csv_path or tmp_path / "missing.csv"),
        )

    return make
