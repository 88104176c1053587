"""
Record persistence.
This module is where records-related SQL lives.
"""

from __future__ import annotations

from typing import Any

from recordserve.core import db

from .schemas import Record


class RecordStore:
    """
    Storage client shared by the bulk loader and the HTTP layer.

    Anything with the same two coroutine methods can stand in for it.
    """

    def __init__(self, database: db.Database) -> None:
        self.database = database

    async def insert(self, record: Record) -> bool:
        """
        Insert a record unless its cid already exists.

        Returns True when a row was written, False for a duplicate cid.
        """
        row = await self.database.fetch_one(
            """
            INSERT INTO records (cid, name, image)
            VALUES ($1, $2, $3)
            ON CONFLICT (cid) DO NOTHING
            RETURNING id
            """,
            record.cid,
            record.name,
            record.image,
        )
        return row is not None

    async def list_all(self) -> list[dict[str, Any]]:
        return await self.database.fetch_all(
            """
            SELECT cid, name, COALESCE(image, '') AS image
            FROM records
            """
        )
