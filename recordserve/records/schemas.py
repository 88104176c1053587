"""
Pydantic schemas for records.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    """
    One row of the `records` table as served by `/data`.

    The surrogate `id` column is never exposed.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    cid: str
    name: str
    image: str = ""
