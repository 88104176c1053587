"""
FastAPI router for the records endpoint.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from .schemas import Record

logger = logging.getLogger(__name__)

router = APIRouter()

record_list = TypeAdapter(list[Record])


class RecordReader(Protocol):
    async def list_all(self) -> list[dict[str, Any]]: ...


def get_store(request: Request) -> RecordReader:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("Record store is not initialized. It is attached on startup.")
    return store


@router.get("/data", response_model=list[Record])
async def list_records(store: RecordReader = Depends(get_store)) -> Response:
    """
    Return every record as a JSON array (no ordering guarantee, no pagination).
    """
    try:
        rows = await store.list_all()
    except Exception:
        logger.exception("records_fetch_failed")
        raise HTTPException(status_code=500, detail="Unable to fetch records")

    try:
        records = record_list.validate_python(rows)
    except ValidationError:
        logger.exception("records_read_failed")
        raise HTTPException(status_code=500, detail="Error reading data")

    try:
        body = record_list.dump_json(records)
    except PydanticSerializationError:
        logger.exception("records_encode_failed")
        raise HTTPException(status_code=500, detail="Error encoding response")

    logger.info("records_served count=%s", len(records))
    return Response(content=body, media_type="application/json")
