"""Response envelopes for the unified endpoints and the plain ``{success, data}`` ones."""
from __future__ import annotations
import time
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from app.config import get_settings
from app.schemas.unified import Metadata, Pagination, SearchPage


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def metadata(started: float, query: str = "") -> dict:
    meta = Metadata(
        fetched_at=datetime.now(timezone.utc).isoformat(),
        api_version=get_settings().api_version,
        response_time=int((time.monotonic() - started) * 1000),
        query=query or None,
    )
    return meta.model_dump(by_alias=True)


def unified(data: Any, source: str, started: float, query: str = "") -> dict:
    return {
        "success": True,
        "data": _dump(data),
        "source": source,
        "metadata": metadata(started, query),
    }


def unified_search(page: SearchPage, source: str, started: float, query: str = "") -> dict:
    pagination = Pagination(
        page=page.page,
        total_pages=page.total_pages,
        total_results=page.total_results,
        page_size=len(page.items),
    )
    body = unified(page.items, source, started, query)
    body["pagination"] = pagination.model_dump(by_alias=True)
    return body


def unified_error(message: str, source: str, started: float, query: str = "") -> dict:
    return {
        "success": False,
        "error": message,
        "source": source,
        "metadata": metadata(started, query),
    }


def ok(data: Any = None, message: str | None = None) -> dict:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = _dump(data)
    if message:
        body["message"] = message
    return body
