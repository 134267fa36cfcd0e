"""Helpers shared by the serverless endpoints."""

import asyncio
import json
from typing import Any, Coroutine, Optional

AGENCY_HEADER = "x-agency-id"


def json_response(status_code: int, body: Any) -> dict:
    """Vercel-style response dict."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def run_coroutine(coro: Coroutine) -> Any:
    """Run a coroutine from a synchronous handler."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            raise RuntimeError("event loop is closed")
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def parse_body(request: dict) -> dict:
    raw = request.get("body") or ""
    if isinstance(raw, dict):
        return raw
    try:
        body = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        return {}
    return body if isinstance(body, dict) else {}


def get_agency_id(request: dict) -> Optional[str]:
    """Agency resolved upstream by the session middleware, passed as a header."""
    headers = {str(k).lower(): v for k, v in (request.get("headers") or {}).items()}
    agency_id = headers.get(AGENCY_HEADER)
    if agency_id:
        return agency_id
    query = request.get("query") or {}
    return query.get("agency_id") or None
