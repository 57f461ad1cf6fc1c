"""Response envelopes shared by every route."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


def success_response(
    data: BaseModel | dict[str, Any],
    *,
    correlation_id: str | None = None,
) -> dict[str, Any]:
    payload = data.model_dump(mode="json") if isinstance(data, BaseModel) else data
    response: dict[str, Any] = {"ok": True, **payload}
    if correlation_id:
        response["correlation_id"] = correlation_id
    return response


def error_response(
    message: str,
    code: str,
    *,
    correlation_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """The single error object every failure is reported as."""
    response: dict[str, Any] = {"ok": False, "error": message, "code": code}
    if details:
        response["details"] = details
    if correlation_id:
        response["correlation_id"] = correlation_id
    return response
