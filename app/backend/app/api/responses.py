"""Response envelope helpers shared by route modules."""

from __future__ import annotations

from collections.abc import Sequence

from fastapi import status


def ok(data: object) -> dict[str, object]:
    return {"success": True, "data": data}


def ok_list(items: Sequence[object]) -> dict[str, object]:
    return {"success": True, "data": list(items), "count": len(items)}


ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "validation_error",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "validation_error",
    status.HTTP_429_TOO_MANY_REQUESTS: "rate_limited",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "internal_error",
}


def error_body(status_code: int, message: str) -> dict[str, object]:
    if status_code in ERROR_CODES:
        code = ERROR_CODES[status_code]
    else:
        code = "internal_error" if status_code >= 500 else "error"
    return {"success": False, "error": message, "code": code}
