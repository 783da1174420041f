"""Response envelopes shared by all routes."""

from datetime import UTC, datetime
from traceback import format_exception
from typing import Any

from fastapi import Request


def success(message: str, data: Any = None) -> dict[str, Any]:
    """Wrap a successful result."""
    return {"success": True, "message": message, "data": data}


def error_body(
    request: Request,
    message: str,
    details: dict[str, Any] | list[Any] | None = None,
    exc: BaseException | None = None,
) -> dict[str, Any]:
    """Build the error envelope.

    Args:
        request: Request that failed.
        message: Client-facing error message.
        details: Field errors or other structured context.
        exc: When given, its traceback is included under ``stack``.
    """
    body: dict[str, Any] = {
        "success": False,
        "error": message,
        "path": request.url.path,
        "method": request.method,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if details:
        body["details"] = details
    if exc is not None:
        body["stack"] = "".join(format_exception(exc))
    return body
