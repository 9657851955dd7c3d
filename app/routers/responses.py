from typing import Any

from app.services.pagination import Page


def ok(data: Any = None, message: str | None = None, **extra: Any) -> dict:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def paged(page: Page, items: list[Any]) -> dict:
    return ok(items, count=len(items), pagination=page.meta())


def error_body(message: str, **extra: Any) -> dict:
    return {"success": False, "error": message, **extra}
