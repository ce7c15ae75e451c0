from __future__ import annotations


def success_response(data: object, meta: dict[str, object] | None = None) -> dict[str, object]:
    return {"success": True, "data": data, "meta": meta or {}}


def error_response(code: str, message: str, **details: object) -> dict[str, object]:
    error: dict[str, object] = {"code": code, "message": message}
    error.update(details)
    return {"success": False, "error": error}
