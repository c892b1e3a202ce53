from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def fail(
    status_code: int,
    error: str,
    message: Optional[str] = None,
    details: Optional[List[Dict[str, Any]]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": error}
    if message:
        body["message"] = message
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def validation_details(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten pydantic error dicts into `{field, message}` pairs."""
    details = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return details
