"""Response envelope shared by every endpoint.

Success: ``{"success": true, "message"?: str, "data"?: ...}``
Failure: ``{"success": false, "message": str, "error": {"code": str, "requestId"?: str, ...}}``
"""

from typing import Any, Dict, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from groupbuy.store.documents import to_public


def success(
    data: Any = None,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = to_public(data)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def failure(
    message: str,
    status_code: int,
    code: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    request_id: Optional[str] = None,
) -> JSONResponse:
    error = {"code": code}
    if details:
        error.update(details)
    if request_id:
        error["requestId"] = request_id
    body = {"success": False, "message": message, "error": error}
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(to_public(body)),
        headers=headers,
    )
