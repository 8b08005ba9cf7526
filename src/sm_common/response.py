"""Response envelope shared by every endpoint.

Success and failure have the same shape; ``data`` is null when ``code`` is
non-zero. ``request_id`` matches the X-Request-ID header set by
RequestLogMiddleware so a client can quote either one.
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request

from src.sm_common.datetime_utils import utc_now


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=_new_request_id)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or _new_request_id()


def respond(request: Request, payload: BaseModel | dict[str, Any] | list[Any] | None) -> ApiResponse:
    data = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload
    return ApiResponse(data=data, request_id=_request_id(request))


def error_envelope(request: Request, code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, request_id=_request_id(request))
