"""Render lifecycle results as HTTP responses."""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from session_broker.core.cookies import TokenTransport
from session_broker.core.results import Failure, Result
from session_broker.middleware.error_handler import error_response


def _serialize(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    return jsonable_encoder(data)


def render_result(result: Result[Any], transport: TokenTransport) -> JSONResponse:
    """
    Turn a ``Success`` or ``Failure`` into a JSON response.

    Successes write or clear the session cookies they carry and report
    ``tokenExpiresIn`` when tokens were issued. Failures never set cookies,
    but may clear them.
    """
    if isinstance(result, Failure):
        response = error_response(result.error, result.context)
        if result.clear_cookies:
            transport.clear(response)
        return response

    content: dict[str, Any] = {
        "success": True,
        "message": result.message,
        "data": _serialize(result.data),
    }
    if result.token_expires_in is not None:
        content["tokenExpiresIn"] = result.token_expires_in

    response = JSONResponse(status_code=result.status_code, content=content)

    if result.clear_cookies:
        transport.clear(response)
    if result.cookies:
        transport.apply(response, result.cookies)

    return response
