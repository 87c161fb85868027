"""User endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from session_broker.api.responses import render_result
from session_broker.dependencies import CurrentUser, ProfileServiceDep, TokenTransportDep

router = APIRouter(prefix="/user", tags=["User"])


@router.put("/update-user-fullname")
async def update_user_fullname(
    current_user: CurrentUser,
    profiles: ProfileServiceDep,
    transport: TokenTransportDep,
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    """Update the signed-in user's fullname."""
    fullname = payload.get("fullname") if isinstance(payload, dict) else None
    result = await profiles.update_fullname(fullname, current_user.email)
    return render_result(result, transport)
