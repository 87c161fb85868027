"""Authentication endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Request, status
from fastapi.responses import JSONResponse

from session_broker.api.responses import render_result
from session_broker.dependencies import SessionServiceDep, TokenTransportDep

router = APIRouter()

# Bodies are validated by the session service so that every input error
# is reported in the same envelope as the other lifecycle failures.
JsonBody = Annotated[Any, Body()]


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Sign in with email and password",
)
async def login(
    service: SessionServiceDep,
    transport: TokenTransportDep,
    payload: JsonBody = None,
) -> JSONResponse:
    """
    Sign in and set the ``accesstoken`` / ``refreshtoken`` cookies.

    Cookie lifetimes follow the ``remember`` flag: 1 day / 30 days when
    set, 15 minutes / 7 days otherwise.

    Args:
        service: Session lifecycle service
        transport: Cookie transport
        payload: ``{email, password, remember}``

    Returns:
        Canonical user view and ``tokenExpiresIn`` (milliseconds)
    """
    result = await service.login(payload)
    return render_result(result, transport)


@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Sign out and clear session cookies",
)
async def logout(
    request: Request,
    service: SessionServiceDep,
    transport: TokenTransportDep,
) -> JSONResponse:
    """Sign out. Safe to call without a session."""
    tokens = transport.extract(request.cookies)
    result = await service.logout(tokens.access_token)
    return render_result(result, transport)


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Register a new account",
)
async def register(
    service: SessionServiceDep,
    transport: TokenTransportDep,
    payload: JsonBody = None,
) -> JSONResponse:
    """
    Create the provider account and the local profile.

    Args:
        service: Session lifecycle service
        transport: Cookie transport
        payload: ``{email, password, fullname}``

    Returns:
        The created profile record
    """
    result = await service.register(payload)
    return render_result(result, transport)


@router.post(
    "/verify-email",
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Start email verification for the current session",
)
async def verify_email(
    request: Request,
    service: SessionServiceDep,
    transport: TokenTransportDep,
) -> JSONResponse:
    """Resend the verification email for the signed-in user."""
    tokens = transport.extract(request.cookies)
    result = await service.verify_email(tokens.access_token)
    return render_result(result, transport)


@router.post(
    "/reset-password",
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Set a new password",
)
async def reset_password(
    request: Request,
    service: SessionServiceDep,
    transport: TokenTransportDep,
    payload: JsonBody = None,
) -> JSONResponse:
    """Set a new password (``{newPassword}``) for the signed-in user."""
    tokens = transport.extract(request.cookies)
    result = await service.request_password_reset(tokens.access_token, payload)
    return render_result(result, transport)


@router.post(
    "/forgot-password",
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Send a password recovery email",
)
async def forgot_password(
    service: SessionServiceDep,
    transport: TokenTransportDep,
    payload: JsonBody = None,
) -> JSONResponse:
    """Send a recovery email to ``{email}``."""
    result = await service.request_password_recovery(payload)
    return render_result(result, transport)


@router.get(
    "/profile",
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current user profile",
)
async def profile(
    request: Request,
    service: SessionServiceDep,
    transport: TokenTransportDep,
) -> JSONResponse:
    """Return the canonical user view for the access token cookie."""
    tokens = transport.extract(request.cookies)
    result = await service.fetch_profile(tokens.access_token)
    return render_result(result, transport)


@router.post(
    "/refresh-token",
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Rotate session cookies",
)
async def refresh_token(
    request: Request,
    service: SessionServiceDep,
    transport: TokenTransportDep,
    payload: JsonBody = None,
) -> JSONResponse:
    """
    Exchange the refresh token cookie for a new cookie pair.

    Args:
        request: Request carrying the ``refreshtoken`` cookie
        service: Session lifecycle service
        transport: Cookie transport
        payload: Optional ``{remember}``; only a JSON ``true`` means remembered

    Returns:
        ``tokenExpiresIn`` for the new access token, no user data
    """
    remember = isinstance(payload, dict) and payload.get("remember") is True
    tokens = transport.extract(request.cookies)
    result = await service.refresh_token(tokens.refresh_token, remember)
    return render_result(result, transport)
