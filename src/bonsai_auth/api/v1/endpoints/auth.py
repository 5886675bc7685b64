# src/bonsai_auth/api/v1/endpoints/auth.py
"""Authentication endpoints for the Bonsai Auth API."""

from __future__ import annotations

from fastapi import APIRouter

from bonsai_auth.api.v1.dependencies import AuthFlowDep
from bonsai_auth.schemas.auth import (
    EmailRequest,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    OkResponse,
    RegisterRequest,
)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=OkResponse,
    responses={409: {"model": ErrorResponse}},
)
async def register(payload: RegisterRequest, auth_flow: AuthFlowDep) -> OkResponse:
    """Register an identity with a password."""
    await auth_flow.register(payload.email, payload.password)
    return OkResponse()


@router.post(
    "/request-otp",
    response_model=OkResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def request_otp(payload: EmailRequest, auth_flow: AuthFlowDep) -> OkResponse:
    """Issue a one-time passcode to a registered identity.

    Succeeds even when delivery fails, unless strict delivery is configured.
    """
    await auth_flow.request_otp(payload.email)
    return OkResponse()


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def login(payload: LoginRequest, auth_flow: AuthFlowDep) -> LoginResponse:
    """Log in with a password or a one-time passcode."""
    proof = await auth_flow.login(payload.email, password=payload.password, otp=payload.otp)
    return LoginResponse(token=proof.token)
