"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from bonsai_auth.services.auth_flow import AuthFlowController


def get_auth_flow(request: Request) -> AuthFlowController:
    """Return the controller built at application startup.

    Raises:
        HTTPException: If the application has not finished starting up.
    """
    controller: AuthFlowController | None = getattr(request.app.state, "auth_flow", None)
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service is not ready",
        )
    return controller


# Type alias for the controller dependency
AuthFlowDep = Annotated[AuthFlowController, Depends(get_auth_flow)]
