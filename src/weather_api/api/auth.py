"""Login endpoint issuing bearer tokens."""

import logging

from fastapi import APIRouter, Depends

from weather_api.api.dependencies import get_auth_service
from weather_api.auth import AuthService, LoginRequest, LoginResponse
from weather_api.errors import AuthenticationError, WeatherServiceError
from weather_api.weather.models import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/login", response_model=LoginResponse, responses={
    400: {"model": ErrorResponse, "description": "Missing username or password"},
    401: {"model": ErrorResponse, "description": "Invalid credentials"},
    500: {"model": ErrorResponse, "description": "Token could not be issued"},
})
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate and return a JWT access token.

    Args:
        body: Login credentials

    Returns:
        Token, token type and expiry
    """
    try:
        return auth_service.login(body)
    except AuthenticationError:
        logger.warning(f"Failed login for {body.username}")
        raise
    except WeatherServiceError as e:
        logger.error(f"Could not issue token: {e}")
        raise WeatherServiceError("could not issue token") from e
