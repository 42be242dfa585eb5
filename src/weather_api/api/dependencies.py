"""FastAPI dependencies resolving components composed in the lifespan."""

from fastapi import Depends, Request

from weather_api.auth import AuthService
from weather_api.errors import AuthenticationError
from weather_api.weather.service import WeatherService


def get_weather_service(request: Request) -> WeatherService:
    """Dependency to get the weather service instance."""
    return request.app.state.weather_service


def get_auth_service(request: Request) -> AuthService:
    """Dependency to get the auth service instance."""
    return request.app.state.auth_service


async def require_user(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> str:
    """Validate the bearer token and return the authenticated username.

    Raises:
        AuthenticationError: If the header is missing, malformed or the token is invalid
    """
    header = request.headers.get("Authorization")
    if not header:
        raise AuthenticationError("missing Authorization header")

    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("invalid Authorization header")

    return auth_service.validate_token(token)
