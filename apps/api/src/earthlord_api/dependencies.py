"""FastAPI dependencies for the EarthLord API."""

from uuid import UUID

from fastapi import Header, HTTPException, status

from earthlord_api.config import Settings, settings

# Placeholder user ID for development mode
DEV_USER_ID = UUID("00000000-0000-0000-0000-000000000001")


def get_settings() -> Settings:
    """Dependency returning the process settings. Tests override it."""
    return settings


async def get_current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> UUID:
    """
    Get the current player ID.

    Sign-in is handled upstream; this service trusts the X-User-Id header set
    by the gateway.

    In dev mode (AUTH_MODE=dev):
        - Falls back to DEV_USER_ID if no header provided

    In any other mode:
        - Returns 401 if the header is missing
    """
    if x_user_id:
        try:
            return UUID(x_user_id)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid user ID format",
            )

    if settings.auth_mode == "dev":
        return DEV_USER_ID

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing X-User-Id header",
    )
