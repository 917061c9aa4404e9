from dataclasses import dataclass, field
from functools import lru_cache
from urllib.parse import unquote

import httpx
from fastapi import Depends, Header, HTTPException, status
from loguru import logger
from pydantic import ValidationError

from scheduling_ms import settings
from scheduling_ms.schemas import UserProfile
from scheduling_ms.scopes import SchedulingScope


@dataclass
class CurrentUser:
    id: int
    username: str
    email: str | None = None
    scopes: list[str] = field(default_factory=list)


def _parse_user(
    x_user_id: str,
    x_username: str,
    x_user_email: str | None,
    x_user_scopes: str,
) -> CurrentUser:
    try:
        user_id = int(x_user_id)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity from gateway",
        ) from None

    scopes = x_user_scopes.split(" ") if x_user_scopes else []
    email = unquote(x_user_email) if x_user_email else None

    return CurrentUser(
        id=user_id, username=unquote(x_username), email=email, scopes=scopes
    )


def get_current_user(
    x_user_id: str = Header(...),
    x_username: str = Header(...),
    x_user_email: str | None = Header(default=None),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser:
    """
    Reads the headers injected by Traefik after forwardAuth validation.
    The session has already been verified — we just trust these headers.
    """
    return _parse_user(x_user_id, x_username, x_user_email, x_user_scopes)


def get_optional_user(
    x_user_id: str | None = Header(default=None),
    x_username: str = Header(default=""),
    x_user_email: str | None = Header(default=None),
    x_user_scopes: str = Header(default=""),
) -> CurrentUser | None:
    """Like get_current_user, but anonymous requests (no X-User-Id) yield None."""
    if x_user_id is None:
        return None
    return _parse_user(x_user_id, x_username, x_user_email, x_user_scopes)


def require_scopes(*required: str):
    """
    Factory that returns a dependency enforcing one or more scopes.

    Usage:
        @router.get("/protected")
        async def route(user = Depends(require_scopes("api_keys:read"))):
            ...
    """

    async def _dep(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        missing = [s for s in required if s not in current_user.scopes]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scopes: {', '.join(missing)}",
            )
        return current_user

    return _dep


# ---------------------------------------------------------------------------
# Pre-built scope dependencies
# ---------------------------------------------------------------------------

can_read_bookings = require_scopes(SchedulingScope.BOOKINGS_READ)
can_write_bookings = require_scopes(SchedulingScope.BOOKINGS_WRITE)
can_read_api_keys = require_scopes(SchedulingScope.API_KEYS_READ)
can_read_event_types = require_scopes(SchedulingScope.EVENT_TYPES_READ)
can_read_filter_segments = require_scopes(SchedulingScope.FILTER_SEGMENTS_READ)
can_write_filter_segments = require_scopes(SchedulingScope.FILTER_SEGMENTS_WRITE)
can_read_travel_schedules = require_scopes(SchedulingScope.TRAVEL_SCHEDULES_READ)


# ---------------------------------------------------------------------------
# UsersClient — thin async wrapper around users-ms internal API
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_users_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.users_ms_url,
        timeout=httpx.Timeout(5.0),
        follow_redirects=True,
    )


class UsersClient:
    """
    Thin async wrapper around the users-ms internal API.
    Used to enrich booking organizers with their profile (username, organization).
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_users_http_client()

    async def get_profile(self, user_id: int) -> UserProfile | None:
        """Organizer profile, or None when users-ms can't provide one. Fails silently."""
        try:
            resp = await self._client.get(f"/users/{user_id}/profile")
            if resp.status_code >= 400 or not resp.content:
                logger.warning(
                    "users-ms returned {} for profile of user {}",
                    resp.status_code,
                    user_id,
                )
                return None
            return UserProfile.model_validate(resp.json())
        except (httpx.RequestError, ValueError, ValidationError):
            logger.warning("Profile lookup failed for user {}", user_id, exc_info=True)
            return None


_users_client = UsersClient()


def get_users_client() -> UsersClient:
    return _users_client
