import logging

from clerk_backend_api import Clerk

from core.errors import InternalError

from .interface import Actor, UserDirectory, role_for

logger = logging.getLogger(__name__)


def _status_code(error: Exception) -> int | None:
    """HTTP status carried by a Clerk SDK error, if any."""
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(getattr(error, "raw_response", None), "status_code", None)
    return status


class ClerkUserDirectory(UserDirectory):
    """Resolves actors from Clerk users; the department lives in public metadata."""

    def __init__(self, secret_key: str):
        self._client = Clerk(bearer_auth=secret_key)

    def get_user(self, user_id: str) -> Actor | None:
        try:
            user = self._client.users.get(user_id=user_id)
        except Exception as e:
            if _status_code(e) == 404:
                return None
            raise InternalError(f"Failed to fetch user: {e}") from e

        if user is None:
            return None

        metadata = dict(user.public_metadata) if user.public_metadata else {}
        department = str(metadata.get("department", ""))
        if not department:
            logger.warning("User %s has no department in public metadata", user_id)
        return Actor(
            user_id=user.id,
            full_name=f"{user.first_name or ''} {user.last_name or ''}".strip() or user.username or "",
            department=department,
            role=role_for(department),
        )
