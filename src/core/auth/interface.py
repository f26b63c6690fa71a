from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel


class Role(str, Enum):
    SUPER_USER = "SUPER_USER"
    APPROVAL_MANAGER = "APPROVAL_MANAGER"
    RFQ_CREATOR = "RFQ_CREATOR"


def role_for(department: str) -> Role:
    if department == "Admin":
        return Role.SUPER_USER
    if department == "Accounts Team":
        return Role.APPROVAL_MANAGER
    return Role.RFQ_CREATOR


class Actor(BaseModel):
    user_id: str
    full_name: str
    department: str
    role: Role


class UserDirectory(ABC):
    @abstractmethod
    def get_user(self, user_id: str) -> Actor | None: ...


def get_user_directory() -> UserDirectory:
    from core.config import get_config

    config = get_config()
    clerk_secret = config.clerk_secret_key
    if not clerk_secret:
        raise ValueError("CLERK_SECRET_KEY not configured")

    from core.auth.clerk_provider import ClerkUserDirectory

    return ClerkUserDirectory(secret_key=clerk_secret)
