"""Identity lookup abstraction layer."""

from core.auth.clerk_provider import ClerkUserDirectory
from core.auth.interface import Actor, Role, UserDirectory, get_user_directory, role_for

__all__ = ["Actor", "ClerkUserDirectory", "Role", "UserDirectory", "get_user_directory", "role_for"]
