import pytest

from core.auth import Actor, Role, UserDirectory, get_user_directory, role_for
from core.config import _reset_config


@pytest.fixture(autouse=True)
def _clear_config_cache():
    _reset_config()
    yield
    _reset_config()


@pytest.mark.parametrize(
    "department, role",
    [
        ("Admin", Role.SUPER_USER),
        ("Accounts Team", Role.APPROVAL_MANAGER),
        ("Security-Factory 2", Role.RFQ_CREATOR),
        ("Logistics", Role.RFQ_CREATOR),
        ("", Role.RFQ_CREATOR),
    ],
)
def test_role_for(department, role):
    assert role_for(department) == role


def test_actor_requires_role():
    with pytest.raises(Exception):
        Actor(user_id="u1", full_name="Jane Doe", department="Admin")


def test_user_directory_is_abstract():
    with pytest.raises(TypeError):
        UserDirectory()  # type: ignore[abstract]


def test_user_directory_concrete_subclass():
    class StaticDirectory(UserDirectory):
        def get_user(self, user_id: str) -> Actor | None:
            return Actor(user_id=user_id, full_name="Jane Doe", department="Admin", role=Role.SUPER_USER)

    assert StaticDirectory().get_user("u1").role == Role.SUPER_USER


def test_get_user_directory_requires_clerk_secret(monkeypatch):
    monkeypatch.setenv("CLERK_SECRET_KEY", "")
    monkeypatch.delenv("CLERK_SECRET_ARN", raising=False)
    with pytest.raises(ValueError, match="CLERK_SECRET_KEY not configured"):
        get_user_directory()


def test_get_user_directory_returns_clerk_directory(monkeypatch):
    monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test_mock")
    directory = get_user_directory()
    from core.auth.clerk_provider import ClerkUserDirectory

    assert isinstance(directory, ClerkUserDirectory)
