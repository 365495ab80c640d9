import pytest

from app.api.middleware.user import get_or_create_user, serialize_user, clean_name, MAX_NAME_LENGTH
from app.api.middleware.misc import SafeError
from app.tests.fakes import FakeConnection, user_row

claims = {
    "sub": "auth0|abc123",
    "email": "test@pytest.com",
    "name": "Test User",
}

@pytest.mark.asyncio
async def test_missing_claims():
    for bad_claims in [{"email": "test@pytest.com"}, {"sub": "auth0|abc123"}, {}]:
        conn = FakeConnection()
        with pytest.raises(SafeError, match="Invalid auth provider user data"):
            await get_or_create_user(conn, bad_claims)
        assert conn.calls == []

@pytest.mark.asyncio
async def test_existing_user_unchanged():
    existing = user_row()
    conn = FakeConnection().queue("fetchrow", existing)

    user = await get_or_create_user(conn, claims)
    assert user is existing
    assert len(conn.calls) == 1

@pytest.mark.asyncio
async def test_existing_user_updated():
    conn = FakeConnection().queue(
        "fetchrow",
        user_row(name="Old Name"),
        user_row(name="Test User", picture="https://img.example.com/me.png"),
    )

    user = await get_or_create_user(conn, dict(claims, picture="https://img.example.com/me.png"))
    assert user["picture"] == "https://img.example.com/me.png"

    (query, args), = conn.calls_for("fetchrow", "update users")
    assert "set name = $1, picture = $2 where id = $3" in query
    assert args == ("Test User", "https://img.example.com/me.png", 1)

@pytest.mark.asyncio
async def test_link_existing_email():
    conn = FakeConnection().queue(
        "fetchrow",
        None,
        user_row(user_id=3, auth_id=None),
        user_row(user_id=3),
    )

    user = await get_or_create_user(conn, dict(claims, email="Test@PyTest.com"))
    assert user["id"] == 3

    (_, args), = conn.calls_for("fetchrow", "lower(email)")
    assert args == ("Test@PyTest.com",)

    (_, args), = conn.calls_for("fetchrow", "set auth_id")
    assert args == ("auth0|abc123", 3)

@pytest.mark.asyncio
async def test_create_user():
    conn = FakeConnection().queue("fetchrow", None, None, user_row(user_id=9, name="test"))

    user = await get_or_create_user(conn, {"sub": "auth0|new", "email": "test@pytest.com"})
    assert user["id"] == 9

    (_, args), = conn.calls_for("fetchrow", "insert into users")
    assert args == ("auth0|new", "test@pytest.com", "test", None)

@pytest.mark.asyncio
async def test_create_user_long_name():
    conn = FakeConnection().queue("fetchrow", None, None, user_row())

    await get_or_create_user(conn, dict(claims, name="  " + "a" * 150 + "  "))

    (_, args), = conn.calls_for("fetchrow", "insert into users")
    assert args[2] == "a" * MAX_NAME_LENGTH

def test_clean_name():
    assert clean_name(None) is None
    assert clean_name("   ") is None
    assert clean_name(" Sam ") == "Sam"

def test_serialize_user():
    assert serialize_user(user_row()) == {
        "id": 1,
        "email": "test@pytest.com",
        "name": "Test User",
        "picture": None,
    }
