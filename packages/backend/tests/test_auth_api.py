"""Auth API tests — registration, login, logout, token delivery.

Learn: Tests cover:
1. Registration + duplicate prevention (email case-insensitive, phone)
2. Input validation (422 with field detail)
3. Login → token in body and cookie
4. Uniform failure for unknown email vs wrong password
5. Token accepted via header or cookie, rejected uniformly otherwise
"""

import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from conftest import DEFAULT_PASSWORD, register, registration
from svipp.auth.jwt import TokenIssuer
from svipp.auth.secret_material import SecretMaterial
from svipp.db.models import User


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_returns_token_and_sanitized_profile(client, db_session):
    r = await client.post(
        "/api/v1/auth/register",
        json=registration(email="a@x.no", phone_number="11111111"),
    )
    assert r.status_code == 201
    data = r.json()
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "a@x.no"
    assert data["user"]["phone_number"] == "11111111"
    assert "password" not in data["user"]
    assert "password_hash" not in data["user"]
    assert DEFAULT_PASSWORD not in r.text

    # Stored hash is bcrypt, not the plaintext
    user = await db_session.get(User, uuid.UUID(data["user"]["id"]))
    assert user.password_hash.startswith("$2b$")
    assert user.password_hash not in r.text


@pytest.mark.asyncio
async def test_register_sets_session_cookie(client):
    r = await client.post("/api/v1/auth/register", json=registration())
    assert r.status_code == 201

    cookie = r.headers["set-cookie"]
    assert cookie.startswith(f"session_token={r.json()['token']};")
    attrs = [a.strip().lower() for a in cookie.split(";")[1:]]
    assert "httponly" in attrs
    assert "samesite=strict" in attrs
    assert "path=/" in attrs
    assert any(a.startswith("expires=") for a in attrs)
    # Development environment → not Secure (plain http)
    assert "secure" not in attrs


@pytest.mark.asyncio
async def test_register_duplicate_email_conflict(client, db_session):
    """Same email (different casing), different phone → 409, no second account."""
    await register(client, email="a@x.no", phone_number="11111111")

    r = await client.post(
        "/api/v1/auth/register",
        json=registration(email="A@X.no", phone_number="22222222"),
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Email already in use"

    count = await db_session.scalar(
        select(func.count()).select_from(User).where(User.email_normalized == "a@x.no")
    )
    assert count == 1


@pytest.mark.asyncio
async def test_register_non_ascii_email_is_case_insensitive(client):
    """Case folding covers non-ASCII local parts, not just A-Z."""
    first = await register(client, email="Åse@example.no")

    r = await client.post(
        "/api/v1/auth/register", json=registration(email="åse@example.no")
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Email already in use"

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "ÅSE@EXAMPLE.NO", "password": first["password"]},
    )
    assert login.status_code == 200
    assert login.json()["user"]["id"] == first["user"]["id"]
    assert login.json()["user"]["email"] == "Åse@example.no"


@pytest.mark.asyncio
async def test_register_duplicate_phone_conflict(client):
    await register(client, phone_number="33333333")

    r = await client.post(
        "/api/v1/auth/register", json=registration(phone_number="33333333")
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Phone number already in use"


@pytest.mark.asyncio
async def test_register_preserves_email_casing(client):
    r = await client.post(
        "/api/v1/auth/register", json=registration(email="Kari.Nordmann@example.no")
    )
    assert r.json()["user"]["email"] == "Kari.Nordmann@example.no"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "password",
    [
        "Sh0rt!",  # too short
        "alllowercase1!",  # no uppercase
        "ALLUPPERCASE1!",  # no lowercase
        "NoDigitsHere!",  # no number
        "NoSpecial123",  # no special character
        "Has Space1!",  # disallowed character
    ],
)
async def test_register_weak_password_rejected(client, password):
    r = await client.post("/api/v1/auth/register", json=registration(password=password))
    assert r.status_code == 422
    assert any(err["loc"][-1] == "password" for err in r.json()["detail"])


@pytest.mark.asyncio
async def test_register_validates_fields(client):
    r = await client.post(
        "/api/v1/auth/register",
        json=registration(email="not-an-email", phone_number="12", first_name="  "),
    )
    assert r.status_code == 422
    fields = {err["loc"][-1] for err in r.json()["detail"]}
    assert {"email", "phone_number", "first_name"} <= fields


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, account, validator):
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": account["user"]["email"], "password": account["password"]},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["user"]["id"] == account["user"]["id"]
    assert "session_token=" in r.headers["set-cookie"]

    claims = validator.validate(data["token"])
    assert claims["sub"] == account["user"]["id"]
    assert claims["email"] == account["user"]["email"]


@pytest.mark.asyncio
async def test_login_email_is_case_insensitive(client, account):
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": account["user"]["email"].upper(), "password": account["password"]},
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client, account):
    """Wrong password and unknown email give byte-identical responses."""
    wrong_password = await client.post(
        "/api/v1/auth/login",
        json={"email": account["user"]["email"], "password": "Wrong123!"},
    )
    unknown_email = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.no", "password": "Wrong123!"},
    )

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"detail": "Invalid credentials"}
    assert "set-cookie" not in wrong_password.headers
    assert "set-cookie" not in unknown_email.headers


@pytest.mark.asyncio
async def test_login_does_not_log_password(client, account):
    from structlog.testing import capture_logs

    with capture_logs() as logs:
        await client.post(
            "/api/v1/auth/login",
            json={"email": account["user"]["email"], "password": "Wrong123!"},
        )
    assert any(e["event"] == "auth.login_failed" for e in logs)
    assert "Wrong123!" not in repr(logs)


@pytest.mark.asyncio
async def test_login_rehashes_weak_hash(client, account, db_session, hasher):
    """A hash with a lower work factor is upgraded on successful login."""
    from svipp.auth.password import PasswordHasher

    user = await db_session.get(User, uuid.UUID(account["user"]["id"]))
    user.password_hash = PasswordHasher(hasher._pepper, rounds=4).hash(account["password"])
    await db_session.commit()

    original_rounds = hasher.rounds
    hasher.rounds = 5
    try:
        r = await client.post(
            "/api/v1/auth/login",
            json={"email": account["user"]["email"], "password": account["password"]},
        )
        assert r.status_code == 200
        assert user.password_hash.startswith("$2b$05$")
    finally:
        hasher.rounds = original_rounds


# ═══════════════════════════════════════════════════════════
# Token delivery & validation
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_bearer_header_authenticates(client, account):
    r = await client.get("/api/v1/users/me", headers=account["headers"])
    assert r.status_code == 200
    assert r.json()["id"] == account["user"]["id"]


@pytest.mark.asyncio
async def test_cookie_authenticates(client, account):
    client.cookies.set("session_token", account["token"])
    r = await client.get("/api/v1/users/me")
    assert r.status_code == 200
    assert r.json()["id"] == account["user"]["id"]


@pytest.mark.asyncio
async def test_missing_token_rejected(client):
    r = await client.get("/api/v1/users/me")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_token_rejections_are_uniform(client, account):
    """Garbage, wrongly signed and expired tokens all get the same 401."""
    user = type("U", (), {
        "id": uuid.UUID(account["user"]["id"]),
        "email": account["user"]["email"],
        "first_name": "Kari",
        "last_name": "Nordmann",
    })()
    wrong_key = TokenIssuer(
        SecretMaterial(pepper="p", signing_key="some-other-key-0123456789abcdefghij")
    ).issue(user).token
    expired = TokenIssuer(
        SecretMaterial(
            pepper="p",
            signing_key="test-signing-key-0123456789abcdef0123456789",
            token_lifetime=timedelta(seconds=-1),
        )
    ).issue(user).token

    responses = []
    for token in ("invalid_token_here", wrong_key, expired):
        r = await client.get(
            "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
        )
        responses.append((r.status_code, r.json()))

    assert responses[0] == (401, {"detail": "Invalid or missing authentication token"})
    assert responses[0] == responses[1] == responses[2]


@pytest.mark.asyncio
async def test_token_without_subject_rejected(client, issuer):
    """A correctly signed token with no usable subject id is a 401."""
    bogus = type("U", (), {
        "id": "not-a-uuid",
        "email": "x@example.no",
        "first_name": "X",
        "last_name": "Y",
    })()
    token = issuer.issue(bogus).token
    r = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_expires_at_matches_24h(client):
    r = await client.post("/api/v1/auth/register", json=registration())
    expires_at = datetime.fromisoformat(r.json()["expires_at"].replace("Z", "+00:00"))
    remaining = expires_at - datetime.now(expires_at.tzinfo)
    assert timedelta(hours=23, minutes=59) < remaining <= timedelta(hours=24)


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout_expires_cookie(client):
    r = await client.post("/api/v1/auth/logout")
    assert r.status_code == 200
    cookie = r.headers["set-cookie"]
    assert cookie.startswith('session_token="";') or cookie.startswith("session_token=;")
    assert "Max-Age=0" in cookie


@pytest.mark.asyncio
async def test_logout_does_not_revoke_token(client, account):
    """Tokens are stateless — the bearer token keeps working after logout."""
    await client.post("/api/v1/auth/logout", headers=account["headers"])
    client.cookies.clear()
    r = await client.get("/api/v1/users/me", headers=account["headers"])
    assert r.status_code == 200
