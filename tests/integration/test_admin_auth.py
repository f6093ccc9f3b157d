"""Integration tests for admin login, lockout, session checks and logout."""

from datetime import timedelta

import pytest
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from services.shop_service.models import AdminAuditLog, AdminSession
from sqlalchemy import select
from tests.factories import TEST_PASSWORD, AdminFactory, AdminSessionFactory

settings = get_settings()


async def _login(client, username, password=TEST_PASSWORD):
    return await client.post(
        "/api/admin/auth/login", json={"username": username, "password": password}
    )


def _use_session_cookie(client, response):
    token = response.cookies.get(settings.ADMIN_COOKIE_NAME)
    client.cookies.clear()
    client.cookies.set(settings.ADMIN_COOKIE_NAME, token)
    return token


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_sets_cookie_and_creates_session(client, admin, db_session):
    response = await _login(client, admin.username)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["admin"]["username"] == admin.username
    assert "passwordHash" not in body["admin"]

    set_cookie = response.headers["set-cookie"].lower()
    assert settings.ADMIN_COOKIE_NAME in set_cookie
    assert "httponly" in set_cookie

    token = response.cookies.get(settings.ADMIN_COOKIE_NAME)
    session = (
        await db_session.execute(select(AdminSession).where(AdminSession.token == token))
    ).scalar_one()
    assert session.admin_id == admin.id

    actions = (await db_session.execute(select(AdminAuditLog.action))).scalars().all()
    assert actions == ["ADMIN_LOGIN"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_by_email(client, admin):
    response = await _login(client, admin.email.upper())
    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_me_with_session_cookie(client, admin):
    _use_session_cookie(client, await _login(client, admin.username))

    response = await client.get("/api/admin/auth/me")

    assert response.status_code == 200
    assert response.json()["id"] == str(admin.id)
    client.cookies.clear()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_admin_is_audited(client, db_session):
    response = await _login(client, "nobody")

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"
    log = (await db_session.execute(select(AdminAuditLog))).scalar_one()
    assert log.action == "ADMIN_LOGIN_FAILED"
    assert log.admin_id is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_wrong_password_counts_attempts(client, admin, db_session):
    response = await _login(client, admin.username, "Wr0ng$pass")

    assert response.status_code == 401
    await db_session.refresh(admin)
    assert admin.login_attempts == 1
    assert admin.locked_until is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_lockout_after_max_attempts(client, admin, db_session):
    for _ in range(settings.ADMIN_MAX_LOGIN_ATTEMPTS):
        await _login(client, admin.username, "Wr0ng$pass")

    await db_session.refresh(admin)
    assert admin.locked_until is not None

    # Even the right password is refused while locked
    response = await _login(client, admin.username)
    assert response.status_code == 401
    assert response.json()["detail"] == "Account is temporarily locked"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_successful_login_resets_attempts(client, admin, db_session):
    await _login(client, admin.username, "Wr0ng$pass")
    await _login(client, admin.username, "Wr0ng$pass")

    response = await _login(client, admin.username)

    assert response.status_code == 200
    await db_session.refresh(admin)
    assert admin.login_attempts == 0
    assert admin.last_login_at is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expired_lock_allows_login(client, db_session):
    admin = AdminFactory.create(login_attempts=5, locked_until=utc_now() - timedelta(minutes=1))
    db_session.add(admin)
    await db_session.commit()

    response = await _login(client, admin.username)
    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_disabled_admin_cannot_log_in(client, db_session):
    admin = AdminFactory.create(is_active=False)
    db_session.add(admin)
    await db_session.commit()

    response = await _login(client, admin.username)
    assert response.status_code == 401
    assert response.json()["detail"] == "Account is disabled"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_revoked_session_rejected(client, admin):
    # Validly signed token with no AdminSession row behind it
    orphan = AdminSessionFactory.create(admin)
    client.cookies.set(settings.ADMIN_COOKIE_NAME, orphan.token)

    response = await client.get("/api/admin/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Admin session expired or revoked"
    client.cookies.clear()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expired_session_row_rejected(client, admin, db_session):
    stale = AdminSessionFactory.create(admin, expires_at=utc_now() - timedelta(minutes=5))
    db_session.add(stale)
    await db_session.commit()
    client.cookies.set(settings.ADMIN_COOKIE_NAME, stale.token)

    response = await client.get("/api/admin/auth/me")

    assert response.status_code == 401
    client.cookies.clear()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_logout_revokes_session(client, admin, db_session):
    token = _use_session_cookie(client, await _login(client, admin.username))

    response = await client.post("/api/admin/auth/logout")

    assert response.status_code == 200
    assert (
        await db_session.execute(select(AdminSession).where(AdminSession.token == token))
    ).scalar_one_or_none() is None

    client.cookies.set(settings.ADMIN_COOKIE_NAME, token)
    assert (await client.get("/api/admin/auth/me")).status_code == 401
    client.cookies.clear()
