"""Shared fixtures for shop service tests: signed-in customers and admins."""

import pytest_asyncio

from libs.auth.security import hash_password
from libs.common.config import get_settings
from tests.factories import (
    TEST_PASSWORD,
    AdminFactory,
    AdminSessionFactory,
    OrderFactory,
    UserFactory,
    auth_headers_for,
)

settings = get_settings()


@pytest_asyncio.fixture
async def customer(db_session):
    user = UserFactory.create(password_hash=hash_password(TEST_PASSWORD))
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def customer_headers(customer) -> dict:
    return auth_headers_for(customer)


@pytest_asyncio.fixture
async def admin(db_session):
    admin = AdminFactory.create()
    db_session.add(admin)
    await db_session.commit()
    return admin


@pytest_asyncio.fixture
async def admin_client(client, db_session, admin):
    """The shared client carrying a live admin session cookie."""
    session = AdminSessionFactory.create(admin)
    db_session.add(session)
    await db_session.commit()

    client.cookies.set(settings.ADMIN_COOKIE_NAME, session.token)
    yield client
    client.cookies.clear()


@pytest_asyncio.fixture
async def order(db_session, customer):
    order = OrderFactory.create(user_id=customer.id, customer_email=customer.email)
    db_session.add(order)
    await db_session.commit()
    return order
