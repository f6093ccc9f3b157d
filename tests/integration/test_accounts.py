"""Integration tests for customer accounts and saved addresses."""

import uuid

import pytest
from services.shop_service.models import Address, Order, User
from sqlalchemy import select
from tests.factories import TEST_PASSWORD, AddressFactory, OrderFactory, UserFactory

ADDRESS = {
    "firstName": "Rahim",
    "lastName": "Uddin",
    "street1": "House 12, Road 5",
    "city": "Dhaka",
    "postalCode": "1205",
    "phone": "+8801711000000",
}


# ---------------------------------------------------------------------------
# Signup / login
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signup_returns_session(client):
    response = await client.post(
        "/api/auth/signup",
        json={
            "firstName": "Nusrat",
            "lastName": "Jahan",
            "email": "Nusrat@Shopper.com",
            "password": TEST_PASSWORD,
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["user"]["email"] == "nusrat@shopper.com"
    assert data["tokenType"] == "bearer"

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["firstName"] == "Nusrat"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signup_rejects_weak_password(client):
    response = await client.post(
        "/api/auth/signup",
        json={"firstName": "A", "email": "weak@shopper.com", "password": "password"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Password must contain at least one uppercase letter"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signup_rejects_duplicate_email(client, customer):
    response = await client.post(
        "/api/auth/signup",
        json={"firstName": "Dup", "email": customer.email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "User with this email already exists"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signup_claims_guest_checkout_email(client, db_session):
    guest = UserFactory.create(email="claimed@shopper.com", is_guest=True)
    db_session.add(guest)
    await db_session.flush()
    db_session.add(OrderFactory.create(user_id=guest.id, customer_email=guest.email))
    await db_session.commit()

    response = await client.post(
        "/api/auth/signup",
        json={
            "firstName": "Farhana",
            "lastName": "Akter",
            "email": "claimed@shopper.com",
            "password": TEST_PASSWORD,
        },
    )

    assert response.status_code == 201
    assert response.json()["user"]["id"] == str(guest.id)
    users = (await db_session.execute(select(User))).scalars().all()
    assert len(users) == 1
    await db_session.refresh(users[0])
    assert users[0].is_guest is False
    order = (await db_session.execute(select(Order))).scalar_one()
    assert order.user_id == guest.id


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login(client, customer):
    response = await client.post(
        "/api/auth/login", json={"email": customer.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 200
    assert response.json()["user"]["id"] == str(customer.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_wrong_password(client, customer):
    response = await client.post(
        "/api/auth/login", json={"email": customer.email, "password": "Wr0ng$pass"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_guest_accounts_cannot_log_in(client, db_session):
    guest = UserFactory.create(is_guest=True, password_hash=None)
    db_session.add(guest)
    await db_session.commit()

    response = await client.post(
        "/api/auth/login", json={"email": guest.email, "password": TEST_PASSWORD}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_me_requires_token(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


async def _defaults(db_session, user_id) -> list[uuid.UUID]:
    result = await db_session.execute(
        select(Address.id).where(Address.user_id == user_id, Address.is_default.is_(True))
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
@pytest.mark.integration
async def test_first_address_becomes_default(client, customer, customer_headers):
    response = await client.post("/api/account/addresses", json=ADDRESS, headers=customer_headers)

    assert response.status_code == 201
    assert response.json()["isDefault"] is True
    assert response.json()["country"] == "Bangladesh"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_new_default_address_unsets_previous(client, db_session, customer, customer_headers):
    first = AddressFactory.create(customer.id, is_default=True)
    db_session.add(first)
    await db_session.commit()

    response = await client.post(
        "/api/account/addresses",
        json={**ADDRESS, "city": "Khulna", "isDefault": True},
        headers=customer_headers,
    )

    new_id = uuid.UUID(response.json()["id"])
    assert await _defaults(db_session, customer.id) == [new_id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_addresses_default_first(client, db_session, customer, customer_headers):
    db_session.add(AddressFactory.create(customer.id, city="Sylhet"))
    db_session.add(AddressFactory.create(customer.id, city="Dhaka", is_default=True))
    await db_session.commit()

    response = await client.get("/api/account/addresses", headers=customer_headers)

    assert [a["city"] for a in response.json()] == ["Dhaka", "Sylhet"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_set_default_action(client, db_session, customer, customer_headers):
    current = AddressFactory.create(customer.id, is_default=True)
    other = AddressFactory.create(customer.id)
    db_session.add_all([current, other])
    await db_session.commit()

    response = await client.patch(
        f"/api/account/addresses/{other.id}",
        json={"action": "set-default"},
        headers=customer_headers,
    )

    assert response.status_code == 200
    assert await _defaults(db_session, customer.id) == [other.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_address_fields(client, db_session, customer, customer_headers):
    address = AddressFactory.create(customer.id, is_default=True)
    db_session.add(address)
    await db_session.commit()

    response = await client.patch(
        f"/api/account/addresses/{address.id}",
        json={"city": "Rajshahi", "postalCode": "6000"},
        headers=customer_headers,
    )

    assert response.json()["city"] == "Rajshahi"
    assert response.json()["postalCode"] == "6000"
    assert response.json()["street1"] == "House 12, Road 5"


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("field", ["firstName", "street1", "city", "postalCode", "phone", "country"])
async def test_update_address_rejects_null_required_field(
    client, db_session, customer, customer_headers, field
):
    address = AddressFactory.create(customer.id, is_default=True)
    db_session.add(address)
    await db_session.commit()

    response = await client.patch(
        f"/api/account/addresses/{address.id}",
        json={field: None},
        headers=customer_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid request data"
    await db_session.refresh(address)
    assert address.first_name and address.city and address.phone


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_address_can_clear_optional_line(client, db_session, customer, customer_headers):
    address = AddressFactory.create(customer.id, is_default=True, street2="Flat 3B")
    db_session.add(address)
    await db_session.commit()

    response = await client.patch(
        f"/api/account/addresses/{address.id}",
        json={"street2": None},
        headers=customer_headers,
    )

    assert response.status_code == 200
    assert response.json()["street2"] is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_default_promotes_most_recent(client, db_session, customer, customer_headers):
    from datetime import timedelta

    from libs.common.datetime_utils import utc_now

    default = AddressFactory.create(customer.id, is_default=True)
    older = AddressFactory.create(customer.id, created_at=utc_now() - timedelta(days=2))
    newer = AddressFactory.create(customer.id, created_at=utc_now() - timedelta(days=1))
    db_session.add_all([default, older, newer])
    await db_session.commit()

    response = await client.delete(
        f"/api/account/addresses/{default.id}", headers=customer_headers
    )

    assert response.status_code == 200
    assert await _defaults(db_session, customer.id) == [newer.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cannot_delete_only_address(client, db_session, customer, customer_headers):
    only = AddressFactory.create(customer.id, is_default=True)
    db_session.add(only)
    await db_session.commit()

    response = await client.delete(f"/api/account/addresses/{only.id}", headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot delete the only address"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_customers_address_is_404(client, db_session, customer_headers):
    owner = UserFactory.create()
    db_session.add(owner)
    await db_session.flush()
    theirs = AddressFactory.create(owner.id, is_default=True)
    db_session.add(theirs)
    await db_session.commit()

    response = await client.patch(
        f"/api/account/addresses/{theirs.id}",
        json={"city": "Hijacked"},
        headers=customer_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_address(client):
    response = await client.post("/api/validate-address", json={"line1": "Road 5", "city": "Dhaka"})
    assert response.json()["status"] == "VALID"
