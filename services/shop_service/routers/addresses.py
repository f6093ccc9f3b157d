"""Saved shipping addresses for the signed-in customer."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.models import Address, User
from services.shop_service.routers._helpers import user_uuid
from services.shop_service.schemas import (
    AddressCreate,
    AddressResponse,
    AddressUpdate,
    AddressValidationResponse,
    ShippingAddressIn,
)
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["addresses"])


async def _get_own_address(
    db: AsyncSession, address_id: uuid.UUID, user_id: uuid.UUID
) -> Address:
    result = await db.execute(
        select(Address).where(Address.id == address_id, Address.user_id == user_id)
    )
    address = result.scalar_one_or_none()
    if not address:
        raise HTTPException(status_code=404, detail="Address not found")
    return address


async def _unset_defaults(db: AsyncSession, user_id: uuid.UUID) -> None:
    await db.execute(
        update(Address)
        .where(Address.user_id == user_id, Address.is_default.is_(True))
        .values(is_default=False)
    )


@router.get("/account/addresses", response_model=list[AddressResponse])
async def list_addresses(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List addresses, default first."""
    result = await db.execute(
        select(Address)
        .where(Address.user_id == user_uuid(current_user))
        .order_by(Address.is_default.desc(), Address.created_at.desc())
    )
    return result.scalars().all()


@router.post(
    "/account/addresses",
    response_model=AddressResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_address(
    payload: AddressCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create an address. The first address is always the default."""
    user_id = user_uuid(current_user)
    if not await db.get(User, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    existing_count = (
        await db.execute(
            select(func.count()).select_from(Address).where(Address.user_id == user_id)
        )
    ).scalar_one()
    make_default = payload.is_default or existing_count == 0

    # Unset and insert share one commit
    if make_default:
        await _unset_defaults(db, user_id)

    address = Address(
        user_id=user_id,
        **payload.model_dump(exclude={"is_default"}),
        is_default=make_default,
    )
    db.add(address)
    await db.commit()
    await db.refresh(address)
    return address


@router.patch("/account/addresses/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: uuid.UUID,
    payload: AddressUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Edit fields, or make this the default with ``{"action": "set-default"}``."""
    user_id = user_uuid(current_user)
    address = await _get_own_address(db, address_id, user_id)

    if payload.action == "set-default":
        await _unset_defaults(db, user_id)
        address.is_default = True
    else:
        for field, value in payload.model_dump(
            exclude_unset=True, exclude={"action"}
        ).items():
            setattr(address, field, value)

    await db.commit()
    await db.refresh(address)
    return address


@router.delete("/account/addresses/{address_id}")
async def delete_address(
    address_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user_id = user_uuid(current_user)
    address = await _get_own_address(db, address_id, user_id)

    result = await db.execute(
        select(Address)
        .where(Address.user_id == user_id, Address.id != address.id)
        .order_by(Address.created_at.desc())
    )
    remaining = result.scalars().all()
    if not remaining:
        raise HTTPException(status_code=400, detail="Cannot delete the only address")

    if address.is_default:
        remaining[0].is_default = True

    await db.delete(address)
    await db.commit()
    return {"success": True}


@router.post("/validate-address", response_model=AddressValidationResponse)
async def validate_address(payload: ShippingAddressIn):
    """Addresses are accepted as entered; couriers confirm them on delivery."""
    return AddressValidationResponse()
