"""Customer accounts: signup, login, profile."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.security import (
    create_session_token,
    hash_password,
    password_strength_errors,
    verify_password,
)
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.rate_limit import auth_limit
from libs.db.session import get_async_db
from services.shop_service.models import User
from services.shop_service.routers._helpers import user_uuid
from services.shop_service.schemas import (
    LoginRequest,
    SessionResponse,
    SignupRequest,
    UserResponse,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/auth", tags=["accounts"])


def _session_for(user: User) -> SessionResponse:
    token = create_session_token(str(user.id), user.email, user.full_name)
    return SessionResponse(
        token=token,
        expires_in=settings.SESSION_MAX_AGE_DAYS * 24 * 3600,
        user=UserResponse.model_validate(user),
    )


@router.post("/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
@auth_limit
async def signup(
    payload: SignupRequest,
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    """Create a customer account and return a session."""
    errors = password_strength_errors(payload.password)
    if errors:
        raise HTTPException(status_code=400, detail=errors[0])

    email = payload.email.lower()
    user = (
        await db.execute(select(User).where(User.email == email))
    ).scalar_one_or_none()
    if user is not None and not user.is_guest:
        raise HTTPException(
            status_code=400, detail="User with this email already exists"
        )

    # A guest checkout under this email becomes the account, orders included
    if user is None:
        user = User(email=email)
        db.add(user)
    user.first_name = payload.first_name.strip()
    user.last_name = payload.last_name.strip() or None
    user.phone = payload.phone
    user.password_hash = hash_password(payload.password)
    user.is_guest = False
    await db.commit()
    await db.refresh(user)

    logger.info(f"New customer account {user.id}")
    return _session_for(user)


@router.post("/login", response_model=SessionResponse)
@auth_limit
async def login(
    payload: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()

    if not user or user.is_guest or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return _session_for(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await db.get(User, user_uuid(current_user))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
