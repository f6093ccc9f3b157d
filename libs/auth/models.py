from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated customer decoded from a session token.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    name: Optional[str] = None


class AdminPrincipal(BaseModel):
    """
    Represents an authenticated admin decoded from the admin session cookie.
    """

    model_config = ConfigDict(populate_by_name=True)

    admin_id: str = Field(..., alias="adminId")
    email: EmailStr
    role: str
    token: str = ""
