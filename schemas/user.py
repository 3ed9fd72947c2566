from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT_OWNER = "restaurant_owner"
    ADMIN = "admin"
    DELIVERY_PARTNER = "delivery_partner"


class ProfileBase(BaseModel):
    email: EmailStr
    name: str
    phone: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class Profile(ProfileBase):
    # The id is the auth provider's user id, not an ObjectId
    id: str = Field(..., alias="_id")
    role: UserRole = UserRole.CUSTOMER
    profile_image: Optional[str] = None
    created_at: datetime

    class Config:
        populate_by_name = True
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
