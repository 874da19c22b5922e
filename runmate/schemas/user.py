# runmate/schemas/user.py

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, computed_field, field_validator

from runmate.schemas.common import CamelModel
from runmate.utils.user import get_display_name


class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class UserLogin(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)
    profile_photo: Optional[str] = Field(default=None, max_length=512)


class UserBrief(CamelModel):
    """Display fields used wherever another aggregate expands a user id."""

    id: int
    first_name: str
    last_name: str
    email: str
    profile_photo: Optional[str] = None

    @computed_field(alias="displayName")
    @property
    def display_name(self) -> str:
        return get_display_name(self.first_name, self.last_name, self.email)


class UserOut(UserBrief):
    bio: Optional[str] = None
    is_active: bool
    last_active: Optional[datetime] = None
    rating_average: float
    rating_total: int
    rating_level: str
    rating_badge: Optional[str] = None
    points: int = 0
    level: int = 1
    created_at: datetime


class AuthOut(CamelModel):
    token: str
    user: UserOut


class PasswordChange(CamelModel):
    current_password: str
    new_password: str = Field(min_length=6, max_length=128)
