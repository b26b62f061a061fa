from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import datetime

from models.types import AccessToken, serialize_access

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for user registration requests
class UserCreate(UserBase):
    name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8)
    phone: Optional[str] = Field(None, max_length=30)
    divisi: Optional[str] = Field(None, max_length=50)
    unit_kerja: Optional[str] = Field(None, max_length=100)

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    name: str
    role: str
    phone: Optional[str] = None
    divisi: Optional[str] = None
    unit_kerja: Optional[str] = None
    data_access: List[str] = []
    is_active: bool
    created_at: Optional[datetime] = None

    @field_validator("data_access", mode="before")
    @classmethod
    def _serialize_access(cls, value):
        return serialize_access(value)

    class Config:
        from_attributes = True

# Profile of the caller, with the cross-division flag
class MeResponse(UserResponse):
    has_multiple_access: bool = False

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Schema for administrative role updates
class RoleUpdate(BaseModel):
    role: str
    data_access: Optional[List[AccessToken]] = None

# Schema for replacing an admin's data access set
class DataAccessUpdate(BaseModel):
    data_access: List[AccessToken]

class ActiveUpdate(BaseModel):
    is_active: bool

# Schema for paginated user list response
class UsersPage(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    per_page: int
