from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, Literal

Role = Literal["user", "manager"]

# Shared properties for user models
class UserBase(BaseModel):
    username: str = Field(min_length=1)

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for badge scan login
class BadgeLogin(BaseModel):
    badge_number: str = Field(min_length=4, max_length=20)

# Schema for user registration requests
class UserCreate(UserBase):
    password: str = Field(min_length=4)
    name: str = Field(min_length=1)
    badge_number: Optional[str] = None

# Output schema for user profile details
class UserResponse(UserBase):
    id: int
    name: str
    role: str
    badge_number: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Schema for administrative role updates
class RoleUpdate(BaseModel):
    role: Role
