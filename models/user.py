# models/user.py
from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum
from typing import Optional

class Role(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"

class User(BaseModel):
    id: str
    username: str
    email: str
    role: Role
    name: str
    createdAt: datetime = Field(default_factory=datetime.utcnow)

class UserCreate(BaseModel):
    username: str = Field(..., min_length=3)
    email: str
    password: str = Field(..., min_length=6)
    name: str
    role: Role = Role.STUDENT

class LoginRequest(BaseModel):
    username: str
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User

class StoredUser(User):
    """User record as kept in the users collection."""
    passwordHash: str
    lastLogin: Optional[datetime] = None
