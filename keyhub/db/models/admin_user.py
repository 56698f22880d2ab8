"""
Admin console user model.
"""
from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from keyhub.core.config import AdminRole


class AdminUser(SQLModel, table=True):
    """Admin user database model."""
    __tablename__ = "admin_users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=150)
    hashed_password: str
    role: str = Field(default=AdminRole.ADMIN.value)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AdminLogin(SQLModel):
    """Admin login schema."""
    username: str
    password: str


class AdminTokenResponse(SQLModel):
    """Admin login response with token."""
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    username: str
    role: str
