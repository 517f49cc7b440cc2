from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from app.models.profile import UserRole


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SessionOut(BaseModel):
    """The current user's profile and the pages they may open."""
    profile: ProfileOut
    pages: List[str]


class RoleUpdate(BaseModel):
    role: str
