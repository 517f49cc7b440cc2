from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.session import get_db
from app.schemas.profile import ProfileOut, RoleUpdate
from app.services.access.policy import AccessPolicy
from app.services.access.users import UserService
from app.api.endpoints.auth import get_policy

router = APIRouter()


def get_user_service(
    db: Session = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
) -> UserService:
    return UserService(db, policy)


@router.get("/", response_model=List[ProfileOut])
async def get_users(service: UserService = Depends(get_user_service)):
    """List every user profile (admin only)."""
    return service.list_profiles()

@router.post("/{user_id}/toggle-active", response_model=ProfileOut)
async def toggle_user_active(user_id: str, service: UserService = Depends(get_user_service)):
    """Activate or deactivate another user's account (admin only)."""
    return service.toggle_active(user_id)

@router.put("/{user_id}/role", response_model=ProfileOut)
async def change_user_role(
    user_id: str,
    role_update: RoleUpdate,
    service: UserService = Depends(get_user_service),
):
    """Change another user's role (admin only)."""
    return service.change_role(user_id, role_update.role)
