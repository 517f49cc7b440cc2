import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.database.session import get_db
from app.models.profile import UserProfile
from app.schemas.profile import ProfileOut, SessionOut
from app.services.access.policy import AccessPolicy
from app.services.access.users import get_or_provision

logger = logging.getLogger(__name__)

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


def decode_identity_token(token: str) -> dict:
    """Verify a token issued by the identity provider and return its claims."""
    options = {"verify_aud": settings.TOKEN_AUDIENCE is not None}
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        audience=settings.TOKEN_AUDIENCE,
        options=options,
    )


async def get_current_profile(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> UserProfile:
    """Resolve the bearer token to a profile, provisioning one on first sight."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        claims = decode_identity_token(credentials.credentials)
    except JWTError as e:
        logger.warning(f"Rejected identity token: {str(e)}")
        raise credentials_exception

    user_id = claims.get("sub")
    if not user_id:
        raise credentials_exception

    return get_or_provision(db, str(user_id), claims.get("email"))


def get_policy(profile: UserProfile = Depends(get_current_profile)) -> AccessPolicy:
    return AccessPolicy(profile)


def get_active_policy(policy: AccessPolicy = Depends(get_policy)) -> AccessPolicy:
    """Like get_policy, but only for activated accounts."""
    policy.require_active()
    return policy


def employee_name(profile: UserProfile) -> str:
    """Identifier written on ledger rows for the recording employee."""
    return profile.email or profile.id


@router.get("/me", response_model=SessionOut)
async def read_current_session(policy: AccessPolicy = Depends(get_policy)):
    """Current profile and the pages it may open; pending users get no pages."""
    return SessionOut(
        profile=ProfileOut.model_validate(policy.profile),
        pages=policy.visible_pages(),
    )
