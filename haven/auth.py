import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import JWT_ALGORITHM, JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .models import Profile

logger = logging.getLogger(__name__)

security = HTTPBearer()

ADMIN_LEVEL_RANK = {"bronze": 1, "silver": 2, "gold": 3}


def decode_access_token(token: str) -> dict:
    """
    Verify a hosted-auth access token (HS256, audience "authenticated").

    Raises:
        HTTPException 401 for malformed, expired or wrongly signed tokens
    """
    if len(token.split(".")) != 3:
        logger.warning(f"Malformed token received (length {len(token)})")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    try:
        payload = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Token verification failed") from e

    if not payload.get("sub"):
        logger.error(f"Token missing sub claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return payload


def _find_or_create_profile(db: Session, user_id: str, claims: dict) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile:
        return profile

    metadata = claims.get("user_metadata") or {}
    logger.info(f"Creating profile for new auth user {user_id}")
    profile = Profile(
        id=user_id,
        email=claims.get("email"),
        display_name=metadata.get("display_name") or metadata.get("full_name"),
        family_name=metadata.get("family_name"),
        user_type=metadata.get("user_type") or "family",
    )
    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first
        db.rollback()
        profile = db.query(Profile).filter(Profile.id == user_id).first()
        if not profile:
            raise
        return profile
    db.refresh(profile)
    return profile


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the calling profile from the Bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    claims = decode_access_token(credentials.credentials)
    profile = _find_or_create_profile(db, claims["sub"], claims)

    if profile.is_banned:
        logger.warning(f"Banned profile {profile.id} attempted access to {request.url.path}")
        raise HTTPException(status_code=403, detail="This account has been suspended")

    request.state.user_id = profile.id
    return profile


def admin_level_of(profile: Optional[Profile]) -> Optional[str]:
    """Effective admin level. Legacy is_admin profiles without a level count as gold."""
    if not profile:
        return None
    if profile.admin_level in ADMIN_LEVEL_RANK:
        return profile.admin_level
    if profile.is_admin:
        return "gold"
    return None


def has_admin_access(profile: Optional[Profile], required_level: str) -> bool:
    level = admin_level_of(profile)
    if not level:
        return False
    return ADMIN_LEVEL_RANK[level] >= ADMIN_LEVEL_RANK[required_level]


def require_admin_level(required_level: str = "bronze"):
    """
    Dependency factory for back-office routes.

    Example:
        @router.post("/users/{user_id}/ban")
        def ban_user(..., admin: Profile = Depends(require_admin_level("silver"))):
    """
    if required_level not in ADMIN_LEVEL_RANK:
        raise ValueError(f"Unknown admin level: {required_level}")

    async def dependency(current_user: Profile = Depends(get_current_user)) -> Profile:
        if not has_admin_access(current_user, required_level):
            logger.warning(
                f"Profile {current_user.id} denied admin access (requires {required_level})"
            )
            raise HTTPException(
                status_code=403, detail=f"Admin access required ({required_level} or above)"
            )
        return current_user

    return dependency
