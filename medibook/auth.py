import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .errors import AuthenticationError, PermissionDeniedError, UpstreamError, storage_errors
from .models import Profile

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


def verify_access_token(token: str, secret: Optional[str] = None) -> dict:
    """
    Verify a Supabase access token signature and standard claims.
    Returns the decoded payload.
    """
    secret = secret or SUPABASE_JWT_SECRET
    if not secret:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise UpstreamError("Authentication not configured")

    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise AuthenticationError("Invalid token format. Expected a valid JWT token.")

    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM], audience=SUPABASE_JWT_AUDIENCE)
    except ExpiredSignatureError as e:
        raise AuthenticationError("Token has expired. Please refresh your session.") from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {e}")
        raise AuthenticationError("Invalid token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise AuthenticationError("Invalid token claims")

    return payload


async def get_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    if not credentials or not credentials.credentials:
        raise AuthenticationError(
            "Not authenticated. Please provide a valid Bearer token in the Authorization header."
        )
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_access_token),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the caller's profile; role always comes from the database, never the token"""
    payload = verify_access_token(token)
    user_id = payload["sub"]

    with storage_errors(db, "load user profile"):
        profile = db.query(Profile).filter(Profile.id == user_id).first()

    if not profile:
        logger.warning(f"⚠️ Authenticated identity {user_id} has no profile")
        raise AuthenticationError("User profile not found. Please complete registration.")

    logger.debug(f"✅ User authenticated: {profile.email} ({profile.role})")
    return profile


def require_role(*roles: str):
    """
    Create a dependency that only admits callers whose profile role is in roles.

    Example usage:
        @router.get("/admin/stats")
        async def stats(admin: Profile = Depends(require_role("admin"))):
            ...
    """

    async def role_checker(user: Profile = Depends(get_current_user)) -> Profile:
        if user.role not in roles:
            logger.warning(f"🚫 {user.email} ({user.role}) denied; requires one of {roles}")
            raise PermissionDeniedError()
        return user

    return role_checker
