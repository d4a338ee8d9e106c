"""Bearer token helpers.

The service does not issue sessions; ``create_access_token`` exists for local
tooling and tests that need to mint a principal.
"""
from datetime import timedelta
from jose import JWTError, jwt
from hrm_authz.core.config import settings
from hrm_authz.models.base import utc_now


def create_access_token(data: dict) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = utc_now() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    if settings.JWT_ISSUER:
        to_encode["iss"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        to_encode["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Decode JWT token, returning None when it is invalid or expired."""
    try:
        options = {
            "verify_aud": bool(settings.JWT_AUDIENCE),
            "verify_iss": bool(settings.JWT_ISSUER),
        }
        decode_kwargs = {
            "token": token,
            "key": settings.SECRET_KEY,
            "algorithms": [settings.ALGORITHM],
            "options": options,
        }
        if settings.JWT_AUDIENCE:
            decode_kwargs["audience"] = settings.JWT_AUDIENCE
        if settings.JWT_ISSUER:
            decode_kwargs["issuer"] = settings.JWT_ISSUER
        return jwt.decode(**decode_kwargs)
    except JWTError:
        return None
