"""JWT authentication. The token subject is the caller identity used for admission control."""

from __future__ import annotations

import hashlib
import time

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from evidence_engine.config.settings import Settings
from evidence_engine.observability.logger import get_logger

logger = get_logger("auth")

router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer()


class TokenRequest(BaseModel):
    api_key: str
    caller_id: str | None = Field(default=None, min_length=1, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    caller_id: str


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def caller_for_key(api_key: str) -> str:
    """Stable caller identity for an API key that never exposes the key itself."""
    return "key-" + hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:16]


@router.post("/token", response_model=TokenResponse)
async def create_token(
    body: TokenRequest,
    settings: Settings = Depends(_get_settings),
) -> TokenResponse:
    """Exchange an API key for a JWT token."""
    valid_keys = [k.strip() for k in settings.api_keys.split(",") if k.strip()]

    if not valid_keys:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication not configured",
        )

    if body.api_key not in valid_keys:
        logger.warning("invalid_api_key_attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    caller_id = body.caller_id or caller_for_key(body.api_key)
    now = int(time.time())
    payload = {
        "sub": caller_id,
        "iat": now,
        "exp": now + settings.jwt_expiry_minutes * 60,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    logger.info("token_issued", caller_id=caller_id, expiry_minutes=settings.jwt_expiry_minutes)
    return TokenResponse(
        access_token=token,
        expires_in=settings.jwt_expiry_minutes * 60,
        caller_id=caller_id,
    )


async def verify_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """FastAPI dependency: validate JWT from Authorization header."""
    settings: Settings = request.app.state.settings
    try:
        return jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )


async def get_caller_id(payload: dict = Depends(verify_token)) -> str:
    caller_id = payload.get("sub")
    if not caller_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )
    return caller_id
