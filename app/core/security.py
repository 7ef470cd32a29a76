# app/core/security.py

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.models.session import Identity

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


class TokenExpired(Exception):
    pass


class TokenInvalid(Exception):
    pass


def decode_access_token(token: str, secret: Optional[str] = None) -> Identity:
    """
    Validate a Supabase access token locally and return its subject.

    Raises TokenExpired when only the expiry check fails, so callers holding a
    refresh token can renew it; every other failure is TokenInvalid.
    """
    secret = secret or settings.SUPABASE_JWT_SECRET
    if not secret:
        raise TokenInvalid("JWT secret is not configured")
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as exc:
        raise TokenExpired(str(exc)) from exc
    except JWTError as exc:
        raise TokenInvalid(str(exc)) from exc

    subject = payload.get("sub")
    if not subject:
        raise TokenInvalid("token has no subject")
    return Identity(
        id=subject,
        email=payload.get("email"),
        phone=payload.get("phone"),
        user_metadata=payload.get("user_metadata") or {},
    )


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Union[timedelta, None] = None,
    secret: Optional[str] = None,
) -> str:
    """
    Mint a token in the shape Supabase issues (HS256, `sub`, `aud`, `exp`).
    """
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.setdefault("aud", settings.SUPABASE_JWT_AUDIENCE)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret or settings.SUPABASE_JWT_SECRET, algorithm=ALGORITHM)


def payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    # Razorpay signs "<order_id>|<payment_id>" with the key secret
    message = f"{order_id}|{payment_id}"
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
