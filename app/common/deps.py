# app/common/deps.py

import logging
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.common.errors import Unauthorized
from app.common.events import EventBus, event_bus
from app.core.config import settings
from app.core.security import TokenExpired, TokenInvalid, decode_access_token
from app.db.session import get_db
from app.models.session import Identity
from app.services.ai_chat import ChatRelay
from app.services.friendship_service import FriendshipService
from app.services.payment_service import PaymentService
from app.services.profile_service import ProfileService
from app.services.razorpay_client import RazorpayClient
from app.services.sms_hook import Msg91Sender
from app.services.supabase_auth import SupabaseAuthClient

log = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def resolve_dependency(app: FastAPI, dependency: Callable):
    """Look up a provider the way Depends() would, honouring overrides."""
    return app.dependency_overrides.get(dependency, dependency)


def identity_from_token(token: Optional[str]) -> Optional[Identity]:
    if not token:
        return None
    try:
        return decode_access_token(token)
    except (TokenExpired, TokenInvalid) as exc:
        log.debug("Rejected access token: %s", exc)
        return None


# --- identity ---

def get_optional_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Identity]:
    # Authorization header first, then the session cookie
    token = credentials.credentials if credentials else request.cookies.get(settings.ACCESS_TOKEN_COOKIE)
    return identity_from_token(token)


def get_current_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    if identity is None:
        raise Unauthorized()
    return identity


# --- provider clients ---

def get_auth_client() -> Optional[SupabaseAuthClient]:
    if not settings.supabase_configured:
        return None
    return SupabaseAuthClient(url=settings.SUPABASE_URL, anon_key=settings.SUPABASE_ANON_KEY)


def get_razorpay_client() -> Optional[RazorpayClient]:
    if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
        return None
    return RazorpayClient(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_BASE_URL,
    )


def get_chat_relay() -> ChatRelay:
    return ChatRelay(
        api_key=settings.ANTHROPIC_API_KEY,
        model=settings.ANTHROPIC_MODEL,
        max_tokens=settings.ANTHROPIC_MAX_TOKENS,
    )


def get_sms_sender() -> Optional[Msg91Sender]:
    if not settings.MSG91_AUTH_KEY or not settings.MSG91_TEMPLATE_ID:
        return None
    return Msg91Sender(
        auth_key=settings.MSG91_AUTH_KEY,
        template_id=settings.MSG91_TEMPLATE_ID,
        api_url=settings.MSG91_API_URL,
        country_code=settings.SMS_COUNTRY_CODE,
    )


def get_event_bus() -> EventBus:
    return event_bus


# --- services ---

def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    return ProfileService(db=db)


def get_friendship_service(db: Session = Depends(get_db)) -> FriendshipService:
    return FriendshipService(db=db)


def get_payment_service(
    db: Session = Depends(get_db),
    razorpay: Optional[RazorpayClient] = Depends(get_razorpay_client),
) -> PaymentService:
    return PaymentService(db=db, razorpay=razorpay, key_secret=settings.RAZORPAY_KEY_SECRET)
