# app/routers/auth.py

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.common.cookies import clear_session_cookies, set_session_cookies
from app.common.deps import get_auth_client, get_current_identity, get_profile_service
from app.common.errors import Unauthorized
from app.core.config import settings
from app.core.security import TokenExpired, TokenInvalid, decode_access_token
from app.models.session import Identity
from app.models.user import ProfileRead, ProfileUpdate
from app.services.profile_service import ProfileService
from app.services.supabase_auth import SupabaseAuthClient, SupabaseAuthError

log = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_REDIRECT = "/feed"
ONBOARDING_REDIRECT = "/onboarding"


class SessionCreate(BaseModel):
    access_token: str
    refresh_token: str
    redirect_to: Optional[str] = None


class Me(BaseModel):
    identity: Identity
    profile: Optional[ProfileRead] = None
    has_profile: bool


def safe_redirect(target: Optional[str]) -> str:
    # relative paths only, never another origin
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return DEFAULT_REDIRECT


@router.post("/session")
def create_session(data: SessionCreate, profiles: ProfileService = Depends(get_profile_service)):
    try:
        identity = decode_access_token(data.access_token)
    except (TokenExpired, TokenInvalid) as exc:
        raise Unauthorized("Invalid session") from exc

    profile, created = profiles.ensure_profile(identity)
    if created or not profile.is_complete:
        redirect = ONBOARDING_REDIRECT
    else:
        redirect = safe_redirect(data.redirect_to)

    response = JSONResponse({"redirect": redirect, "created": created})
    set_session_cookies(response, data.access_token, data.refresh_token)
    return response


@router.delete("/session")
async def delete_session(
    request: Request,
    auth_client: Optional[SupabaseAuthClient] = Depends(get_auth_client),
):
    token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE)
    if token and auth_client is not None:
        try:
            await auth_client.sign_out(token)
        except (SupabaseAuthError, httpx.HTTPError) as exc:
            # local cookies go regardless
            log.warning("Remote sign-out failed: %s", exc)

    response = JSONResponse({"success": True})
    clear_session_cookies(response)
    return response


@router.get("/me", response_model=Me)
def read_me(
    identity: Identity = Depends(get_current_identity),
    profiles: ProfileService = Depends(get_profile_service),
):
    profile = profiles.get_profile(identity.id)
    return Me(
        identity=identity,
        profile=ProfileRead.model_validate(profile) if profile else None,
        has_profile=bool(profile and profile.is_complete),
    )


@router.patch("/profile", response_model=ProfileRead)
def update_profile(
    profile_in: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
    profiles: ProfileService = Depends(get_profile_service),
):
    return profiles.update_profile(identity, profile_in)
