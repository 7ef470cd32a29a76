# app/services/profile_service.py

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.models.session import Identity
from app.models.user import ProfileUpdate, UserProfile

log = logging.getLogger(__name__)


class ProfileService:

    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.db.get(UserProfile, user_id)

    def ensure_profile(self, identity: Identity) -> Tuple[UserProfile, bool]:
        """Return (profile, created); the first authentication creates the row."""
        profile = self.get_profile(identity.id)
        if profile:
            return profile, False

        meta = identity.user_metadata or {}
        profile = UserProfile(
            id=identity.id,
            email=identity.email,
            phone=identity.phone,
            name=meta.get("full_name") or meta.get("name") or None,
            avatar_url=meta.get("avatar_url") or meta.get("picture") or None,
        )
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)
        log.info("Created profile for %s", identity.id)
        return profile, True

    def update_profile(self, identity: Identity, profile_in: ProfileUpdate) -> UserProfile:
        profile, _ = self.ensure_profile(identity)
        # fields the client didn't send are left alone
        update_data = profile_in.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(profile, key, value)

        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)
        return profile
