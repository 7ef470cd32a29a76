# app/models/session.py

import time
from typing import Any, Dict, Optional

from pydantic import BaseModel


class Identity(BaseModel):
    """The authenticated subject behind an access token."""

    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    user_metadata: Dict[str, Any] = {}


class Session(BaseModel):
    access_token: str
    refresh_token: str
    expires_at: int = 0
    user: Identity

    def expires_in(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return self.expires_at - now

    def is_expired(self, now: Optional[float] = None) -> bool:
        return bool(self.expires_at) and self.expires_in(now) <= 0
