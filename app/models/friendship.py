# app/models/friendship.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from app.models.base import Base, new_uuid, utcnow
from app.models.user import ProfileRead

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"


def make_pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for the pair {user_a, user_b}."""
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(String(36), primary_key=True, default=new_uuid, index=True)
    requester_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)  # sent the request
    addressee_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)  # may accept/reject
    # one row per unordered pair
    pair_key = Column(String(80), unique=True, nullable=False)
    status = Column(String(20), default=PENDING, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    requester = relationship("UserProfile", foreign_keys=[requester_id])
    addressee = relationship("UserProfile", foreign_keys=[addressee_id])

    def other_party(self, user_id: str) -> str:
        return self.addressee_id if self.requester_id == user_id else self.requester_id


class FriendshipRead(BaseModel):
    id: str
    requester_id: str
    addressee_id: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FriendRequestWithUser(FriendshipRead):
    requester: Optional[ProfileRead] = None


class FriendRequestCreate(BaseModel):
    addressee_id: str
