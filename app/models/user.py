# app/models/user.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, DateTime, String, Text

from app.models.base import Base, utcnow


class UserProfile(Base):
    __tablename__ = "users"

    # same id as the auth subject
    id = Column(String(36), primary_key=True, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)

    # onboarding is complete once a name is set
    name = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def is_complete(self) -> bool:
        return bool(self.name)


class ProfileRead(BaseModel):
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_complete(self) -> bool:
        return bool(self.name)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
