"""
Profile model: onboarding data and subscription tier, keyed by auth user id.
"""
import enum
from datetime import date
from typing import Dict, Any, Optional, List

from sqlalchemy import Column, String, Text, Date, DateTime, Boolean, JSON

from . import db
from ._time import utcnow


class SubscriptionStatus(str, enum.Enum):
    FREE = 'free'
    PREMIUM = 'premium'


PROFILE_FIELDS = ('first_name', 'last_name', 'date_of_birth', 'profile_picture',
                  'bio', 'location', 'interests')


class Profile(db.Model):
    """Row in `user_profiles`. One per authenticated user."""
    __tablename__ = 'user_profiles'

    user_id = Column(String(36), primary_key=True)
    subscription_status = Column(String(16), nullable=False, default=SubscriptionStatus.FREE.value)
    profile_completed = Column(Boolean, nullable=False, default=False)

    first_name = Column(String(100))
    last_name = Column(String(100))
    date_of_birth = Column(Date)
    profile_picture = Column(Text)  # data-URI
    bio = Column(Text)
    location = Column(String(200))
    interests = Column(JSON, default=list)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __init__(self, user_id: str):
        self.user_id = user_id
        self.subscription_status = SubscriptionStatus.FREE.value
        self.profile_completed = False
        self.interests = []

    @property
    def is_premium(self) -> bool:
        return self.subscription_status == SubscriptionStatus.PREMIUM.value

    @property
    def has_required_fields(self) -> bool:
        return bool(
            (self.first_name or '').strip()
            and (self.last_name or '').strip()
            and self.date_of_birth
        )

    def apply(self, data: Dict[str, Any]) -> None:
        """Replace profile fields and recompute the completion flag."""
        for field in PROFILE_FIELDS:
            if field in data:
                setattr(self, field, data[field])
        self.profile_completed = self.has_required_fields

    def profile_dict(self) -> Optional[Dict[str, Any]]:
        """The onboarding profile, or None if it was never filled in."""
        if not any(getattr(self, field) for field in PROFILE_FIELDS):
            return None
        return {
            "first_name": self.first_name or '',
            "last_name": self.last_name or '',
            "date_of_birth": self.date_of_birth.isoformat() if isinstance(self.date_of_birth, date) else None,
            "profile_picture": self.profile_picture,
            "bio": self.bio,
            "location": self.location,
            "interests": list(self.interests or []),
        }

    def to_user_dict(self, email: str) -> Dict[str, Any]:
        """User view: identity, tier and profile."""
        return {
            "email": email,
            "subscription_status": self.subscription_status,
            "profile_completed": bool(self.profile_completed),
            "profile": self.profile_dict(),
        }

    def __repr__(self) -> str:
        return f"<Profile {self.user_id} ({self.subscription_status})>"
