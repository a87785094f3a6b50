"""
User model for the local (non-Supabase) authentication mode.
"""
from uuid import uuid4
from typing import Dict, Any

from passlib.hash import bcrypt
from sqlalchemy import Column, String, DateTime

from . import db
from ._time import utcnow


class User(db.Model):
    """Credentials record. Profile and tier data live in `user_profiles`."""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email = Column(String(120), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def __init__(self, email: str, password: str):
        self.id = str(uuid4())
        self.email = email.strip().lower()
        self.password_hash = bcrypt.hash(password)

    def verify_password(self, password: str) -> bool:
        return bcrypt.verify(password, self.password_hash)

    def to_dict(self) -> Dict[str, Any]:
        """Identity view; never includes the hash."""
        return {
            "id": self.id,
            "email": self.email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.email}>"
