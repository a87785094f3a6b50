"""
Revoked access tokens for the local authentication mode.
"""
from sqlalchemy import Column, Integer, String, DateTime

from . import db
from ._time import utcnow


class TokenBlocklist(db.Model):
    """One row per signed-out JWT, kept until the token would have expired anyway."""
    __tablename__ = 'jwt_blocklist'

    id = Column(Integer, primary_key=True)
    jti = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(String(36), index=True)
    expires_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    @classmethod
    def is_revoked(cls, jti) -> bool:
        if not jti:
            return False
        return db.session.query(cls.id).filter_by(jti=jti).first() is not None

    @classmethod
    def purge_expired(cls, now=None) -> int:
        """Drop rows whose tokens have expired; returns how many were removed."""
        return cls.query.filter(cls.expires_at.isnot(None), cls.expires_at < (now or utcnow())).delete()

    def __repr__(self) -> str:
        return f"<TokenBlocklist {self.jti}>"
