"""
Record of a confirmed payment backing a premium upgrade.
"""
from typing import Dict, Any

from sqlalchemy import Column, String, Integer, DateTime

from . import db
from ._time import utcnow


class Payment(db.Model):
    __tablename__ = 'payments'

    transaction_id = Column(String(64), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    phone_number = Column(String(20))
    amount = Column(Integer, nullable=False)
    provider = Column(String(32), nullable=False, default='mpesa')
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "amount": self.amount,
            "provider": self.provider,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
