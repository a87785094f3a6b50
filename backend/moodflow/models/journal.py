"""
Journal entry model and the fixed mood scale.
"""
import enum
from uuid import uuid4
from datetime import datetime
from typing import Dict, Any, Optional

from sqlalchemy import Column, String, Text, DateTime, JSON, Enum as SAEnum
from sqlalchemy.orm import validates

from . import db
from ._time import utcnow


class Mood(str, enum.Enum):
    AWESOME = 'Awesome'
    GOOD = 'Good'
    OKAY = 'Okay'
    BAD = 'Bad'
    TERRIBLE = 'Terrible'

    @property
    def score(self) -> int:
        return MOOD_SCORES[self]

    @classmethod
    def from_score(cls, score: int) -> Optional['Mood']:
        for mood, value in MOOD_SCORES.items():
            if value == score:
                return mood
        return None

    @classmethod
    def parse(cls, value: Any) -> 'Mood':
        """Coerce a label into a Mood, raising ValueError for anything else."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Invalid mood '{value}'. Must be one of: {', '.join(m.value for m in cls)}")


MOOD_SCORES = {
    Mood.TERRIBLE: 1,
    Mood.BAD: 2,
    Mood.OKAY: 3,
    Mood.GOOD: 4,
    Mood.AWESOME: 5,
}


class JournalEntry(db.Model):
    """A single mood journal submission."""
    __tablename__ = 'journal_entries'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    mood = Column(SAEnum(Mood, name='mood', values_callable=lambda enum_cls: [m.value for m in enum_cls]),
                  nullable=False)
    text = Column(Text, nullable=False)
    analysis = Column(JSON, nullable=True)
    date = Column(DateTime, nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __init__(self, user_id: str, mood: Any, text: str,
                 analysis: Optional[Dict[str, Any]] = None, date: Optional[datetime] = None):
        """Initialize a journal entry.

        Args:
            user_id: Owner of the entry.
            mood: A Mood or its label. Anything else raises ValueError.
            text: The journal text.
            analysis: AI analysis payload attached at creation.
            date: Entry timestamp; defaults to now.
        """
        now = utcnow()
        self.id = str(uuid4())
        self.user_id = user_id
        self.mood = Mood.parse(mood)
        self.text = text
        self.analysis = analysis
        self.date = date or now
        self.created_at = now
        self.updated_at = now

    @validates('mood')
    def _validate_mood(self, key, value):
        return Mood.parse(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "mood": Mood.parse(self.mood).value,
            "text": self.text,
            "analysis": self.analysis,
        }

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} {self.mood}>"
