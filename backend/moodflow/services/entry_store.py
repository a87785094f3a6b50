"""
Per-user journal entry collection backed by SQLAlchemy.
"""
import logging
from typing import Dict, Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from backend.moodflow.errors import NotFound, PersistenceError, ValidationError
from backend.moodflow.models import db, JournalEntry, Mood
from backend.moodflow.models._time import utcnow
from backend.moodflow.services.tier_gate import Action, FREE_ENTRY_LIMIT, require

logger = logging.getLogger(__name__)


def parse_mood(value: Any) -> Mood:
    """Mood from its label or enum; unknown values are a ValidationError."""
    try:
        return Mood.parse(value)
    except ValueError as e:
        raise ValidationError(str(e), details={"mood": [str(e)]})


class EntryStore:
    """Journal entries owned by the user of an authenticated SessionStore."""

    def __init__(self, session, limit: int = FREE_ENTRY_LIMIT):
        if not session.is_authenticated:
            raise ValueError("EntryStore requires an authenticated session")
        self.session = session
        self.limit = limit

    @property
    def user_id(self) -> str:
        return self.session.user_id

    def _query(self):
        return JournalEntry.query.filter_by(user_id=self.user_id)

    def _commit(self, action: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error trying to {action} for user {self.user_id}: {str(e)}")
            raise PersistenceError(f"Failed to {action}. Please try again.")

    def list(self) -> List[JournalEntry]:
        """All entries, newest first."""
        return self._query().order_by(JournalEntry.date.desc(), JournalEntry.created_at.desc()).all()

    def count(self) -> int:
        return self._query().count()

    def get(self, entry_id: str) -> JournalEntry:
        entry = self._query().filter_by(id=entry_id).first()
        if entry is None:
            logger.warning(f"Journal entry {entry_id} not found for user {self.user_id}")
            raise NotFound("Journal entry not found")
        return entry

    def ensure_can_add(self) -> None:
        """Raise LimitExceeded when the free-tier cap is reached."""
        require(Action.CREATE_ENTRY, self.session.user, self.count(), self.limit)

    def add(self, mood: Any, text: str, analysis: Optional[Dict[str, Any]]) -> JournalEntry:
        """Append an entry. The caller supplies the analysis."""
        self.ensure_can_add()

        entry = JournalEntry(user_id=self.user_id, mood=parse_mood(mood), text=text, analysis=analysis)
        db.session.add(entry)
        self._commit("save journal entry")

        logger.info(f"Created journal entry {entry.id} for user {self.user_id}")
        return entry

    def update(self, entry_id: str, mood: Any = None, text: Optional[str] = None,
               analysis: Optional[Dict[str, Any]] = None) -> JournalEntry:
        """Merge the given fields into an entry and re-stamp its date to now."""
        entry = self.get(entry_id)

        if mood is not None:
            entry.mood = parse_mood(mood)
        if text is not None:
            entry.text = text
        if analysis is not None:
            entry.analysis = analysis
        entry.date = utcnow()

        self._commit("update journal entry")
        logger.info(f"Updated journal entry {entry.id}")
        return entry

    def delete(self, entry_id: str) -> None:
        entry = self.get(entry_id)
        db.session.delete(entry)
        self._commit("delete journal entry")
        logger.info(f"Deleted journal entry {entry_id}")
