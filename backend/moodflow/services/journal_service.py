"""
Journal write flow: tier check, analysis, then store.
"""
import logging
from typing import Any, Optional

from backend.moodflow.errors import ValidationError
from backend.moodflow.models import JournalEntry
from backend.moodflow.services.entry_store import parse_mood

logger = logging.getLogger(__name__)


def _clean_text(text: Optional[str]) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Journal entry cannot be empty.", details={"text": ["This field is required."]})
    return text.strip()


def create_entry(store, client, mood: Any, text: str) -> JournalEntry:
    """Create an analysed entry.

    The tier check runs before the analysis call so a capped free user never
    spends an analysis request. An AnalysisError aborts the add.
    """
    mood = parse_mood(mood)
    text = _clean_text(text)

    store.ensure_can_add()
    analysis = client.analyze(text)
    return store.add(mood, text, analysis)


def update_entry(store, client, entry_id: str, mood: Any = None, text: Optional[str] = None) -> JournalEntry:
    """Edit an entry, re-analysing only when its text actually changed."""
    entry = store.get(entry_id)

    if mood is not None:
        mood = parse_mood(mood)
    if text is not None:
        text = _clean_text(text)

    analysis = None
    if text is not None and text != (entry.text or '').strip():
        logger.info(f"Text changed for entry {entry_id}, re-analysing")
        analysis = client.analyze(text)

    return store.update(entry_id, mood=mood, text=text, analysis=analysis)
