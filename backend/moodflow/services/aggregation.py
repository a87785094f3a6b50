"""
Derived statistics over a snapshot of journal entries.

Every function here is pure: it takes the entries (newest first, as returned
by EntryStore.list) and recomputes from scratch.
"""
import calendar
import math
from collections import Counter, OrderedDict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from backend.moodflow.models import Mood
from backend.moodflow.models._time import utcnow

DEFAULT_MOOD = Mood.OKAY

HEATMAP_BANDS = (
    (5, 'green'),
    (4, 'lime'),
    (3, 'yellow'),
    (2, 'orange'),
    (1, 'red'),
)
HEATMAP_EMPTY = 'gray'

NUDGES = {
    'empty': ("Welcome!",
              "Ready to start your journey? Create your first journal entry to begin understanding "
              "your emotions better."),
    'Negative': ("A Moment for You",
                 "It seems like things might be tough right now. Remember to be kind to yourself. "
                 "A few deep breaths can make a world of difference. You've got this."),
    'Positive': ("Keep the Momentum",
                 "It's wonderful to see you're feeling positive! What's one small thing you can do "
                 "today to carry this good feeling forward?"),
    'default': ("Daily Reflection",
                "Consistency is key to understanding your emotional landscape. Keep up the great "
                "work of checking in with yourself."),
}


def entry_field(entry: Any, name: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(name)
    return getattr(entry, name, None)


def entry_date(entry: Any) -> datetime:
    value = entry_field(entry, 'date')
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return value


def entry_mood(entry: Any) -> Mood:
    return Mood.parse(entry_field(entry, 'mood'))


def entry_analysis(entry: Any) -> Dict[str, Any]:
    return entry_field(entry, 'analysis') or {}


def round_half_up(value: float) -> int:
    """Round .5 upwards, unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def mood_for_score(score: int) -> Mood:
    return Mood.from_score(score) or DEFAULT_MOOD


def streak(entries: Sequence[Any]) -> int:
    """Consecutive days with an entry, walking back from the most recent entry day."""
    days = sorted({entry_date(e).date() for e in entries}, reverse=True)
    if not days:
        return 0

    count = 1
    for previous, current in zip(days, days[1:]):
        if previous - current != timedelta(days=1):
            break
        count += 1
    return count


def average_score(entries: Sequence[Any]) -> Optional[float]:
    if not entries:
        return None
    return sum(entry_mood(e).score for e in entries) / len(entries)


def average_mood_label(entries: Sequence[Any]) -> Optional[str]:
    """Mean mood mapped back onto the scale, or None without entries."""
    avg = average_score(entries)
    if avg is None:
        return None
    return mood_for_score(round_half_up(avg)).value


def mood_time_series(entries: Sequence[Any]) -> List[Tuple[datetime, int]]:
    """(date, score) pairs, oldest first."""
    return [(entry_date(e), entry_mood(e).score) for e in sorted(entries, key=entry_date)]


def emotion_distribution(entries: Iterable[Any]) -> List[Tuple[str, int]]:
    """Summed emotion scores across analyses, highest total first."""
    totals: Dict[str, int] = OrderedDict()
    for entry in entries:
        for emotion in entry_analysis(entry).get('emotions') or []:
            name = emotion.get('emotion')
            totals[name] = totals.get(name, 0) + int(emotion.get('score') or 0)
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def heatmap_color(score: Optional[int]) -> str:
    if score:
        for threshold, color in HEATMAP_BANDS:
            if score >= threshold:
                return color
    return HEATMAP_EMPTY


def heatmap(entries: Iterable[Any]) -> Dict[date, Dict[str, Any]]:
    """Per calendar day: rounded average score and its colour band."""
    buckets: Dict[date, List[int]] = {}
    for entry in entries:
        buckets.setdefault(entry_date(entry).date(), []).append(entry_mood(entry).score)

    result = {}
    for day in sorted(buckets):
        scores = buckets[day]
        score = round_half_up(sum(scores) / len(scores))
        result[day] = {"score": score, "color": heatmap_color(score)}
    return result


def heatmap_month(entries: Iterable[Any], year: int, month: int) -> Dict[str, Any]:
    """Calendar grid for one month, days without entries in the empty band.

    `first_weekday` is 0 for Sunday so clients can pad the first row.
    """
    by_day = heatmap(entries)
    _, days_in_month = calendar.monthrange(year, month)

    days = []
    for day_number in range(1, days_in_month + 1):
        day = date(year, month, day_number)
        cell = by_day.get(day)
        days.append({
            "date": day.isoformat(),
            "score": cell["score"] if cell else None,
            "color": cell["color"] if cell else HEATMAP_EMPTY,
        })

    return {
        "year": year,
        "month": month,
        "first_weekday": (date(year, month, 1).weekday() + 1) % 7,
        "days": days,
    }


def mood_counts(entries: Iterable[Any]) -> Dict[Mood, int]:
    counts = Counter(entry_mood(e) for e in entries)
    return {mood: counts.get(mood, 0) for mood in Mood}


def mood_distribution(entries: Sequence[Any]) -> List[Dict[str, Any]]:
    """Entry count and percentage per mood, Awesome to Terrible."""
    total = len(entries)
    return [
        {
            "mood": mood.value,
            "count": count,
            "percentage": round(count / total * 100, 1) if total else 0.0,
        }
        for mood, count in mood_counts(entries).items()
    ]


def most_frequent_mood(entries: Sequence[Any]) -> Optional[str]:
    """Most common mood. Ties go to the lower mood."""
    if not entries:
        return None
    counts = mood_counts(entries)
    return max(reversed(list(Mood)), key=counts.get).value


def top_emotions(entries: Iterable[Any], limit: int = 10) -> List[Tuple[str, int]]:
    """Emotions by number of analyses they appear in."""
    counts: Counter = Counter()
    for entry in entries:
        for emotion in entry_analysis(entry).get('emotions') or []:
            counts[emotion.get('emotion')] += 1
    return counts.most_common(limit)


def dashboard_stats(entries: Sequence[Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    if not entries:
        return {"streak": 0, "today_mood": "N/A", "avg_sentiment": "N/A", "total_entries": 0}

    today = (now or utcnow()).date()
    todays_entry = next((e for e in entries if entry_date(e).date() == today), None)

    return {
        "streak": streak(entries),
        "today_mood": entry_mood(todays_entry).value if todays_entry is not None else "Not Logged",
        "avg_sentiment": average_mood_label(entries),
        "total_entries": len(entries),
    }


def nudge(entries: Sequence[Any]) -> Dict[str, str]:
    """Wellness tip keyed on the latest entry's sentiment."""
    if not entries:
        key = 'empty'
    else:
        sentiment = entry_analysis(entries[0]).get('overallSentiment')
        key = sentiment if sentiment in ('Negative', 'Positive') else 'default'
    title, message = NUDGES[key]
    return {"title": title, "message": message}


def filter_entries(entries: Iterable[Any], search: Optional[str] = None,
                   moods: Optional[Iterable[Any]] = None, order: str = 'newest') -> List[Any]:
    """History view: text/keyword search, mood filter and date ordering."""
    result = list(entries)

    if search and search.strip():
        needle = search.lower()
        result = [
            e for e in result
            if needle in (entry_field(e, 'text') or '').lower()
            or any(needle in k.lower() for k in entry_analysis(e).get('keywords') or [])
        ]

    selected = {Mood.parse(m) for m in moods or []}
    if selected:
        result = [e for e in result if entry_mood(e) in selected]

    if order not in ('newest', 'oldest'):
        raise ValueError(f"Invalid order '{order}'. Must be 'newest' or 'oldest'")
    return sorted(result, key=entry_date, reverse=(order == 'newest'))


def entries_between(entries: Iterable[Any], start: datetime, end: datetime) -> List[Any]:
    return [e for e in entries if start <= entry_date(e) <= end]
