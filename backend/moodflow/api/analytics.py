"""
Dashboard and analytics routes. Everything is derived from the user's entries on request.
"""
import logging
from flask import Blueprint, jsonify, g

from ..services import aggregation
from ..services.tier_gate import usage
from ..utils.auth_adapter import auth_required, profile_required
from . import entry_store

analytics_bp = Blueprint('analytics', __name__)
logger = logging.getLogger(__name__)

RECENT_ENTRIES = 3


def _series(entries):
    return [{"date": day.isoformat(), "score": score} for day, score in aggregation.mood_time_series(entries)]


def _emotions(entries):
    return [{"emotion": name, "value": total} for name, total in aggregation.emotion_distribution(entries)]


@analytics_bp.route('/dashboard', methods=['GET'])
@auth_required
@profile_required
def dashboard():
    store = entry_store()
    entries = store.list()
    user = g.session.user

    return jsonify({
        "user": user,
        "stats": aggregation.dashboard_stats(entries),
        "usage": usage(user, len(entries), store.limit),
        "mood_trend": _series(entries),
        "emotion_breakdown": _emotions(entries),
        "recent_entries": [entry.to_dict() for entry in entries[:RECENT_ENTRIES]],
        "nudge": aggregation.nudge(entries),
    })


@analytics_bp.route('/analytics', methods=['GET'])
@auth_required
@profile_required
def analytics():
    entries = entry_store().list()

    return jsonify({
        "mood_trend": _series(entries),
        "emotion_breakdown": _emotions(entries),
        "mood_distribution": aggregation.mood_distribution(entries),
        "average_mood": aggregation.average_mood_label(entries),
        "most_frequent_mood": aggregation.most_frequent_mood(entries),
        "top_emotions": [{"emotion": name, "count": count} for name, count in aggregation.top_emotions(entries)],
        "total_entries": len(entries),
    })
