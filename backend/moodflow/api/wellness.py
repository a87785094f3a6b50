"""
Premium wellness routes: emotion heatmap, trigger detection and self-care recommendations.
"""
import logging
from datetime import MINYEAR, MAXYEAR

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import MoodflowError
from ..models._time import utcnow
from ..services import aggregation
from ..services.tier_gate import Action, require
from ..utils.auth_adapter import auth_required, profile_required
from . import error_response, unexpected_error, entry_store

wellness_bp = Blueprint('wellness', __name__)
logger = logging.getLogger(__name__)

MIN_TRIGGER_ENTRIES = 3


@wellness_bp.route('/wellness/heatmap', methods=['GET'])
@auth_required
@profile_required
def heatmap():
    """Month calendar of average mood. ?year=&month= default to the current month."""
    try:
        require(Action.VIEW_WELLNESS, g.session.user)
    except MoodflowError as e:
        return error_response(e)

    now = utcnow()
    year = request.args.get('year', now.year, type=int)
    month = request.args.get('month', now.month, type=int)
    if not 1 <= month <= 12:
        return jsonify({"error": "month must be between 1 and 12"}), 400
    if not MINYEAR <= year <= MAXYEAR:
        return jsonify({"error": f"year must be between {MINYEAR} and {MAXYEAR}"}), 400

    return jsonify(aggregation.heatmap_month(entry_store().list(), year, month))


@wellness_bp.route('/wellness/triggers', methods=['GET'])
@auth_required
@profile_required
def triggers():
    try:
        require(Action.VIEW_WELLNESS, g.session.user)
        entries = entry_store().list()
        if len(entries) < MIN_TRIGGER_ENTRIES:
            return jsonify({
                "positive": [],
                "negative": [],
                "message": "Add at least 3 entries for the AI to detect triggers."
            })
        result = current_app.analysis_client.analyze_triggers(entries)
    except MoodflowError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("detecting triggers", e)

    return jsonify(result)


@wellness_bp.route('/wellness/recommendations', methods=['GET'])
@auth_required
@profile_required
def recommendations():
    try:
        require(Action.VIEW_WELLNESS, g.session.user)
        entries = entry_store().list()
        if not entries:
            return jsonify({
                "recommendations": [],
                "message": "Create an entry to receive personalized tips."
            })
        result = current_app.analysis_client.recommend(entries)
    except MoodflowError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("generating recommendations", e)

    return jsonify({"recommendations": result})
