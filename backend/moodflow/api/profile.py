"""
Profile routes. Reachable before onboarding is complete.
"""
import logging
from flask import Blueprint, request, jsonify, g

from ..errors import MoodflowError
from ..services.session_store import resolve_route, DEFAULT_ROUTE
from ..utils.auth_adapter import auth_required
from . import error_response, unexpected_error

profile_bp = Blueprint('profile', __name__)
logger = logging.getLogger(__name__)


@profile_bp.route('/profile', methods=['GET'])
@auth_required
def get_profile():
    return jsonify(g.session.user)


@profile_bp.route('/profile', methods=['PUT'])
@auth_required
def update_profile():
    """Save the profile. A complete profile unlocks the rest of the app."""
    try:
        user = g.session.update_profile(request.get_json(silent=True) or {})
    except MoodflowError as e:
        logger.warning(f"Profile update failed for {g.session.user_id}: {e.message}")
        return error_response(e)
    except Exception as e:
        return unexpected_error("updating profile", e)

    return jsonify({
        "message": "Profile saved",
        "user": user,
        "redirect": resolve_route(g.session.state, DEFAULT_ROUTE),
    })
