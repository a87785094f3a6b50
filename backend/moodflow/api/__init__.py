"""
API blueprints. Shared helpers for turning domain errors into responses.
"""
import logging

from flask import jsonify, current_app, g

from backend.moodflow.errors import MoodflowError, NotFound

logger = logging.getLogger(__name__)


def error_response(error: MoodflowError):
    """JSON body and status code for a domain error."""
    if isinstance(error, NotFound):
        logger.warning(f"Not found: {error.message}")
    return jsonify(error.to_dict()), error.status_code


def unexpected_error(action: str, error: Exception):
    logger.error(f"Error {action}: {str(error)}", exc_info=True)
    return jsonify({"error": f"An error occurred while {action}"}), 500


def entry_store():
    """EntryStore for the user of the current request."""
    from backend.moodflow.services.entry_store import EntryStore

    return EntryStore(g.session, current_app.config.get('FREE_TIER_ENTRY_LIMIT', 5))
