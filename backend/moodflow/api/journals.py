"""
Journal entry routes: list/search, create, read, edit and delete.
"""
import logging
from flask import Blueprint, request, jsonify, current_app
from marshmallow import Schema, fields, ValidationError

from ..errors import MoodflowError
from ..services import aggregation
from ..services.journal_service import create_entry, update_entry
from ..utils.auth_adapter import auth_required, profile_required
from . import error_response, unexpected_error, entry_store

journals_bp = Blueprint('journals', __name__)
logger = logging.getLogger(__name__)


class EntrySchema(Schema):
    """Schema for validating entry creation/updates. Mood and text checks live in the service."""
    mood = fields.String(required=True)
    text = fields.String(required=True)


@journals_bp.route('/entries', methods=['GET'])
@auth_required
@profile_required
def get_entries():
    """List entries, optionally filtered.

    Query params:
        search: Matches entry text or analysis keywords, case-insensitive.
        mood: Repeatable mood filter.
        order: "newest" (default) or "oldest".
    """
    try:
        entries = aggregation.filter_entries(
            entry_store().list(),
            search=request.args.get('search'),
            moods=request.args.getlist('mood'),
            order=request.args.get('order', 'newest'),
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"entries": [entry.to_dict() for entry in entries], "total": len(entries)})


@journals_bp.route('/entries', methods=['POST'])
@auth_required
@profile_required
def create_journal_entry():
    """Analyse and save a new entry, subject to the free-tier cap."""
    try:
        data = EntrySchema().load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Validation failed", "details": e.messages}), 400

    try:
        entry = create_entry(entry_store(), current_app.analysis_client, data['mood'], data['text'])
    except MoodflowError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("creating the journal entry", e)

    return jsonify(entry.to_dict()), 201


@journals_bp.route('/entries/<entry_id>', methods=['GET'])
@auth_required
@profile_required
def get_entry(entry_id):
    try:
        entry = entry_store().get(entry_id)
    except MoodflowError as e:
        return error_response(e)
    return jsonify(entry.to_dict())


@journals_bp.route('/entries/<entry_id>', methods=['PUT'])
@auth_required
@profile_required
def update_journal_entry(entry_id):
    """Edit mood and/or text. Unchanged text keeps the stored analysis."""
    try:
        data = EntrySchema(partial=True).load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Validation failed", "details": e.messages}), 400

    try:
        entry = update_entry(entry_store(), current_app.analysis_client, entry_id,
                             mood=data.get('mood'), text=data.get('text'))
    except MoodflowError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("updating the journal entry", e)

    return jsonify(entry.to_dict())


@journals_bp.route('/entries/<entry_id>', methods=['DELETE'])
@auth_required
@profile_required
def delete_journal_entry(entry_id):
    try:
        entry_store().delete(entry_id)
    except MoodflowError as e:
        return error_response(e)
    except Exception as e:
        return unexpected_error("deleting the journal entry", e)

    return jsonify({"message": "Journal entry deleted"})
