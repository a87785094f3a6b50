"""
PDF report export route (premium).
"""
import io
import logging
from datetime import date, datetime, time, timezone
from typing import Optional

from flask import Blueprint, request, jsonify, g, current_app, send_file

from ..errors import MoodflowError
from ..models._time import utcnow
from ..services.report_exporter import export_report, months_ago
from ..services.tier_gate import Action, require
from ..utils.auth_adapter import auth_required, profile_required
from . import error_response, entry_store

reports_bp = Blueprint('reports', __name__)
logger = logging.getLogger(__name__)


def parse_query_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """ISO date or datetime as naive UTC. A bare date used as an end covers that whole day."""
    if not value:
        return None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    return datetime.combine(day, time.max if end_of_day else time.min)


@reports_bp.route('/reports/export', methods=['GET'])
@auth_required
@profile_required
def export():
    """Download the mood report for ?start=&end= (ISO dates), default the last few months."""
    try:
        require(Action.EXPORT_REPORT, g.session.user)
    except MoodflowError as e:
        return error_response(e)

    try:
        start = parse_query_date(request.args.get('start'))
        end = parse_query_date(request.args.get('end'), end_of_day=True)
    except ValueError as e:
        return jsonify({"error": f"Invalid date: {str(e)}"}), 400

    now = utcnow()
    end = end or now
    start = start or months_ago(end, current_app.config.get('REPORT_DEFAULT_MONTHS', 3))
    if start > end:
        return jsonify({"error": "start must be before end"}), 400

    try:
        filename, pdf = export_report(entry_store().list(), g.session.user, start, end, now)
    except MoodflowError as e:
        return error_response(e)

    logger.info(f"Exported report {filename} for user {g.session.user_id}")
    return send_file(io.BytesIO(pdf), mimetype='application/pdf', as_attachment=True, download_name=filename)
