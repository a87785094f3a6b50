"""
Authentication routes: signup, login, logout and session/route resolution.
Works with either the local JWT backend or Supabase Auth, whichever the app
was configured with.
"""
import logging
from flask import Blueprint, request, jsonify, g, current_app
from marshmallow import Schema, fields, validate, ValidationError
from email_validator import validate_email, EmailNotValidError

from ..errors import MoodflowError
from ..services.session_store import SessionStore, SessionState, resolve_route, DEFAULT_ROUTE
from ..utils.auth_adapter import auth_required, bearer_token
from . import error_response, unexpected_error

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


class CredentialsSchema(Schema):
    """Login/signup request schema validation."""
    email = fields.Email(required=True)
    password = fields.String(required=True, validate=validate.Length(min=6))


def validate_credentials(data):
    """Validate credentials input data.

    Returns:
        Tuple of (cleaned, errors) where exactly one is None.
    """
    try:
        cleaned = CredentialsSchema().load(data or {})
    except ValidationError as e:
        return None, e.messages

    try:
        validated = validate_email(cleaned['email'], check_deliverability=False)
        cleaned['email'] = validated.normalized
    except EmailNotValidError as e:
        return None, {"email": [str(e)]}
    return cleaned, None


def _session_response(session: SessionStore, message: str, status: int = 200):
    return jsonify({
        "message": message,
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "user": session.user,
        "state": session.state.value,
        "redirect": resolve_route(session.state, DEFAULT_ROUTE),
    }), status


@auth_bp.route('/auth/signup', methods=['POST'])
def signup():
    """Register a new user. The profile starts free and incomplete."""
    cleaned, errors = validate_credentials(request.get_json(silent=True))
    if errors:
        logger.warning(f"Signup validation failed: {errors}")
        return jsonify({"error": "Validation failed", "details": errors}), 400

    session = SessionStore(current_app.auth_backend)
    try:
        session.signup(cleaned['email'], cleaned['password'])
    except MoodflowError as e:
        logger.warning(f"Signup failed for {cleaned['email']}: {e.message}")
        return error_response(e)
    except Exception as e:
        return unexpected_error("registering", e)

    if not session.access_token:
        return jsonify({
            "message": "Registration successful! Please check your email to confirm your account.",
            "confirmation_required": True,
            "user": session.user,
        }), 201

    return _session_response(session, "User registered successfully", 201)


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """Log in a user and report where the client should go next."""
    data = request.get_json(silent=True) or {}
    if not data.get('email') or not data.get('password'):
        return jsonify({"error": "Email and password are required."}), 400

    session = SessionStore(current_app.auth_backend)
    try:
        session.login(data['email'], data['password'])
    except MoodflowError as e:
        logger.warning(f"Login failed for {data['email']}: {e.message}")
        return error_response(e)
    except Exception as e:
        return unexpected_error("logging in", e)

    return _session_response(session, "Login successful")


@auth_bp.route('/auth/logout', methods=['POST'])
@auth_required
def logout():
    g.session.logout()
    return jsonify({"message": "Logged out", "redirect": resolve_route(SessionState.ANONYMOUS, '/')})


@auth_bp.route('/auth/session', methods=['GET'])
@auth_required
def get_session():
    """Current session state and user view."""
    session = g.session
    return jsonify({"state": session.state.value, "user": session.user})


@auth_bp.route('/auth/route', methods=['GET'])
def route():
    """Resolve the redirect policy for ?path= given the caller's session, if any."""
    path = request.args.get('path', DEFAULT_ROUTE)
    session = SessionStore(current_app.auth_backend)

    token = bearer_token()
    if token:
        try:
            session.restore(token)
        except MoodflowError as e:
            return error_response(e)

    target = resolve_route(session.state, path)
    return jsonify({"state": session.state.value, "path": path, "redirect": target, "allowed": target == path})
