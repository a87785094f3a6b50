"""
Authentication adapter module.
Provides a unified interface for authentication operations with both
custom JWT and Supabase Auth backends, plus the route decorators that
build the per-request session.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from functools import wraps

from flask import request, g, current_app, jsonify, Flask
from flask_jwt_extended import create_access_token, decode_token
from sqlalchemy.exc import SQLAlchemyError

from backend.moodflow.errors import InvalidCredentials, AccountExists, ExternalServiceError, PersistenceError
from backend.moodflow.utils.supabase_client import supabase

logger = logging.getLogger(__name__)


class AuthBackend:
    """Capability interface for the hosted (or local) auth service.

    Every method returns identity data shaped as {"id": str, "email": str}.
    Sign-in/sign-up results also carry "access_token" and "refresh_token".
    """

    name = "base"

    def get_session(self, access_token: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        raise NotImplementedError

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        raise NotImplementedError

    def sign_out(self, access_token: Optional[str]) -> None:
        raise NotImplementedError


class LocalAuthBackend(AuthBackend):
    """Password hashes in the `users` table, JWT access tokens revoked through `jwt_blocklist`."""

    name = "jwt"

    def get_session(self, access_token: str) -> Optional[Dict[str, Any]]:
        from backend.moodflow.models import db, User, TokenBlocklist

        try:
            claims = decode_token(access_token)
        except Exception as e:
            logger.debug(f"Rejected access token: {str(e)}")
            return None
        if TokenBlocklist.is_revoked(claims.get('jti')):
            logger.debug("Rejected revoked access token")
            return None

        user = db.session.get(User, claims.get('sub'))
        if not user:
            return None
        return {"id": user.id, "email": user.email}

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        from backend.moodflow.models import User

        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user or not user.verify_password(password):
            raise InvalidCredentials("Invalid email or password")

        return {
            "id": user.id,
            "email": user.email,
            "access_token": create_access_token(identity=user.id),
            "refresh_token": None,
        }

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        from backend.moodflow.models import db, User

        if User.query.filter_by(email=email.strip().lower()).first():
            raise AccountExists("An account with this email already exists")

        user = User(email=email, password=password)
        db.session.add(user)
        db.session.commit()

        return {
            "id": user.id,
            "email": user.email,
            "access_token": create_access_token(identity=user.id),
            "refresh_token": None,
        }

    def sign_out(self, access_token: Optional[str]) -> None:
        """Record the token's JTI so it is rejected by every worker until it expires."""
        from backend.moodflow.models import db, TokenBlocklist

        if not access_token:
            return
        try:
            claims = decode_token(access_token)
        except Exception as e:
            logger.debug(f"Ignoring sign-out for undecodable token: {str(e)}")
            return

        jti = claims.get('jti')
        if TokenBlocklist.is_revoked(jti):
            return

        expires_at = None
        if claims.get('exp'):
            expires_at = datetime.fromtimestamp(claims['exp'], timezone.utc).replace(tzinfo=None)

        try:
            TokenBlocklist.purge_expired()
            db.session.add(TokenBlocklist(jti=jti, user_id=claims.get('sub'), expires_at=expires_at))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error revoking access token: {str(e)}")
            raise PersistenceError("Failed to sign out. Please try again.")


class SupabaseAuthBackend(AuthBackend):
    """Delegates credentials and sessions to Supabase Auth."""

    name = "supabase"

    def __init__(self, manager=supabase):
        self.manager = manager

    @property
    def client(self):
        client = self.manager.client
        if client is None:
            raise ExternalServiceError("Authentication service unavailable")
        return client

    def get_session(self, access_token: str) -> Optional[Dict[str, Any]]:
        try:
            user_data = self.client.auth.get_user(access_token)
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.warning(f"Supabase rejected access token: {str(e)}")
            return None
        if not user_data or not user_data.user:
            return None
        return {"id": str(user_data.user.id), "email": user_data.user.email}

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        try:
            login_data = self.client.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.warning(f"Supabase login error: {str(e)}")
            if "invalid" in str(e).lower():
                raise InvalidCredentials("Invalid email or password")
            raise ExternalServiceError(f"Login failed: {str(e)}")

        if not login_data.user or not login_data.session:
            raise InvalidCredentials("Invalid email or password")

        return {
            "id": str(login_data.user.id),
            "email": login_data.user.email,
            "access_token": login_data.session.access_token,
            "refresh_token": login_data.session.refresh_token,
        }

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        try:
            signup_data = self.client.auth.sign_up({
                "email": email,
                "password": password
            })
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.warning(f"Supabase registration error: {str(e)}")
            if "already" in str(e).lower():
                raise AccountExists("An account with this email already exists")
            raise ExternalServiceError(f"Registration failed: {str(e)}")

        if not signup_data.user:
            raise ExternalServiceError("User registration failed")

        session = signup_data.session
        return {
            "id": str(signup_data.user.id),
            "email": signup_data.user.email,
            # None when Supabase requires email confirmation first
            "access_token": session.access_token if session else None,
            "refresh_token": session.refresh_token if session else None,
        }

    def sign_out(self, access_token: Optional[str]) -> None:
        """Revoke this user's Supabase session server-side."""
        if not access_token:
            return
        try:
            self.client.auth.admin.sign_out(access_token)
        except Exception as e:
            logger.error(f"Error signing out of Supabase: {str(e)}")


def get_auth_backend(app: Flask) -> AuthBackend:
    """Pick the auth backend from SUPABASE_USE_FOR_AUTH."""
    if app.config.get('SUPABASE_USE_FOR_AUTH'):
        if not supabase.is_available():
            app.logger.warning("SUPABASE_USE_FOR_AUTH is True but Supabase is not configured")
        return SupabaseAuthBackend()
    return LocalAuthBackend()


def bearer_token() -> Optional[str]:
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    return auth_header.split(' ', 1)[1].strip() or None


def auth_required(f):
    """
    Decorator for routes that require authentication.
    Restores the session from the bearer token and stores it in g.session.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        # Allow OPTIONS requests to pass through without authentication
        if request.method == 'OPTIONS':
            return f(*args, **kwargs)

        from backend.moodflow.services.session_store import SessionStore

        token = bearer_token()
        if not token:
            return jsonify({"error": "Missing or invalid authorization header", "redirect": "/login"}), 401

        session = SessionStore(current_app.auth_backend)
        try:
            restored = session.restore(token)
        except ExternalServiceError as e:
            logger.error(f"Auth service error while restoring session: {e.message}")
            return jsonify(e.to_dict()), e.status_code
        if not restored:
            return jsonify({"error": "Invalid or expired token", "redirect": "/login"}), 401

        g.session = session
        g.current_user = session.identity
        return f(*args, **kwargs)

    return decorated


def profile_required(f):
    """
    Decorator for routes that also need a completed profile.
    Must be applied below auth_required.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if request.method == 'OPTIONS':
            return f(*args, **kwargs)

        session = g.session
        if not session.is_profile_complete:
            logger.info(f"User {session.user_id} blocked until profile setup is complete")
            return jsonify({
                "error": "Please complete your profile first",
                "redirect": "/profile-setup"
            }), 403
        return f(*args, **kwargs)

    return decorated
