"""
Session/profile state for one authenticated user.
"""
import enum
import logging
from typing import Dict, Any, Optional

from marshmallow import Schema, fields, validate, EXCLUDE, ValidationError as SchemaError, post_load
from sqlalchemy.exc import SQLAlchemyError

from backend.moodflow.errors import ValidationError, PersistenceError
from backend.moodflow.models import db, Profile, Payment, SubscriptionStatus

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = r'^data:image/[\w.+-]+;base64,'

APP_ROUTES = ('/dashboard', '/journal', '/history', '/analytics', '/wellness', '/profile')
LOGIN_ROUTE = '/login'
PROFILE_SETUP_ROUTE = '/profile-setup'
DEFAULT_ROUTE = '/dashboard'


class SessionState(str, enum.Enum):
    ANONYMOUS = 'anonymous'
    AUTHENTICATED_INCOMPLETE = 'authenticated_incomplete'
    AUTHENTICATED_COMPLETE = 'authenticated_complete'


def _not_blank(value: str) -> bool:
    if not value or not value.strip():
        raise SchemaError("This field is required.")
    return True


class ProfileSchema(Schema):
    """Validation schema for the onboarding/profile editor."""
    class Meta:
        unknown = EXCLUDE

    first_name = fields.String(required=True, validate=[_not_blank, validate.Length(max=100)])
    last_name = fields.String(required=True, validate=[_not_blank, validate.Length(max=100)])
    date_of_birth = fields.Date(required=True)
    profile_picture = fields.String(allow_none=True, validate=validate.Regexp(DATA_URI_PATTERN))
    bio = fields.String(allow_none=True)
    location = fields.String(allow_none=True, validate=validate.Length(max=200))
    interests = fields.List(fields.String(), allow_none=True)

    @post_load
    def normalize(self, data, **kwargs):
        data['first_name'] = data['first_name'].strip()
        data['last_name'] = data['last_name'].strip()
        # Ordered set semantics
        interests = []
        for interest in data.get('interests') or []:
            interest = interest.strip()
            if interest and interest not in interests:
                interests.append(interest)
        data['interests'] = interests
        return data


def resolve_route(state: SessionState, path: str) -> str:
    """Where the client should land when asking for `path` in `state`."""
    if state == SessionState.ANONYMOUS:
        return LOGIN_ROUTE
    if state == SessionState.AUTHENTICATED_INCOMPLETE:
        return PROFILE_SETUP_ROUTE
    if path in APP_ROUTES:
        return path
    return DEFAULT_ROUTE


class SessionStore:
    """Holds the authenticated identity, tier and profile.

    Moves between ANONYMOUS, AUTHENTICATED_INCOMPLETE and AUTHENTICATED_COMPLETE.
    """

    def __init__(self, auth_backend):
        self.auth_backend = auth_backend
        self.identity: Optional[Dict[str, Any]] = None
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self._profile: Optional[Profile] = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.identity["id"] if self.identity else None

    @property
    def is_profile_complete(self) -> bool:
        return bool(self._profile and self._profile.profile_completed)

    @property
    def state(self) -> SessionState:
        if not self.is_authenticated:
            return SessionState.ANONYMOUS
        if self.is_profile_complete:
            return SessionState.AUTHENTICATED_COMPLETE
        return SessionState.AUTHENTICATED_INCOMPLETE

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        """User view: {email, subscription_status, profile_completed, profile}."""
        if not self.is_authenticated:
            return None
        if self._profile is None:
            return {
                "email": self.identity["email"],
                "subscription_status": SubscriptionStatus.FREE.value,
                "profile_completed": False,
                "profile": None,
            }
        return self._profile.to_user_dict(self.identity["email"])

    def _load_profile(self) -> None:
        self._profile = db.session.get(Profile, self.user_id)

    def _start(self, result: Dict[str, Any]) -> None:
        self.identity = {"id": result["id"], "email": result["email"]}
        self.access_token = result.get("access_token")
        self.refresh_token = result.get("refresh_token")
        self._load_profile()

    def restore(self, access_token: str) -> bool:
        """Resume a session from a bearer token. False leaves the store anonymous."""
        identity = self.auth_backend.get_session(access_token)
        if not identity:
            return False
        self._start({**identity, "access_token": access_token})
        return True

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Sign in. Raises InvalidCredentials on mismatch."""
        result = self.auth_backend.sign_in(email, password)
        self._start(result)
        logger.info(f"User {self.user_id} logged in ({self.state.value})")
        return self.user

    def signup(self, email: str, password: str) -> Dict[str, Any]:
        """Register and create the free, incomplete profile row.

        Raises AccountExists if the email is taken.
        """
        result = self.auth_backend.sign_up(email, password)
        self.identity = {"id": result["id"], "email": result["email"]}
        self.access_token = result.get("access_token")
        self.refresh_token = result.get("refresh_token")

        try:
            profile = db.session.get(Profile, self.user_id) or Profile(user_id=self.user_id)
            db.session.add(profile)
            db.session.commit()
            self._profile = profile
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error creating user profile for {self.user_id}: {str(e)}")
            self._profile = None

        logger.info(f"User {self.user_id} signed up")
        return self.user

    def logout(self) -> None:
        try:
            self.auth_backend.sign_out(self.access_token)
        except Exception as e:
            logger.error(f"Error signing out: {str(e)}")
        finally:
            self.identity = None
            self.access_token = None
            self.refresh_token = None
            self._profile = None

    def _require_authenticated(self) -> None:
        if not self.is_authenticated:
            raise ValidationError("No authenticated user")

    def update_profile(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and upsert the profile, completing onboarding.

        Raises:
            ValidationError: Missing first name, last name or date of birth.
            PersistenceError: The database rejected the write.
        """
        self._require_authenticated()
        try:
            cleaned = ProfileSchema().load(data or {})
        except SchemaError as e:
            raise ValidationError("Please fill in all required fields.", details=e.messages)

        try:
            profile = db.session.get(Profile, self.user_id) or Profile(user_id=self.user_id)
            profile.apply(cleaned)
            db.session.add(profile)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error updating profile for {self.user_id}: {str(e)}")
            raise PersistenceError("Failed to save profile. Please try again.")

        self._profile = profile
        logger.info(f"Profile updated for {self.user_id} (completed={profile.profile_completed})")
        return self.user

    def upgrade_to_premium(self, confirmation: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Move to premium. Only valid with a confirmed payment."""
        self._require_authenticated()
        if not confirmation or not confirmation.get("transaction_id"):
            raise ValidationError("A confirmed payment is required to upgrade")

        try:
            profile = db.session.get(Profile, self.user_id) or Profile(user_id=self.user_id)
            profile.subscription_status = SubscriptionStatus.PREMIUM.value
            db.session.add(profile)
            db.session.add(Payment(
                transaction_id=confirmation["transaction_id"],
                user_id=self.user_id,
                phone_number=confirmation.get("phone_number"),
                amount=confirmation.get("amount", 0),
                provider=confirmation.get("provider", "mpesa"),
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error upgrading {self.user_id} to premium after payment "
                         f"{confirmation['transaction_id']}: {str(e)}")
            raise PersistenceError("Payment received but the upgrade could not be saved. Please contact support.")

        self._profile = profile
        logger.info(f"User {self.user_id} upgraded to premium (transaction {confirmation['transaction_id']})")
        return self.user
