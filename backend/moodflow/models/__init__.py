"""
Models package that defines the database schema.
"""
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Initialize SQLAlchemy
db = SQLAlchemy()
migrate = Migrate()

# Import models to ensure they are registered by SQLAlchemy
from .user import User
from .profile import Profile, SubscriptionStatus
from .journal import JournalEntry, Mood
from .payment import Payment
from .token_blocklist import TokenBlocklist

__all__ = ['db', 'migrate', 'User', 'Profile', 'SubscriptionStatus', 'JournalEntry', 'Mood', 'Payment', 'TokenBlocklist']
