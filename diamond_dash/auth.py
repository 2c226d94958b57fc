"""
Authentication module for Diamond Dash
Handles coach sessions and rate limiting for the login endpoints
"""

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import UserMixin

from .models import User

# Bound to the app in create_app(); auth routes register their limits on it
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


class UserSession(UserMixin):
    """User session class for Flask-Login"""
    def __init__(self, user: User):
        self.id = user.id
        self.username = user.username
        self.email = user.email
        self._user = user

    @property
    def is_active(self):
        return self._user.is_active


def create_user_session(user: User) -> UserSession:
    """Create a UserSession from a User model"""
    return UserSession(user)
