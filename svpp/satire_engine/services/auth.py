"""
Authentication: bcrypt password hashing and JWT session tokens.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt

from satire_engine.core.config import Settings
from satire_engine.core.enums import PersonaType
from satire_engine.core.errors import (
    AuthenticationError,
    NotFoundError,
    ValidationError,
)
from satire_engine.core.utils import is_empty_or_whitespace, utc_now, validate_email
from satire_engine.storage.datastore import JsonDatastore
from satire_engine.storage.models import User

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8
DEFAULT_ADMIN_EMAIL = "admin@svpp.dev"
DEFAULT_ADMIN_PASSWORD = "admin123456"


@dataclass
class LoginResult:
    """Authenticated user plus a signed session token."""

    user: User
    token: str
    expires_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user.model_dump(mode="json", exclude={"password_hash"}),
            "token": self.token,
            "expiresAt": self.expires_at.isoformat(),
        }


class AuthService:
    """Registers users, checks credentials and issues JWTs."""

    def __init__(self, datastore: JsonDatastore, settings: Optional[Settings] = None):
        self.datastore = datastore
        self.settings = settings or Settings()

    def register(self, name: str, email: str, password: str, role: PersonaType) -> LoginResult:
        """
        Register a new user and log them in.

        Args:
            name: Display name
            email: Email address (stored lower-cased)
            password: Plain password, at least 8 characters
            role: Persona role of the user

        Returns:
            LoginResult for the new account

        Raises:
            ValidationError: On missing name, bad email, short password or missing role
            DuplicateError: If the email is already registered
        """
        if is_empty_or_whitespace(name):
            raise ValidationError("Name is required")
        if not validate_email(email or ""):
            raise ValidationError("Invalid email format")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if not role:
            raise ValidationError("User role is required")

        user = self.datastore.create_user(
            name=name.strip(),
            email=email,
            role=PersonaType(role),
            password_hash=self._hash_password(password),
        )
        logger.info("Registered user %s", user.email)
        return self._issue(user)

    def login(self, email: str, password: str) -> LoginResult:
        """
        Check credentials and issue a token.

        Raises:
            ValidationError: On a malformed email or empty password
            AuthenticationError: On unknown email or wrong password
        """
        if not validate_email(email or ""):
            raise ValidationError("Invalid email format")
        if not password:
            raise ValidationError("Password is required")

        stored = self.datastore.get_user_by_email(email, include_password=True)
        if stored is None or not stored.password_hash:
            raise AuthenticationError("Invalid email or password")
        if not bcrypt.checkpw(password.encode("utf-8"), stored.password_hash.encode("utf-8")):
            logger.warning("Failed login attempt for %s", stored.email)
            raise AuthenticationError("Invalid email or password")

        return self._issue(stored.public())

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Decoded token payload, or None if the token is invalid or expired."""
        try:
            return jwt.decode(token, self.settings.jwt_secret, algorithms=[JWT_ALGORITHM])
        except jwt.PyJWTError as e:
            logger.debug("Token verification failed: %s", e)
            return None

    def refresh_token(self, token: str) -> LoginResult:
        payload = self.verify_token(token)
        if payload is None:
            raise AuthenticationError("Invalid token")
        try:
            user = self.datastore.get_user(payload["userId"])
        except NotFoundError:
            raise AuthenticationError("User not found")
        return self._issue(user)

    def get_current_user(self, token: str) -> User:
        payload = self.verify_token(token)
        if payload is None:
            raise AuthenticationError("Invalid token")
        return self.datastore.get_user(payload["userId"])

    @staticmethod
    def has_role(user_role: PersonaType, required_role: PersonaType) -> bool:
        """Project Directors can act in any role; everyone else needs an exact match."""
        if PersonaType(user_role) == PersonaType.PROJECT_DIRECTOR:
            return True
        return PersonaType(user_role) == PersonaType(required_role)

    def can_access_project(self, user_id: str, project_id: str) -> bool:
        """
        Project Directors see every project; other users see projects they
        created or where their role is one of the assigned personas.
        """
        try:
            user = self.datastore.get_user(user_id)
            project = self.datastore.get_project(project_id)
        except NotFoundError:
            return False
        if user.role == PersonaType.PROJECT_DIRECTOR:
            return True
        return project.created_by == user.id or user.role in project.assigned_personas

    def create_default_admin(self) -> Optional[User]:
        """Create the development admin account if it does not exist yet."""
        if self.datastore.get_user_by_email(DEFAULT_ADMIN_EMAIL):
            logger.info("Default admin user already exists")
            return None
        result = self.register(
            name="System Administrator",
            email=DEFAULT_ADMIN_EMAIL,
            password=DEFAULT_ADMIN_PASSWORD,
            role=PersonaType.PROJECT_DIRECTOR,
        )
        logger.warning(
            "Default admin user created (%s). Change its password before sharing this data file.",
            DEFAULT_ADMIN_EMAIL,
        )
        return result.user

    def _hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def _issue(self, user: User) -> LoginResult:
        expires_at = utc_now() + timedelta(days=self.settings.token_lifetime_days)
        payload = {
            "userId": user.id,
            "email": user.email,
            "role": user.role.value,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self.settings.jwt_secret, algorithm=JWT_ALGORITHM)
        return LoginResult(user=user, token=token, expires_at=expires_at)


class SessionManager:
    """Holds the signed-in user and token for an interactive session."""

    def __init__(self):
        self.current_user: Optional[User] = None
        self.current_token: Optional[str] = None

    def set_current_user(self, user: User, token: str) -> None:
        self.current_user = user
        self.current_token = token

    def clear(self) -> None:
        self.current_user = None
        self.current_token = None

    @property
    def is_logged_in(self) -> bool:
        return self.current_user is not None and self.current_token is not None

    def has_role(self, role: PersonaType) -> bool:
        if not self.current_user:
            return False
        return AuthService.has_role(self.current_user.role, role)
