# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Account credentials: bcrypt hashing, registration and password checks.

Every code path that stores a new password (registration, admin password
change, CLI) goes through hash_password(), so there is exactly one hashing
scheme in the database. Backup restore copies existing hashes verbatim.

Session tokens are managed separately (see session_service.py).
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..validation import ConflictError, enforce_rules_credentials, enforce_rules_password
from counterpos.time_utils import utcnow

DEFAULT_BCRYPT_ROUNDS = 12


class InvalidCredentialsError(Exception):
    """Raised when a login attempt is rejected (unknown user, inactive, bad password)."""


def _bcrypt_rounds() -> int:
    try:
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS))
    except RuntimeError:
        # Outside an application context (scripts)
        return DEFAULT_BCRYPT_ROUNDS


def hash_password(password: str) -> str:
    """Hash password using bcrypt (salted, cost factor from BCRYPT_ROUNDS)."""
    enforce_rules_password(password)
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for anything that is not a valid bcrypt hash instead of
    raising, so a corrupt row reads as a failed login.
    """
    if not isinstance(password, str) or not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def count_users() -> int:
    return db.session.query(User).count()


def register_user(username: str, password: str, role: str) -> User:
    """
    Create a new account (active, no session).

    Raises:
        ValidationError: username/password/role rules
        ConflictError: username taken
    """
    enforce_rules_credentials(username, password, role)
    username = username.strip()

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
        created_at=utcnow(),
    )
    db.session.add(user)
    db.session.commit()
    return user


def check_credentials(username: str, password: str) -> User:
    """
    Resolve a username/password pair to an account that may log in.

    Raises InvalidCredentialsError with a message suitable for display.
    Unknown usernames and wrong passwords share one message.
    """
    user = None
    if isinstance(username, str) and username.strip():
        user = db.session.query(User).filter_by(username=username.strip()).first()

    if not user:
        raise InvalidCredentialsError("Invalid username or password")

    if not user.is_active:
        raise InvalidCredentialsError("This account has been deactivated. Contact an administrator.")

    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid username or password")

    return user
