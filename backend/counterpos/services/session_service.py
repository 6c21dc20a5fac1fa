# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Single-active-session management.

WHY: A till account must only be usable from the terminal that logged in
last. Each account stores exactly one authority token (as a SHA-256 hash in
users.session_token_hash). Logging in again overwrites it, which silently
orphans the previous token; the old terminal finds out the next time it
validates. There is no session list and no refresh flow.

TOKENS:
- HS256 JWT carrying sub (user id), username, role, sid (fresh uuid4 per
  login), iat and exp (SESSION_TTL_HOURS, 24h by default)
- Signature or expiry failures are treated exactly like "no session"
- The stored hash is compared in constant time
- Validation never extends the token's expiry
"""

import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta

import jwt
from flask import current_app

from ..extensions import db
from ..models import User
from .auth_service import check_credentials
from counterpos.time_utils import to_utc_z, utcnow

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
DEFAULT_SESSION_TTL = timedelta(hours=24)


class InvalidTokenError(Exception):
    """Token is malformed, expired or not signed by this server."""


@dataclass
class SessionContext:
    """Resolved caller of an authenticated request."""
    user: User
    token: str
    session_id: str


def _secret() -> str:
    return current_app.config.get("JWT_SECRET") or current_app.config["SECRET_KEY"]


def _session_ttl() -> timedelta:
    hours = current_app.config.get("SESSION_TTL_HOURS")
    return timedelta(hours=hours) if hours else DEFAULT_SESSION_TTL


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast one-way hash is enough.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def sign_token(claims: dict, ttl: timedelta) -> str:
    """Encode claims into a signed token valid for ttl."""
    now = utcnow()
    payload = dict(claims)
    payload["iat"] = now
    payload["exp"] = now + ttl
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Verify signature and expiry; return the claims or raise InvalidTokenError."""
    try:
        claims = jwt.decode(
            token,
            _secret(),
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp", "sid"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise InvalidTokenError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("Invalid token") from exc
    return claims


def _user_id_from_claims(claims: dict) -> int:
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError("Invalid token subject") from exc


def login(username: str, password: str) -> tuple[str, dict]:
    """
    Verify credentials and issue the account's new authority token.

    Returns (token, session descriptor). The descriptor carries user_id,
    username, role and login_at.

    Raises InvalidCredentialsError (from auth_service) on rejection.
    """
    user = check_credentials(username, password)

    now = utcnow()
    session_id = uuid.uuid4().hex
    token = sign_token(
        {
            "sub": str(user.id),
            "username": user.username,
            "role": user.role,
            "sid": session_id,
        },
        _session_ttl(),
    )

    # Overwriting the stored hash is what invalidates any older token
    user.session_token_hash = hash_token(token)
    user.last_login_at = now
    db.session.commit()

    logger.info("User %s logged in (session %s)", user.username, session_id[:8])

    return token, {
        "user_id": user.id,
        "username": user.username,
        "role": user.role,
        "login_at": to_utc_z(now),
    }


def validate_session(user_id: int, token: str) -> bool:
    """
    True only when token is the account's current authority token.

    Fails closed: missing account, inactive account or any mismatch is
    False. Never raises for bad input.
    """
    if not token:
        return False

    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        logger.info("Session check for user %s: not found or inactive", user_id)
        return False

    stored = user.session_token_hash
    if not stored or not hmac.compare_digest(stored, hash_token(token)):
        logger.info("Session check for user %s: token superseded or revoked", user.username)
        return False

    return True


def authenticate_token(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its SessionContext, or None.

    The token must verify (signature, expiry) AND still be the account's
    authority token.
    """
    try:
        claims = decode_token(token)
        user_id = _user_id_from_claims(claims)
    except InvalidTokenError:
        return None

    if not validate_session(user_id, token):
        return None

    user = db.session.get(User, user_id)
    return SessionContext(user=user, token=token, session_id=str(claims["sid"]))


def user_id_from_token(token: str) -> int:
    """Subject of a verified token (signature and expiry checked)."""
    return _user_id_from_claims(decode_token(token))


def logout(user_id: int) -> None:
    """
    Clear the account's authority token.

    Idempotent: logging out twice, or after a newer login already replaced
    the token, is not an error.
    """
    user = db.session.get(User, user_id)
    if not user:
        return

    user.session_token_hash = None
    db.session.commit()
    logger.info("User %s logged out", user.username)


def revoke_user_session(user_id: int) -> bool:
    """
    Force an account offline. Returns True if it held a session.

    WHY: operator action (CLI) for a terminal that was left logged in.
    """
    user = db.session.get(User, user_id)
    if not user:
        return False
    was_online = user.is_online
    logout(user_id)
    return was_online
