# Overview: Service-layer operations for account management (admin back office).

"""
Account lifecycle rules enforced for the back office:

- the last remaining admin cannot be demoted to cashier
- an account that is online (holds a session) cannot be edited by someone
  else, nor archived
- nobody can archive their own account
- the last active admin cannot be archived

Archive is a soft delete (is_active=False); restore flips it back.
"""

from __future__ import annotations

from ..extensions import db
from ..models import User
from ..validation import NotFoundError, PreconditionFailedError, ValidationError, USER_ROLES
from .auth_service import hash_password


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.asc(), User.id.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def count_admins(*, active_only: bool = False) -> int:
    query = db.session.query(User).filter(User.role == "admin")
    if active_only:
        query = query.filter(User.is_active.is_(True))
    return query.count()


def update_user(
    user_id: int,
    *,
    role: str | None = None,
    password: str | None = None,
    actor: User | None = None,
) -> User:
    """
    Change role and/or password.

    Raises:
        NotFoundError
        ValidationError: unknown role, short password
        PreconditionFailedError: user online (and not the actor), last admin demotion
    """
    user = get_user(user_id)

    if role is None and not password:
        return user

    if user.is_online and (actor is None or actor.id != user.id):
        raise PreconditionFailedError("Cannot edit a user who is currently online.")

    if role is not None:
        if role not in USER_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")
        if user.role == "admin" and role != "admin" and count_admins() <= 1:
            raise PreconditionFailedError(
                "The last admin cannot be downgraded to cashier. Create another admin first."
            )
        user.role = role

    if password:
        user.password_hash = hash_password(password)

    db.session.commit()
    return user


def archive_user(user_id: int, *, actor: User) -> User:
    """
    Deactivate an account.

    Raises:
        NotFoundError
        PreconditionFailedError: archiving yourself, an online user, or the last admin
    """
    user = get_user(user_id)

    if user.id == actor.id:
        raise PreconditionFailedError("You cannot archive your own account.")

    if user.is_online:
        raise PreconditionFailedError("Cannot archive a user who is currently online.")

    if user.is_admin and user.is_active and count_admins(active_only=True) <= 1:
        raise PreconditionFailedError("Cannot archive the last active admin.")

    user.is_active = False
    db.session.commit()
    return user


def restore_user(user_id: int) -> User:
    user = get_user(user_id)
    user.is_active = True
    db.session.commit()
    return user
