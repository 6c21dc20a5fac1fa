from __future__ import annotations

from ..extensions import db
from counterpos.time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    User accounts for authentication and attribution.

    SINGLE SESSION: session_token_hash holds the SHA-256 of the one token
    currently allowed to act for this account. Each login overwrites it,
    which orphans whatever token was issued before; logout clears it.
    A non-null hash is what the back office shows as "online".

    Accounts are archived (is_active=False), never deleted.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_active", "role", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    # "admin" or "cashier"
    role = db.Column(db.String(16), nullable=False, default="cashier")

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    session_token_hash = db.Column(db.String(64), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_online(self) -> bool:
        return self.session_token_hash is not None

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "is_active": self.is_active,
            "is_online": self.is_online,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }

    def to_backup_dict(self) -> dict:
        data = self.to_dict()
        data.pop("is_online")
        data["password_hash"] = self.password_hash
        return data
