from __future__ import annotations

from ..extensions import db
from ..permissions import permissions_for_role
from kitchenpos.time_utils import to_utc_z


class User(db.Model):
    """
    Staff account used for attribution and permission checks.

    Credentials and sessions live with the upstream gateway; this row only
    carries identity and role.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    fullname = db.Column(db.String(128), nullable=True)

    # admin | manager | cashier
    role = db.Column(db.String(32), nullable=False, default="cashier")

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    @property
    def display_name(self) -> str:
        return self.fullname or self.username

    def has_permission(self, permission_code: str) -> bool:
        return self.is_active and permission_code in permissions_for_role(self.role)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "fullname": self.fullname,
            "role": self.role,
            "is_active": self.is_active,
            "permissions": sorted(permissions_for_role(self.role)),
            "created_at": to_utc_z(self.created_at),
        }
