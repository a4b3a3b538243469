"""
SciSubmit Review Core
Identity model: users and roles.

Models:
    - User: author, reviewer or admin account (read-only input to the core;
      registration and sessions live outside this package)
"""

import enum
from datetime import datetime, timezone

from scisubmit.models import db


class UserRole(str, enum.Enum):
    """Single canonical role type; compare members, never raw integers."""

    AUTHOR = "author"
    REVIEWER = "reviewer"
    ADMIN = "admin"


USER_ROLES = {r.value for r in UserRole}


class User(db.Model):
    """A person known to the conference system."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(200), nullable=False, default="")
    affiliation = db.Column(db.String(300), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=UserRole.AUTHOR.value, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.CheckConstraint("role IN ('author','reviewer','admin')", name="ck_user_role"),
    )

    keywords = db.relationship(
        "Keyword", secondary="user_keywords", lazy="selectin", viewonly=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_reviewer(self) -> bool:
        return self.role == UserRole.REVIEWER

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "affiliation": self.affiliation,
            "role": self.role,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"
