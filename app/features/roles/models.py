"""
Role and AuditLog models.

A role owns exactly one permission set, stored as a JSON column in the wire
format of ``PermissionSet``. Admin roles bypass permission checks through the
``is_admin`` flag, not through their name.
"""
from typing import Any, Dict
from sqlalchemy import Boolean, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, ulid_pk
from app.features.permissions.evaluator import RoleSnapshot
from app.features.permissions.permission_set import PermissionSet


class Role(Base, TimestampMixin):
    """
    Named set of grants assigned to users.

    System roles (seeded, e.g. Admin) cannot be renamed or deleted.
    """
    __tablename__ = "roles"

    id: Mapped[str] = ulid_pk()

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Two-level {group: {key: bool}} mapping
    permissions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    is_system_role: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def permission_set(self) -> PermissionSet:
        return PermissionSet.from_json(self.permissions or {})

    def snapshot(self) -> RoleSnapshot:
        return RoleSnapshot(
            id=self.id,
            name=self.name,
            permissions=self.permission_set,
            is_admin=self.is_admin,
        )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name!r}, system={self.is_system_role})>"


class AuditLog(Base, TimestampMixin):
    """
    Audit log for role administration.

    Tracks who did what, when, and from where.
    """
    __tablename__ = "audit_logs"

    id: Mapped[str] = ulid_pk()

    # Actor
    user_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Action details
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)

    # Context
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action={self.action}, resource={self.resource_type})>"
