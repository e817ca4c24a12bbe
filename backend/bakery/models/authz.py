from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, ForeignKey, UniqueConstraint, DateTime, Text

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = 'users'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default='')
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    # super_admin, admin, manager, supervisor, marketer, staff
    role: Mapped[str] = mapped_column(String(20), nullable=False, default='staff')
    branch_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    can_access_all_branches: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    module_overrides = relationship('UserModuleOverride', back_populates='user', cascade='all, delete-orphan')
    permission_overrides = relationship('UserPermission', back_populates='user', cascade='all, delete-orphan')

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)


class RoleModule(Base):
    """Persisted grant: role R is granted module M."""
    __tablename__ = 'role_modules'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    module_id: Mapped[str] = mapped_column(String(100), nullable=False)
    granted: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint('role', 'module_id', name='uq_role_module'),)


class UserModuleOverride(Base):
    """Per-user module grant (granted=True) or revocation (granted=False) on top of role grants."""
    __tablename__ = 'user_module_overrides'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    module_id: Mapped[str] = mapped_column(String(100), nullable=False)
    granted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    user = relationship('User', back_populates='module_overrides')

    __table_args__ = (UniqueConstraint('user_id', 'module_id', name='uq_user_module_override'),)


class Permission(Base):
    __tablename__ = 'permissions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    resource: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    # read, write, read_write
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class RolePermission(Base):
    __tablename__ = 'role_permissions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    permission_id: Mapped[int] = mapped_column(ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False)
    permission = relationship('Permission')

    __table_args__ = (UniqueConstraint('role', 'permission_id', name='uq_role_permission'),)


class UserPermission(Base):
    __tablename__ = 'user_permissions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    permission_id: Mapped[int] = mapped_column(ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False)
    granted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    user = relationship('User', back_populates='permission_overrides')
    permission = relationship('Permission')

    __table_args__ = (UniqueConstraint('user_id', 'permission_id', name='uq_user_permission'),)
