# taskhub/db/models/auth.py
"""Authentication-related models"""
import uuid
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, func, ForeignKey, Index
from sqlalchemy.orm import relationship

from taskhub.db.models.base import Base, TimestampMixin, UUIDMixin
from taskhub.db.models.enums import UserRole, enum_values


class User(Base, UUIDMixin, TimestampMixin):
    """Application user; the public identifier is ``uuid``"""
    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=enum_values),
        nullable=False,
        default=UserRole.USER,
        index=True
    )
    avatar = Column(String(512), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_user_email_active', 'email', 'is_active'),
        Index('idx_user_created_at', 'created_at'),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User email={self.email} role={self.role}>"


class RefreshToken(Base, TimestampMixin):
    """Stored refresh token, kept as a SHA-256 digest"""
    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    issued_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index('idx_refresh_token_user_active', 'user_id', 'revoked_at'),
        Index('idx_refresh_token_cleanup', 'expires_at', 'revoked_at'),
    )

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id} expires_at={self.expires_at}>"


class BlacklistedToken(Base):
    """Access token ids revoked by logout, kept until they would have expired"""
    __tablename__ = "blacklisted_tokens"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(255), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    blacklisted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_blacklisted_jti_expires', 'jti', 'expires_at'),
    )

    def __repr__(self):
        return f"<BlacklistedToken jti={self.jti}>"
