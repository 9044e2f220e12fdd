from sqlalchemy import Column, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.orm import relationship
from core.database import Base
import uuid
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    Local mirror of an auth-provider identity.

    The row is provisioned on the first authenticated request; the id is the
    token's ``sub`` claim.
    """
    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    email = Column(Text, nullable=True)  # null for anonymous sign-ins
    is_anonymous = Column(Boolean, default=False, nullable=False)

    # lazy="dynamic" prevents auto-loading (returns query, no perf impact).
    sessions = relationship("TrainingSession", back_populates="user", lazy="dynamic", passive_deletes=True)
    user_settings = relationship("UserSettings", back_populates="user", uselist=False, passive_deletes=True)


class TrainingSession(Base):
    """
    One logged training session.

    Points are computed once on insert and never recomputed; the only
    mutation after that is a hard delete.
    """
    __tablename__ = "sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    group_id = Column(Text, nullable=False, default="global")
    date = Column(Date, nullable=False)
    type = Column(Text, nullable=False)
    level = Column(Text, nullable=False)
    points = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        # Conflict key for the legacy migration upsert
        UniqueConstraint("user_id", "date", "type", name="uq_sessions_user_date_type"),
        CheckConstraint("points >= 0", name="ck_sessions_points_non_negative"),
        Index("ix_sessions_user_date", "user_id", "date"),
        Index("ix_sessions_group", "group_id"),
    )


class GroupMember(Base):
    """
    Leaderboard row. A cache of values derived from the user's sessions.
    """
    __tablename__ = "group_members"

    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True)
    group_id = Column(Text, primary_key=True)
    username = Column(Text, nullable=True)  # null until onboarding
    score = Column(Float, nullable=False, default=0)
    badges = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_group_members_group_score", "group_id", "score"),
        Index("ix_group_members_username", "username"),
    )


class ShoutboxMessage(Base):
    __tablename__ = "shoutbox_messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=False)  # 'system' or 'user'
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("type IN ('system', 'user')", name="ck_shoutbox_messages_type"),
        Index("ix_shoutbox_created_at", "created_at"),
    )


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, unique=True)
    onboarding_seen = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    user = relationship("User", back_populates="user_settings")


class AnalyticsEvent(Base):
    """Fire-and-forget product analytics. Never read by the API."""
    __tablename__ = "analytics_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=True)
    event_name = Column(Text, nullable=False)
    event_properties = Column(JSON, nullable=True)
    page = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_analytics_events_name", "event_name"),
        Index("ix_analytics_events_user", "user_id"),
    )
