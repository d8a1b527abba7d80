"""Database models for Mission Flow."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class User(Base):
    """A platform user (cadet, officer or architect).

    Attributes:
        id: Unique identifier
        email: Login email
        username: Display name
        role: "cadet", "officer" or "architect"
        experience: Total experience earned
        currency: Spendable in-app currency balance
        current_rank: Level of the rank held (0 = no rank yet)
        created_at: Account creation timestamp
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="cadet")
    experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), nullable=False
    )


class Campaign(Base):
    """A campaign: a set of dependency-linked missions.

    Attributes:
        id: Unique identifier
        name: Display name
        slug: Join-link slug
        theme: Label overrides (experienceLabel, currencyLabel, competencyOverrides)
        created_at: Creation timestamp
    """

    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    theme: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), nullable=False
    )

    missions: Mapped[list["Mission"]] = relationship(
        "Mission", back_populates="campaign", cascade="all, delete-orphan"
    )


class Mission(Base):
    """A mission belonging to exactly one campaign.

    Attributes:
        id: Unique identifier
        campaign_id: Owning campaign
        name: Display name
        description: What the cadet has to do
        experience_reward: Experience credited on completion
        currency_reward: Currency credited on completion
        confirmation_type: AUTO, MANUAL_REVIEW, FILE_CHECK or QR_SCAN
        check_in_window_seconds: Max QR age for QR_SCAN missions
        position: Ordering hint for the builder canvas
    """

    __tablename__ = "missions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    experience_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    confirmation_type: Mapped[str] = mapped_column(String(20), nullable=False, default="AUTO")
    check_in_window_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    campaign: Mapped[Campaign] = relationship("Campaign", back_populates="missions")
    competencies: Mapped[list["MissionCompetency"]] = relationship(
        "MissionCompetency", cascade="all, delete-orphan", lazy="selectin"
    )


class MissionDependency(Base):
    """Edge: source mission must be completed before target unlocks."""

    __tablename__ = "mission_dependencies"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    source_mission_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("missions.id", ondelete="CASCADE"), nullable=False
    )
    target_mission_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint(
            "source_mission_id", "target_mission_id", name="uq_mission_dependencies_pair"
        ),
        CheckConstraint(
            "source_mission_id <> target_mission_id", name="ck_mission_dependencies_no_self"
        ),
    )


class Competency(Base):
    """A skill that missions award points in."""

    __tablename__ = "competencies"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class MissionCompetency(Base):
    """Competency points awarded by a mission."""

    __tablename__ = "mission_competencies"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    mission_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    competency_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competencies.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class UserCompetency(Base):
    """A user's accumulated points in one competency."""

    __tablename__ = "user_competencies"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    competency_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competencies.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "competency_id", name="uq_user_competencies_user_competency"),
    )


class Rank(Base):
    """A rank on a ladder; campaign_id NULL marks the global ladder.

    Attributes:
        campaign_id: Owning campaign, or NULL for the global ladder
        level: Position on the ladder, starting at 1
        name: Display name
        title: Honorific shown on promotion
        min_experience: Experience needed
        min_missions: Completed missions needed
        required_competencies: Competency name -> minimum points
        currency_reward: Currency credited on promotion
    """

    __tablename__ = "ranks"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    campaign_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=True, index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    min_experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_missions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    required_competencies: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    currency_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("campaign_id", "level", name="uq_ranks_campaign_level"),
    )


class UserMission(Base):
    """A user's status for one mission.

    Attributes:
        user_id: The user
        mission_id: The mission
        status: LOCKED, AVAILABLE, IN_PROGRESS, PENDING_REVIEW or COMPLETED
        submission: Submitted answer / check-in data / reviewer comment
        rewarded_at: When rewards were credited (NULL until then)
    """

    __tablename__ = "user_missions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    mission_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("missions.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    submission: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rewarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "mission_id", name="uq_user_missions_user_mission"),
        Index("ix_user_missions_user_status", "user_id", "status"),
    )


class UserNotification(Base):
    """An in-app notification record (delivery happens elsewhere)."""

    __tablename__ = "user_notifications"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict] = mapped_column("metadata", JSONB, default=dict, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_user_notifications_user_unread", "user_id", "is_read"),
    )
