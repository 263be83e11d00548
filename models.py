from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Enum, JSON,
    Table, UniqueConstraint, Index, text
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from datetime import timedelta

from config import INVITATION_TTL_DAYS
from database import Base, utcnow


class UserRole(str, enum.Enum):
    USER = "USER"
    GYM_OWNER = "GYM_OWNER"
    SUPER_ADMIN = "SUPER_ADMIN"


class GymStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class BadgeType(str, enum.Enum):
    ACHIEVEMENT = "ACHIEVEMENT"
    STREAK = "STREAK"
    SCORE = "SCORE"
    CHALLENGE = "CHALLENGE"
    SOCIAL = "SOCIAL"


class DifficultyLevel(str, enum.Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class ChallengeStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ChallengeType(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    GROUP = "GROUP"
    COMPETITIVE = "COMPETITIVE"


class ParticipationStatus(str, enum.Enum):
    JOINED = "JOINED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class InvitationType(str, enum.Enum):
    CHALLENGE_INVITE = "CHALLENGE_INVITE"
    FRIEND_CHALLENGE = "FRIEND_CHALLENGE"


# Множества (бейджи пользователя, друзья, упражнения зала) храним в связующих таблицах
user_badges = Table(
    "user_badges",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("badge_id", Integer, ForeignKey("badges.id", ondelete="CASCADE"), primary_key=True),
)

user_friends = Table(
    "user_friends",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("friend_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

gym_type_exercises = Table(
    "gym_type_exercises",
    Base.metadata,
    Column("gym_id", Integer, ForeignKey("gyms.id", ondelete="CASCADE"), primary_key=True),
    Column("type_exercise_id", Integer, ForeignKey("type_exercises.id", ondelete="CASCADE"), primary_key=True),
)

participation_badges = Table(
    "participation_badges",
    Base.metadata,
    Column("participation_id", Integer, ForeignKey("challenge_participations.id", ondelete="CASCADE"), primary_key=True),
    Column("badge_id", Integer, ForeignKey("badges.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    total_score = Column(Integer, default=0, nullable=False)
    gym_id = Column(
        Integer, ForeignKey("gyms.id", ondelete="SET NULL", use_alter=True, name="fk_users_gym_id"), nullable=True
    )

    # Агрегированная статистика для правил бейджей
    challenges_completed = Column(Integer, default=0, nullable=False)
    total_calories_burned = Column(Integer, default=0, nullable=False)
    streak_days = Column(Integer, default=0, nullable=False)
    last_activity_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    badges = relationship("Badge", secondary=user_badges, lazy="selectin")
    friends = relationship(
        "User",
        secondary=user_friends,
        primaryjoin=id == user_friends.c.user_id,
        secondaryjoin=id == user_friends.c.friend_id,
    )
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    @property
    def badge_ids(self):
        return [b.id for b in self.badges]

    @property
    def friend_ids(self):
        return [f.id for f in self.friends]


class UserSession(Base):
    __tablename__ = "sessions"

    # Непрозрачный bearer-токен
    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="sessions")


class Gym(Base):
    __tablename__ = "gyms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    location = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=True)
    equipment = Column(JSON, default=list)
    difficulty_levels = Column(JSON, default=list)
    status = Column(Enum(GymStatus), default=GymStatus.PENDING, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    approved_by_admin = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    type_exercises = relationship("TypeExercise", secondary=gym_type_exercises, lazy="selectin")

    @property
    def type_exercise_ids(self):
        return [t.id for t in self.type_exercises]


class TypeExercise(Base):
    __tablename__ = "type_exercises"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    targeted_muscles = Column(JSON, nullable=False, default=list)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Badge(Base):
    __tablename__ = "badges"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False)
    type = Column(Enum(BadgeType), nullable=False)
    # [{"condition": ..., "operator": ..., "value": ...}, ...]
    rules = Column(JSON, nullable=False, default=list)
    points = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Challenge(Base):
    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    type = Column(Enum(ChallengeType), default=ChallengeType.INDIVIDUAL, nullable=False)
    difficulty = Column(Enum(DifficultyLevel), nullable=False)
    status = Column(Enum(ChallengeStatus), default=ChallengeStatus.ACTIVE, nullable=False)

    exercises = Column(JSON, nullable=False, default=list)
    goals = Column(JSON, nullable=False, default=list)
    duration = Column(Integer, nullable=False)  # в днях
    max_participants = Column(Integer, nullable=True)
    # Меняется только атомарным UPDATE вместе с созданием/удалением участия
    current_participants = Column(Integer, default=0, nullable=False)

    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    gym_id = Column(Integer, ForeignKey("gyms.id", ondelete="SET NULL"), nullable=True)

    is_public = Column(Boolean, default=True, nullable=False)
    invite_only = Column(Boolean, default=False, nullable=False)
    team_based = Column(Boolean, default=False, nullable=False)

    rewards = Column(JSON, nullable=True)  # {"points": int, "badge_ids": [int]}
    estimated_calories_burn = Column(Integer, nullable=True)
    tags = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    participations = relationship("ChallengeParticipation", back_populates="challenge", cascade="all, delete-orphan")
    invitations = relationship("ChallengeInvitation", back_populates="challenge", cascade="all, delete-orphan")


class ChallengeParticipation(Base):
    __tablename__ = "challenge_participations"
    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_participation_user_challenge"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(Enum(ParticipationStatus), default=ParticipationStatus.JOINED, nullable=False)
    progress = Column(Integer, default=0, nullable=False)

    joined_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    total_workouts = Column(Integer, default=0, nullable=False)
    total_duration = Column(Integer, default=0, nullable=False)  # в минутах
    total_calories = Column(Integer, default=0, nullable=False)
    personal_best = Column(JSON, nullable=True)

    invited_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    team_id = Column(String, nullable=True)
    points_earned = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    challenge = relationship("Challenge", back_populates="participations")
    workout_sessions = relationship(
        "WorkoutSession",
        back_populates="participation",
        cascade="all, delete-orphan",
        order_by="WorkoutSession.id",
        lazy="selectin",
    )
    badges_earned = relationship("Badge", secondary=participation_badges, lazy="selectin")

    @property
    def badges_earned_ids(self):
        return [b.id for b in self.badges_earned]


class WorkoutSession(Base):
    __tablename__ = "workout_sessions"

    id = Column(Integer, primary_key=True, index=True)
    participation_id = Column(
        Integer, ForeignKey("challenge_participations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(DateTime, default=utcnow, nullable=False)
    # [{"exercise_id", "sets", "reps", "duration", "weight", "distance", "calories_burned", "completed"}]
    exercises = Column(JSON, nullable=False, default=list)
    total_duration = Column(Integer, default=0, nullable=False)
    total_calories = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)

    participation = relationship("ChallengeParticipation", back_populates="workout_sessions")


def default_invitation_expiry():
    return utcnow() + timedelta(days=INVITATION_TTL_DAYS)


class ChallengeInvitation(Base):
    __tablename__ = "challenge_invitations"
    __table_args__ = (
        # Не более одного PENDING приглашения на тройку (challenge, from, to)
        Index(
            "uq_pending_invitation",
            "challenge_id", "from_user_id", "to_user_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(InvitationType), nullable=False)
    status = Column(Enum(InvitationStatus), default=InvitationStatus.PENDING, nullable=False)
    message = Column(Text, nullable=True)
    expires_at = Column(DateTime, default=default_invitation_expiry, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    challenge = relationship("Challenge", back_populates="invitations")
