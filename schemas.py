from pydantic import AliasChoices, BaseModel, ConfigDict, Field, EmailStr
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from badge_engine import RuleOperator, StatField
from models import (
    BadgeType, ChallengeStatus, ChallengeType, DifficultyLevel, GymStatus,
    InvitationStatus, InvitationType, ParticipationStatus, UserRole
)


class Message(BaseModel):
    message: str


# --- Auth схемы ---
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class UserSummary(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    role: UserRole
    total_score: int = 0
    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    session_id: str
    expires_at: datetime
    user: UserSummary


# --- User схемы ---
class UserRead(UserSummary):
    is_active: bool
    badges: List[int] = Field(default_factory=list, validation_alias=AliasChoices("badge_ids", "badges"))
    friends: List[int] = Field(default_factory=list, validation_alias=AliasChoices("friend_ids", "friends"))
    gym_id: Optional[int] = None
    challenges_completed: int = 0
    total_calories_burned: int = 0
    streak_days: int = 0
    last_activity_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)


class FriendRead(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    total_score: int
    model_config = ConfigDict(from_attributes=True)


class FriendAdded(BaseModel):
    message: str
    friend: FriendRead
    friends_count: int


class LeaderboardEntry(BaseModel):
    rank: int
    id: int
    first_name: str
    last_name: str
    total_score: int
    badges: int


class UserCounts(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    super_admins: int
    gym_owners: int
    regular_users: int


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class UserList(BaseModel):
    users: List[UserRead]
    stats: UserCounts
    pagination: Pagination


class PromoteGymOwner(BaseModel):
    gym_id: Optional[int] = None


class UserUpdated(BaseModel):
    message: str
    user: UserRead


# --- Gym схемы ---
class GymBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    equipment: List[str] = Field(default_factory=list)
    difficulty_levels: List[str] = Field(default_factory=list)


class GymCreate(GymBase):
    owner_id: Optional[int] = None


class GymUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    equipment: Optional[List[str]] = None
    difficulty_levels: Optional[List[str]] = None


class GymRead(GymBase):
    id: int
    status: GymStatus
    owner_id: Optional[int] = None
    created_by: Optional[int] = None
    approved_by_admin: Optional[int] = None
    type_exercises: List[int] = Field(default_factory=list, validation_alias=AliasChoices("type_exercise_ids", "type_exercises"))
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class GymCreated(BaseModel):
    message: str
    gym: GymRead


class AssignOwner(BaseModel):
    owner_id: int


class AssignTypeExercises(BaseModel):
    type_exercise_ids: List[int]


class AddTypeExercise(BaseModel):
    type_exercise_id: int


class AssignUser(BaseModel):
    user_id: int


class GymMember(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    gym_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


# --- TypeExercise схемы ---
class TypeExerciseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    targeted_muscles: List[str] = Field(..., min_length=1)


class TypeExerciseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    targeted_muscles: Optional[List[str]] = Field(None, min_length=1)


class TypeExerciseRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    targeted_muscles: List[str]
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# --- Badge схемы ---
class BadgeRule(BaseModel):
    condition: StatField
    operator: RuleOperator
    value: float


class BadgeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    type: BadgeType
    rules: List[BadgeRule] = Field(..., min_length=1)
    points: int = Field(..., ge=0)


class BadgeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    type: Optional[BadgeType] = None
    rules: Optional[List[BadgeRule]] = Field(None, min_length=1)
    points: Optional[int] = Field(None, ge=0)


class BadgeRead(BaseModel):
    id: int
    name: str
    description: str
    type: BadgeType
    # Сохранённые правила отдаём как есть
    rules: List[Dict[str, Any]]
    points: int
    is_active: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# --- Challenge схемы ---
class ChallengeExercise(BaseModel):
    exercise_id: int
    sets: Optional[int] = Field(None, ge=1)
    reps: Optional[int] = Field(None, ge=1)
    duration: Optional[int] = Field(None, ge=0)  # сек
    rest_time: Optional[int] = Field(None, ge=0)  # сек
    weight: Optional[float] = Field(None, ge=0)  # кг
    distance: Optional[float] = Field(None, ge=0)  # м


class ChallengeGoal(BaseModel):
    type: Literal["TIME", "REPS", "WEIGHT", "DISTANCE", "CALORIES"]
    target: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1)


class ChallengeRewards(BaseModel):
    points: int = Field(0, ge=0)
    badge_ids: List[int] = Field(default_factory=list)
    description: Optional[str] = None


class ChallengeBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=150)
    description: str = Field(..., min_length=1)
    exercises: List[ChallengeExercise] = Field(..., min_length=1)
    goals: List[ChallengeGoal] = Field(..., min_length=1)
    difficulty: DifficultyLevel
    type: ChallengeType = ChallengeType.INDIVIDUAL
    duration: int = Field(..., ge=1, le=365)
    max_participants: Optional[int] = Field(None, ge=1)
    rewards: Optional[ChallengeRewards] = None
    estimated_calories_burn: Optional[int] = Field(None, ge=0)
    tags: List[str] = Field(default_factory=list)
    is_public: bool = True
    invite_only: bool = False
    team_based: bool = False


class ChallengeCreate(ChallengeBase):
    gym_id: Optional[int] = None


class ChallengeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, min_length=1)
    difficulty: Optional[DifficultyLevel] = None
    status: Optional[ChallengeStatus] = None
    max_participants: Optional[int] = Field(None, ge=1)
    estimated_calories_burn: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    invite_only: Optional[bool] = None
    team_based: Optional[bool] = None


class ChallengeRead(ChallengeBase):
    id: int
    status: ChallengeStatus
    current_participants: int
    created_by: int
    gym_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# --- Participation схемы ---
class JoinRequest(BaseModel):
    team_id: Optional[str] = None


class ProgressUpdate(BaseModel):
    progress: int = Field(..., ge=0, le=100)


class WorkoutExerciseResult(BaseModel):
    exercise_id: int
    sets: Optional[int] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)  # мин
    weight: Optional[float] = Field(None, ge=0)
    distance: Optional[float] = Field(None, ge=0)
    calories_burned: Optional[int] = Field(None, ge=0)
    completed: bool = False


class WorkoutSessionCreate(BaseModel):
    exercises: List[WorkoutExerciseResult]
    calories_burned: int = Field(0, ge=0)
    notes: Optional[str] = Field(None, max_length=1000)


class WorkoutSessionRead(BaseModel):
    id: int
    date: datetime
    exercises: List[Dict[str, Any]]
    total_duration: int
    total_calories: int
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class PersonalBestUpdate(BaseModel):
    weight: Optional[float] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    time: Optional[float] = Field(None, ge=0)
    distance: Optional[float] = Field(None, ge=0)


class ParticipationRead(BaseModel):
    id: int
    user_id: int
    challenge_id: int
    status: ParticipationStatus
    progress: int
    joined_at: datetime
    completed_at: Optional[datetime] = None
    total_workouts: int
    total_duration: int
    total_calories: int
    personal_best: Optional[Dict[str, Any]] = None
    invited_by: Optional[int] = None
    team_id: Optional[str] = None
    points_earned: int
    badges_earned: List[int] = Field(default_factory=list, validation_alias=AliasChoices("badges_earned_ids", "badges_earned"))
    workout_sessions: List[WorkoutSessionRead] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class ChallengeLeaderboardEntry(BaseModel):
    rank: int
    participation_id: int
    user_id: int
    first_name: str
    last_name: str
    status: ParticipationStatus
    progress: int
    total_calories: int


class ParticipationStats(BaseModel):
    total_challenges: int
    completed_challenges: int
    active_challenges: int
    total_calories_burned: int
    average_progress: float


# --- Invitation схемы ---
class InviteFriendsRequest(BaseModel):
    friend_ids: List[int] = Field(..., min_length=1)
    message: Optional[str] = Field(None, max_length=500)


class ChallengeUserRequest(BaseModel):
    user_id: int
    message: Optional[str] = Field(None, max_length=500)


class InvitationRead(BaseModel):
    id: int
    challenge_id: int
    from_user_id: int
    to_user_id: int
    type: InvitationType
    status: InvitationStatus
    message: Optional[str] = None
    expires_at: datetime
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class InvitationError(BaseModel):
    friend_id: int
    error: str


class InvitationsSent(BaseModel):
    message: str
    invitations: List[InvitationRead]
    errors: Optional[List[InvitationError]] = None


class InvitationOverview(BaseModel):
    received: List[InvitationRead]
    sent: List[InvitationRead]


class InvitationAccepted(BaseModel):
    message: str
    invitation: InvitationRead
    participation: ParticipationRead
