"""
=============================================================================
SCHEMAS.PY — Esquemas de Validación (Pydantic)
=============================================================================
Models (SQLAlchemy) definen las TABLAS. Schemas (Pydantic) definen qué
DATOS acepta y devuelve la API. Si algo no cuadra → error 422 automático.

Convención de nombres:
  XxxCreate   → para crear algo nuevo (POST)
  XxxUpdate   → para actualizar algo (PATCH)
  XxxResponse → lo que devuelve la API
"""

from pydantic import BaseModel, Field, EmailStr, HttpUrl
from datetime import date, datetime
from typing import Optional


USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


# =============================================================================
# ===================== AUTH / USERS ==========================================
# =============================================================================

class UserSignup(BaseModel):
    """Datos para registrar un usuario nuevo"""
    email: EmailStr
    username: str = Field(min_length=3, max_length=30, pattern=USERNAME_PATTERN,
                          description="3-30 caracteres: letras, números y _")
    password: str = Field(min_length=8, description="Mínimo 8 caracteres")

class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class ForgotPasswordRequest(BaseModel):
    email: EmailStr

class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8, description="Mínimo 8 caracteres")

class UserPublic(BaseModel):
    """Lo mínimo que se enseña de otro usuario"""
    id: int
    username: str
    profile_picture: Optional[str] = None
    model_config = {"from_attributes": True}

class UserResponse(UserPublic):
    email: str
    created_at: datetime

class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    token: str

class UserMeResponse(UserResponse):
    habit_count: int
    check_in_count: int
    total_active_streaks: int

class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    profile_picture: Optional[HttpUrl] = None


# =============================================================================
# ===================== CHECK-INS Y ÁNIMOS ====================================
# =============================================================================

class CheerCreate(BaseModel):
    emoji: Optional[str] = Field(default=None, min_length=1, max_length=10)

class CheerResponse(BaseModel):
    id: int
    check_in_id: int
    giver_id: int
    emoji: str
    created_at: datetime
    giver: UserPublic
    model_config = {"from_attributes": True}

class CheckInCreate(BaseModel):
    date: Optional[str] = Field(default=None, description="Fecha ISO 8601 (por defecto: hoy, UTC)")
    note: Optional[str] = Field(default=None, max_length=500)

class CheckInResponse(BaseModel):
    id: int
    habit_id: int
    user_id: int
    date: date
    note: Optional[str]
    created_at: datetime
    model_config = {"from_attributes": True}

class CheckInWithCheers(CheckInResponse):
    cheers: list[CheerResponse] = []

class CheckInCreatedResponse(BaseModel):
    check_in: CheckInResponse
    current_streak: int
    longest_streak: int

class CheckInRemovedResponse(BaseModel):
    message: str
    current_streak: int

class CheckInHistoryResponse(BaseModel):
    check_ins: list[CheckInWithCheers]
    pagination: Pagination


# =============================================================================
# ===================== HABITS ================================================
# =============================================================================

class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    frequency_goal: int = Field(default=1, ge=1, le=7, description="Veces por semana (1-7)")
    model_config = {"str_strip_whitespace": True}

class HabitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    frequency_goal: Optional[int] = Field(default=None, ge=1, le=7)
    is_active: Optional[bool] = None
    model_config = {"str_strip_whitespace": True}

class HabitResponse(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str]
    frequency_goal: int
    current_streak: int
    longest_streak: int
    last_check_in: Optional[date]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    model_config = {"from_attributes": True}

class HabitListItem(HabitResponse):
    check_ins: list[CheckInResponse]
    completed_today: bool
    today_check_in: Optional[CheckInResponse]
    total_check_ins: int

class HabitListResponse(BaseModel):
    habits: list[HabitListItem]
    pagination: Pagination

class HabitDetailResponse(HabitResponse):
    check_ins: list[CheckInWithCheers]
    total_check_ins: int


# =============================================================================
# ===================== FRIENDS ===============================================
# =============================================================================

class FriendResponse(UserPublic):
    friendship_id: int
    friends_since: datetime

class FriendListResponse(BaseModel):
    friends: list[FriendResponse]
    pagination: Pagination

class FriendRequestItem(BaseModel):
    id: int
    user: UserPublic
    created_at: datetime

class FriendRequestsResponse(BaseModel):
    received: list[FriendRequestItem]
    sent: list[FriendRequestItem]

class FriendshipResponse(BaseModel):
    id: int
    user: UserPublic
    status: str
    created_at: datetime

class FriendRequestSentResponse(BaseModel):
    message: str
    friendship: FriendshipResponse

class FriendAcceptedResponse(BaseModel):
    message: str
    friend: UserPublic


# =============================================================================
# ===================== PERFIL PÚBLICO ========================================
# =============================================================================

class ProfileCheckIn(BaseModel):
    id: int
    date: date
    note: Optional[str]
    cheer_count: int
    has_cheered: bool

class ProfileHabit(BaseModel):
    id: int
    name: str
    description: Optional[str]
    frequency_goal: int
    current_streak: int
    longest_streak: int
    check_ins: list[ProfileCheckIn]

class HabitStats(BaseModel):
    total_active_habits: int
    total_active_streaks: int
    longest_streak: int

class UserProfileResponse(UserPublic):
    created_at: datetime
    active_habit_count: int
    friendship_status: Optional[str]
    friendship_id: Optional[int]
    friends_since: Optional[datetime]
    habits: list[ProfileHabit]
    habit_stats: Optional[HabitStats]


# =============================================================================
# ===================== SOCIAL ================================================
# =============================================================================

class FeedHabit(BaseModel):
    id: int
    name: str
    current_streak: int
    model_config = {"from_attributes": True}

class FeedActivity(BaseModel):
    id: int
    type: str = "habit_completion"
    user: UserPublic
    habit: FeedHabit
    date: date
    note: Optional[str]
    created_at: datetime
    cheers: list[CheerResponse]
    cheer_count: int
    has_cheered: bool

class FeedResponse(BaseModel):
    activities: list[FeedActivity]
    pagination: Pagination

class LeaderboardEntry(BaseModel):
    id: int
    username: str
    profile_picture: Optional[str]
    total_active_streaks: int
    longest_streak: int
    active_habits: int
    is_current_user: bool
    rank: int

class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardEntry]
    current_user_rank: int
    pagination: Pagination

class CheeredHabit(BaseModel):
    id: int
    name: str
    model_config = {"from_attributes": True}

class CheeredCheckIn(BaseModel):
    id: int
    date: date
    habit: CheeredHabit
    model_config = {"from_attributes": True}

class ReceivedCheer(BaseModel):
    id: int
    emoji: str
    created_at: datetime
    giver: UserPublic
    check_in: CheeredCheckIn
    model_config = {"from_attributes": True}

class ReceivedCheersResponse(BaseModel):
    cheers: list[ReceivedCheer]
    pagination: Pagination
