from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Dict, Any


class SessionCreate(BaseModel):
    """Schema for logging a session. Points are computed server-side."""
    date: str  # YYYY-MM-DD; other calendar-day spellings are normalized
    type: str
    level: str
    group_id: Optional[str] = None


class SessionResponse(BaseModel):
    id: UUID
    group_id: str
    date: date
    type: str
    level: str
    points: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvatarResponse(BaseModel):
    level: str  # Novice, Intermediate, Seasoned, Elite
    progress: int  # 0, 25, 50, 75, 100
    cumulative_points: float
    next_level: str
    progress_caption: str


class SessionCreatedResponse(BaseModel):
    session: SessionResponse
    diversity_bonus: float
    avatar: AvatarResponse
    leveled_up: bool = False


class LegacyImportRequest(BaseModel):
    """Raw records as they were kept in browser storage."""
    sessions: List[Any] = Field(default_factory=list)


class MigrationResultResponse(BaseModel):
    success: bool
    migrated_count: int
    errors: List[str] = Field(default_factory=list)


class UserSettingsResponse(BaseModel):
    onboarding_seen: bool

    model_config = ConfigDict(from_attributes=True)


class UserSettingsUpdate(BaseModel):
    onboarding_seen: bool


class UsernameUpdate(BaseModel):
    username: str


class MeResponse(BaseModel):
    user_id: UUID
    is_anonymous: bool
    username: Optional[str] = None
    onboarding_seen: bool = False
    avatar: AvatarResponse
    badges: List[str] = Field(default_factory=list)


class LeaderboardEntry(BaseModel):
    user_id: UUID
    name: str
    score: float
    badges: List[str] = Field(default_factory=list)
    is_current_user: bool = False
    rank: int
    ordinal: str  # "1st", "2nd", ...


class LeaderboardResponse(BaseModel):
    group_id: str
    members: List[LeaderboardEntry]


class ShoutboxPost(BaseModel):
    content: str


class ShoutboxMessageResponse(BaseModel):
    id: UUID
    user_id: UUID
    type: str  # 'system' or 'user'
    content: str
    created_at: datetime
    display_name: str

    model_config = ConfigDict(from_attributes=True)


class AnalyticsEventCreate(BaseModel):
    event_name: str = Field(min_length=1, max_length=100)
    properties: Optional[Dict[str, Any]] = None
    page: Optional[str] = None
