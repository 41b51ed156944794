from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from models.base import CamelModel
from models.enums import UserRole


# User document stored in Firestore (users/{uid})
class User(CamelModel):
    uid: str
    email: Optional[EmailStr] = None
    display_name: str
    photo_url: str = ""
    role: UserRole = UserRole.CITIZEN

    xp: int = 0
    level: int = 1
    level_title: str = "Newcomer"

    total_complaints: int = 0
    resolved_complaints: int = 0
    upvotes_received: int = 0

    joined_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None


class LevelProgress(CamelModel):
    current: int
    required: int
    percentage: int


# Profile of the authenticated user, with progression details
class UserProfile(User):
    progress: LevelProgress
    next_level_title: str
    rank: int = 0


# Public view shown to other users
class UserPublic(CamelModel):
    uid: str
    display_name: str
    photo_url: str = ""
    role: UserRole
    xp: int
    level: int
    level_title: str
    total_complaints: int = 0
    resolved_complaints: int = 0
    upvotes_received: int = 0


class LeaderboardEntry(CamelModel):
    rank: int
    uid: str
    display_name: str
    photo_url: str = ""
    xp: int
    level: int
    level_title: str


class LevelInfo(CamelModel):
    uid: str
    level: int
    level_title: str


# Exchange of a Firebase ID token for a service session
class SessionRequest(CamelModel):
    id_token: str = Field(..., min_length=1)
    display_name: Optional[str] = None


class SessionResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: User
