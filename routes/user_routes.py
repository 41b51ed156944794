# user_routes.py
from typing import List

from fastapi import APIRouter, Depends, Query

import config
from models.user import LeaderboardEntry, LevelInfo, LevelProgress, UserProfile, UserPublic
from routes.auth_routes import get_current_user, require_admin
from services.firebase_client import get_store
from services.store import DocumentStore
from services.users import UserService
from services.xp_engine import next_level_title, xp_to_next_level

router = APIRouter(tags=["Users"])


# -------------------- Own profile -------------------- #
@router.get("/me", response_model=UserProfile)
def get_my_profile(
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    xp = current_user.get("xp") or 0
    level = current_user.get("level") or 1
    progress = xp_to_next_level(xp, level)
    return UserProfile(
        **current_user,
        progress=LevelProgress(**progress._asdict()),
        next_level_title=next_level_title(level),
        rank=UserService(store).rank_of(current_user["id"]),
    )


# -------------------- Leaderboard -------------------- #
@router.get("/leaderboard", response_model=List[LeaderboardEntry])
def get_leaderboard(
    limit: int = Query(config.LEADERBOARD_SIZE, ge=1, le=100),
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    users = UserService(store).leaderboard(limit)
    return [
        LeaderboardEntry(
            rank=position,
            uid=user["id"],
            display_name=user.get("displayName", ""),
            photo_url=user.get("photoUrl", ""),
            xp=user.get("xp", 0),
            level=user.get("level", 1),
            level_title=user.get("levelTitle", ""),
        )
        for position, user in enumerate(users, start=1)
    ]


# -------------------- Other users -------------------- #
@router.get("/{uid}", response_model=UserPublic)
def get_user(
    uid: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    return UserPublic.model_validate(UserService(store).get_user(uid))


@router.post("/{uid}/reconcile-level", response_model=LevelInfo)
def reconcile_level(
    uid: str,
    store: DocumentStore = Depends(get_store),
    admin: dict = Depends(require_admin),
):
    """Rewrites level and title from the stored XP when they have drifted apart."""
    level = UserService(store).reconcile_level(uid)
    return LevelInfo(uid=uid, level=level.level, level_title=level.title)
