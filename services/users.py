"""User provisioning and progression bookkeeping."""

from typing import Dict, Iterable, List, Optional

import config
from models.enums import UserRole
from services.errors import NotFound
from services.store import SERVER_TIMESTAMP, USERS, DocumentStore, Increment, Transaction
from services.xp_engine import Level, calculate_level
from utils.logging import get_logger

logger = get_logger(__name__)


def stage_progress(
    transaction: Transaction,
    uid: str,
    user_data: dict,
    xp_delta: int = 0,
    counters: Optional[Dict[str, int]] = None,
    touch: bool = False,
) -> None:
    """Queue XP and counter increments for ``uid`` inside ``transaction``.

    ``user_data`` is the user document as read in the same transaction, so the
    post-change XP is known and level and title are written in the same update
    whenever the level moves.
    """
    updates = {}
    if xp_delta:
        updates["xp"] = Increment(xp_delta)
        level = calculate_level((user_data.get("xp") or 0) + xp_delta)
        if level.level != user_data.get("level"):
            updates["level"] = level.level
            updates["levelTitle"] = level.title
    for field, delta in (counters or {}).items():
        if delta:
            updates[field] = Increment(delta)
    if touch:
        updates["lastActiveAt"] = SERVER_TIMESTAMP
    if updates:
        transaction.update(USERS, uid, updates)


class UserService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def ensure_user(
        self,
        uid: str,
        email: Optional[str],
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
        admin_emails: Iterable[str] = None,
    ) -> dict:
        """Create the user document on first login; later logins return it untouched."""
        allow_list = {address.lower() for address in (config.ADMIN_EMAILS if admin_emails is None else admin_emails)}

        def _ensure(transaction: Transaction) -> Optional[dict]:
            existing = transaction.get(USERS, uid)
            if existing is not None:
                return existing

            is_admin = bool(email) and email.lower() in allow_list
            first_level = calculate_level(0)
            user = {
                "uid": uid,
                "email": email or None,
                "displayName": display_name or "Anonymous Citizen",
                "photoUrl": photo_url or "",
                "role": (UserRole.ADMIN if is_admin else UserRole.CITIZEN).value,
                "xp": 0,
                "level": first_level.level,
                "levelTitle": first_level.title,
                "totalComplaints": 0,
                "resolvedComplaints": 0,
                "upvotesReceived": 0,
                "joinedAt": SERVER_TIMESTAMP,
                "lastActiveAt": SERVER_TIMESTAMP,
            }
            transaction.set(USERS, uid, user)
            return None

        existing = self.store.run_transaction(_ensure)
        if existing is not None:
            return existing

        user = self.get_user(uid)
        logger.info("Provisioned user %s with role %s", uid, user["role"])
        return user

    def get_user(self, uid: str) -> dict:
        user = self.store.get(USERS, uid)
        if user is None:
            raise NotFound("user", uid)
        return user

    def reconcile_level(self, uid: str) -> Level:
        """Recompute level and title from stored XP, writing them only if they drifted."""

        def _reconcile(transaction: Transaction) -> Level:
            user = transaction.get(USERS, uid)
            if user is None:
                raise NotFound("user", uid)
            level = calculate_level(user.get("xp") or 0)
            if level.level != user.get("level") or level.title != user.get("levelTitle"):
                transaction.update(USERS, uid, {"level": level.level, "levelTitle": level.title})
            return level

        return self.store.run_transaction(_reconcile)

    def leaderboard(self, limit: int = config.LEADERBOARD_SIZE) -> List[dict]:
        return self.store.query(USERS, order_by="xp", descending=True, limit=limit)

    def rank_of(self, uid: str) -> int:
        ranked = self.store.query(USERS, order_by="xp", descending=True)
        for position, user in enumerate(ranked, start=1):
            if user["id"] == uid:
                return position
        return 0
