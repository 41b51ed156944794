"""Per-user upvote toggle.

The complaint, the voter and the complaint owner are updated in one
transaction, so ``upvotes`` always equals ``len(upvotedBy)`` and a user counts
at most once. Toggling twice restores the original state apart from
timestamps. Voting on your own complaint is allowed and earns both rewards.
"""

from models.complaint import UpvoteResult
from services.errors import NotFound
from services.store import (
    COMPLAINTS,
    SERVER_TIMESTAMP,
    USERS,
    ArrayRemove,
    ArrayUnion,
    DocumentStore,
    Increment,
    Transaction,
)
from services.users import stage_progress
from services.xp_engine import XpRewards
from utils.logging import get_logger

logger = get_logger(__name__)


class UpvoteLedger:
    def __init__(self, store: DocumentStore):
        self.store = store

    def toggle_upvote(self, complaint_id: str, user_id: str) -> UpvoteResult:
        def _toggle(transaction: Transaction) -> UpvoteResult:
            complaint = transaction.get(COMPLAINTS, complaint_id)
            if complaint is None:
                raise NotFound("complaint", complaint_id)
            owner_id = complaint["userId"]

            voter = transaction.get(USERS, user_id)
            if voter is None:
                raise NotFound("user", user_id)
            owner = voter if owner_id == user_id else transaction.get(USERS, owner_id)
            if owner is None:
                raise NotFound("user", owner_id)

            retracting = user_id in (complaint.get("upvotedBy") or [])
            sign = -1 if retracting else 1

            transaction.update(
                COMPLAINTS,
                complaint_id,
                {
                    "upvotes": Increment(sign),
                    "upvotedBy": ArrayRemove([user_id]) if retracting else ArrayUnion([user_id]),
                    "updatedAt": SERVER_TIMESTAMP,
                },
            )

            give = sign * XpRewards.GIVE_UPVOTE
            receive = sign * XpRewards.RECEIVE_UPVOTE
            if owner_id == user_id:
                stage_progress(
                    transaction, user_id, voter, give + receive, {"upvotesReceived": sign}, touch=not retracting
                )
            else:
                stage_progress(transaction, user_id, voter, give, touch=not retracting)
                stage_progress(transaction, owner_id, owner, receive, {"upvotesReceived": sign})

            return UpvoteResult(
                complaint_id=complaint_id,
                upvoted=not retracting,
                upvotes=(complaint.get("upvotes") or 0) + sign,
            )

        result = self.store.run_transaction(_toggle)
        logger.info(
            "User %s %s complaint %s", user_id, "upvoted" if result.upvoted else "withdrew upvote on", complaint_id
        )
        return result
