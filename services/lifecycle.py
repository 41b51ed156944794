"""Admin-driven complaint status changes and their side effects.

Any status may be set from any other; every change is recorded in the
complaint's activity log with its from/to values. The complaint update, the
activity entries and the owner's progression are written in one transaction.
"""

from typing import Optional, Union

from models.activity import StatusChangeResult
from models.enums import ActivityAction, ComplaintStatus, Priority, UserRole
from services.errors import NotFound
from services.store import (
    COMPLAINTS,
    SERVER_TIMESTAMP,
    USERS,
    DocumentStore,
    Transaction,
    activity_path,
)
from services.users import stage_progress
from services.xp_engine import XpRewards
from utils.logging import get_logger

logger = get_logger(__name__)


def status_change_xp(from_status: ComplaintStatus, to_status: ComplaintStatus) -> int:
    """XP delta for the complaint owner when its status moves."""
    if from_status == to_status:
        return 0
    if to_status == ComplaintStatus.UNDER_REVIEW and from_status == ComplaintStatus.SUBMITTED:
        return XpRewards.COMPLAINT_VERIFIED
    if to_status == ComplaintStatus.RESOLVED:
        return XpRewards.COMPLAINT_RESOLVED
    if to_status == ComplaintStatus.REJECTED:
        return XpRewards.COMPLAINT_REJECTED
    return 0


def required_proof_images(status: Union[ComplaintStatus, str]) -> int:
    """Photos an admin must attach: before and after to resolve, one otherwise."""
    return 2 if ComplaintStatus(status) == ComplaintStatus.RESOLVED else 1


def _activity_entry(
    action: ActivityAction,
    from_value: Optional[str],
    to_value: str,
    admin_id: str,
    admin_name: str,
    note: Optional[str] = None,
    sequence: int = 0,
) -> dict:
    # Entries written by one transition share a server timestamp; sequence orders them.
    return {
        "action": action.value,
        "fromValue": from_value,
        "toValue": to_value,
        "performedBy": admin_id,
        "performedByName": admin_name,
        "timestamp": SERVER_TIMESTAMP,
        "note": note or None,
        "sequence": sequence,
    }


class ComplaintLifecycle:
    def __init__(self, store: DocumentStore):
        self.store = store

    def update_status(
        self,
        complaint_id: str,
        status: Union[ComplaintStatus, str],
        admin_id: str,
        admin_name: str,
        notes: Optional[str] = None,
        priority: Optional[Union[Priority, str]] = None,
    ) -> StatusChangeResult:
        new_status = ComplaintStatus(status)
        new_priority = Priority(priority) if priority else None

        def _update(transaction: Transaction) -> StatusChangeResult:
            complaint = transaction.get(COMPLAINTS, complaint_id)
            if complaint is None:
                raise NotFound("complaint", complaint_id)
            owner_id = complaint["userId"]
            owner = transaction.get(USERS, owner_id)
            if owner is None:
                raise NotFound("user", owner_id)

            old_status = ComplaintStatus(complaint["status"])
            first_resolution = new_status == ComplaintStatus.RESOLVED and complaint.get("resolvedAt") is None

            updates = {"status": new_status.value, "updatedAt": SERVER_TIMESTAMP}
            if notes:
                updates["adminNotes"] = notes
            if new_priority:
                updates["priority"] = new_priority.value
            if first_resolution:
                updates["resolvedAt"] = SERVER_TIMESTAMP
            transaction.update(COMPLAINTS, complaint_id, updates)

            transaction.add(
                activity_path(complaint_id),
                _activity_entry(
                    ActivityAction.STATUS_CHANGE, old_status.value, new_status.value, admin_id, admin_name, notes
                ),
            )
            old_priority = complaint.get("priority")
            if new_priority and new_priority.value != old_priority:
                transaction.add(
                    activity_path(complaint_id),
                    _activity_entry(
                        ActivityAction.PRIORITY_CHANGE,
                        old_priority,
                        new_priority.value,
                        admin_id,
                        admin_name,
                        sequence=1,
                    ),
                )

            # Admin-owned complaints never earn XP, nor do complaints the acting admin filed.
            xp_delta = status_change_xp(old_status, new_status)
            if owner_id == admin_id or owner.get("role") == UserRole.ADMIN.value:
                xp_delta = 0
            counters = {"resolvedComplaints": 1} if first_resolution else {}
            stage_progress(transaction, owner_id, owner, xp_delta, counters, touch=bool(xp_delta))

            return StatusChangeResult(
                complaint_id=complaint_id,
                from_status=old_status,
                to_status=new_status,
                xp_awarded=xp_delta,
                first_resolution=first_resolution,
            )

        result = self.store.run_transaction(_update)
        logger.info(
            "Complaint %s moved %s -> %s by %s (owner xp %+d)",
            complaint_id,
            result.from_status.value,
            result.to_status.value,
            admin_id,
            result.xp_awarded,
        )
        return result

    def set_priority(self, complaint_id: str, priority: Union[Priority, str], admin_id: str, admin_name: str) -> dict:
        new_priority = Priority(priority)

        def _set(transaction: Transaction) -> dict:
            complaint = transaction.get(COMPLAINTS, complaint_id)
            if complaint is None:
                raise NotFound("complaint", complaint_id)
            old_priority = complaint.get("priority")
            transaction.update(
                COMPLAINTS, complaint_id, {"priority": new_priority.value, "updatedAt": SERVER_TIMESTAMP}
            )
            transaction.add(
                activity_path(complaint_id),
                _activity_entry(ActivityAction.PRIORITY_CHANGE, old_priority, new_priority.value, admin_id, admin_name),
            )
            return complaint

        self.store.run_transaction(_set)
        logger.info("Complaint %s priority set to %s by %s", complaint_id, new_priority.value, admin_id)
        return self.store.get(COMPLAINTS, complaint_id)

    def add_note(self, complaint_id: str, note: str, admin_id: str, admin_name: str) -> dict:
        def _add(transaction: Transaction) -> None:
            complaint = transaction.get(COMPLAINTS, complaint_id)
            if complaint is None:
                raise NotFound("complaint", complaint_id)
            transaction.update(COMPLAINTS, complaint_id, {"adminNotes": note, "updatedAt": SERVER_TIMESTAMP})
            transaction.add(
                activity_path(complaint_id),
                _activity_entry(ActivityAction.NOTE_ADDED, complaint.get("adminNotes") or None, note, admin_id, admin_name, note),
            )

        self.store.run_transaction(_add)
        logger.info("Note added to complaint %s by %s", complaint_id, admin_id)
        return self.store.get(COMPLAINTS, complaint_id)
