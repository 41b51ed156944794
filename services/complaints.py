"""Complaint creation and read models."""

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import ValidationError

from models.complaint import ComplaintDraft
from models.enums import OPEN_STATUSES, ComplaintStatus, Priority
from services.errors import NotFound, UpstreamUnavailable, ValidationFailure
from services.geo import encode_geohash
from services.geocoding import UNKNOWN_AREA, coordinate_label
from services.image_validator import validate_image
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


def parse_draft(data: dict) -> ComplaintDraft:
    """Build a draft, turning pydantic errors into field-level messages."""
    try:
        return ComplaintDraft.model_validate(data)
    except ValidationError as exc:
        details = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            details[field] = error["msg"]
        raise ValidationFailure("Invalid complaint", details) from exc


class ComplaintService:
    def __init__(self, store: DocumentStore, image_storage=None, geocoder=None):
        self.store = store
        self.image_storage = image_storage
        self.geocoder = geocoder

    def create_complaint(self, owner_id: str, data: dict, image: bytes, content_type: str) -> dict:
        """Validate, upload the photo, then write the complaint and the owner's reward together."""
        draft = parse_draft(data)

        validation = validate_image(image, content_type)
        if not validation.passed:
            raise ValidationFailure("Image failed validation", validation.failures())

        location = draft.location
        if not location.address:
            if self.geocoder is not None:
                geocoded = self.geocoder.reverse(location.lat, location.lng)
            else:
                geocoded = coordinate_label(location.lat, location.lng)
            location.address = geocoded.address
            location.area = location.area or geocoded.area
        location.area = location.area or UNKNOWN_AREA

        uploaded = self.image_storage.upload(image, owner_id)

        def _create(transaction: Transaction) -> str:
            owner = transaction.get(USERS, owner_id)
            if owner is None:
                raise NotFound("user", owner_id)

            complaint_id = transaction.add(
                COMPLAINTS,
                {
                    "userId": owner_id,
                    "userName": owner.get("displayName", ""),
                    "userPhotoUrl": owner.get("photoUrl", ""),
                    "title": draft.title,
                    "description": draft.description,
                    "category": draft.category.value,
                    "imageUrl": uploaded.url,
                    "imagePath": uploaded.path,
                    "location": location.model_dump(by_alias=True),
                    "geohash": encode_geohash(location.lat, location.lng),
                    "status": ComplaintStatus.SUBMITTED.value,
                    "priority": Priority.MEDIUM.value,
                    "adminNotes": "",
                    "assignedTo": None,
                    "upvotes": 0,
                    "upvotedBy": [],
                    "imageValidation": validation.snapshot().model_dump(by_alias=True),
                    "createdAt": SERVER_TIMESTAMP,
                    "updatedAt": SERVER_TIMESTAMP,
                    "resolvedAt": None,
                },
            )
            stage_progress(
                transaction,
                owner_id,
                owner,
                XpRewards.SUBMIT_COMPLAINT,
                {"totalComplaints": 1},
                touch=True,
            )
            return complaint_id

        try:
            complaint_id = self.store.run_transaction(_create)
        except Exception:
            self._discard_upload(uploaded.path)
            raise

        logger.info("User %s filed complaint %s (%s)", owner_id, complaint_id, draft.category.value)
        return self.get_complaint(complaint_id)

    def _discard_upload(self, path: str) -> None:
        try:
            self.image_storage.delete(path)
        except UpstreamUnavailable:
            logger.warning("Orphaned image left in storage: %s", path)

    def get_complaint(self, complaint_id: str) -> dict:
        complaint = self.store.get(COMPLAINTS, complaint_id)
        if complaint is None:
            raise NotFound("complaint", complaint_id)
        return complaint

    def list_complaints(
        self,
        status: Optional[ComplaintStatus] = None,
        owner_id: Optional[str] = None,
        open_only: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        filters = []
        if status:
            filters.append(("status", "==", ComplaintStatus(status).value))
        elif open_only:
            filters.append(("status", "in", [s.value for s in OPEN_STATUSES]))
        if owner_id:
            filters.append(("userId", "==", owner_id))
        return self.store.query(COMPLAINTS, filters=filters, order_by="createdAt", descending=True, limit=limit)

    def changes_since(self, cursor: Optional[datetime] = None, limit: Optional[int] = None) -> Tuple[List[dict], Optional[datetime]]:
        """Complaints updated strictly after ``cursor``, oldest first, and the cursor to poll with next."""
        filters = [("updatedAt", ">", cursor)] if cursor else []
        changed = self.store.query(COMPLAINTS, filters=filters, order_by="updatedAt", limit=limit)
        next_cursor = changed[-1]["updatedAt"] if changed else cursor
        return changed, next_cursor

    def activity(self, complaint_id: str, since: Optional[datetime] = None) -> List[dict]:
        self.get_complaint(complaint_id)
        filters = [("timestamp", ">", since)] if since else []
        entries = self.store.query(activity_path(complaint_id), filters=filters, order_by="timestamp")
        entries.sort(key=lambda entry: (entry["timestamp"], entry.get("sequence", 0)))
        return entries
