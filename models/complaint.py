from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from models.base import CamelModel
from models.enums import ComplaintCategory, ComplaintStatus, Priority


class ComplaintLocation(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: str = ""
    area: str = ""


# What the citizen submits alongside the photo
class ComplaintDraft(CamelModel):
    title: str = Field(..., max_length=100)
    description: str = Field("", max_length=500)
    category: ComplaintCategory
    location: ComplaintLocation

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("Title is required")
        return value


# Pass/fail of each image check, frozen at submission time
class ImageChecksSnapshot(CamelModel):
    file_type: bool
    resolution: bool
    has_exif: bool
    file_size: bool
    is_not_ai: bool


class ImageValidationSnapshot(CamelModel):
    passed: bool
    checks: ImageChecksSnapshot


# Complaint as stored in Firestore and returned to clients
class ComplaintPublic(CamelModel):
    id: str
    user_id: str
    user_name: str = ""
    user_photo_url: str = ""

    title: str
    description: str = ""
    category: ComplaintCategory
    image_url: str
    image_path: str

    location: ComplaintLocation
    geohash: str

    status: ComplaintStatus
    priority: Priority = Priority.MEDIUM
    admin_notes: str = ""
    assigned_to: Optional[str] = None

    upvotes: int = 0
    upvoted_by: List[str] = Field(default_factory=list)

    image_validation: Optional[ImageValidationSnapshot] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


# Open complaint close to a candidate location
class NearbyComplaint(CamelModel):
    complaint: ComplaintPublic
    distance_meters: float


class ComplaintChanges(CamelModel):
    complaints: List[ComplaintPublic]
    cursor: Optional[datetime] = None


class UpvoteResult(CamelModel):
    complaint_id: str
    upvoted: bool
    upvotes: int
