from datetime import datetime
from typing import Optional

from pydantic import Field

from models.base import CamelModel
from models.enums import ActivityAction, ComplaintStatus, Priority


# Audit entry stored under complaints/{id}/activity
class ActivityLog(CamelModel):
    id: str
    action: ActivityAction
    from_value: Optional[str] = None
    to_value: str
    performed_by: str
    performed_by_name: str
    timestamp: Optional[datetime] = None
    note: Optional[str] = None
    sequence: int = 0


class PriorityUpdate(CamelModel):
    priority: Priority


class NoteCreate(CamelModel):
    note: str = Field(..., min_length=1, max_length=1000)


# Outcome of an admin status change
class StatusChangeResult(CamelModel):
    complaint_id: str
    from_status: ComplaintStatus
    to_status: ComplaintStatus
    xp_awarded: int = 0
    first_resolution: bool = False
