from enum import Enum


# Account roles; admin is granted once at first login from the allow-list
class UserRole(str, Enum):
    CITIZEN = "citizen"
    ADMIN = "admin"


# Complaint workflow states
class ComplaintStatus(str, Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


OPEN_STATUSES = (
    ComplaintStatus.SUBMITTED,
    ComplaintStatus.UNDER_REVIEW,
    ComplaintStatus.IN_PROGRESS,
)


# Admin-settable priority levels
class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Kinds of civic issue a citizen can report
class ComplaintCategory(str, Enum):
    ROAD_DAMAGE = "road_damage"
    STREETLIGHT = "streetlight"
    SANITATION = "sanitation"
    PUBLIC_PROPERTY = "public_property"
    WATER_SUPPLY = "water_supply"
    SAFETY_HAZARD = "safety_hazard"
    PUBLIC_NOTICE = "public_notice"
    GREENERY = "greenery"
    OTHER = "other"


# Entries of a complaint's activity log
class ActivityAction(str, Enum):
    STATUS_CHANGE = "status_change"
    PRIORITY_CHANGE = "priority_change"
    NOTE_ADDED = "note_added"
    UPVOTED = "upvoted"
