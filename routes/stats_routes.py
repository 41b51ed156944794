# stats_routes.py
from collections import Counter
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, Optional

import pytz
from cachetools import TTLCache
from fastapi import APIRouter, Depends, Query

import config
from models.base import CamelModel
from models.enums import OPEN_STATUSES, ComplaintStatus
from routes.auth_routes import require_admin
from services.firebase_client import get_store
from services.store import COMPLAINTS, DocumentStore
from utils.logging import get_logger
from utils.time import utcnow

logger = get_logger(__name__)

TIMEZONE = pytz.timezone(config.STATS_TIMEZONE)
stats_cache = TTLCache(maxsize=100, ttl=config.STATS_CACHE_TTL)


class StatsRange(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


class DashboardStats(CamelModel):
    total: int
    open: int
    resolved: int
    rejected: int
    resolution_rate: float
    by_status: Dict[str, int]
    top_categories: Dict[str, int]
    top_areas: Dict[str, int]


class StatsService:
    @staticmethod
    def get_date_range(time_range: StatsRange, now: Optional[datetime] = None) -> Optional[datetime]:
        """UTC start of the window; "day" starts at local midnight."""
        now_local = (now or utcnow()).astimezone(TIMEZONE)
        if time_range == StatsRange.DAY:
            midnight = now_local.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
            return TIMEZONE.localize(midnight).astimezone(pytz.utc)
        if time_range == StatsRange.WEEK:
            return (now_local - timedelta(days=7)).astimezone(pytz.utc)
        if time_range == StatsRange.MONTH:
            return (now_local - timedelta(days=30)).astimezone(pytz.utc)
        return None

    @staticmethod
    def calculate(complaints: Iterable[dict]) -> DashboardStats:
        status_counts = Counter({status.value: 0 for status in ComplaintStatus})
        category_counts = Counter()
        area_counts = Counter()

        for complaint in complaints:
            status_counts[complaint.get("status", ComplaintStatus.SUBMITTED.value)] += 1
            category_counts[complaint.get("category", "other")] += 1
            area = (complaint.get("location") or {}).get("area") or "Unknown area"
            area_counts[area] += 1

        total = sum(status_counts.values())
        resolved = status_counts[ComplaintStatus.RESOLVED.value]
        open_count = sum(status_counts[status.value] for status in OPEN_STATUSES)

        return DashboardStats(
            total=total,
            open=open_count,
            resolved=resolved,
            rejected=status_counts[ComplaintStatus.REJECTED.value],
            resolution_rate=round(resolved / total * 100, 1) if total else 0.0,
            by_status=dict(status_counts),
            top_categories=dict(category_counts.most_common(5)),
            top_areas=dict(area_counts.most_common(5)),
        )


router = APIRouter(tags=["Stats"])


@router.get("/dashboard", response_model=DashboardStats)
def get_dashboard(
    time_range: StatsRange = Query(StatsRange.ALL, alias="range"),
    store: DocumentStore = Depends(get_store),
    admin: dict = Depends(require_admin),
):
    """Complaint totals for the admin dashboard, cached briefly per range."""
    cache_key = f"dashboard_{time_range.value}"
    if cache_key in stats_cache:
        return stats_cache[cache_key]

    start = StatsService.get_date_range(time_range)
    filters = [("createdAt", ">=", start)] if start else []
    complaints = store.query(COMPLAINTS, filters=filters)

    stats = StatsService.calculate(complaints)
    logger.info("Computed %s dashboard over %d complaints", time_range.value, stats.total)
    stats_cache[cache_key] = stats
    return stats
