# complaint_routes.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from models.activity import ActivityLog
from models.complaint import ComplaintChanges, ComplaintPublic, NearbyComplaint, UpvoteResult
from models.enums import ComplaintCategory, ComplaintStatus
from models.validation import ImageValidationResult
from routes.auth_routes import get_current_user
from services.cloudinary_client import get_image_storage
from services.complaints import ComplaintService
from services.firebase_client import get_store
from services.geo import DuplicateDetector
from services.geocoding import get_geocoder
from services.image_validator import validate_image
from services.store import DocumentStore
from services.upvotes import UpvoteLedger
from utils.time import parse_cursor

router = APIRouter(tags=["Complaints"])


def get_complaint_service(
    store: DocumentStore = Depends(get_store),
    image_storage=Depends(get_image_storage),
    geocoder=Depends(get_geocoder),
) -> ComplaintService:
    return ComplaintService(store, image_storage=image_storage, geocoder=geocoder)


# Runs the authenticity checks so the citizen sees every failure before submitting
@router.post("/validate-image", response_model=ImageValidationResult)
def check_image(
    image: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
):
    data = image.file.read()
    return validate_image(data, image.content_type)


# Open complaints within the duplicate radius of a location, nearest first
@router.get("/nearby", response_model=List[NearbyComplaint])
def nearby_complaints(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    matches = DuplicateDetector(store).find_nearby(lat, lng)
    return [
        NearbyComplaint(complaint=ComplaintPublic.model_validate(complaint), distance_meters=round(distance, 1))
        for complaint, distance in matches
    ]


# Files a new complaint with its photo
@router.post("/", response_model=ComplaintPublic, status_code=status.HTTP_201_CREATED)
def create_complaint(
    title: str = Form(...),
    category: ComplaintCategory = Form(...),
    latitude: float = Form(...),
    longitude: float = Form(...),
    description: str = Form(""),
    address: Optional[str] = Form(None),
    area: Optional[str] = Form(None),
    image: UploadFile = File(...),
    service: ComplaintService = Depends(get_complaint_service),
    current_user: dict = Depends(get_current_user),
):
    data = image.file.read()
    complaint = service.create_complaint(
        owner_id=current_user["id"],
        data={
            "title": title,
            "description": description,
            "category": category,
            "location": {"lat": latitude, "lng": longitude, "address": address or "", "area": area or ""},
        },
        image=data,
        content_type=image.content_type,
    )
    return ComplaintPublic.model_validate(complaint)


# Lists complaints, newest first
@router.get("/", response_model=List[ComplaintPublic])
def list_complaints(
    status: Optional[ComplaintStatus] = Query(None),
    mine: bool = Query(False, description="Only my complaints"),
    open_only: bool = Query(False),
    limit: Optional[int] = Query(None, ge=1, le=500),
    service: ComplaintService = Depends(get_complaint_service),
    current_user: dict = Depends(get_current_user),
):
    complaints = service.list_complaints(
        status=status,
        owner_id=current_user["id"] if mine else None,
        open_only=open_only,
        limit=limit,
    )
    return [ComplaintPublic.model_validate(complaint) for complaint in complaints]


# Complaints changed after a cursor; clients poll with the returned cursor
@router.get("/changes", response_model=ComplaintChanges)
def complaint_changes(
    since: Optional[str] = Query(None, description="ISO-8601 cursor from a previous call"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    service: ComplaintService = Depends(get_complaint_service),
    current_user: dict = Depends(get_current_user),
):
    changed, cursor = service.changes_since(parse_cursor(since), limit=limit)
    return ComplaintChanges(
        complaints=[ComplaintPublic.model_validate(complaint) for complaint in changed],
        cursor=cursor,
    )


@router.get("/{complaint_id}", response_model=ComplaintPublic)
def get_complaint(
    complaint_id: str,
    service: ComplaintService = Depends(get_complaint_service),
    current_user: dict = Depends(get_current_user),
):
    return ComplaintPublic.model_validate(service.get_complaint(complaint_id))


# Activity log of a complaint in the order it happened
@router.get("/{complaint_id}/activity", response_model=List[ActivityLog])
def get_activity(
    complaint_id: str,
    since: Optional[str] = Query(None),
    service: ComplaintService = Depends(get_complaint_service),
    current_user: dict = Depends(get_current_user),
):
    entries = service.activity(complaint_id, since=parse_cursor(since))
    return [ActivityLog.model_validate(entry) for entry in entries]


# Adds or withdraws the caller's upvote
@router.post("/{complaint_id}/upvote", response_model=UpvoteResult)
def toggle_upvote(
    complaint_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    return UpvoteLedger(store).toggle_upvote(complaint_id, current_user["id"])
