# admin_routes.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from models.activity import NoteCreate, PriorityUpdate, StatusChangeResult
from models.complaint import ComplaintPublic
from models.enums import ComplaintStatus, Priority
from routes.auth_routes import require_admin
from services.cloudinary_client import get_image_storage
from services.errors import UpstreamUnavailable
from services.firebase_client import get_store
from services.lifecycle import ComplaintLifecycle, required_proof_images
from services.store import DocumentStore
from utils.logging import get_logger

router = APIRouter(tags=["Admin"])
logger = get_logger(__name__)


def _proof_note(notes: Optional[str], proofs: List[tuple]) -> str:
    lines = [notes.strip()] if notes and notes.strip() else []
    lines.extend(f"{label}: {url}" for label, url in proofs)
    return "\n".join(lines)


# Moves a complaint to a new status with photo proof
@router.patch("/complaints/{complaint_id}/status", response_model=StatusChangeResult)
def update_complaint_status(
    complaint_id: str,
    new_status: ComplaintStatus = Form(..., alias="status"),
    notes: Optional[str] = Form(None),
    priority: Optional[Priority] = Form(None),
    proof_image: Optional[UploadFile] = File(None),
    before_image: Optional[UploadFile] = File(None),
    after_image: Optional[UploadFile] = File(None),
    store: DocumentStore = Depends(get_store),
    image_storage=Depends(get_image_storage),
    admin: dict = Depends(require_admin),
):
    # Resolving needs before and after photos; any other change needs one proof photo
    if required_proof_images(new_status) == 2:
        if before_image is None or after_image is None:
            raise HTTPException(
                status_code=400, detail="Upload both before and after repair photos to resolve"
            )
        pending = [("Before repair", before_image, "before"), ("After repair", after_image, "after")]
    else:
        if proof_image is None:
            raise HTTPException(status_code=400, detail="Upload a proof image for this status update")
        pending = [("Proof image", proof_image, "proof")]

    uploaded = []
    try:
        for label, upload, suffix in pending:
            stored = image_storage.upload(upload.file.read(), f"{complaint_id}/{suffix}")
            uploaded.append((label, stored))

        return ComplaintLifecycle(store).update_status(
            complaint_id,
            new_status,
            admin_id=admin["id"],
            admin_name=admin.get("displayName", ""),
            notes=_proof_note(notes, [(label, stored.url) for label, stored in uploaded]),
            priority=priority,
        )
    except Exception:
        for _, stored in uploaded:
            try:
                image_storage.delete(stored.path)
            except UpstreamUnavailable:
                logger.warning("Orphaned proof image left in storage: %s", stored.path)
        raise


# Changes the priority of a complaint
@router.patch("/complaints/{complaint_id}/priority", response_model=ComplaintPublic)
def update_complaint_priority(
    complaint_id: str,
    payload: PriorityUpdate,
    store: DocumentStore = Depends(get_store),
    admin: dict = Depends(require_admin),
):
    complaint = ComplaintLifecycle(store).set_priority(
        complaint_id, payload.priority, admin_id=admin["id"], admin_name=admin.get("displayName", "")
    )
    return ComplaintPublic.model_validate(complaint)


# Records an admin note on a complaint
@router.post("/complaints/{complaint_id}/notes", response_model=ComplaintPublic)
def add_complaint_note(
    complaint_id: str,
    payload: NoteCreate,
    store: DocumentStore = Depends(get_store),
    admin: dict = Depends(require_admin),
):
    complaint = ComplaintLifecycle(store).add_note(
        complaint_id, payload.note, admin_id=admin["id"], admin_name=admin.get("displayName", "")
    )
    return ComplaintPublic.model_validate(complaint)
