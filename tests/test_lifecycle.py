import pytest

from conftest import add_user
from models.enums import ComplaintStatus, UserRole
from services.errors import NotFound
from services.lifecycle import ComplaintLifecycle, required_proof_images, status_change_xp
from services.store import COMPLAINTS, USERS, activity_path


@pytest.fixture
def lifecycle(store):
    return ComplaintLifecycle(store)


def test_status_change_xp_table():
    assert status_change_xp(ComplaintStatus.SUBMITTED, ComplaintStatus.UNDER_REVIEW) == 15
    assert status_change_xp(ComplaintStatus.IN_PROGRESS, ComplaintStatus.UNDER_REVIEW) == 0
    assert status_change_xp(ComplaintStatus.UNDER_REVIEW, ComplaintStatus.IN_PROGRESS) == 0
    assert status_change_xp(ComplaintStatus.SUBMITTED, ComplaintStatus.RESOLVED) == 30
    assert status_change_xp(ComplaintStatus.IN_PROGRESS, ComplaintStatus.REJECTED) == -5
    assert status_change_xp(ComplaintStatus.RESOLVED, ComplaintStatus.RESOLVED) == 0


def test_required_proof_images():
    assert required_proof_images("resolved") == 2
    assert required_proof_images(ComplaintStatus.IN_PROGRESS) == 1
    assert required_proof_images("rejected") == 1


def test_review_then_resolve_scenario(store, lifecycle, citizen, admin, file_complaint):
    complaint = file_complaint(citizen["id"])
    # Filing earned the submit reward; reset to start the scenario from zero
    store.update(USERS, citizen["id"], {"xp": 0})

    first = lifecycle.update_status(complaint["id"], "under_review", admin["id"], admin["displayName"])
    owner = store.get(USERS, citizen["id"])
    assert first.xp_awarded == 15
    assert owner["xp"] == 15
    assert owner["level"] == 1

    second = lifecycle.update_status(complaint["id"], "resolved", admin["id"], admin["displayName"])
    owner = store.get(USERS, citizen["id"])
    stored = store.get(COMPLAINTS, complaint["id"])
    assert second.first_resolution is True
    assert owner["xp"] == 45
    assert owner["resolvedComplaints"] == 1
    assert stored["status"] == "resolved"
    assert stored["resolvedAt"] is not None


def test_level_up_on_transition_updates_level_and_title(store, lifecycle, citizen, admin, file_complaint):
    complaint = file_complaint(citizen["id"])
    store.update(USERS, citizen["id"], {"xp": 40})

    lifecycle.update_status(complaint["id"], "resolved", admin["id"], admin["displayName"])
    owner = store.get(USERS, citizen["id"])
    assert owner["xp"] == 70
    assert (owner["level"], owner["levelTitle"]) == (2, "Citizen")


def test_resolved_at_and_counter_only_on_first_resolution(store, lifecycle, citizen, admin, file_complaint):
    complaint = file_complaint(citizen["id"])
    lifecycle.update_status(complaint["id"], "resolved", admin["id"], admin["displayName"])
    resolved_at = store.get(COMPLAINTS, complaint["id"])["resolvedAt"]

    lifecycle.update_status(complaint["id"], "submitted", admin["id"], admin["displayName"])
    again = lifecycle.update_status(complaint["id"], "resolved", admin["id"], admin["displayName"])

    stored = store.get(COMPLAINTS, complaint["id"])
    assert again.first_resolution is False
    assert stored["resolvedAt"] == resolved_at
    assert store.get(USERS, citizen["id"])["resolvedComplaints"] == 1


def test_rejection_deducts_xp(store, lifecycle, citizen, admin, file_complaint):
    complaint = file_complaint(citizen["id"])
    result = lifecycle.update_status(complaint["id"], "rejected", admin["id"], admin["displayName"])
    assert result.xp_awarded == -5
    assert store.get(USERS, citizen["id"])["xp"] == 5


def test_admin_owned_complaint_earns_nothing(store, lifecycle, admin, file_complaint):
    other_admin = add_user(store, "deputy", role=UserRole.ADMIN)
    complaint = file_complaint(other_admin["id"])
    xp_after_filing = store.get(USERS, other_admin["id"])["xp"]

    for status in ("under_review", "resolved", "rejected"):
        result = lifecycle.update_status(complaint["id"], status, admin["id"], admin["displayName"])
        assert result.xp_awarded == 0
    owner = store.get(USERS, other_admin["id"])
    assert owner["xp"] == xp_after_filing
    assert owner["resolvedComplaints"] == 1


def test_acting_admin_never_rewards_themselves(store, lifecycle, admin, file_complaint):
    # Role was changed to citizen after filing; the owner check alone still blocks the reward
    complaint = file_complaint(admin["id"])
    store.update(USERS, admin["id"], {"role": "citizen"})
    result = lifecycle.update_status(complaint["id"], "resolved", admin["id"], admin["displayName"])
    assert result.xp_awarded == 0


def test_unknown_complaint_raises_without_writes(store, lifecycle, citizen, admin):
    with pytest.raises(NotFound):
        lifecycle.update_status("missing", "resolved", admin["id"], admin["displayName"])
    assert store.query(activity_path("missing")) == []
    assert store.get(USERS, citizen["id"])["xp"] == 0


def test_missing_owner_raises_without_writes(store, lifecycle, citizen, admin, file_complaint):
    complaint = file_complaint(citizen["id"])
    store.update(COMPLAINTS, complaint["id"], {"userId": "deleted-user"})

    with pytest.raises(NotFound):
        lifecycle.update_status(complaint["id"], "resolved", admin["id"], admin["displayName"])
    assert store.get(COMPLAINTS, complaint["id"])["status"] == "submitted"
    assert store.query(activity_path(complaint["id"])) == []


def test_activity_log_records_transitions_in_order(store, clock, lifecycle, citizen, admin, file_complaint):
    complaint = file_complaint(citizen["id"])
    lifecycle.update_status(complaint["id"], "under_review", admin["id"], admin["displayName"], notes="Site visit booked")
    lifecycle.update_status(complaint["id"], "in_progress", admin["id"], admin["displayName"], priority="high")
    lifecycle.update_status(complaint["id"], "resolved", admin["id"], admin["displayName"])

    entries = store.query(activity_path(complaint["id"]), order_by="timestamp")
    assert [(e["action"], e["fromValue"], e["toValue"]) for e in entries] == [
        ("status_change", "submitted", "under_review"),
        ("status_change", "under_review", "in_progress"),
        ("priority_change", "medium", "high"),
        ("status_change", "in_progress", "resolved"),
    ]
    assert entries[0]["note"] == "Site visit booked"
    assert all(entry["performedBy"] == admin["id"] for entry in entries)

    stored = store.get(COMPLAINTS, complaint["id"])
    assert stored["adminNotes"] == "Site visit booked"
    assert stored["priority"] == "high"


def test_one_transition_orders_its_entries(store, lifecycle, citizen, admin, file_complaint):
    complaint = file_complaint(citizen["id"])
    lifecycle.update_status(complaint["id"], "in_progress", admin["id"], admin["displayName"], priority="critical")

    entries = store.query(activity_path(complaint["id"]))
    assert len({entry["timestamp"] for entry in entries}) == 1
    assert sorted((e["sequence"], e["action"]) for e in entries) == [(0, "status_change"), (1, "priority_change")]


def test_set_priority_and_add_note(store, lifecycle, citizen, admin, file_complaint):
    complaint = file_complaint(citizen["id"])

    updated = lifecycle.set_priority(complaint["id"], "critical", admin["id"], admin["displayName"])
    assert updated["priority"] == "critical"
    noted = lifecycle.add_note(complaint["id"], "Crew assigned", admin["id"], admin["displayName"])
    assert noted["adminNotes"] == "Crew assigned"
    assert noted["updatedAt"] > complaint["updatedAt"]

    actions = [e["action"] for e in store.query(activity_path(complaint["id"]), order_by="timestamp")]
    assert actions == ["priority_change", "note_added"]


def test_set_priority_unknown_complaint(lifecycle, admin):
    with pytest.raises(NotFound):
        lifecycle.set_priority("missing", "low", admin["id"], admin["displayName"])
