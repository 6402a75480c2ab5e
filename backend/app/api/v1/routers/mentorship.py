# app/api/v1/routers/mentorship.py
from fastapi import APIRouter, Depends, Query
from app.api.v1.deps import get_current_identity
from app.core.identity import CallerIdentity
from app.schemas.mentorship import (
    BecomeMentorIn,
    EndMentorshipIn,
    PreferencesIn,
    RequestMentorshipIn,
    RespondRequestIn,
    WithdrawRequestIn,
)
from app.services import mentorship as svc

router = APIRouter(prefix="/mentorship", tags=["mentorship"])

# ===== Mentor profiles =====
@router.get("/mentors", response_model=dict)
async def list_mentors(
    caller: CallerIdentity = Depends(get_current_identity),
    available: bool = Query(False, description="Only mentors marked available with an open slot"),
    expertise: str | None = Query(default=None, description="Substring match on expertise tags"),
):
    """
    Browse active mentor profiles, most experienced first.

    Returns:
        dict: {"success": True, "data": {"items": [...], "total": int}}
    """
    items = await svc.list_mentors(available_only=available, expertise=expertise)
    return {"success": True, "data": {"items": items, "total": len(items)}}

@router.get("/mentors/{mentor_id}", response_model=dict)
async def get_mentor(mentor_id: int, caller: CallerIdentity = Depends(get_current_identity)):
    """
    Get a single active mentor profile.

    Raises:
        NotFound (404): MENTOR_NOT_FOUND
    """
    return {"success": True, "data": await svc.get_mentor(mentor_id)}

@router.post("/become-mentor", response_model=dict)
async def become_mentor(body: BecomeMentorIn, caller: CallerIdentity = Depends(get_current_identity)):
    """
    Register the caller as a mentor (or reactivate a previous profile).

    Returns:
        dict: {"success": True, "data": {"mentorId": int}}

    Raises:
        ValidationError (400): BIO_TOO_SHORT / EXPERTISE_REQUIRED / INVALID_CAPACITY / VALIDATION_ERROR
        AlreadyMentor (400): ALREADY_MENTOR
    """
    mentor_id = await svc.become_mentor(caller, body)
    return {"success": True, "data": {"mentorId": mentor_id}}

@router.post("/step-down", response_model=dict)
async def step_down(caller: CallerIdentity = Depends(get_current_identity)):
    """Deactivate the caller's mentor profile; pending requests are declined."""
    declined = await svc.deactivate_mentor(caller)
    return {"success": True, "data": {"declinedRequests": declined}}

# ===== Requests =====
@router.post("/request", response_model=dict)
async def request_mentorship(body: RequestMentorshipIn, caller: CallerIdentity = Depends(get_current_identity)):
    """
    Send a mentorship request to a mentor.

    Returns:
        dict: {"success": True, "data": {"requestId": int}}

    Raises:
        NotFound (404): MENTOR_NOT_FOUND
        DuplicateRequest (400): DUPLICATE_REQUEST
        MentorAtCapacity (400): MENTOR_AT_CAPACITY
    """
    request_id = await svc.request_mentorship(caller, body.mentorId, body.message, body.goals, body.duration)
    return {"success": True, "data": {"requestId": request_id}}

@router.post("/respond-request", response_model=dict)
async def respond_request(body: RespondRequestIn, caller: CallerIdentity = Depends(get_current_identity)):
    """
    Accept or decline a pending request addressed to the caller.

    Returns:
        dict: {"success": True, "data": {"requestId", "status", "mentorshipId"}}

    Raises:
        NotFound (404): REQUEST_NOT_FOUND (missing, withdrawn or already answered)
        Unauthorized (403): not the addressed mentor
        MentorAtCapacity (400): MENTOR_AT_CAPACITY
    """
    mentorship_id = await svc.respond_to_request(caller, body.requestId, body.action)
    status = "accepted" if body.action == "accept" else "declined"
    return {"success": True, "data": {"requestId": body.requestId, "status": status, "mentorshipId": mentorship_id}}

@router.post("/withdraw-request", response_model=dict)
async def withdraw_request(body: WithdrawRequestIn, caller: CallerIdentity = Depends(get_current_identity)):
    await svc.withdraw_request(caller, body.requestId)
    return {"success": True, "data": {"requestId": body.requestId, "status": "withdrawn"}}

# ===== Active mentorships =====
@router.post("/end", response_model=dict)
async def end_mentorship(body: EndMentorshipIn, caller: CallerIdentity = Depends(get_current_identity)):
    """
    Complete an active mentorship (mentor, mentee or admin).

    Raises:
        NotFound (404): MENTORSHIP_NOT_FOUND (missing or already completed)
        Unauthorized (403): caller is not a party to the mentorship
    """
    await svc.complete_mentorship(caller, body.mentorshipId, body.reason)
    return {"success": True, "data": {"mentorshipId": body.mentorshipId, "status": "completed"}}

@router.get("/my-mentorships", response_model=dict)
async def my_mentorships(caller: CallerIdentity = Depends(get_current_identity)):
    """
    Everything mentorship-related for the caller.

    Returns:
        dict: {"success": True, "data": {"asMentor", "asMentee", "sentRequests", "receivedRequests"}}
    """
    return {"success": True, "data": await svc.list_my_mentorships(caller)}

@router.get("/stats", response_model=dict)
async def stats(caller: CallerIdentity = Depends(get_current_identity)):
    return {"success": True, "data": await svc.get_stats()}

# ===== Matching preferences =====
@router.get("/preferences", response_model=dict)
async def get_preferences(caller: CallerIdentity = Depends(get_current_identity)):
    return {"success": True, "data": await svc.get_preferences(caller)}

@router.post("/preferences", response_model=dict)
async def save_preferences(body: PreferencesIn, caller: CallerIdentity = Depends(get_current_identity)):
    return {"success": True, "data": await svc.save_preferences(caller, body)}
