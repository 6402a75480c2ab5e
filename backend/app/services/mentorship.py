# backend/app/services/mentorship.py
"""
Mentorship Lifecycle Manager

Owns mentor registration and the request/mentorship state machines:

    MentorshipRequest:  pending -> accepted | declined | withdrawn
    ActiveMentorship:   active  -> completed

Rules enforced here:
- one active mentor profile per user (an inactive one is reactivated in place)
- at most one pending/accepted request per (mentee, mentor) pair
- current_mentees <= max_mentees, and current_mentees always equals the
  number of the profile's "active" mentorships

Every transition re-checks the current status with a conditional UPDATE
right before mutating, so two concurrent responders cannot both win.
Acceptance and completion run in a single transaction with the mentor row
locked; activity entries are written after commit and are best-effort.
"""
import calendar
import datetime as dt
import logging
from typing import Optional

from tortoise import timezone
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from app.config import settings
from app.core.errors import (
    AlreadyMentor,
    Conflict,
    DuplicateRequest,
    MentorAtCapacity,
    NotFound,
    PersistenceError,
    Unauthorized,
    ValidationError,
    persistence_guard,
)
from app.core.identity import CallerIdentity
from app.models.mentor import AVAILABILITY_STATUSES, Mentor, MentorshipPreference
from app.models.mentorship import ActiveMentorship, MentorshipRequest
from app.models.user import User
from app.schemas.mentorship import BecomeMentorIn, PreferencesIn
from app.services.activity import record_activity

logger = logging.getLogger(__name__)

# Month offsets used to compute expected_end_date; None means open-ended
DURATION_MONTHS: dict[str, Optional[int]] = {
    "1_month": 1,
    "3_months": 3,
    "6_months": 6,
    "1_year": 12,
    "ongoing": None,
}
RESPONSE_ACTIONS = ("accept", "decline")
OPEN_REQUEST_STATUSES = ("pending", "accepted")


# ----------------------------------------------------------------------------
# Date arithmetic
# ----------------------------------------------------------------------------
def add_months(day: dt.date, months: int) -> dt.date:
    """Shift a date by whole months, clamping the day to the target month's length (Jan 31 + 1 -> Feb 28/29)."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, min(day.day, last_day))


def expected_end_date(start: dt.date, duration: str) -> Optional[dt.date]:
    if duration not in DURATION_MONTHS:
        raise ValidationError(f"Unknown duration: {duration!r}", code="INVALID_DURATION")
    months = DURATION_MONTHS[duration]
    if months is None:
        return None
    return add_months(start, months)


# ----------------------------------------------------------------------------
# Serialization helpers
# ----------------------------------------------------------------------------
def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            return value.isoformat() + "Z"
        return value.isoformat()
    return value.isoformat()


def _user_brief(u: Optional[User]) -> Optional[dict]:
    if u is None:
        return None
    return {"id": u.id, "username": u.username, "fullName": u.full_name}


def _mentor_to_dict(m: Mentor) -> dict:
    user = m.user if isinstance(m.user, User) else None
    return {
        "id": m.id,
        "userId": m.user_id,
        "username": user.username if user else None,
        "fullName": user.full_name if user else None,
        "bio": m.bio,
        "expertiseAreas": list(m.expertise_areas or []),
        "yearsOfExperience": m.years_of_experience,
        "maxMentees": m.max_mentees,
        "currentMentees": m.current_mentees,
        "openSlots": m.open_slots,
        "availability": m.availability_status,
        "preferredCommunication": m.preferred_communication,
        "mentoringStyle": m.mentoring_style,
        "isActive": m.is_active,
    }


def _request_to_dict(r: MentorshipRequest, counterpart: Optional[User] = None) -> dict:
    return {
        "id": r.id,
        "mentorId": r.mentor_id,
        "menteeId": r.mentee_id,
        "message": r.message,
        "goals": r.goals,
        "preferredDuration": r.preferred_duration,
        "status": r.status,
        "counterpart": _user_brief(counterpart),
        "createdAt": _iso(r.created_at),
        "updatedAt": _iso(r.updated_at),
    }


def _mentorship_to_dict(m: ActiveMentorship, counterpart: Optional[User] = None) -> dict:
    return {
        "id": m.id,
        "requestId": m.request_id,
        "mentorId": m.mentor_id,
        "menteeId": m.mentee_id,
        "goals": m.goals,
        "startDate": _iso(m.start_date),
        "expectedEndDate": _iso(m.expected_end_date),
        "endDate": _iso(m.end_date),
        "completionReason": m.completion_reason,
        "status": m.status,
        "counterpart": _user_brief(counterpart),
    }


# ----------------------------------------------------------------------------
# Mentor profile
# ----------------------------------------------------------------------------
def _validate_profile(profile: BecomeMentorIn) -> dict:
    bio = (profile.bio or "").strip()
    if len(bio) < settings.min_bio_length:
        raise ValidationError(
            f"Bio must be at least {settings.min_bio_length} characters", code="BIO_TOO_SHORT"
        )
    if profile.yearsOfExperience < 0:
        raise ValidationError("Years of experience cannot be negative")
    tags = []
    for tag in profile.expertiseAreas:
        tag = (tag or "").strip()
        if tag and tag not in tags:
            tags.append(tag)
    if not tags:
        raise ValidationError("At least one expertise area is required", code="EXPERTISE_REQUIRED")
    max_mentees = profile.maxMentees if profile.maxMentees is not None else settings.default_max_mentees
    if not 1 <= max_mentees <= settings.max_mentees_limit:
        raise ValidationError(
            f"maxMentees must be between 1 and {settings.max_mentees_limit}", code="INVALID_CAPACITY"
        )
    if profile.availability not in AVAILABILITY_STATUSES:
        raise ValidationError(f"Unknown availability: {profile.availability!r}")
    return {
        "bio": bio,
        "expertise_areas": tags,
        "years_of_experience": profile.yearsOfExperience,
        "max_mentees": max_mentees,
        "availability_status": profile.availability,
        "preferred_communication": profile.preferredCommunication or "chat",
        "mentoring_style": profile.mentoringStyle,
    }


async def become_mentor(caller: CallerIdentity, profile: BecomeMentorIn) -> int:
    """
    Register the caller as a mentor, or reactivate their previous profile.

    Returns:
        int: mentor profile id

    Raises:
        ValidationError: bio too short, no expertise, bad capacity or availability
        AlreadyMentor: the caller already has an active profile
    """
    values = _validate_profile(profile)

    async with persistence_guard("save mentor profile"):
        async with in_transaction() as conn:
            # Serializes concurrent registrations by the same user
            await User.filter(id=caller.user_id).using_db(conn).select_for_update().first()
            if await Mentor.filter(user_id=caller.user_id, is_active=True).using_db(conn).exists():
                raise AlreadyMentor("You are already registered as a mentor")

            previous = (
                await Mentor.filter(user_id=caller.user_id)
                .using_db(conn)
                .order_by("-created_at", "-id")
                .first()
            )
            if previous is not None:
                # A lowered max_mentees may not drop below the mentees still held
                if values["max_mentees"] < previous.current_mentees:
                    raise ValidationError(
                        "maxMentees cannot be lower than your current mentee count", code="INVALID_CAPACITY"
                    )
                previous.update_from_dict(values)
                previous.is_active = True
                await previous.save(using_db=conn)
                mentor, description = previous, "Re-activated mentor profile"
            else:
                mentor = await Mentor.create(
                    using_db=conn, user_id=caller.user_id, current_mentees=0, is_active=True, **values
                )
                description = "Registered as a mentor"

    logger.info("[mentorship] user %s -> mentor %s (%s)", caller.user_id, mentor.id, description)
    await record_activity(caller.user_id, description)
    return mentor.id


async def deactivate_mentor(caller: CallerIdentity) -> int:
    """
    Step down as a mentor. Pending requests addressed to the profile are
    declined in the same transaction. Refused while mentorships are active.
    """
    async with persistence_guard("deactivate mentor profile"):
        async with in_transaction() as conn:
            mentor = (
                await Mentor.filter(user_id=caller.user_id, is_active=True)
                .using_db(conn)
                .select_for_update()
                .first()
            )
            if mentor is None:
                raise NotFound("You are not registered as a mentor", code="MENTOR_NOT_FOUND")
            if await ActiveMentorship.filter(mentor_id=mentor.id, status="active").using_db(conn).exists():
                raise Conflict("Complete your active mentorships before stepping down", code="MENTOR_HAS_MENTEES")

            declined = await MentorshipRequest.filter(mentor_id=mentor.id, status="pending").using_db(conn).update(
                status="declined", updated_at=timezone.now()
            )
            await Mentor.filter(id=mentor.id).using_db(conn).update(
                is_active=False, availability_status="unavailable", updated_at=timezone.now()
            )

    await record_activity(caller.user_id, "Stepped down as a mentor")
    return declined


async def list_mentors(available_only: bool = False, expertise: Optional[str] = None) -> list[dict]:
    async with persistence_guard("list mentors"):
        qs = Mentor.filter(is_active=True)
        if available_only:
            qs = qs.filter(availability_status="available")
        rows = await qs.select_related("user").order_by("-years_of_experience", "id")

    if expertise:
        needle = expertise.strip().lower()
        rows = [m for m in rows if any(needle in (tag or "").lower() for tag in (m.expertise_areas or []))]
    if available_only:
        rows = [m for m in rows if m.open_slots > 0]
    return [_mentor_to_dict(m) for m in rows]


async def get_mentor(mentor_id: int) -> dict:
    async with persistence_guard("load mentor"):
        mentor = await Mentor.filter(id=mentor_id, is_active=True).select_related("user").first()
        if mentor is None:
            raise NotFound("Mentor not found", code="MENTOR_NOT_FOUND")
        completed = await ActiveMentorship.filter(mentor_id=mentor.id, status="completed").count()
    data = _mentor_to_dict(mentor)
    data["completedMentorships"] = completed
    return data


# ----------------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------------
async def request_mentorship(
    caller: CallerIdentity,
    mentor_id: int,
    message: Optional[str],
    goals: Optional[str],
    duration: str,
) -> int:
    """
    Create a pending request from the caller (mentee) to a mentor.

    Raises:
        ValidationError: unknown duration, or requesting one's own profile
        NotFound: mentor missing or inactive
        DuplicateRequest: the pair already has a pending/accepted request
        MentorAtCapacity: the mentor has no open slot
    """
    if duration not in DURATION_MONTHS:
        raise ValidationError(f"Unknown duration: {duration!r}", code="INVALID_DURATION")

    async with persistence_guard("create mentorship request"):
        async with in_transaction() as conn:
            # Lock the mentor row so the duplicate and capacity checks see a stable picture
            mentor = await Mentor.filter(id=mentor_id, is_active=True).using_db(conn).select_for_update().first()
            if mentor is None:
                raise NotFound("Mentor not found", code="MENTOR_NOT_FOUND")
            if mentor.user_id == caller.user_id:
                raise ValidationError("You cannot request mentorship from yourself", code="SELF_REQUEST")

            duplicate = await MentorshipRequest.filter(
                mentee_id=caller.user_id, mentor_id=mentor.id, status__in=OPEN_REQUEST_STATUSES
            ).using_db(conn).exists()
            if duplicate:
                raise DuplicateRequest("You already have a pending or active request with this mentor")

            active = await ActiveMentorship.filter(mentor_id=mentor.id, status="active").using_db(conn).count()
            if active >= mentor.max_mentees:
                raise MentorAtCapacity("This mentor has reached their maximum capacity")

            request = await MentorshipRequest.create(
                using_db=conn,
                mentor_id=mentor.id,
                mentee_id=caller.user_id,
                message=message,
                goals=goals,
                preferred_duration=duration,
                status="pending",
            )

    logger.info("[mentorship] request %s: mentee %s -> mentor %s", request.id, caller.user_id, mentor.id)
    await record_activity(caller.user_id, f"Sent mentorship request to mentor #{mentor.id}")
    return request.id


async def _accept(request: MentorshipRequest) -> ActiveMentorship:
    async with in_transaction() as conn:
        mentor = await Mentor.filter(id=request.mentor_id).using_db(conn).select_for_update().first()
        current = await MentorshipRequest.filter(id=request.id).using_db(conn).select_for_update().first()
        if mentor is None or not mentor.is_active:
            raise NotFound("Mentor profile is no longer active", code="MENTOR_NOT_FOUND")
        if current is None or current.status != "pending":
            raise NotFound("Request not found or already resolved", code="REQUEST_NOT_FOUND")
        if mentor.current_mentees >= mentor.max_mentees:
            raise MentorAtCapacity("You have reached your maximum mentee capacity")

        updated = await MentorshipRequest.filter(id=current.id, status="pending").using_db(conn).update(
            status="accepted", updated_at=timezone.now()
        )
        if not updated:
            raise NotFound("Request not found or already resolved", code="REQUEST_NOT_FOUND")

        start = timezone.now().date()
        mentorship = await ActiveMentorship.create(
            using_db=conn,
            request_id=current.id,
            mentor_id=mentor.id,
            mentee_id=current.mentee_id,
            goals=current.goals,
            start_date=start,
            expected_end_date=expected_end_date(start, current.preferred_duration),
            status="active",
        )
        await Mentor.filter(id=mentor.id).using_db(conn).update(current_mentees=F("current_mentees") + 1)
    return mentorship


async def respond_to_request(caller: CallerIdentity, request_id: int, action: str) -> Optional[int]:
    """
    Accept or decline a pending request addressed to the caller's mentor profile.

    Returns:
        The new ActiveMentorship id on accept, None on decline.

    Raises:
        ValidationError: action is not accept/decline
        NotFound: request missing or no longer pending, or the mentor profile was deactivated
        Unauthorized: caller does not own the addressed mentor profile
        MentorAtCapacity: accepting would exceed max_mentees (state unchanged)
    """
    if action not in RESPONSE_ACTIONS:
        raise ValidationError('Invalid action. Use "accept" or "decline"', code="INVALID_ACTION")

    async with persistence_guard(f"{action} mentorship request"):
        request = await MentorshipRequest.filter(id=request_id).select_related("mentor").first()
        if request is None or request.status != "pending":
            raise NotFound("Request not found or already resolved", code="REQUEST_NOT_FOUND")
        if request.mentor.user_id != caller.user_id:
            raise Unauthorized("Only the addressed mentor can respond to this request")

        if action == "decline":
            updated = await MentorshipRequest.filter(id=request.id, status="pending").update(
                status="declined", updated_at=timezone.now()
            )
            if not updated:
                raise NotFound("Request not found or already resolved", code="REQUEST_NOT_FOUND")
            mentorship = None
        else:
            mentorship = await _accept(request)

    if mentorship is None:
        logger.info("[mentorship] request %s declined by user %s", request.id, caller.user_id)
        await record_activity(caller.user_id, f"Declined mentorship request from user #{request.mentee_id}")
        await record_activity(request.mentee_id, f"Mentorship request #{request.id} declined")
        return None

    logger.info("[mentorship] request %s accepted -> mentorship %s", request.id, mentorship.id)
    await record_activity(caller.user_id, f"Accepted mentorship request from user #{request.mentee_id}")
    await record_activity(request.mentee_id, f"Mentorship request accepted by mentor #{request.mentor_id}")
    return mentorship.id


async def withdraw_request(caller: CallerIdentity, request_id: int) -> None:
    """Withdraw the caller's own request; only possible while it is still pending."""
    async with persistence_guard("withdraw mentorship request"):
        request = await MentorshipRequest.get_or_none(id=request_id)
        if request is None:
            raise NotFound("Request not found", code="REQUEST_NOT_FOUND")
        if request.mentee_id != caller.user_id:
            raise Unauthorized("Only the requesting mentee can withdraw this request")
        updated = await MentorshipRequest.filter(id=request.id, status="pending").update(
            status="withdrawn", updated_at=timezone.now()
        )
        if not updated:
            raise NotFound("Request not found or cannot be withdrawn", code="REQUEST_NOT_FOUND")

    await record_activity(caller.user_id, f"Withdrew mentorship request #{request.id}")


# ----------------------------------------------------------------------------
# Active mentorships
# ----------------------------------------------------------------------------
async def complete_mentorship(caller: CallerIdentity, mentorship_id: int, reason: Optional[str] = None) -> None:
    """
    Complete an active mentorship and release the mentor's slot.

    Raises:
        NotFound: mentorship missing or already completed
        Unauthorized: caller is neither mentor, mentee nor admin
        PersistenceError: the mentor counter is already zero (integrity failure, rolled back)
    """
    async with persistence_guard("complete mentorship"):
        mentorship = await ActiveMentorship.filter(id=mentorship_id).select_related("mentor").first()
        if mentorship is None or mentorship.status != "active":
            raise NotFound("Mentorship not found or already completed", code="MENTORSHIP_NOT_FOUND")
        mentor_user_id = mentorship.mentor.user_id
        if caller.user_id not in (mentor_user_id, mentorship.mentee_id) and not caller.is_admin:
            raise Unauthorized("Only the mentor or mentee can end this mentorship")

        async with in_transaction() as conn:
            mentor = await Mentor.filter(id=mentorship.mentor_id).using_db(conn).select_for_update().first()
            updated = await ActiveMentorship.filter(id=mentorship.id, status="active").using_db(conn).update(
                status="completed",
                end_date=timezone.now().date(),
                completion_reason=(reason or "").strip() or "Completed",
                updated_at=timezone.now(),
            )
            if not updated:
                raise NotFound("Mentorship not found or already completed", code="MENTORSHIP_NOT_FOUND")
            if mentor.current_mentees <= 0:
                logger.error(
                    "[mentorship] mentor %s has current_mentees=%s while completing mentorship %s",
                    mentor.id, mentor.current_mentees, mentorship.id,
                )
                raise PersistenceError("Mentor mentee counter is inconsistent", code="INTEGRITY_ERROR")
            await Mentor.filter(id=mentor.id).using_db(conn).update(current_mentees=F("current_mentees") - 1)

    logger.info("[mentorship] mentorship %s completed by user %s", mentorship.id, caller.user_id)
    for user_id in (mentor_user_id, mentorship.mentee_id):
        if user_id == caller.user_id:
            await record_activity(user_id, f"Ended mentorship #{mentorship.id}")
        else:
            await record_activity(user_id, f"Mentorship #{mentorship.id} ended")


async def list_my_mentorships(caller: CallerIdentity) -> dict:
    uid = caller.user_id
    async with persistence_guard("list mentorships"):
        as_mentor = await ActiveMentorship.filter(mentor__user_id=uid).select_related("mentee").order_by("-id")
        as_mentee = await ActiveMentorship.filter(mentee_id=uid).select_related("mentor__user").order_by("-id")
        sent = await MentorshipRequest.filter(mentee_id=uid).select_related("mentor__user").order_by("-id")
        received = await MentorshipRequest.filter(mentor__user_id=uid).select_related("mentee").order_by("-id")

    return {
        "asMentor": [_mentorship_to_dict(m, m.mentee) for m in as_mentor],
        "asMentee": [_mentorship_to_dict(m, m.mentor.user) for m in as_mentee],
        "sentRequests": [_request_to_dict(r, r.mentor.user) for r in sent],
        "receivedRequests": [_request_to_dict(r, r.mentee) for r in received],
    }


async def get_stats() -> dict:
    async with persistence_guard("load mentorship stats"):
        return {
            "totalMentors": await Mentor.filter(is_active=True).count(),
            "availableMentors": await Mentor.filter(is_active=True, availability_status="available").count(),
            "totalRequests": await MentorshipRequest.all().count(),
            "pendingRequests": await MentorshipRequest.filter(status="pending").count(),
            "acceptedRequests": await MentorshipRequest.filter(status="accepted").count(),
            "activeMentorships": await ActiveMentorship.filter(status="active").count(),
            "completedMentorships": await ActiveMentorship.filter(status="completed").count(),
        }


# ----------------------------------------------------------------------------
# Matching preferences
# ----------------------------------------------------------------------------
def _preferences_to_dict(p: Optional[MentorshipPreference]) -> Optional[dict]:
    if p is None:
        return None
    return {
        "preferredSkills": list(p.preferred_skills or []),
        "careerStage": p.career_stage,
        "preferredMentorExperience": p.preferred_mentor_experience,
        "preferredCommunication": p.preferred_communication,
        "preferredMeetingFrequency": p.preferred_meeting_frequency,
        "specificGoals": p.specific_goals,
        "updatedAt": _iso(p.updated_at),
    }


async def save_preferences(caller: CallerIdentity, prefs: PreferencesIn) -> dict:
    skills = [s.strip() for s in prefs.preferredSkills if s and s.strip()]
    async with persistence_guard("save mentorship preferences"):
        row, _ = await MentorshipPreference.update_or_create(
            defaults={
                "preferred_skills": skills,
                "career_stage": prefs.careerStage,
                "preferred_mentor_experience": prefs.preferredMentorExperience,
                "preferred_communication": prefs.preferredCommunication,
                "preferred_meeting_frequency": prefs.preferredMeetingFrequency,
                "specific_goals": prefs.specificGoals,
            },
            user_id=caller.user_id,
        )
    return _preferences_to_dict(row)


async def get_preferences(caller: CallerIdentity) -> Optional[dict]:
    async with persistence_guard("load mentorship preferences"):
        row = await MentorshipPreference.get_or_none(user_id=caller.user_id)
    return _preferences_to_dict(row)
